"""
config.py — JSON-конфиг сборки базового rule set.

Формат (пример)
---------------
{
  "extends": "base.json",
  "plugins": ["my_rules.title", "my_rules.image:make_rules"],
  "inline": ["my_rules.overrides:inline"],
  "pick": [],
  "omit": ["lang"]
}

Порядок слияния:
  defaults -> extends[0] -> extends[1] -> ... -> сам конфиг

Списки НЕ склеиваются: более поздний слой заменяет список целиком.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
import os
from typing import Any, Optional

from .plugins import load_plugins, normalize_plugin_refs
from .rule_types import RuleSet
from .rules import load_rules, select_rules

logger = logging.getLogger(__name__)

# путь к конфигу, если CLI вызван без --config
CONFIG_ENV = "SCRAPE_RULES_CONFIG"

_LIST_KEYS = ("plugins", "inline", "pick", "omit")


@dataclass
class RulesConfig:
    """
    RulesConfig — какие плагины грузить и как фильтровать результат.

    - plugins: ссылки на плагины базового набора (порядок = приоритет)
    - inline: ссылки на плагины, чьи бандлы идут как inline-группы
    - pick: оставить только эти свойства (пусто = все)
    - omit: выбросить эти свойства
    """
    plugins: list[str] = field(default_factory=list)
    inline: list[str] = field(default_factory=list)
    pick: list[str] = field(default_factory=list)
    omit: list[str] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "plugins": list(self.plugins),
            "inline": list(self.inline),
            "pick": list(self.pick),
            "omit": list(self.omit),
            "_meta": dict(self.meta),
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "RulesConfig":
        def to_names(key: str) -> list[str]:
            raw = d.get(key)
            if raw is None:
                return []
            if isinstance(raw, str):
                raw = [raw]
            if not isinstance(raw, list):
                raise ValueError(f"config '{key}' must be a string or list of strings")
            bad = [x for x in raw if not isinstance(x, str)]
            if bad:
                raise ValueError(f"config '{key}' must contain only strings, got {bad[0]!r}")
            return [x.strip() for x in raw if x.strip()]

        meta = d.get("_meta") or d.get("meta") or {}
        if not isinstance(meta, dict):
            meta = {}

        return RulesConfig(
            plugins=normalize_plugin_refs(to_names("plugins")),
            inline=normalize_plugin_refs(to_names("inline")),
            pick=to_names("pick"),
            omit=to_names("omit"),
            meta=meta,
        )

    @staticmethod
    def from_json_file(path: str) -> "RulesConfig":
        return RulesConfig.from_dict(_load_json_dict(path))


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """dict + dict -> рекурсивно, остальные типы -> override заменяет base."""
    out: dict[str, Any] = dict(base)
    for k, v in (override or {}).items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _load_json_dict(path: str) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        obj = json.load(f)
    if not isinstance(obj, dict):
        raise ValueError(f"config must be dict JSON: {path}")
    return obj


def _extends_paths(raw: dict[str, Any], base_dir: str) -> list[str]:
    extends = raw.get("extends") or raw.get("_extends")
    if isinstance(extends, str):
        refs = [extends]
    elif isinstance(extends, list):
        refs = [x for x in extends if isinstance(x, str)]
    else:
        refs = []
    return [p if os.path.isabs(p) else os.path.normpath(os.path.join(base_dir, p)) for p in refs]


def load_config(
    path: str,
    *,
    defaults_path: Optional[str] = None,
    base_dir: Optional[str] = None,
) -> RulesConfig:
    """
    Слои: defaults -> extends[...] -> сам файл.

    В `_meta.layers` пишем применённые файлы по порядку, в
    `_meta.sources` — какой слой последним задал plugins/inline/pick/omit:
    при списках "заменить целиком" это главный вопрос при отладке.
    """
    if base_dir is None:
        base_dir = os.path.dirname(path) or "."

    raw = _load_json_dict(path)
    own = {k: v for k, v in raw.items() if k not in ("extends", "_extends")}

    layers: list[tuple[str, dict[str, Any]]] = []
    if defaults_path:
        layers.append((defaults_path, _load_json_dict(defaults_path)))
    for p in _extends_paths(raw, base_dir):
        layers.append((p, _load_json_dict(p)))
    layers.append((path, own))

    merged: dict[str, Any] = {}
    sources: dict[str, str] = {}
    for layer_path, layer in layers:
        merged = _deep_merge(merged, layer)
        for key in _LIST_KEYS:
            if key in layer:
                sources[key] = layer_path

    cfg = RulesConfig.from_dict(merged)
    cfg.meta["layers"] = [p for p, _ in layers]
    cfg.meta["sources"] = sources
    logger.debug("config %s: layers=%s sources=%s", path, cfg.meta["layers"], sources)
    return cfg


def resolve_config_path(path: Optional[str]) -> Optional[str]:
    if path:
        return path
    env = os.environ.get(CONFIG_ENV, "").strip()
    return env or None


def build_rule_set(config: RulesConfig) -> RuleSet:
    """plugins -> load_rules -> pick/omit."""
    bundles = load_plugins(config.plugins)
    rules = load_rules(bundles)
    out = select_rules(rules, pick=config.pick or None, omit=config.omit)
    logger.info("base rule set: %d propert(ies) from %d bundle(s)", len(out), len(bundles))
    return out


def build_inline_groups(config: RulesConfig) -> list[dict[str, Any]]:
    return [dict(b) for b in load_plugins(config.inline)]
