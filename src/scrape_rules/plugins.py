from __future__ import annotations

"""plugins.py — загрузка rule bundles из python-модулей.

Ссылка на плагин:
  "my_rules.image:rules"      -> атрибут rules модуля my_rules.image
  "my_rules.image"            -> атрибут по умолчанию (`rules`)
  "my_rules.image:make_rules" -> фабрика без аргументов, вызывается

Атрибут (или результат фабрики) — dict-бандл или список dict-бандлов.
"""

import importlib
import logging
from typing import Any, Iterable, Mapping, Optional

from .rule_types import RuleBundle

logger = logging.getLogger(__name__)

DEFAULT_ATTR = "rules"


class PluginError(ValueError):
    """Plugin reference cannot be resolved into rule bundles."""

    def __init__(self, ref: str, reason: str) -> None:
        super().__init__(f"plugin '{ref}': {reason}")
        self.ref = ref
        self.reason = reason


def normalize_plugin_refs(raw: Optional[Iterable[str]]) -> list[str]:
    out: list[str] = []
    for value in raw or []:
        if not isinstance(value, str):
            continue
        for piece in value.split(","):
            p = piece.strip()
            if p:
                out.append(p)
    return out


def _split_ref(ref: str) -> tuple[str, str]:
    raw = (ref or "").strip()
    if not raw:
        raise PluginError(ref, "empty reference")
    if ":" in raw:
        module_name, attr = raw.split(":", 1)
        module_name, attr = module_name.strip(), attr.strip()
    else:
        module_name, attr = raw, DEFAULT_ATTR
    if not module_name or not attr:
        raise PluginError(ref, "expected 'module' or 'module:attr'")
    return module_name, attr


def _as_bundles(ref: str, value: Any) -> list[RuleBundle]:
    if isinstance(value, Mapping):
        return [value]
    if isinstance(value, (list, tuple)):
        bad = [type(x).__name__ for x in value if not isinstance(x, Mapping)]
        if bad:
            raise PluginError(ref, f"bundle list must contain mappings, got {bad[0]}")
        return list(value)
    raise PluginError(ref, f"expected a rule bundle or a list of bundles, got {type(value).__name__}")


def resolve_plugin(ref: str) -> list[RuleBundle]:
    module_name, attr = _split_ref(ref)
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise PluginError(ref, f"cannot import module '{module_name}': {e}") from e

    if not hasattr(module, attr):
        raise PluginError(ref, f"module '{module_name}' has no attribute '{attr}'")
    value = getattr(module, attr)

    # фабрика плагина: вызываем без аргументов
    if callable(value) and not isinstance(value, Mapping):
        try:
            value = value()
        except Exception as e:
            raise PluginError(ref, f"factory failed: {type(e).__name__}: {e}") from e

    bundles = _as_bundles(ref, value)
    logger.info("plugin %s: %d bundle(s)", ref, len(bundles))
    return bundles


def load_plugins(refs: Iterable[str]) -> list[RuleBundle]:
    out: list[RuleBundle] = []
    for ref in normalize_plugin_refs(refs):
        out.extend(resolve_plugin(ref))
    return out
