from __future__ import annotations

"""
cli.py — точка входа `scrape-rules`.

Команды:
- plan : собрать базовый rule set из плагинов, наложить inline-группы и
         показать итоговый порядок экстракторов (JSON)
- lint : статическая проверка базового набора и inline-групп

Экстракторы здесь не исполняются и HTML не парсится.
"""

import argparse
import json
import logging
import sys
from typing import Any, Optional

from .config import RulesConfig, build_inline_groups, build_rule_set, load_config, resolve_config_path
from .plugins import PluginError, load_plugins
from .rules import describe_rule_set, merge_rules_with_report
from .rules_lint import format_issues_text, lint_inline_groups


class CliError(Exception):
    def __init__(self, message: str, exit_code: int = 1) -> None:
        super().__init__(message)
        self.exit_code = exit_code


def _pretty(obj: Any, pretty: bool) -> str:
    return json.dumps(obj, ensure_ascii=False, indent=(2 if pretty else None))


def _config_from_args(args: argparse.Namespace) -> RulesConfig:
    path = resolve_config_path(getattr(args, "config", None))
    if path:
        try:
            cfg = load_config(path, defaults_path=getattr(args, "defaults", None))
        except FileNotFoundError as e:
            raise CliError(f"config not found: {e.filename or path}") from e
        except (ValueError, json.JSONDecodeError) as e:
            raise CliError(f"bad config {path}: {e}") from e
    else:
        cfg = RulesConfig()

    # флаги CLI дописываются к конфигу, pick/omit — тоже
    cfg.plugins = cfg.plugins + list(args.plugin or [])
    cfg.inline = cfg.inline + list(args.inline or [])
    cfg.pick = cfg.pick + list(args.pick or [])
    cfg.omit = cfg.omit + list(args.omit or [])
    return cfg


def cmd_plan(args: argparse.Namespace) -> int:
    cfg = _config_from_args(args)
    try:
        base = build_rule_set(cfg)
        inline = build_inline_groups(cfg)
        merged, report = merge_rules_with_report(inline, base, omit=cfg.omit)
    except PluginError as e:
        raise CliError(str(e)) from e
    except ValueError as e:
        raise CliError(f"bad rules: {e}") from e

    out = {
        "plugins": cfg.plugins,
        "inline": cfg.inline,
        "report": report,
        "rules": describe_rule_set(merged),
    }
    print(_pretty(out, args.pretty))
    return 0


def cmd_lint(args: argparse.Namespace) -> int:
    """Статический контроль правил (экстракторы не вызываются)."""
    cfg = _config_from_args(args)
    try:
        bundles = load_plugins(cfg.plugins)
        inline = load_plugins(cfg.inline)
    except PluginError as e:
        raise CliError(str(e)) from e

    # бандлы проверяем "сырыми": load_rules() упал бы на первой же ошибке
    issues = lint_inline_groups(bundles, prefix="plugins") + lint_inline_groups(inline)
    has_errors = any(x.level == "error" for x in issues)

    if getattr(args, "json", False):
        out = {
            "ok": not has_errors,
            "issues": [
                {"level": x.level, "path": x.path, "message": x.message}
                for x in issues
            ],
        }
        print(_pretty(out, getattr(args, "pretty", False)))
    else:
        print(format_issues_text(issues))

    return 2 if has_errors else 0


def _add_rule_inputs(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", default=None, help="rules config JSON (default: $SCRAPE_RULES_CONFIG)")
    p.add_argument("--defaults", default=None, help="path to defaults config JSON")
    p.add_argument("--plugin", action="append", default=[], help="base plugin ref module[:attr] (repeatable)")
    p.add_argument("--inline", action="append", default=[], help="inline rules plugin ref module[:attr] (repeatable)")
    p.add_argument("--pick", action="append", default=[], help="keep only this property (repeatable)")
    p.add_argument("--omit", action="append", default=[], help="drop this property (repeatable)")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="scrape-rules")
    p.add_argument("--pretty", action="store_true", help="pretty JSON output")
    p.add_argument("-v", "--verbose", action="store_true", help="log plugin loading and merge details to stderr")

    sub = p.add_subparsers(dest="cmd", required=True)

    pl = sub.add_parser("plan", help="merged rule order as JSON (no extraction)")
    _add_rule_inputs(pl)
    pl.set_defaults(fn=cmd_plan)

    li = sub.add_parser("lint", help="static rules validation")
    _add_rule_inputs(li)
    li.add_argument("--json", action="store_true", help="issues as JSON")
    li.set_defaults(fn=cmd_lint)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    try:
        return int(args.fn(args) or 0)
    except CliError as e:
        print(str(e), file=sys.stderr)
        return int(e.exit_code)


if __name__ == "__main__":
    raise SystemExit(main())
