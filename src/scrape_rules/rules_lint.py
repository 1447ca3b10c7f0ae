from __future__ import annotations

"""rules_lint.py — статическая проверка правил до прогона.

merge_rules() ничего не валидирует: кривое правило всплывёт только при исполнении
(как "экстрактор ничего не нашёл"). lint нужен, чтобы поймать это заранее.

Что lint УМЕЕТ:
- дубликаты имён свойств в rule set (merge видит только первое вхождение)
- пустые/нестроковые имена свойств
- список экстракторов, который не список
- элемент без callable
- некорректный `test`

Что lint ОСОЗНАННО НЕ ДЕЛАЕТ:
- не вызывает экстракторы и предикаты
- не сверяет имена свойств со схемой
"""

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from .rule_types import TEST_KEY, Extractor


@dataclass
class LintIssue:
    level: str   # error|warn
    path: str
    message: str


def _entry_issue(entry: Any) -> str | None:
    if isinstance(entry, Extractor):
        if not callable(entry.fn):
            return "Extractor.fn is not callable"
        if entry.applies_to is not None and not callable(entry.applies_to):
            return "Extractor.applies_to is not callable"
        return None
    if isinstance(entry, dict):
        if not callable(entry.get("fn")):
            return "rule object must carry a callable 'fn'"
        test = entry.get(TEST_KEY)
        if test is not None and not callable(test):
            return f"rule object '{TEST_KEY}' is not callable"
        return None
    if not callable(entry):
        return f"extractor must be callable, got {type(entry).__name__}"
    return None


def _lint_extractors(path: str, extractors: Any, issues: list[LintIssue], *, allow_single: bool) -> None:
    if not isinstance(extractors, (list, tuple)):
        if allow_single and (callable(extractors) or isinstance(extractors, dict)):
            extractors = [extractors]
        else:
            issues.append(LintIssue("error", path, f"extractors must be a list, got {type(extractors).__name__}"))
            return

    if not extractors:
        issues.append(LintIssue("warn", path, "empty extractor list: property will never get a value"))
        return

    for i, entry in enumerate(extractors):
        msg = _entry_issue(entry)
        if msg:
            issues.append(LintIssue("error", f"{path}[{i}]", msg))


def _is_prop_name(name: Any) -> bool:
    return isinstance(name, str) and bool(name.strip())


def lint_rule_set(rule_set: Any, *, prefix: str = "rules") -> list[LintIssue]:
    issues: list[LintIssue] = []
    if not isinstance(rule_set, (list, tuple)):
        issues.append(LintIssue("error", prefix, "rule set must be a list of (property, extractors) pairs"))
        return issues

    seen: dict[str, int] = {}
    for i, pair in enumerate(rule_set):
        base_path = f"{prefix}[{i}]"
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            issues.append(LintIssue("error", base_path, "pair must be (property, extractors)"))
            continue

        name, extractors = pair
        if not _is_prop_name(name):
            issues.append(LintIssue("error", base_path, f"property name must be a non-empty string, got {name!r}"))
            continue

        if name in seen:
            issues.append(LintIssue(
                "error",
                f"{prefix}.{name}",
                f"duplicate property (first at {prefix}[{seen[name]}]); inline rules only reach the first one",
            ))
        else:
            seen[name] = i

        _lint_extractors(f"{prefix}.{name}", extractors, issues, allow_single=False)

    return issues


def lint_inline_groups(groups: Iterable[Any], *, prefix: str = "inline") -> list[LintIssue]:
    issues: list[LintIssue] = []
    for i, group in enumerate(groups or ()):
        base_path = f"{prefix}[{i}]"
        if not isinstance(group, Mapping):
            # InlineRuleGroup уже прошёл разбор в from_dict()
            rules = getattr(group, "rules", None)
            if rules is None:
                issues.append(LintIssue("error", base_path, "inline rule group must be a mapping"))
                continue
            group = dict(rules, **({TEST_KEY: group.predicate} if group.predicate is not None else {}))

        test = group.get(TEST_KEY)
        if test is not None and not callable(test):
            issues.append(LintIssue("error", f"{base_path}.{TEST_KEY}", f"'{TEST_KEY}' must be callable"))

        for name, extractors in group.items():
            if name == TEST_KEY:
                continue
            if not _is_prop_name(name):
                issues.append(LintIssue("error", base_path, f"property name must be a non-empty string, got {name!r}"))
                continue
            _lint_extractors(f"{base_path}.{name}", extractors, issues, allow_single=True)

    return issues


def format_issues_text(issues: list[LintIssue]) -> str:
    if not issues:
        return "OK: rules passed lint."

    lines: list[str] = []
    errs = [x for x in issues if x.level == "error"]
    warns = [x for x in issues if x.level != "error"]

    if errs:
        lines.append(f"ERRORS: {len(errs)}")
        for it in errs:
            lines.append(f"  - {it.path}: {it.message}")

    if warns:
        lines.append(f"WARNINGS: {len(warns)}")
        for it in warns:
            lines.append(f"  - {it.path}: {it.message}")

    return "\n".join(lines)
