"""Build, filter and merge extraction rule sets.

A rule set is an ordered list of ``(property, [extractors...])`` pairs. The
execution engine walks properties in order and tries each extractor in order
until one yields a value, so both orders matter here.

Nothing in this module mutates its inputs: every function returns freshly
built lists and pairs. Extraction functions themselves are shared by
reference; a predicate is attached by wrapping the function in
:class:`~scrape_rules.rule_types.Extractor`, never by setting attributes on it.

Example:
    from scrape_rules.rules import load_rules, merge_rules

    base = load_rules([{"title": [title_from_og]}])
    rules = merge_rules([{"test": lambda url: "shop" in url, "price": [price_fn]}], base)
"""

from __future__ import annotations

from dataclasses import replace
import logging
from typing import Any, Iterable, Optional

from .rule_types import (
    TEST_KEY,
    Extractor,
    ExtractorEntry,
    ExtractorList,
    InlineRulesInput,
    Predicate,
    RuleSet,
    as_inline_group,
    as_inline_groups,
    callable_name,
)

logger = logging.getLogger(__name__)


def _clone(value: Any) -> Any:
    # containers are rebuilt; functions, Extractor wrappers and other values are leaves
    if type(value) is list:
        return [_clone(v) for v in value]
    if type(value) is tuple:
        return tuple(_clone(v) for v in value)
    if type(value) is dict:
        return {k: _clone(v) for k, v in value.items()}
    return value


def _as_list(extractors: Any) -> ExtractorList:
    if isinstance(extractors, (list, tuple)):
        return [_clone(e) for e in extractors]
    return [_clone(extractors)]


def clone_rule_set(rule_set: Iterable[Any]) -> RuleSet:
    """Structural copy of a rule set.

    Pairs may be tuples or two-item lists; the copy always uses
    ``(name, list)`` tuples. No list, pair or dict in the result aliases the
    input.
    """
    out: RuleSet = []
    for pair in rule_set or ():
        name, extractors = pair
        out.append((name, _as_list(extractors)))
    return out


def extractor_fn(entry: ExtractorEntry) -> Any:
    """Callable behind any entry shape (bare callable, Extractor, dict with `fn`)."""
    if isinstance(entry, Extractor):
        return entry.fn
    if isinstance(entry, dict):
        return entry.get("fn")
    if callable(entry):
        return entry
    return None


def extractor_predicate(entry: ExtractorEntry) -> Optional[Predicate]:
    if isinstance(entry, Extractor):
        return entry.applies_to
    if isinstance(entry, dict):
        test = entry.get(TEST_KEY)
        return test if callable(test) else None
    return None


def wrap_extractor(entry: ExtractorEntry, predicate: Optional[Predicate]) -> ExtractorEntry:
    """Return an entry carrying `predicate`; the given entry is left untouched."""
    if predicate is None:
        return _clone(entry)
    if isinstance(entry, Extractor):
        return replace(entry, applies_to=predicate)
    if isinstance(entry, dict):
        # подклассы dict (OrderedDict, defaultdict) _clone не пересобирает
        out = {k: _clone(v) for k, v in entry.items()}
        out[TEST_KEY] = predicate
        return out
    return Extractor(fn=entry, applies_to=predicate)


def load_rules(bundles: Iterable[InlineRulesInput]) -> RuleSet:
    """Assemble a base rule set from plugin bundles.

    Bundles are applied in order; when several bundles define the same
    property their extractors are concatenated, earlier bundle first. A
    bundle's `test` travels with each extractor it contributes.
    """
    acc: dict[str, ExtractorList] = {}
    for raw in bundles or ():
        bundle = as_inline_group(raw)
        for name, extractors in bundle.rules:
            wrapped = [wrap_extractor(e, bundle.predicate) for e in extractors]
            acc.setdefault(name, []).extend(wrapped)
    return list(acc.items())


def select_rules(
    rule_set: Iterable[Any],
    *,
    pick: Optional[Iterable[str]] = None,
    omit: Optional[Iterable[str]] = None,
) -> RuleSet:
    """Copy of `rule_set` restricted to `pick` (when given) and without `omit`."""
    pick_set = set(pick) if pick else None
    omit_set = set(omit or ())
    out: RuleSet = []
    for name, extractors in clone_rule_set(rule_set):
        if pick_set is not None and name not in pick_set:
            continue
        if name in omit_set:
            continue
        out.append((name, extractors))
    return out


def merge_rules_with_report(
    inline_groups: Optional[Iterable[InlineRulesInput]],
    base_rules: Iterable[Any],
    *,
    omit: Optional[Iterable[str]] = None,
) -> tuple[RuleSet, dict[str, Any]]:
    """Merge and describe what happened.

    Report:
      {
        "groups": 2,               # inline groups seen
        "predicated": 1,           # of them carrying a `test`
        "extended": ["title"],     # base properties that got inline extractors
        "added": ["price"],        # properties introduced by inline groups
        "omitted": ["lang"],       # inline properties skipped via `omit`
      }
    """
    out = clone_rule_set(base_rules)

    # duplicate base names: inline extractors go to the first occurrence
    index: dict[str, int] = {}
    for i, (name, _) in enumerate(out):
        index.setdefault(name, i)

    omit_set = set(omit or ())
    groups = as_inline_groups(inline_groups)

    # property -> inline contributions, groups in input order
    contributed: dict[str, ExtractorList] = {}
    omitted: list[str] = []

    for group in groups:
        for name, extractors in group.rules:
            if name in omit_set:
                if name not in omitted:
                    omitted.append(name)
                continue
            wrapped = [wrap_extractor(e, group.predicate) for e in extractors]
            contributed.setdefault(name, []).extend(wrapped)

    extended: list[str] = []
    added: list[str] = []
    for name, inline_extractors in contributed.items():
        idx = index.get(name)
        if idx is None:
            out.append((name, inline_extractors))
            added.append(name)
            continue
        prop, base_extractors = out[idx]
        out[idx] = (prop, inline_extractors + base_extractors)
        extended.append(name)

    report = {
        "groups": len(groups),
        "predicated": sum(1 for g in groups if g.predicate is not None),
        "extended": extended,
        "added": added,
        "omitted": omitted,
    }
    logger.debug(
        "merged %d inline group(s): extended=%s added=%s omitted=%s",
        report["groups"], extended, added, omitted,
    )
    return out, report


def merge_rules(
    inline_groups: Optional[Iterable[InlineRulesInput]],
    base_rules: Iterable[Any],
    *,
    omit: Optional[Iterable[str]] = None,
) -> RuleSet:
    """Merge inline rule groups on top of a base rule set.

    - inline extractors run before base extractors of the same property
    - earlier inline groups run before later ones
    - properties unknown to the base are appended in first-seen order
    - a group's `test` is attached to every extractor it contributes

    Neither argument is mutated; the result shares only extraction
    functions with them.
    """
    out, _ = merge_rules_with_report(inline_groups, base_rules, omit=omit)
    return out


def describe_rule_set(rule_set: Iterable[Any]) -> list[dict[str, Any]]:
    """JSON-friendly view of a rule set (names only, no callables)."""
    out: list[dict[str, Any]] = []
    for name, extractors in clone_rule_set(rule_set):
        out.append({
            "property": name,
            "extractors": [
                {
                    "name": callable_name(extractor_fn(e)) if extractor_fn(e) is not None else repr(e),
                    "has_test": extractor_predicate(e) is not None,
                }
                for e in extractors
            ],
        })
    return out
