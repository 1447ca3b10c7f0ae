"""scrape_rules package.

Extraction rule sets for a metadata scraper: plugin bundles -> base rule set,
plus per-call inline rules merged on top (inline extractors first).

Entry point: `scrape-rules` (console script).
"""

from .rule_types import Extractor, InlineRuleGroup
from .rules import load_rules, merge_rules, merge_rules_with_report, select_rules

__all__ = [
    "Extractor",
    "InlineRuleGroup",
    "load_rules",
    "merge_rules",
    "merge_rules_with_report",
    "select_rules",
]
