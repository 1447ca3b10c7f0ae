from __future__ import annotations

from scrape_rules.rule_types import Extractor, InlineRuleGroup
from scrape_rules.rules_lint import format_issues_text, lint_inline_groups, lint_rule_set


def title_og(ctx):
    return ctx.get("og:title")


def test_clean_rule_set_has_no_issues():
    rules = [
        ("title", [title_og, Extractor(fn=title_og, applies_to=lambda url: True)]),
        ("image", [{"fn": title_og}]),
    ]
    issues = lint_rule_set(rules)
    assert issues == []
    assert format_issues_text(issues).startswith("OK")


def test_duplicate_and_malformed_entries_are_errors():
    rules = [
        ("title", [title_og]),
        ("title", [title_og]),
        ("image", "img::attr(src)"),
        ("author", [title_og, "h1::text", {"fn": None}]),
        ("", [title_og]),
        ("lang",),
    ]
    issues = lint_rule_set(rules)
    got = {(x.level, x.path) for x in issues}

    assert ("error", "rules.title") in got
    assert ("error", "rules.image") in got
    assert ("error", "rules.author[1]") in got
    assert ("error", "rules.author[2]") in got
    assert ("error", "rules[4]") in got
    assert ("error", "rules[5]") in got
    assert ("error", "rules.author[0]") not in got


def test_empty_extractor_list_is_a_warning():
    issues = lint_rule_set([("lang", [])])
    assert [(x.level, x.path) for x in issues] == [("warn", "rules.lang")]

    text = format_issues_text(issues)
    assert "WARNINGS: 1" in text
    assert "rules.lang" in text


def test_lint_inline_groups_checks_test_and_values():
    groups = [
        {"test": "example.com", "title": title_og},
        {"image": ["img::attr(src)"]},
        InlineRuleGroup.from_dict({"test": lambda url: True, "author": [title_og]}),
        "not-a-group",
    ]
    issues = lint_inline_groups(groups)
    got = [(x.level, x.path) for x in issues]

    assert ("error", "inline[0].test") in got
    assert ("error", "inline[1].image[0]") in got
    assert ("error", "inline[3]") in got
    assert not any(path.startswith("inline[2]") for _, path in got)
    assert not any(path == "inline[0].title" for _, path in got)

    text = format_issues_text(issues)
    assert text.startswith("ERRORS: 3")


def test_rule_set_must_be_a_list():
    issues = lint_rule_set({"title": [title_og]})
    assert [(x.level, x.path) for x in issues] == [("error", "rules")]
