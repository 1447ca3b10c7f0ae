from __future__ import annotations

import functools

import pytest

from scrape_rules.rule_types import Extractor, InlineRuleGroup, as_inline_groups, callable_name
from scrape_rules.rules import (
    clone_rule_set,
    describe_rule_set,
    load_rules,
    merge_rules_with_report,
    select_rules,
)


def title_og(ctx):
    return ctx.get("og:title")


def title_h1(ctx):
    return ctx.get("h1")


def image_logo(ctx):
    return ctx.get("logo")


def test_inline_group_from_dict_separates_test_key():
    pred = lambda url: True  # noqa: E731
    g = InlineRuleGroup.from_dict({"test": pred, "title": [title_og], "image": image_logo})

    assert g.predicate is pred
    assert g.prop_names == ("title", "image")
    assert g.rules == (("title", (title_og,)), ("image", (image_logo,)))

    back = g.to_dict()
    assert back == {"title": [title_og], "image": [image_logo], "test": pred}


@pytest.mark.parametrize(
    "raw, needle",
    [
        ({"title": "h1::text"}, "property 'title'"),
        ({"title": 42}, "property 'title'"),
        ({"test": "example.com", "title": [title_og]}, "'test' must be callable"),
        ({"": [title_og]}, "non-empty string"),
    ],
)
def test_inline_group_from_dict_rejects_malformed(raw, needle):
    with pytest.raises(ValueError) as ei:
        InlineRuleGroup.from_dict(raw)
    assert needle in str(ei.value)


def test_as_inline_groups_accepts_single_mapping():
    groups = as_inline_groups({"title": [title_og]})
    assert len(groups) == 1
    assert groups[0].prop_names == ("title",)


def test_load_rules_concatenates_bundles_in_order():
    only_news = lambda url: "/news/" in url  # noqa: E731
    rules = load_rules([
        {"title": [title_og], "image": [image_logo]},
        {"test": only_news, "title": [title_h1]},
    ])

    assert [name for name, _ in rules] == ["title", "image"]
    title = dict(rules)["title"]
    assert title[0] is title_og
    assert isinstance(title[1], Extractor)
    assert title[1].fn is title_h1
    assert title[1].applies_to is only_news


def test_clone_rule_set_normalizes_pairs_and_copies_nested_containers():
    rule = {"fn": title_og, "opts": {"selectors": ["h1", "h2"]}}
    src = [["title", [rule]], ("image", image_logo)]

    out = clone_rule_set(src)

    assert out == [("title", [rule]), ("image", [image_logo])]
    assert out[0][1][0] is not rule
    assert out[0][1][0]["opts"]["selectors"] is not rule["opts"]["selectors"]


def test_select_rules_pick_and_omit():
    rules = [("title", [title_og]), ("image", [image_logo]), ("lang", [])]

    assert [n for n, _ in select_rules(rules, pick=["image", "title"])] == ["title", "image"]
    assert [n for n, _ in select_rules(rules, omit=["lang"])] == ["title", "image"]
    assert [n for n, _ in select_rules(rules, pick=["title", "lang"], omit=["lang"])] == ["title"]

    picked = select_rules(rules)
    assert picked == rules
    assert picked[0][1] is not rules[0][1]


def test_merge_report_lists_extended_added_and_omitted():
    _, report = merge_rules_with_report(
        [
            {"test": lambda url: True, "title": [title_h1], "price": [image_logo]},
            {"lang": [title_og], "title": [title_og]},
        ],
        [("title", [title_og]), ("lang", [])],
        omit=["lang"],
    )

    assert report == {
        "groups": 2,
        "predicated": 1,
        "extended": ["title"],
        "added": ["price"],
        "omitted": ["lang"],
    }


def test_describe_rule_set_is_json_friendly():
    rules = load_rules([
        {"title": [title_og]},
        {"test": lambda url: True, "title": [functools.partial(title_h1)]},
        {"image": [{"fn": image_logo, "test": lambda url: False}]},
    ])

    assert describe_rule_set(rules) == [
        {
            "property": "title",
            "extractors": [
                {"name": "title_og", "has_test": False},
                {"name": "title_h1", "has_test": True},
            ],
        },
        {
            "property": "image",
            "extractors": [{"name": "image_logo", "has_test": True}],
        },
    ]


def test_callable_name_handles_lambdas_and_wrappers():
    assert callable_name(title_og) == "title_og"
    assert callable_name(lambda ctx: None) == "test_callable_name_handles_lambdas_and_wrappers.<locals>.<lambda>"
    assert callable_name(Extractor(fn=image_logo)) == "image_logo"
