"""Tests for include/exclude filtering."""

import logging

import pytest

from carddav2fb.contact import ContactRecord
from carddav2fb.errors import ConfigError
from carddav2fb.filters import (
    FilterRuleSet,
    apply_filters,
    count_filters,
    filter_matches,
    filters_match,
)


def contact(uid: str, group: str | None = None, **fields) -> ContactRecord:
    return ContactRecord(uid=uid, fullname=uid, fields=fields, group=group)


RECORDS = [
    contact("a", categories=("friends", "vip")),
    contact("b", categories=("spam",)),
    contact("c", group="Family"),
    contact("d", organization="ACME"),
]


def uids(records):
    return [r.uid for r in records]


def test_filter_matches_single_and_multi_valued():
    """Test attribute matching for plain and list attributes."""
    assert filter_matches("ACME", ["ACME"])
    assert filter_matches("ACME", "ACME")
    assert filter_matches(("friends", "vip"), ["vip"])
    assert not filter_matches(("friends", "vip"), ["vi"])
    assert not filter_matches("ACME Corp", ["ACME"])


def test_filters_match_ors_attributes():
    """Test that any matching attribute matches the record."""
    rules = {"organization": ("Other",), "group": ("Family",)}

    assert filters_match(RECORDS[2], rules)
    assert not filters_match(RECORDS[0], rules)


def test_category_alias():
    """Test that 'category' reads the categories attribute."""
    assert filters_match(RECORDS[1], {"category": ("spam",)})


def test_count_filters():
    assert count_filters(None) == 0
    assert count_filters({}) == 0
    assert count_filters({"categories": (), "group": ()}) == 0
    assert count_filters({"categories": ("a", "b"), "group": ("c",)}) == 3


def test_no_rules_pass_all():
    """Test that records pass unchanged without rules."""
    assert uids(apply_filters(RECORDS, FilterRuleSet())) == ["a", "b", "c", "d"]


def test_include_rules():
    """Test that only included records are kept."""
    rules = FilterRuleSet.from_mapping({"include": {"group": ["Family"], "categories": ["vip"]}})

    assert uids(apply_filters(RECORDS, rules)) == ["a", "c"]


def test_empty_include_passes_all(caplog):
    """Test that an include group without values includes everything."""
    rules = FilterRuleSet.from_mapping(
        {"include": {"categories": [], "group": []}, "exclude": {"categories": ["spam"]}}
    )

    with caplog.at_level(logging.INFO, logger="carddav2fb.filters"):
        result = apply_filters(RECORDS, rules)

    assert uids(result) == ["a", "c", "d"]
    assert "Include filter empty" in caplog.text


def test_include_without_attributes_passes_all():
    rules = FilterRuleSet(include={}, exclude={})

    assert uids(apply_filters(RECORDS, rules)) == uids(RECORDS)


def test_exclude_vetoes_included_records():
    """Test that exclusion runs after inclusion and can drop included records."""
    rules = FilterRuleSet.from_mapping(
        {"include": {"categories": ["friends", "spam"]}, "exclude": {"categories": ["vip"]}}
    )

    assert uids(apply_filters(RECORDS, rules)) == ["b"]


def test_single_value_rule_is_a_list():
    rules = FilterRuleSet.from_mapping({"exclude": {"organization": "ACME"}})

    assert rules.exclude["organization"] == ("ACME",)
    assert uids(apply_filters(RECORDS, rules)) == ["a", "b", "c"]


@pytest.mark.parametrize(
    "rules",
    [
        {},
        {"include": {"group": ["Family"]}},
        {"exclude": {"categories": ["spam"]}},
        {"include": {"categories": ["vip", "spam"]}, "exclude": {"categories": ["spam"]}},
        {"include": {"organization": ["nobody"]}, "exclude": {"group": ["Family"]}},
    ],
)
def test_filter_monotonicity(rules):
    """Test that each stage only ever removes records."""
    rule_set = FilterRuleSet.from_mapping(rules)
    included = apply_filters(RECORDS, FilterRuleSet(include=rule_set.include))
    result = apply_filters(RECORDS, rule_set)

    assert len(result) <= len(included) <= len(RECORDS)


def test_malformed_rules_raise_config_error():
    with pytest.raises(ConfigError):
        FilterRuleSet.from_mapping({"include": ["categories"]})
    with pytest.raises(ConfigError):
        FilterRuleSet.from_mapping(["include"])
