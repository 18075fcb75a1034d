"""Include/exclude filtering of contacts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from .contact import AttributeValue, ContactRecord
from .errors import ConfigError

logger = logging.getLogger("carddav2fb.filters")

RuleGroup = Mapping[str, tuple[Any, ...]]


def rule_group(name: str, rules: Any) -> dict[str, tuple[Any, ...]]:
    """Normalize a rule group, turning single values into one-element tuples."""
    if not isinstance(rules, Mapping):
        raise ConfigError(f"filter {name!r} must be a mapping of attribute to values")

    group: dict[str, tuple[Any, ...]] = {}
    for attribute, values in rules.items():
        if values is None:
            group[str(attribute)] = ()
        elif isinstance(values, (list, tuple)):
            group[str(attribute)] = tuple(values)
        else:
            group[str(attribute)] = (values,)
    return group


@dataclass(frozen=True)
class FilterRuleSet:
    """Include and exclude rules.

    ``include`` is None when no include rules were configured at all, which
    is distinct from an include group whose attributes have no values.
    """

    include: RuleGroup | None = None
    exclude: RuleGroup = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> FilterRuleSet:
        """Build a rule set from configuration.

        Raises:
            ConfigError: If a rule group is not a mapping
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ConfigError("filters must be a mapping with 'include' and 'exclude'")

        include = data.get("include")
        exclude = data.get("exclude")
        return cls(
            include=rule_group("include", include) if include is not None else None,
            exclude=rule_group("exclude", exclude) if exclude is not None else {},
        )


def count_filters(rules: RuleGroup | None) -> int:
    """Count populated filter values of a rule group."""
    if not rules:
        return 0
    return sum(len(values) for values in rules.values())


def filter_matches(attribute: AttributeValue, filter_values: Any) -> bool:
    """Check a filter against a single attribute.

    Args:
        attribute: Attribute value of a contact, single or multi-valued
        filter_values: Acceptable values; a single value is treated as a list

    Returns:
        True if any filter value equals the attribute or one of its elements
    """
    if not isinstance(filter_values, (list, tuple)):
        filter_values = (filter_values,)

    for value in filter_values:
        if isinstance(attribute, (list, tuple)):
            if any(child == value for child in attribute):
                return True
        elif attribute == value:
            return True

    return False


def filters_match(record: ContactRecord, rules: RuleGroup) -> bool:
    """Check if any rule of a rule group matches a contact."""
    for name, values in rules.items():
        attribute = record.attribute(name)
        if attribute is not None and filter_matches(attribute, values):
            return True
    return False


def apply_filters(records: Sequence[ContactRecord], rules: FilterRuleSet) -> list[ContactRecord]:
    """Shortlist contacts by include rules, then drop excluded ones.

    Args:
        records: Contacts after group dissolution
        rules: Filter configuration

    Returns:
        New list of the remaining contacts in input order
    """
    if count_filters(rules.include):
        included = [r for r in records if filters_match(r, rules.include)]
    else:
        if rules.include:
            logger.info("Include filter empty, including all cards")
        included = list(records)

    if not count_filters(rules.exclude):
        return included

    return [r for r in included if not filters_match(r, rules.exclude)]
