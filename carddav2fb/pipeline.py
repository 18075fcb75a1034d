"""Contact transformation pipeline.

Each stage fully materializes its output before the next one starts:
group dissolution, filtering, conversion, quick dial merge, assembly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from lxml import etree

from .contact import ContactRecord
from .errors import ConversionError
from .filters import FilterRuleSet, apply_filters
from .fritzbox.converter import Converter
from .fritzbox.phonebook import PhonebookEntry, PhonebookMeta, assemble
from .fritzbox.quickdial import RemotePhonebookSnapshot, merge_quick_dials
from .groups import dissolve_groups

logger = logging.getLogger("carddav2fb.pipeline")


@dataclass
class PipelineResult:
    """Output of a pipeline run."""

    document: etree._ElementTree
    entries: list[PhonebookEntry]
    contacts: list[ContactRecord]


def convert_all(records: Sequence[ContactRecord], converter: Converter) -> list[PhonebookEntry]:
    """Convert contacts to phonebook entries, keeping contact order.

    Raises:
        ConversionError: If there were contacts but none yielded an entry
    """
    entries: list[PhonebookEntry] = []
    for record in records:
        entries.extend(converter.convert(record))

    if records and not entries:
        raise ConversionError(
            f"none of {len(records)} contacts could be converted, check the conversion rules"
        )
    return entries


def filter_contacts(records: Sequence[ContactRecord], rules: FilterRuleSet) -> list[ContactRecord]:
    """Dissolve groups and apply the include/exclude rules."""
    contacts = dissolve_groups(records)
    filtered = apply_filters(contacts, rules)
    logger.info(f"Selected {len(filtered)} of {len(contacts)} contacts")
    return filtered


def build_phonebook(
    contacts: Sequence[ContactRecord],
    converter: Converter,
    meta: PhonebookMeta,
    snapshot: RemotePhonebookSnapshot | None,
) -> PipelineResult:
    """Convert filtered contacts and assemble the phonebook document."""
    entries = convert_all(contacts, converter)
    entries = merge_quick_dials(entries, snapshot)
    logger.info(f"Converted {len(contacts)} contacts into {len(entries)} phonebook entries")
    return PipelineResult(document=assemble(entries, meta), entries=entries, contacts=list(contacts))


def run_pipeline(
    records: Sequence[ContactRecord],
    rules: FilterRuleSet,
    converter: Converter,
    meta: PhonebookMeta,
    snapshot: RemotePhonebookSnapshot | None,
) -> PipelineResult:
    """Turn downloaded contacts into a Fritz!Box phonebook.

    Args:
        records: Contacts in download order, group markers included
        rules: Include/exclude rules
        converter: Phonebook converter
        meta: Target phonebook
        snapshot: Assignments of the router's current phonebook, None if
            unavailable

    Returns:
        The assembled document with the entries and contacts it was built from
    """
    return build_phonebook(filter_contacts(records, rules), converter, meta, snapshot)
