"""Preservation of quick dial and vanity assignments.

Quick dials and vanity codes are entered on the Fritz!Box itself and do not
exist in the address book. Before a new phonebook replaces the old one, the
assignments are read from the phonebook exported by the router and copied
onto the numbers of the fresh entries.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import Mapping, NamedTuple, Sequence

from lxml import etree

from .phonebook import PhonebookEntry, parse_phonebook

logger = logging.getLogger("carddav2fb.quickdial")

NON_DIGITS = re.compile(r"[^0-9]")


def normalize_number(number: str) -> str:
    """Reduce a phone number to its digits and a leading plus sign.

    A plus sign counts as leading when no digit precedes it.
    """
    match = re.search(r"[+0-9]", number)
    prefix = "+" if match is not None and match.group() == "+" else ""
    return prefix + NON_DIGITS.sub("", number)


class QuickDialKey(NamedTuple):
    """Identifies a number of a contact across phonebook generations."""

    number: str
    uid: str

    @classmethod
    def for_number(cls, number: str, uid: str) -> QuickDialKey:
        return cls(normalize_number(number), uid)

    def __str__(self) -> str:
        return f"{self.number}@{self.uid}"


@dataclass(frozen=True)
class RemoteAssignment:
    """Assignments of one number in the router's phonebook."""

    quickdial: str | None = None
    vanity: str | None = None


RemotePhonebookSnapshot = Mapping[QuickDialKey, RemoteAssignment]


def extract_quick_dials(document: etree._ElementTree) -> dict[QuickDialKey, RemoteAssignment]:
    """Collect quick dial and vanity assignments from an exported phonebook.

    Args:
        document: Phonebook document as exported by the Fritz!Box

    Returns:
        Assignments keyed by normalized number and contact uid
    """
    snapshot: dict[QuickDialKey, RemoteAssignment] = {}
    for contact in document.getroot().iterfind("phonebook/contact"):
        uid = (contact.findtext("carddav_uid") or "").strip()
        for number in contact.iterfind("telephony/number"):
            quickdial = number.get("quickdial") or None
            vanity = number.get("vanity") or None
            if quickdial is None and vanity is None:
                continue
            key = QuickDialKey.for_number(number.text or "", uid)
            logger.debug(f"Found assignment for {key}: quickdial={quickdial} vanity={vanity}")
            snapshot[key] = RemoteAssignment(quickdial=quickdial, vanity=vanity)
    return snapshot


def load_snapshot(data: bytes | None) -> dict[QuickDialKey, RemoteAssignment] | None:
    """Read the assignments from the raw phonebook exported by the router.

    Returns:
        The snapshot, or None if there is no data or it cannot be parsed
    """
    if data is None:
        return None
    try:
        document = parse_phonebook(data)
    except ValueError as e:
        logger.debug(f"Could not read old phonebook: {e}")
        return None
    return extract_quick_dials(document)


def merge_quick_dials(
    entries: Sequence[PhonebookEntry], snapshot: RemotePhonebookSnapshot | None
) -> list[PhonebookEntry]:
    """Copy the router's quick dial and vanity assignments onto new entries.

    Every number is matched on its own, so an assignment never moves to a
    different number of the same contact.

    Args:
        entries: Freshly converted entries
        snapshot: Assignments of the router's phonebook; None if unavailable

    Returns:
        New list of entries in input order
    """
    if snapshot is None:
        logger.warning("Old phonebook unavailable, quick dials and vanity codes are not preserved")
        return [
            replace(entry, numbers=tuple(n.with_assignment(None, None) for n in entry.numbers))
            for entry in entries
        ]

    merged = []
    preserved = 0
    for entry in entries:
        numbers = []
        for number in entry.numbers:
            assignment = snapshot.get(QuickDialKey.for_number(number.number, entry.uid))
            if assignment is None:
                numbers.append(number.with_assignment(None, None))
                continue
            preserved += 1
            numbers.append(number.with_assignment(assignment.quickdial, assignment.vanity))
        merged.append(replace(entry, numbers=tuple(numbers)))

    logger.info(f"Preserved {preserved} of {len(snapshot)} quick dial/vanity assignments")
    return merged
