"""Address book group dissolution.

CardDAV servers such as iCloud store groups as pseudo-contacts listing the
uids of their members. The Fritz!Box has no notion of groups, so group
records are removed and their names are attached to the member contacts.
"""

from __future__ import annotations

import logging
from typing import Sequence

from .contact import ContactRecord, GroupDefinition

logger = logging.getLogger("carddav2fb.groups")


def collect_groups(records: Sequence[ContactRecord]) -> list[GroupDefinition]:
    """Collect group definitions in discovery order.

    Group records sharing a name are merged into one definition, keeping the
    position of the first one.

    Args:
        records: Contacts as downloaded

    Returns:
        Group definitions
    """
    members: dict[str, list[str]] = {}
    for record in records:
        if not record.is_group:
            continue
        group = record.group_definition()
        members.setdefault(group.name, []).extend(group.members)

    return [GroupDefinition(name=name, members=tuple(uids)) for name, uids in members.items()]


def dissolve_groups(records: Sequence[ContactRecord]) -> list[ContactRecord]:
    """Remove group records and tag their members with the group name.

    A contact belonging to several groups is tagged with the group that was
    discovered first. Contacts outside any group keep their current tag.

    Args:
        records: Contacts as downloaded

    Returns:
        New list of non-group contacts in input order
    """
    groups = collect_groups(records)
    if groups:
        logger.debug(f"Dissolving {len(groups)} groups")

    contacts: list[ContactRecord] = []
    for record in records:
        if record.is_group:
            continue
        for group in groups:
            if record.uid in group.members:
                record = record.with_group(group.name)
                break
        contacts.append(record)

    return contacts
