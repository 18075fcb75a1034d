"""In-memory address book contacts."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Mapping, Union

AttributeValue = Union[str, tuple[str, ...]]


@dataclass(frozen=True)
class Telephone:
    """A phone number with its vCard TEL types (upper case)."""

    number: str
    types: tuple[str, ...] = ()


@dataclass(frozen=True)
class Email:
    """An email address with its vCard EMAIL types (upper case)."""

    address: str
    types: tuple[str, ...] = ()


@dataclass(frozen=True)
class GroupDefinition:
    """Address book group: a name and the uids of its members."""

    name: str
    members: tuple[str, ...] = ()


@dataclass(frozen=True)
class ContactRecord:
    """Normalized address book entry.

    Group pseudo-contacts carry their member uids in ``members``; ordinary
    contacts leave it as ``None``. ``fields`` holds the generic attributes the
    filter and the name templates read, keyed by lower-case attribute name.
    """

    uid: str
    fullname: str = ""
    telephones: tuple[Telephone, ...] = ()
    emails: tuple[Email, ...] = ()
    photo: bytes | None = None
    photo_type: str = ""
    fields: Mapping[str, AttributeValue] = field(default_factory=dict)
    members: tuple[str, ...] | None = None
    group: str | None = None

    @property
    def is_group(self) -> bool:
        """Check if this record is an address book group marker."""
        return self.members is not None

    def attribute(self, name: str) -> AttributeValue | None:
        """Look up an attribute by name.

        Args:
            name: Attribute name as used in filter rules and name templates

        Returns:
            The attribute value, or None if the record does not carry it
        """
        name = name.lower()
        if name == "uid":
            return self.uid
        if name == "fullname":
            return self.fullname or None
        if name == "group":
            return self.group
        if name == "email":
            return tuple(e.address for e in self.emails) or None
        if name == "telephone":
            return tuple(t.number for t in self.telephones) or None
        if name == "category":
            name = "categories"
        return self.fields.get(name)

    def with_group(self, group: str) -> ContactRecord:
        """Return a copy tagged with a group name."""
        return replace(self, group=group)

    def without_photo(self) -> ContactRecord:
        """Return a copy without photo data."""
        return replace(self, photo=None, photo_type="")

    def group_definition(self) -> GroupDefinition:
        """Return the group this marker record describes."""
        if self.members is None:
            raise ValueError(f"contact {self.uid} is not a group")
        return GroupDefinition(name=self.fullname, members=self.members)
