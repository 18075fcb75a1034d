"""Fritz!Box phonebook entries and XML documents."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Sequence

from lxml import etree

# A Fritz!Box contact holds at most this many numbers
MAX_NUMBERS = 9


@dataclass(frozen=True)
class PhoneNumber:
    """Phone number of a phonebook entry."""

    number: str
    type: str = "other"
    prio: bool = False
    quickdial: str | None = None
    vanity: str | None = None

    def with_assignment(self, quickdial: str | None, vanity: str | None) -> PhoneNumber:
        """Return a copy carrying quick dial and vanity assignments."""
        return replace(self, quickdial=quickdial, vanity=vanity)


@dataclass(frozen=True)
class EmailAddress:
    """Email service of a phonebook entry."""

    address: str
    classifier: str = "other"


@dataclass(frozen=True)
class PhonebookEntry:
    """One Fritz!Box phonebook contact."""

    uid: str
    real_name: str
    numbers: tuple[PhoneNumber, ...] = ()
    emails: tuple[EmailAddress, ...] = ()
    category: int = 0
    image_url: str | None = None


@dataclass(frozen=True)
class PhonebookMeta:
    """Phonebook identity on the Fritz!Box."""

    name: str = "Telefonbuch"
    id: int = 0
    owner: str | None = None


def _entry_to_xml(entry: PhonebookEntry) -> etree._Element:
    contact = etree.Element("contact")
    etree.SubElement(contact, "category").text = str(entry.category)

    person = etree.SubElement(contact, "person")
    etree.SubElement(person, "realName").text = entry.real_name
    if entry.image_url:
        etree.SubElement(person, "imageURL").text = entry.image_url

    telephony = etree.SubElement(contact, "telephony", nid=str(len(entry.numbers)))
    for index, number in enumerate(entry.numbers):
        attrib = {"type": number.type, "prio": "1" if number.prio else "0", "id": str(index)}
        if number.quickdial:
            attrib["quickdial"] = number.quickdial
        if number.vanity:
            attrib["vanity"] = number.vanity
        etree.SubElement(telephony, "number", attrib=attrib).text = number.number

    if entry.emails:
        services = etree.SubElement(contact, "services", nid=str(len(entry.emails)))
        for index, email in enumerate(entry.emails):
            etree.SubElement(
                services, "email", classifier=email.classifier, id=str(index)
            ).text = email.address

    etree.SubElement(contact, "setup")
    etree.SubElement(contact, "carddav_uid").text = entry.uid
    return contact


def assemble(entries: Sequence[PhonebookEntry], meta: PhonebookMeta) -> etree._ElementTree:
    """Build the phonebook document.

    Args:
        entries: Phonebook entries in conversion order
        meta: Phonebook name and owner

    Returns:
        Document with one contact per entry, in input order
    """
    root = etree.Element("phonebooks")
    attrib = {"name": meta.name}
    if meta.owner is not None:
        attrib["owner"] = meta.owner
    phonebook = etree.SubElement(root, "phonebook", attrib=attrib)

    for entry in entries:
        phonebook.append(_entry_to_xml(entry))

    return etree.ElementTree(root)


def serialize(document: etree._ElementTree, pretty_print: bool = True) -> bytes:
    """Serialize a phonebook document for upload."""
    return etree.tostring(
        document, encoding="utf-8", xml_declaration=True, pretty_print=pretty_print
    )


def parse_phonebook(data: bytes) -> etree._ElementTree:
    """Parse a phonebook document.

    Raises:
        ValueError: If the data is not well-formed XML
    """
    try:
        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        return etree.ElementTree(etree.fromstring(data, parser))
    except etree.XMLSyntaxError as e:
        raise ValueError(f"invalid phonebook document: {e}") from e
