"""vCard parsing into contact records."""

from __future__ import annotations

import logging
from hashlib import md5
from typing import Any, Iterable

import vobject

from .contact import AttributeValue, ContactRecord, Email, Telephone

logger = logging.getLogger("carddav2fb.vcard")

GROUP_KIND_PROPERTIES = ("x-addressbookserver-kind", "kind")
GROUP_MEMBER_PROPERTIES = ("x-addressbookserver-member", "member")

# vCard N components, in order
NAME_FIELDS = ("lastname", "prename", "additionalnames", "prefix", "suffix")


def _as_tuple(value: Any) -> tuple[str, ...]:
    """Flatten a vobject value (string or list) into a tuple of strings."""
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        items: list[str] = []
        for item in value:
            items.extend(_as_tuple(item))
        return tuple(items)
    text = str(value).strip()
    if not text:
        return ()
    return tuple(part.strip() for part in text.split(",") if part.strip())


def _joined(value: Any) -> str:
    """Join a possibly multi-valued vobject value with spaces."""
    if isinstance(value, (list, tuple)):
        return " ".join(str(v).strip() for v in value if str(v).strip())
    return str(value or "").strip()


def _types(line: Any) -> tuple[str, ...]:
    """Get upper-case TYPE parameters of a content line."""
    types: list[str] = []
    for value in line.params.get("TYPE", []):
        types.extend(t.strip().upper() for t in value.split(",") if t.strip())
    return tuple(types)


def _first(card: Any, name: str) -> Any | None:
    lines = card.contents.get(name)
    if not lines:
        return None
    return lines[0]


def _strip_urn(member: str) -> str:
    """Strip the ``urn:uuid:`` prefix from a group member reference."""
    member = member.strip()
    if member.lower().startswith("urn:uuid:"):
        return member[len("urn:uuid:"):]
    return member


def _parse_photo(card: Any) -> tuple[bytes | None, str]:
    """Extract raw photo bytes and their media type.

    Only base64 encoded photos are used; vobject decodes them. Linked photos
    are not fetched.
    """
    line = _first(card, "photo")
    if line is None:
        return None, ""

    value = line.value
    types = _types(line)
    photo_type = types[0] if types else ""

    if isinstance(value, bytes):
        return value, photo_type

    text = str(value).strip()
    logger.debug(f"Skipping linked photo {text[:80]}")
    return None, ""


def _tel_number(value: Any) -> str:
    """Get a phone number, dropping the ``tel:`` URI scheme of vCard 4."""
    number = str(value).strip()
    if number.lower().startswith("tel:"):
        number = number[4:]
    return number


def _is_group(card: Any) -> bool:
    for name in GROUP_KIND_PROPERTIES:
        line = _first(card, name)
        if line is not None and str(line.value).strip().lower() == "group":
            return True
    return any(card.contents.get(name) for name in GROUP_MEMBER_PROPERTIES)


def contact_from_vcard(card: Any, source: str = "") -> ContactRecord:
    """Convert a parsed vobject vCard component into a ContactRecord.

    Args:
        card: vobject VCARD component
        source: Raw vCard text, used to derive a uid when the card has none

    Returns:
        ContactRecord (a group marker if the card describes a group)
    """
    if card.name != "VCARD":
        raise ValueError(f"expected VCARD, got {card.name}")

    fields: dict[str, AttributeValue] = {}

    uid_line = _first(card, "uid")
    uid = str(uid_line.value).strip() if uid_line is not None else ""
    if not uid:
        uid = md5((source or card.serialize()).encode("utf-8")).hexdigest()
        logger.debug(f"vCard without UID, using {uid}")

    fn_line = _first(card, "fn")
    fullname = _joined(fn_line.value) if fn_line is not None else ""
    if fullname:
        fields["fullname"] = fullname

    n_line = _first(card, "n")
    if n_line is not None:
        name = n_line.value
        if hasattr(name, "family"):
            parts = (name.family, name.given, name.additional, name.prefix, name.suffix)
        else:
            parts = tuple(str(name).split(";"))
        for key, part in zip(NAME_FIELDS, parts):
            text = _joined(part)
            if text:
                fields[key] = text

    nickname = _first(card, "nickname")
    if nickname is not None and _joined(nickname.value):
        fields["nickname"] = _joined(nickname.value)

    org_line = _first(card, "org")
    if org_line is not None:
        org = org_line.value
        if not isinstance(org, list):
            org = str(org).split(";")
        if org and str(org[0]).strip():
            fields["organization"] = str(org[0]).strip()
        if len(org) > 1 and str(org[1]).strip():
            fields["department"] = str(org[1]).strip()

    title = _first(card, "title")
    if title is not None and _joined(title.value):
        fields["jobtitle"] = _joined(title.value)

    categories: list[str] = []
    for line in card.contents.get("categories", []):
        categories.extend(_as_tuple(line.value))
    if categories:
        fields["categories"] = tuple(categories)

    note = _first(card, "note")
    if note is not None and _joined(note.value):
        fields["note"] = _joined(note.value)

    for key, lines in card.contents.items():
        if not key.startswith("x-") or key in GROUP_MEMBER_PROPERTIES:
            continue
        values = tuple(_joined(line.value) for line in lines if _joined(line.value))
        if values:
            fields[key] = values[0] if len(values) == 1 else values

    telephones = tuple(
        Telephone(number=_tel_number(line.value), types=_types(line))
        for line in card.contents.get("tel", [])
        if _tel_number(line.value)
    )
    emails = tuple(
        Email(address=str(line.value).strip(), types=_types(line))
        for line in card.contents.get("email", [])
        if str(line.value).strip()
    )

    members: tuple[str, ...] | None = None
    if _is_group(card):
        collected: list[str] = []
        for name in GROUP_MEMBER_PROPERTIES:
            collected.extend(_strip_urn(str(line.value)) for line in card.contents.get(name, []))
        members = tuple(collected)

    photo, photo_type = _parse_photo(card)

    return ContactRecord(
        uid=uid,
        fullname=fullname,
        telephones=telephones,
        emails=emails,
        photo=photo,
        photo_type=photo_type,
        fields=fields,
        members=members,
    )


def parse_vcard(vcard_data: str) -> ContactRecord:
    """Parse a single vCard.

    Args:
        vcard_data: vCard data as string

    Returns:
        ContactRecord

    Raises:
        ValueError: If the data is not a valid vCard
    """
    try:
        card = vobject.readOne(vcard_data)
    except Exception as e:
        raise ValueError(f"invalid vCard object: {e}") from e
    return contact_from_vcard(card, vcard_data)


def parse_vcards(vcards: Iterable[str]) -> list[ContactRecord]:
    """Parse vCards one by one, skipping (and logging) invalid ones.

    Args:
        vcards: vCard strings, one card each, in download order

    Returns:
        Records in input order
    """
    records = []
    for vcard_data in vcards:
        try:
            records.append(parse_vcard(vcard_data))
        except ValueError as e:
            logger.warning(f"Skipping vCard: {e}")
    return records


def read_vcard_file(data: str) -> list[ContactRecord]:
    """Parse a ``.vcf`` document holding any number of vCards.

    Raises:
        ValueError: If the document cannot be parsed
    """
    try:
        return [contact_from_vcard(card) for card in vobject.readComponents(data)]
    except ValueError:
        raise
    except Exception as e:
        raise ValueError(f"invalid vCard file: {e}") from e
