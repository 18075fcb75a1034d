"""Tests for vCard parsing."""

import base64

import pytest

from carddav2fb.images import has_jpeg_photo
from carddav2fb.vcard import parse_vcard, parse_vcards, read_vcard_file

JPEG = b"\xff\xd8\xff\xe0JFIF-data"


def test_parse_vcard_contact():
    """Test parsing an ordinary contact."""
    vcard_data = """BEGIN:VCARD
VERSION:3.0
FN:John Doe
N:Doe;John;;Dr.;
NICKNAME:Johnny
ORG:ACME;Sales
TITLE:Engineer
CATEGORIES:friends,vip
UID:test-contact-123
EMAIL;TYPE=INTERNET,WORK:john@example.com
TEL;TYPE=CELL:+49 171 5555
TEL;TYPE=HOME,VOICE:030 1234
X-CUSTOM:custom value
END:VCARD"""

    record = parse_vcard(vcard_data)

    assert record.uid == "test-contact-123"
    assert record.fullname == "John Doe"
    assert not record.is_group
    assert record.attribute("lastname") == "Doe"
    assert record.attribute("prename") == "John"
    assert record.attribute("prefix") == "Dr."
    assert record.attribute("nickname") == "Johnny"
    assert record.attribute("organization") == "ACME"
    assert record.attribute("department") == "Sales"
    assert record.attribute("jobtitle") == "Engineer"
    assert record.attribute("categories") == ("friends", "vip")
    assert record.attribute("category") == ("friends", "vip")
    assert record.attribute("x-custom") == "custom value"
    assert record.attribute("email") == ("john@example.com",)
    assert [(t.number, t.types) for t in record.telephones] == [
        ("+49 171 5555", ("CELL",)),
        ("030 1234", ("HOME", "VOICE")),
    ]
    assert record.emails[0].types == ("INTERNET", "WORK")
    assert record.attribute("unknown") is None


def test_parse_vcard_icloud_group():
    """Test that iCloud group cards carry their members."""
    vcard_data = """BEGIN:VCARD
VERSION:3.0
FN:Family
N:Family;;;;
UID:group-1
X-ADDRESSBOOKSERVER-KIND:group
X-ADDRESSBOOKSERVER-MEMBER:urn:uuid:member-1
X-ADDRESSBOOKSERVER-MEMBER:urn:uuid:member-2
END:VCARD"""

    record = parse_vcard(vcard_data)

    assert record.is_group
    assert record.members == ("member-1", "member-2")
    assert record.group_definition().name == "Family"


def test_parse_vcard_4_group_without_members():
    vcard_data = """BEGIN:VCARD
VERSION:4.0
FN:Nobody
UID:group-2
KIND:group
END:VCARD"""

    record = parse_vcard(vcard_data)

    assert record.is_group
    assert record.members == ()


def test_parse_vcard_4_group_members():
    """Test that vCard 4 MEMBER references lose their urn:uuid: prefix."""
    vcard_data = """BEGIN:VCARD
VERSION:4.0
FN:Work
UID:group-3
KIND:group
MEMBER:urn:uuid:member-1
MEMBER:urn:uuid:member-2
END:VCARD"""

    record = parse_vcard(vcard_data)

    assert record.is_group
    assert record.members == ("member-1", "member-2")
    assert record.group_definition().name == "Work"


def test_parse_vcard_base64_photo():
    """Test that embedded photos are decoded."""
    encoded = base64.b64encode(JPEG).decode("ascii")
    vcard_data = f"""BEGIN:VCARD
VERSION:3.0
FN:With Photo
UID:photo-1
PHOTO;ENCODING=b;TYPE=JPEG:{encoded}
END:VCARD"""

    record = parse_vcard(vcard_data)

    assert record.photo == JPEG
    assert record.photo_type == "JPEG"


def test_parse_vcard_media_type_photo():
    """Test photos typed as image/jpeg, as Nextcloud exports them."""
    encoded = base64.b64encode(JPEG).decode("ascii")
    vcard_data = f"""BEGIN:VCARD
VERSION:3.0
FN:With Photo
UID:photo-2
PHOTO;ENCODING=b;TYPE=image/jpeg:{encoded}
END:VCARD"""

    record = parse_vcard(vcard_data)

    assert record.photo == JPEG
    assert has_jpeg_photo(record)


def test_parse_vcard_without_uid_gets_stable_uid():
    vcard_data = """BEGIN:VCARD
VERSION:3.0
FN:No UID
END:VCARD"""

    assert parse_vcard(vcard_data).uid == parse_vcard(vcard_data).uid != ""


def test_parse_vcard_invalid():
    with pytest.raises(ValueError):
        parse_vcard("This is not a valid vCard")


def test_parse_vcards_skips_invalid():
    valid = """BEGIN:VCARD
VERSION:3.0
FN:Valid
UID:valid-1
END:VCARD"""

    records = parse_vcards(["garbage", valid])

    assert [r.uid for r in records] == ["valid-1"]


def test_read_vcard_file_keeps_order():
    data = """BEGIN:VCARD
VERSION:3.0
FN:First
UID:1
END:VCARD
BEGIN:VCARD
VERSION:3.0
FN:Second
UID:2
END:VCARD
"""

    assert [r.fullname for r in read_vcard_file(data)] == ["First", "Second"]
