"""Tests for the phonebook converter."""

import pytest

from carddav2fb.contact import ContactRecord, Email, Telephone
from carddav2fb.errors import ConfigError
from carddav2fb.fritzbox.converter import ConversionConfig, Converter

JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 16


def contact(**kwargs) -> ContactRecord:
    kwargs.setdefault("uid", "uid-1")
    kwargs.setdefault("fullname", "John Doe")
    kwargs.setdefault("fields", {"fullname": "John Doe", "lastname": "Doe", "prename": "John"})
    return ContactRecord(**kwargs)


def test_convert_maps_numbers_and_types():
    """Test that numbers are classified by their vCard types."""
    record = contact(
        telephones=(
            Telephone("+49 30 1234", ("HOME", "VOICE")),
            Telephone("0171 5555", ("CELL",)),
            Telephone("030 999", ("WORK", "FAX")),
            Telephone("030 777", ()),
        )
    )

    entries = Converter().convert(record)

    assert len(entries) == 1
    entry = entries[0]
    assert entry.uid == "uid-1"
    assert entry.real_name == "Doe, John"
    assert [(n.number, n.type) for n in entry.numbers] == [
        ("+49 30 1234", "home"),
        ("0171 5555", "mobile"),
        ("030 999", "fax_work"),
        ("030 777", "other"),
    ]
    assert [n.prio for n in entry.numbers] == [True, False, False, False]


def test_convert_prefers_pref_number():
    record = contact(telephones=(Telephone("1", ("HOME",)), Telephone("2", ("CELL", "PREF"))))

    entry = Converter().convert(record)[0]

    assert [n.prio for n in entry.numbers] == [False, True]


def test_convert_without_numbers_is_empty():
    """Test that a contact without numbers yields no entry."""
    record = contact(emails=(Email("john@example.com", ("HOME",)),))

    assert Converter().convert(record) == []


def test_real_name_falls_back_through_templates():
    """Test that the first fully resolvable template is used."""
    converter = Converter(
        ConversionConfig.from_mapping({"realName": ["{lastname}, {prename}", "{organization}"]})
    )
    company = ContactRecord(uid="c", fields={"organization": "ACME"}, telephones=(Telephone("1"),))
    nameless = ContactRecord(uid="n", fullname="Only Full", telephones=(Telephone("1"),))

    assert converter.convert(company)[0].real_name == "ACME"
    assert converter.convert(nameless)[0].real_name == "Only Full"


def test_replace_characters():
    converter = Converter(
        ConversionConfig.from_mapping(
            {"phoneReplaceCharacters": {"+49": "0", "(": "", ")": "", "-": "", " ": ""}}
        )
    )
    record = contact(telephones=(Telephone("+49 (30) 123-456"), Telephone("()")))

    entry = converter.convert(record)[0]

    assert [n.number for n in entry.numbers] == ["030123456"]


def test_emails_and_vip_category():
    converter = Converter(ConversionConfig.from_mapping({"vip": {"categories": ["vip"]}}))
    record = contact(
        telephones=(Telephone("1"),),
        emails=(Email("john@work.example", ("INTERNET", "WORK")), Email("j@example.com")),
        fields={"fullname": "John Doe", "categories": ("friends", "vip")},
    )

    entry = converter.convert(record)[0]

    assert entry.category == 1
    assert [(e.address, e.classifier) for e in entry.emails] == [
        ("john@work.example", "work"),
        ("j@example.com", "other"),
    ]
    assert Converter().convert(record)[0].category == 0


def test_image_url_only_for_jpeg():
    """Test that only JPEG photos are linked."""
    converter = Converter(ConversionConfig.from_mapping({}, image_path="file:///var/media/ftp/fonpix/"))
    with_jpeg = contact(telephones=(Telephone("1"),), photo=JPEG, photo_type="JPEG")
    with_png = contact(telephones=(Telephone("1"),), photo=b"png", photo_type="PNG")

    assert converter.convert(with_jpeg)[0].image_url == "file:///var/media/ftp/fonpix/uid-1.jpg"
    assert converter.convert(with_png)[0].image_url is None
    assert Converter().convert(with_jpeg)[0].image_url is None


def test_image_url_for_jpeg_media_type():
    converter = Converter(ConversionConfig.from_mapping({}, image_path="file:///fonpix/"))
    record = contact(telephones=(Telephone("1"),), photo=JPEG, photo_type="IMAGE/JPEG")

    assert converter.convert(record)[0].image_url == "file:///fonpix/uid-1.jpg"


def test_many_numbers_are_split():
    """Test that contacts with more than nine numbers yield several entries."""
    record = contact(telephones=tuple(Telephone(str(i)) for i in range(11)))

    entries = Converter().convert(record)

    assert [len(e.numbers) for e in entries] == [9, 2]
    assert [n.number for e in entries for n in e.numbers] == [str(i) for i in range(11)]
    assert all(e.real_name == "Doe, John" and e.uid == "uid-1" for e in entries)
    assert [e.numbers[0].prio for e in entries] == [True, True]


def test_convert_does_not_mutate_record():
    record = contact(telephones=(Telephone("1", ("HOME",)),))
    before = repr(record)

    Converter().convert(record)

    assert repr(record) == before


@pytest.mark.parametrize(
    "conversions",
    [
        {"realName": []},
        {"realName": ["no placeholder"]},
        {"realName": ["{unclosed"]},
        {"realName": ["{lastname!u}"]},
        {"realName": ["{lastname:>x}"]},
        {"phoneTypes": ["CELL"]},
        {"vip": ["vip"]},
        "realName",
    ],
)
def test_malformed_conversions_raise_config_error(conversions):
    with pytest.raises(ConfigError):
        ConversionConfig.from_mapping(conversions)
