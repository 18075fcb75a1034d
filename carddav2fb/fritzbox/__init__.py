"""Fritz!Box phonebook support for carddav2fb."""

from .client import FritzBoxClient
from .converter import ConversionConfig, Converter
from .phonebook import (
    EmailAddress,
    PhonebookEntry,
    PhonebookMeta,
    PhoneNumber,
    assemble,
    parse_phonebook,
    serialize,
)
from .quickdial import (
    QuickDialKey,
    RemoteAssignment,
    extract_quick_dials,
    load_snapshot,
    merge_quick_dials,
    normalize_number,
)

__all__ = [
    "FritzBoxClient",
    "ConversionConfig",
    "Converter",
    "EmailAddress",
    "PhonebookEntry",
    "PhonebookMeta",
    "PhoneNumber",
    "assemble",
    "parse_phonebook",
    "serialize",
    "QuickDialKey",
    "RemoteAssignment",
    "extract_quick_dials",
    "load_snapshot",
    "merge_quick_dials",
    "normalize_number",
]
