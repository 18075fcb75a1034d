"""Conversion of contacts into Fritz!Box phonebook entries."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from string import Formatter
from typing import Any, Mapping

from ..contact import ContactRecord
from ..errors import ConfigError
from ..filters import RuleGroup, filters_match, rule_group
from ..images import has_jpeg_photo
from .phonebook import MAX_NUMBERS, EmailAddress, PhonebookEntry, PhoneNumber

logger = logging.getLogger("carddav2fb.converter")

DEFAULT_REAL_NAME = ("{lastname}, {prename}", "{fullname}", "{organization}")

DEFAULT_PHONE_TYPES = {
    "WORK": "work",
    "HOME": "home",
    "CELL": "mobile",
    "FAX": "fax_work",
}

DEFAULT_EMAIL_TYPES = {
    "WORK": "work",
    "HOME": "home",
}

# Types carrying no classification on their own
IGNORED_TYPES = {"PREF", "VOICE", "INTERNET"}


def _placeholders(template: str) -> list[str]:
    """List the attribute names a name template refers to."""
    return [name for _, name, _, _ in Formatter().parse(template) if name]


def _string_mapping(name: str, data: Any, default: Mapping[str, str]) -> dict[str, str]:
    if data is None:
        return dict(default)
    if not isinstance(data, Mapping):
        raise ConfigError(f"conversion {name!r} must be a mapping")
    return {str(k): str(v) for k, v in data.items()}


@dataclass(frozen=True)
class ConversionConfig:
    """Field mapping rules for the phonebook conversion."""

    real_name: tuple[str, ...] = DEFAULT_REAL_NAME
    phone_types: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_PHONE_TYPES))
    email_types: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_EMAIL_TYPES))
    phone_replace_characters: Mapping[str, str] = field(default_factory=dict)
    vip: RuleGroup = field(default_factory=dict)
    image_path: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None, image_path: str = "") -> ConversionConfig:
        """Build and validate conversion rules from configuration.

        Args:
            data: The ``conversions`` configuration section
            image_path: URL prefix of contact images on the Fritz!Box

        Raises:
            ConfigError: If the rules are malformed
        """
        data = data or {}
        if not isinstance(data, Mapping):
            raise ConfigError("conversions must be a mapping")

        real_name = data.get("realName", DEFAULT_REAL_NAME)
        if isinstance(real_name, str):
            real_name = [real_name]
        if not isinstance(real_name, (list, tuple)) or not real_name:
            raise ConfigError("conversion 'realName' must be a non-empty list of templates")
        for template in real_name:
            if not isinstance(template, str):
                raise ConfigError(f"invalid realName template {template!r}")
            try:
                names = _placeholders(template)
            except ValueError as e:
                raise ConfigError(f"invalid realName template {template!r}: {e}") from e
            if not names:
                raise ConfigError(f"realName template {template!r} has no placeholder")
            try:
                template.format_map(defaultdict(str))
            except (ValueError, LookupError, AttributeError) as e:
                raise ConfigError(f"invalid realName template {template!r}: {e}") from e

        phone_types = _string_mapping("phoneTypes", data.get("phoneTypes"), DEFAULT_PHONE_TYPES)
        email_types = _string_mapping("emailTypes", data.get("emailTypes"), DEFAULT_EMAIL_TYPES)
        replace_characters = _string_mapping(
            "phoneReplaceCharacters", data.get("phoneReplaceCharacters"), {}
        )

        vip = data.get("vip")
        return cls(
            real_name=tuple(real_name),
            phone_types={k.upper(): v for k, v in phone_types.items()},
            email_types={k.upper(): v for k, v in email_types.items()},
            phone_replace_characters=replace_characters,
            vip=rule_group("vip", vip) if vip is not None else {},
            image_path=image_path,
        )


class Converter:
    """Maps contacts to Fritz!Box phonebook entries."""

    def __init__(self, config: ConversionConfig | None = None) -> None:
        self.config = config or ConversionConfig()

    def real_name(self, record: ContactRecord) -> str:
        """Format the display name from the first template that fully resolves."""
        for template in self.config.real_name:
            values: dict[str, str] = {}
            for name in _placeholders(template):
                value = record.attribute(name)
                if isinstance(value, tuple):
                    value = value[0] if value else None
                if not value:
                    break
                values[name] = str(value)
            else:
                return template.format_map(values).strip()

        return record.fullname

    def phone_type(self, types: tuple[str, ...]) -> str:
        """Classify a number by its vCard TEL types."""
        if "FAX" in types:
            return self.config.phone_types.get("FAX", "fax_work")
        for tel_type in types:
            if tel_type in IGNORED_TYPES:
                continue
            if tel_type in self.config.phone_types:
                return self.config.phone_types[tel_type]
        return "other"

    def email_classifier(self, types: tuple[str, ...]) -> str:
        """Classify an email address by its vCard EMAIL types."""
        for email_type in types:
            if email_type in self.config.email_types:
                return self.config.email_types[email_type]
        return "other"

    def clean_number(self, number: str) -> str:
        """Apply the configured character replacements to a number."""
        for search, replacement in self.config.phone_replace_characters.items():
            number = number.replace(search, replacement)
        return number.strip()

    def image_url(self, record: ContactRecord) -> str | None:
        """Get the Fritz!Box URL of the contact image, if it will be uploaded."""
        if not self.config.image_path or not has_jpeg_photo(record):
            return None
        return f"{self.config.image_path}{record.uid}.jpg"

    def _numbers(self, record: ContactRecord) -> list[tuple[PhoneNumber, bool]]:
        numbers = []
        for telephone in record.telephones:
            number = self.clean_number(telephone.number)
            if not number:
                continue
            numbers.append(
                (
                    PhoneNumber(number=number, type=self.phone_type(telephone.types)),
                    "PREF" in telephone.types,
                )
            )
        return numbers

    def convert(self, record: ContactRecord) -> list[PhonebookEntry]:
        """Convert a contact into phonebook entries.

        A contact with more numbers than a Fritz!Box contact can hold is
        split into several entries of the same name.

        Args:
            record: Filtered contact

        Returns:
            Phonebook entries; empty if the contact has no usable number
        """
        numbers = self._numbers(record)
        if not numbers:
            logger.debug(f"Skipping {record.uid}: no phone numbers")
            return []

        real_name = self.real_name(record) or numbers[0][0].number
        category = 1 if self.config.vip and filters_match(record, self.config.vip) else 0
        image_url = self.image_url(record)
        emails = tuple(
            EmailAddress(address=e.address, classifier=self.email_classifier(e.types))
            for e in record.emails
        )

        entries = []
        for start in range(0, len(numbers), MAX_NUMBERS):
            chunk = numbers[start:start + MAX_NUMBERS]
            preferred = next((i for i, (_, pref) in enumerate(chunk) if pref), 0)
            entries.append(
                PhonebookEntry(
                    uid=record.uid,
                    real_name=real_name,
                    numbers=tuple(
                        PhoneNumber(number=n.number, type=n.type, prio=i == preferred)
                        for i, (n, _) in enumerate(chunk)
                    ),
                    emails=emails if start == 0 else (),
                    category=category,
                    image_url=image_url,
                )
            )

        return entries
