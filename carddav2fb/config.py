"""Configuration loading.

The configuration is a JSON document::

    {
      "server": {"url": "https://dav.example.com/addressbooks/me/contacts/",
                 "user": "me", "password": "", "authentication": "basic"},
      "fritzbox": {"url": "http://fritz.box", "sid": "", "user": "ftpuser",
                   "password": "", "fonpix": "/FRITZ.NAS/fonpix"},
      "phonebook": {"id": 0, "name": "Telefonbuch",
                    "imagepath": "file:///var/media/ftp/FRITZ.NAS/fonpix/"},
      "filters": {"include": {}, "exclude": {"categories": ["spam"]}},
      "conversions": {"realName": ["{lastname}, {prename}", "{fullname}"]}
    }

Secrets can be left out of the file and passed in the environment instead.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from .errors import ConfigError
from .filters import FilterRuleSet
from .fritzbox.converter import ConversionConfig
from .fritzbox.phonebook import PhonebookMeta

CARDDAV_PASSWORD = "CARDDAV_PASSWORD"
FRITZBOX_SID = "FRITZBOX_SID"
FRITZBOX_PASSWORD = "FRITZBOX_PASSWORD"


@dataclass
class ServerConfig:
    """CardDAV server."""

    url: str
    user: str = ""
    password: str = ""
    authentication: str = "basic"
    timeout: float = 30.0


@dataclass
class FritzBoxConfig:
    """Fritz!Box access; user and password are used for FTP."""

    url: str = "http://fritz.box"
    sid: str = ""
    user: str = ""
    password: str = ""
    fonpix: str = ""
    timeout: float = 30.0


@dataclass
class PhonebookConfig:
    """Target phonebook."""

    id: int = 0
    name: str = "Telefonbuch"
    imagepath: str = ""

    def meta(self) -> PhonebookMeta:
        return PhonebookMeta(name=self.name, id=self.id)


@dataclass
class Config:
    """Complete configuration."""

    server: ServerConfig | None = None
    fritzbox: FritzBoxConfig = field(default_factory=FritzBoxConfig)
    phonebook: PhonebookConfig = field(default_factory=PhonebookConfig)
    filters: FilterRuleSet = field(default_factory=FilterRuleSet)
    conversions: ConversionConfig = field(default_factory=ConversionConfig)


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, Mapping):
        raise ConfigError(f"config section {name!r} must be a mapping")
    return section


def _build(cls: type, name: str, section: Mapping[str, Any]) -> Any:
    try:
        return cls(**section)
    except TypeError as e:
        raise ConfigError(f"invalid config section {name!r}: {e}") from e


def config_from_mapping(
    data: Mapping[str, Any], environ: Mapping[str, str] | None = None
) -> Config:
    """Build the configuration from parsed JSON.

    Args:
        data: Configuration document
        environ: Environment used for secrets (defaults to os.environ)

    Raises:
        ConfigError: If the configuration is malformed
    """
    if not isinstance(data, Mapping):
        raise ConfigError("configuration must be a JSON object")
    environ = os.environ if environ is None else environ

    server = None
    server_section = _section(data, "server")
    if server_section:
        server = _build(ServerConfig, "server", server_section)
        server.password = environ.get(CARDDAV_PASSWORD, server.password)
        if server.authentication not in ("basic", "digest"):
            raise ConfigError(f"unknown authentication {server.authentication!r}")

    fritzbox = _build(FritzBoxConfig, "fritzbox", _section(data, "fritzbox"))
    fritzbox.sid = environ.get(FRITZBOX_SID, fritzbox.sid)
    fritzbox.password = environ.get(FRITZBOX_PASSWORD, fritzbox.password)

    phonebook = _build(PhonebookConfig, "phonebook", _section(data, "phonebook"))
    try:
        phonebook.id = int(phonebook.id)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"phonebook id must be a number: {e}") from e

    return Config(
        server=server,
        fritzbox=fritzbox,
        phonebook=phonebook,
        filters=FilterRuleSet.from_mapping(data.get("filters")),
        conversions=ConversionConfig.from_mapping(
            data.get("conversions"), image_path=phonebook.imagepath
        ),
    )


def load_config(path: Path | str, environ: Mapping[str, str] | None = None) -> Config:
    """Load the configuration file.

    Raises:
        ConfigError: If the file cannot be read or is malformed
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"could not read config {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid JSON in config {path}: {e}") from e

    return config_from_mapping(data, environ)
