"""Errors raised by carddav2fb."""

from __future__ import annotations

from http import HTTPStatus


class Carddav2FbError(Exception):
    """Base class for all carddav2fb errors."""


class ConfigError(Carddav2FbError):
    """Configuration is missing or malformed."""


class ConversionError(Carddav2FbError):
    """No contact could be converted into a phonebook entry."""


class HTTPError(Carddav2FbError):
    """HTTP error with status code."""

    def __init__(self, code: int, err: Exception | None = None):
        self.code = code
        self.err = err
        super().__init__(str(self))

    def __str__(self) -> str:
        try:
            text = HTTPStatus(self.code).phrase
        except ValueError:
            text = "Unknown"

        s = f"{self.code} {text}"
        if self.err:
            return f"{s}: {self.err}"
        return s


class TransportError(Carddav2FbError):
    """Network failure talking to a remote service."""


class UploadRejectedError(Carddav2FbError):
    """The Fritz!Box answered but did not confirm the phonebook import."""


class ImageUploadError(Carddav2FbError):
    """FTP connection to the Fritz!Box image store failed."""
