"""Fritz!Box phonebook export and import over HTTP."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..debug import format_xml
from ..errors import HTTPError, TransportError, UploadRejectedError

logger = logging.getLogger("carddav2fb.fritzbox")

FIRMWARECFG_PATH = "/cgi-bin/firmwarecfg"
IMPORT_CONFIRMATION = "Das Telefonbuch der FRITZ!Box wurde wiederhergestellt"


class FritzBoxClient:
    """Client for the phonebook backup/restore endpoint of a Fritz!Box.

    Logging in is not handled here; the client works with the session id of
    an existing session.
    """

    def __init__(
        self,
        url: str,
        sid: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize Fritz!Box client.

        Args:
            url: Base URL of the Fritz!Box (e.g. "http://fritz.box")
            sid: Session id
            http_client: HTTP client to use (creates default if None)
            timeout: Request timeout in seconds
        """
        self.url = url.rstrip("/")
        self.sid = sid
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> FritzBoxClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _post(self, files: dict[str, Any]) -> httpx.Response:
        """Post a multipart form to the firmwarecfg endpoint.

        The session id has to be the first form field.
        """
        form = {"sid": (None, self.sid)}
        form.update(files)
        try:
            resp = await self.http_client.post(self.url + FIRMWARECFG_PATH, files=form)
        except httpx.HTTPError as e:
            raise TransportError(f"fritzbox: request failed: {e}") from e

        if resp.status_code // 100 != 2:
            text = resp.text[:1024].strip()
            raise HTTPError(resp.status_code, Exception(text) if text else None)
        return resp

    async def export_phonebook(self, phonebook_id: int, name: str) -> bytes | None:
        """Download the phonebook currently stored on the Fritz!Box.

        Args:
            phonebook_id: Phonebook id on the Fritz!Box
            name: Phonebook name

        Returns:
            Phonebook XML, or None if the Fritz!Box did not deliver one
        """
        resp = await self._post(
            {
                "PhonebookId": (None, str(phonebook_id)),
                "PhonebookExportName": (None, name),
                "PhonebookExport": (None, ""),
            }
        )
        if not resp.content.lstrip().startswith(b"<?xml"):
            logger.debug(f"Could not load old phonebook with id={phonebook_id}: {resp.text[:200]!r}")
            return None

        logger.debug(f"Old phonebook:\n{format_xml(resp.content)}")
        return resp.content

    async def upload_phonebook(self, phonebook_id: int, xml: bytes) -> None:
        """Replace a phonebook on the Fritz!Box.

        Args:
            phonebook_id: Phonebook id on the Fritz!Box
            xml: Serialized phonebook document

        Raises:
            UploadRejectedError: If the Fritz!Box did not confirm the import
            TransportError: If the Fritz!Box could not be reached
        """
        resp = await self._post(
            {
                "PhonebookId": (None, str(phonebook_id)),
                "PhonebookImportFile": ("updatepb.xml", xml, "text/xml"),
            }
        )
        if IMPORT_CONFIRMATION not in resp.text:
            raise UploadRejectedError(
                f"fritzbox: phonebook {phonebook_id} upload was not confirmed"
            )
        logger.info(f"Uploaded phonebook {phonebook_id}")

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.http_client.aclose()
