"""CardDAV address book download.

The address book URL is used as configured; there is no service discovery.
A single addressbook-query REPORT (RFC 6352 section 8.6) returns all vCards.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from lxml import etree

from .debug import format_xml
from .errors import HTTPError, TransportError

logger = logging.getLogger("carddav2fb.carddav")

NAMESPACE = "DAV:"
CARDDAV_NAMESPACE = "urn:ietf:params:xml:ns:carddav"
NS = {"D": NAMESPACE, "C": CARDDAV_NAMESPACE}


def addressbook_query() -> etree._Element:
    """Build an addressbook-query REPORT body asking for all vCards."""
    root = etree.Element(f"{{{CARDDAV_NAMESPACE}}}addressbook-query", nsmap=NS)
    prop = etree.SubElement(root, f"{{{NAMESPACE}}}prop")
    etree.SubElement(prop, f"{{{NAMESPACE}}}getetag")
    etree.SubElement(prop, f"{{{CARDDAV_NAMESPACE}}}address-data")
    return root


def address_data(body: bytes) -> list[str]:
    """Pull the vCards out of a REPORT reply.

    Args:
        body: multistatus XML

    Returns:
        vCard strings in reply order
    """
    root = etree.fromstring(body)
    return [
        elem.text
        for elem in root.iterfind(".//C:address-data", namespaces=NS)
        if elem.text and elem.text.strip()
    ]


class CardDAVClient:
    """Downloads vCards from a CardDAV address book."""

    def __init__(
        self,
        url: str,
        user: str = "",
        password: str = "",
        authentication: str = "basic",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize CardDAV client.

        Args:
            url: Address book collection URL
            user: User name (no authentication if empty)
            password: Password
            authentication: "basic" or "digest"
            http_client: HTTP client to use (creates default if None)
            timeout: Request timeout in seconds
        """
        self.url = url
        auth: httpx.Auth | None = None
        if user:
            if authentication == "digest":
                auth = httpx.DigestAuth(user, password)
            else:
                auth = httpx.BasicAuth(user, password)
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)
        self.auth = auth

    async def __aenter__(self) -> CardDAVClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def get_vcards(self) -> list[str]:
        """Download all vCards of the address book.

        Returns:
            vCard strings in server order

        Raises:
            HTTPError: If the server answers with an error status
            TransportError: If the server cannot be reached
        """
        body = etree.tostring(addressbook_query(), encoding="utf-8", xml_declaration=True)
        headers = {"Depth": "1", "Content-Type": "text/xml; charset=utf-8"}

        try:
            resp = await self.http_client.request(
                "REPORT", self.url, content=body, headers=headers, auth=self.auth
            )
        except httpx.HTTPError as e:
            raise TransportError(f"carddav: request failed: {e}") from e

        if resp.status_code != 207:
            text = resp.text[:1024].strip()
            raise HTTPError(resp.status_code, Exception(text) if text else None)

        logger.debug(f"REPORT response:\n{format_xml(resp.content)}")

        try:
            vcards = address_data(resp.content)
        except etree.XMLSyntaxError as e:
            raise TransportError(f"carddav: malformed REPORT response: {e}") from e

        logger.info(f"Downloaded {len(vcards)} vCards")
        return vcards

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.http_client.aclose()
