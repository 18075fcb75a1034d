"""Logging setup and debug helpers."""

from __future__ import annotations

import logging

from lxml import etree

logger = logging.getLogger("carddav2fb")


def format_xml(xml_bytes: bytes | str) -> str:
    """Format XML with proper indentation.

    Args:
        xml_bytes: XML content as bytes or string

    Returns:
        Pretty-formatted XML string
    """
    try:
        if isinstance(xml_bytes, str):
            xml_bytes = xml_bytes.encode("utf-8")

        parser = etree.XMLParser(remove_blank_text=True)
        root = etree.fromstring(xml_bytes, parser)
        return etree.tostring(root, pretty_print=True, encoding="unicode")
    except (etree.XMLSyntaxError, ValueError):
        # If parsing fails, return as-is
        if isinstance(xml_bytes, bytes):
            return xml_bytes.decode("utf-8", errors="replace")
        return str(xml_bytes)


def setup_logging(debug: bool = False) -> None:
    """Configure console logging for the command-line tool.

    Args:
        debug: Also log debug messages, including request/response bodies
    """
    level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(level)

    # Repeated calls only change the level
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return

    handler = logging.StreamHandler()
    handler.setLevel(level)

    # Simple format - just the message
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger.addHandler(handler)

    # Prevent propagation to avoid duplicate logs
    logger.propagate = False
