"""Upload of contact photos to the Fritz!Box image store (fonpix)."""

from __future__ import annotations

import ftplib
import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import Callable, Sequence
from urllib.parse import urlparse

from .contact import ContactRecord
from .errors import ImageUploadError

logger = logging.getLogger("carddav2fb.images")

# The Fritz!Box only displays JPEG images
JPEG_TYPES = ("JPEG", "JPG", "PJPEG")


@dataclass
class ImageUploadResult:
    """Outcome of an image upload run."""

    uploaded: int = 0
    total: int = 0
    failed: int = 0
    records: list[ContactRecord] = field(default_factory=list)


def is_jpeg(photo_type: str) -> bool:
    """Check a vCard photo type, bare (``JPEG``) or as media type (``image/jpeg``)."""
    subtype = photo_type.strip().upper().rpartition("/")[2]
    return subtype in JPEG_TYPES


def has_jpeg_photo(record: ContactRecord) -> bool:
    """Check if a contact carries a photo the Fritz!Box can display."""
    return record.photo is not None and is_jpeg(record.photo_type)


def image_filename(record: ContactRecord) -> str:
    return f"{record.uid}.jpg"


def _remote_size(ftp: ftplib.FTP, filename: str) -> int:
    """Get the size of a remote file, -1 if it does not exist."""
    try:
        size = ftp.size(filename)
    except ftplib.error_perm:
        return -1
    return size if size is not None else -1


def upload_images(
    records: Sequence[ContactRecord],
    host: str,
    user: str,
    password: str,
    directory: str,
    ftp_factory: Callable[[], ftplib.FTP] = ftplib.FTP,
) -> ImageUploadResult:
    """Upload contact photos, skipping files already present with equal size.

    Contacts whose photo could not be uploaded are returned without photo so
    that the phonebook does not link a missing image.

    Args:
        records: Contacts to be converted
        host: Fritz!Box host name or URL
        user: FTP user
        password: FTP password
        directory: Image directory on the Fritz!Box (e.g. "FRITZ.NAS/fonpix")
        ftp_factory: Creates the FTP connection

    Returns:
        Counts and the contact list to convert

    Raises:
        ImageUploadError: If connecting, logging in or changing to the
            image directory fails
    """
    if "://" in host:
        host = urlparse(host).hostname or host
    result = ImageUploadResult()

    ftp = ftp_factory()
    try:
        try:
            ftp.connect(host)
        except OSError as e:
            raise ImageUploadError(f"could not connect to ftp server {host}: {e}") from e
        try:
            ftp.login(user, password)
        except ftplib.Error as e:
            raise ImageUploadError(f"could not log in {user} to ftp server {host}: {e}") from e
        try:
            ftp.cwd(directory)
        except ftplib.Error as e:
            raise ImageUploadError(f"could not change to dir {directory} on {host}: {e}") from e

        # Binary mode is required for SIZE
        ftp.voidcmd("TYPE I")

        for record in records:
            if not has_jpeg_photo(record):
                result.records.append(record)
                continue

            result.total += 1
            filename = image_filename(record)
            if _remote_size(ftp, filename) == len(record.photo):
                result.records.append(record)
                continue

            try:
                ftp.storbinary(f"STOR {filename}", BytesIO(record.photo))
            except ftplib.Error as e:
                logger.error(f"Error uploading {filename}: {e}")
                result.failed += 1
                result.records.append(record.without_photo())
                continue

            result.uploaded += 1
            result.records.append(record)
    finally:
        try:
            ftp.quit()
        except (OSError, ftplib.Error, EOFError):
            ftp.close()

    logger.info(f"Uploaded {result.uploaded} of {result.total} images")
    return result
