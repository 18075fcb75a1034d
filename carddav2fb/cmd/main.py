"""carddav2fb command-line tool."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from carddav2fb.carddav import CardDAVClient
from carddav2fb.config import Config, load_config
from carddav2fb.contact import ContactRecord
from carddav2fb.debug import logger, setup_logging
from carddav2fb.errors import Carddav2FbError, ConfigError, ImageUploadError, UploadRejectedError
from carddav2fb.fritzbox.client import FritzBoxClient
from carddav2fb.fritzbox.converter import Converter
from carddav2fb.fritzbox.phonebook import serialize
from carddav2fb.fritzbox.quickdial import load_snapshot
from carddav2fb.images import upload_images
from carddav2fb.pipeline import build_phonebook, filter_contacts, run_pipeline
from carddav2fb.vcard import parse_vcards, read_vcard_file

# Where `run` keeps a rejected phonebook when no output file was given
REJECTED_PHONEBOOK = "rejected-phonebook-{id}.xml"


def _fritzbox_client(config: Config) -> FritzBoxClient:
    if not config.fritzbox.sid:
        raise ConfigError("no Fritz!Box session id configured (fritzbox.sid or FRITZBOX_SID)")
    return FritzBoxClient(config.fritzbox.url, config.fritzbox.sid, timeout=config.fritzbox.timeout)


async def download(config: Config) -> list[str]:
    """Download all vCards from the configured CardDAV server."""
    server = config.server
    if server is None:
        raise ConfigError("no CardDAV server configured")
    async with CardDAVClient(
        server.url,
        server.user,
        server.password,
        authentication=server.authentication,
        timeout=server.timeout,
    ) as client:
        return await client.get_vcards()


async def export_phonebook(config: Config) -> bytes | None:
    async with _fritzbox_client(config) as client:
        return await client.export_phonebook(config.phonebook.id, config.phonebook.name)


async def upload_phonebook(config: Config, xml: bytes) -> None:
    async with _fritzbox_client(config) as client:
        await client.upload_phonebook(config.phonebook.id, xml)


def cmd_download(config: Config, args: argparse.Namespace) -> None:
    vcards = asyncio.run(download(config))
    data = "".join(v if v.endswith("\n") else v + "\n" for v in vcards)
    if args.output:
        Path(args.output).write_text(data, encoding="utf-8")
        logger.info(f"Wrote {len(vcards)} vCards to {args.output}")
    else:
        sys.stdout.write(data)


def cmd_convert(config: Config, args: argparse.Namespace) -> None:
    records = read_vcard_file(Path(args.filename).read_text(encoding="utf-8"))
    logger.info(f"Read {len(records)} vCards from {args.filename}")

    snapshot = None
    if args.remote:
        snapshot = load_snapshot(Path(args.remote).read_bytes())

    result = run_pipeline(
        records,
        config.filters,
        Converter(config.conversions),
        config.phonebook.meta(),
        snapshot,
    )
    xml = serialize(result.document)
    if args.output:
        Path(args.output).write_bytes(xml)
        logger.info(f"Wrote phonebook to {args.output}")
    else:
        sys.stdout.write(xml.decode("utf-8"))


def cmd_upload(config: Config, args: argparse.Namespace) -> None:
    xml = Path(args.filename).read_bytes()
    logger.info("Uploading Fritz!Box phonebook")
    asyncio.run(upload_phonebook(config, xml))
    logger.info("Successfully uploaded new Fritz!Box phonebook")


def _upload_contact_images(config: Config, contacts: list[ContactRecord]) -> list[ContactRecord]:
    """Upload photos; on FTP failure continue with all photos dropped."""
    fritzbox = config.fritzbox
    try:
        images = upload_images(
            contacts, fritzbox.url, fritzbox.user, fritzbox.password, fritzbox.fonpix
        )
    except ImageUploadError as e:
        logger.error(f"Image upload failed, continuing without images: {e}")
        return [record.without_photo() for record in contacts]
    logger.info(f"Uploaded/refreshed {images.uploaded} of {images.total} images")
    return images.records


def cmd_run(config: Config, args: argparse.Namespace) -> None:
    vcards = asyncio.run(download(config))
    contacts = filter_contacts(parse_vcards(vcards), config.filters)

    if config.fritzbox.fonpix and not args.no_images:
        contacts = _upload_contact_images(config, contacts)

    snapshot = load_snapshot(asyncio.run(export_phonebook(config)))
    result = build_phonebook(
        contacts, Converter(config.conversions), config.phonebook.meta(), snapshot
    )
    xml = serialize(result.document)
    if args.output:
        Path(args.output).write_bytes(xml)
        logger.info(f"Wrote phonebook to {args.output}")

    logger.info("Uploading Fritz!Box phonebook")
    try:
        asyncio.run(upload_phonebook(config, xml))
    except UploadRejectedError:
        if not args.output:
            path = Path(REJECTED_PHONEBOOK.format(id=config.phonebook.id))
            path.write_bytes(xml)
            logger.error(f"Upload rejected, phonebook saved to {path}")
        raise
    logger.info(f"Successfully uploaded {len(result.entries)} phonebook entries")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="carddav2fb",
        description="Synchronize a CardDAV address book into a Fritz!Box phonebook",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Download, convert and upload in one go
  carddav2fb --config config.json run

  # Same, keeping a copy of the uploaded phonebook
  carddav2fb --config config.json run -o phonebook.xml

  # Convert a local vCard file, keeping quick dials of a saved phonebook
  carddav2fb --config config.json convert contacts.vcf --remote old.xml -o new.xml

Secrets can be passed as CARDDAV_PASSWORD, FRITZBOX_SID and FRITZBOX_PASSWORD.
        """,
    )
    parser.add_argument(
        "--config",
        default="config.json",
        help="configuration file (default: config.json)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="enable debug logging (logs request/response bodies with formatted XML)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    download_parser = commands.add_parser("download", help="download vCards from the CardDAV server")
    download_parser.add_argument("-o", "--output", help="output file (default: stdout)")
    download_parser.set_defaults(func=cmd_download)

    convert_parser = commands.add_parser("convert", help="convert a vCard file to a phonebook")
    convert_parser.add_argument("filename", help="vCard file")
    convert_parser.add_argument("-o", "--output", help="output file (default: stdout)")
    convert_parser.add_argument("--remote", help="exported Fritz!Box phonebook to take quick dials from")
    convert_parser.set_defaults(func=cmd_convert)

    upload_parser = commands.add_parser("upload", help="upload a phonebook file to the Fritz!Box")
    upload_parser.add_argument("filename", help="phonebook XML file")
    upload_parser.set_defaults(func=cmd_upload)

    run_parser = commands.add_parser("run", help="download, convert and upload")
    run_parser.add_argument("--no-images", action="store_true", help="do not upload contact images")
    run_parser.add_argument("-o", "--output", help="also write the phonebook to this file")
    run_parser.set_defaults(func=cmd_run)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for carddav2fb."""
    args = build_parser().parse_args(argv)
    setup_logging(args.debug)

    try:
        config = load_config(args.config)
        args.func(config, args)
    except (Carddav2FbError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
