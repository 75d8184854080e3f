"""Command line entry point.

Usage:
    python -m invoice_extractor extract bill.pdf --category gas
    python -m invoice_extractor extract bill.pdf --category water --json
    python -m invoice_extractor probe
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import mimetypes
from pathlib import Path
import sys

from invoice_extractor.config import load_frozen_config
from invoice_extractor.core.types import ExtractionResult, InvoiceCategory
from invoice_extractor.exceptions import ConfigurationError, InvalidInputError
from invoice_extractor.facade import check_connection, extract_invoice_data
from invoice_extractor.validation import validate_upload

# ruff: noqa: T201

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m invoice_extractor",
        description="Extract structured fields from scanned utility invoices",
    )
    parser.add_argument(
        "--env-file", help="Optional .env file with KONCILE_* settings"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    extract = sub.add_parser("extract", help="Extract fields from one invoice")
    extract.add_argument("file", type=Path, help="Invoice file (PDF, image, Excel)")
    extract.add_argument(
        "--category",
        "-c",
        required=True,
        choices=InvoiceCategory.values(),
        help="Invoice category",
    )
    extract.add_argument(
        "--json", action="store_true", help="Print the full result as JSON"
    )

    sub.add_parser("probe", help="Check connectivity to the extraction service")
    return parser


def _print_result(result: ExtractionResult, *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return
    if not result.success or result.data is None or result.metadata is None:
        print(f"Extraction failed after {result.processing_time_ms}ms: {result.error}")
        return
    print(
        f"Extracted {result.metadata.fields_extracted} fields in "
        f"{result.processing_time_ms}ms (confidence {result.metadata.confidence:.2f})"
    )
    width = max((len(name) for name in result.data), default=0)
    for name, field in result.data.items():
        print(f"  {name:<{width}}  {field.value}  ({field.confidence:.2f})")


async def _run_extract(args: argparse.Namespace) -> int:
    path: Path = args.file
    if not path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        return EXIT_USAGE

    content_type, _ = mimetypes.guess_type(path.name)
    try:
        validate_upload(path.name, path.stat().st_size, content_type)
        config = load_frozen_config(use_env_file=args.env_file)
    except (InvalidInputError, ConfigurationError) as e:
        print(str(e), file=sys.stderr)
        return EXIT_USAGE

    result = await extract_invoice_data(
        path.read_bytes(), path.name, args.category, config=config
    )
    _print_result(result, as_json=args.json)
    return EXIT_OK if result.success else EXIT_FAILED


async def _run_probe(args: argparse.Namespace) -> int:
    try:
        config = load_frozen_config(use_env_file=args.env_file)
    except ConfigurationError as e:
        print(str(e), file=sys.stderr)
        return EXIT_USAGE
    report = await check_connection(config=config)
    print(json.dumps(dataclasses.asdict(report), indent=2))
    return EXIT_OK if report.connected else EXIT_FAILED


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        stream=sys.stderr,
    )
    if args.command == "extract":
        return asyncio.run(_run_extract(args))
    return asyncio.run(_run_probe(args))


if __name__ == "__main__":
    sys.exit(main())
