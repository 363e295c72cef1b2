"""
Analyze construction documents and export a consolidated materials budget.

Usage:
  export OPENAI_API_KEY=...
  sitebudget site_plan.pdf floor_plan.png --out exports/
  sitebudget plan.pdf --add-item 'doc-1:{"material": "Nails", "quantity": 2, "unitPrice": 3}'
  sitebudget plan.pdf --toggle doc-1:3 --format xlsx

Documents get the ids doc-1, doc-2, ... in command-line order. Manual items
are added before toggles are applied, so toggle indices refer to the final
breakdown (manual items are prepended).
"""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import List, Optional, Tuple

from config.settings import settings
from config.errors import SiteBudgetError
from models.upload import DocumentUpload
from services.export_synchronizer import ALL_FORMATS
from services.session import EstimateSession
from utils.batch_logger import configure_logging
from utils.formatting import format_currency


def _split_reference(value: str) -> Tuple[str, str]:
    document_id, sep, rest = value.partition(":")
    if not sep or not document_id or not rest:
        raise argparse.ArgumentTypeError(f"expected DOC:VALUE, got {value!r}")
    return document_id, rest


def _toggle_arg(value: str) -> Tuple[str, int]:
    document_id, index = _split_reference(value)
    try:
        return document_id, int(index)
    except ValueError:
        raise argparse.ArgumentTypeError(f"item index must be an integer, got {index!r}")


def _item_arg(value: str) -> Tuple[str, dict]:
    document_id, payload = _split_reference(value)
    try:
        item = json.loads(payload)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"invalid item JSON: {e}")
    if not isinstance(item, dict):
        raise argparse.ArgumentTypeError("item JSON must be an object")
    return document_id, item


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sitebudget",
        description="Estimate construction materials from documents and export the project budget",
    )
    parser.add_argument("files", nargs="+", help="Drawings, site plans or documents to analyze")
    parser.add_argument("--out", default=None, help=f"Output directory (default: {settings.export_dir})")
    parser.add_argument(
        "--format",
        choices=ALL_FORMATS + ["all"],
        default="all",
        help="Export artifact(s) to produce",
    )
    parser.add_argument(
        "--add-item",
        type=_item_arg,
        action="append",
        default=[],
        metavar="DOC:JSON",
        help="Manual line item to prepend to a document (repeatable)",
    )
    parser.add_argument(
        "--toggle",
        type=_toggle_arg,
        action="append",
        default=[],
        metavar="DOC:INDEX",
        help="Show a line item in its secondary unit (repeatable)",
    )
    parser.add_argument("--dump", default=None, help="Also write the project estimate as JSON to this path")
    parser.add_argument("--log-level", default=None, help="Log level (default from LOG_LEVEL)")
    return parser


async def _analyze(session: EstimateSession, files: List[str]) -> None:
    uploads = [
        DocumentUpload.from_path(path, document_id=f"doc-{position}")
        for position, path in enumerate(files, start=1)
    ]
    await session.analyze(uploads)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    session = EstimateSession()
    try:
        asyncio.run(_analyze(session, args.files))
    except SiteBudgetError as e:
        print(f"Analysis failed: {e.message}")
        return 1
    except OSError as e:
        print(f"Could not read document: {e}")
        return 1

    try:
        for document_id, item in args.add_item:
            session.add_item(document_id, item)
        for document_id, index in args.toggle:
            session.toggle_unit(document_id, index)
    except SiteBudgetError as e:
        print(f"Invalid input: {e.message}")
        return 2

    project = session.project
    for document in project.estimates:
        print(f"{document.document_id}  {document.file_name}: "
              f"{format_currency(document.total_budget, project.currency)}")
    print(f"Grand total: {format_currency(project.grand_total, project.currency)}")

    if args.dump:
        Path(args.dump).write_text(json.dumps(project.to_dict(), indent=2), encoding="utf-8")
        print(f"Wrote {args.dump}")

    formats = ALL_FORMATS if args.format == "all" else [args.format]
    outcome = session.export(output_dir=args.out, formats=formats)
    for notice in outcome.notices:
        if notice.success:
            print(f"Wrote {notice.path}")
        else:
            print(f"Export of {notice.artifact} failed: {notice.message}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
