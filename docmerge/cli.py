"""Command-line interface for the mail-merge generator."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from docmerge.config import ConfigError, RenderConfig, load_config
from docmerge.filenames import generate_safe_filename
from docmerge.generator import FORMATS, DocumentGenerator
from docmerge.spreadsheet import SpreadsheetError, read_sheet
from docmerge.variables import validate_template


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docmerge",
        description="Merge spreadsheet rows into an HTML template and render "
        "one PDF or Word document per row.",
    )
    parser.add_argument("template", help="Path to the HTML template file.")
    parser.add_argument("data", help="Path to the .csv or .xlsx data file.")
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output path. Defaults to <prefix>_documents.zip, or the row's "
        "filename when --row is given.",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=FORMATS,
        default="pdf",
        help="Output document format (default: pdf).",
    )
    parser.add_argument(
        "--pattern",
        default="{Name}",
        help="Filename pattern using {Column} tokens (default: {Name}).",
    )
    parser.add_argument(
        "--prefix",
        default=None,
        help="Fallback filename prefix. Defaults to the template's file name.",
    )
    parser.add_argument(
        "--row",
        type=int,
        default=None,
        help="Render only this 0-based row to a single file.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of rows per batch (default: 200).",
    )
    parser.add_argument("--page-format", choices=["a4", "letter"], default=None)
    parser.add_argument("--orientation", choices=["portrait", "landscape"], default=None)
    parser.add_argument("--config", default=None, help="YAML file with render settings.")
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only report template variables missing from the data.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print progress information.",
    )
    return parser


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    template_path = Path(args.template)
    if not template_path.exists():
        _fail(f"file not found: {template_path}")
    template_html = template_path.read_text(encoding="utf-8")

    try:
        config = load_config(Path(args.config)) if args.config else RenderConfig()
        config = config.with_overrides(
            page_format=args.page_format,
            orientation=args.orientation,
            batch_limit=args.limit,
            image_base_dir=config.image_base_dir or str(template_path.parent),
        )
    except ConfigError as e:
        _fail(str(e))

    try:
        sheet = read_sheet(args.data)
    except SpreadsheetError as e:
        _fail(str(e))

    rows = sheet.rows
    validation = validate_template(template_html, sheet.columns)
    if args.check:
        if validation.is_valid:
            print("All template variables are present in the data.")
            return
        print("Missing variables: " + ", ".join(validation.missing_variables))
        sys.exit(2)
    if not validation.is_valid:
        print(
            "Warning: variables not in the data will be left as-is: "
            + ", ".join(validation.missing_variables),
            file=sys.stderr,
        )

    prefix = args.prefix or template_path.stem
    generator = DocumentGenerator(config)

    if args.row is not None:
        if not 0 <= args.row < len(rows):
            _fail(f"--row must be within 0..{len(rows) - 1}")
        row = rows[args.row]
        name = generate_safe_filename(row, args.pattern, prefix, args.row, "." + args.format)
        out = Path(args.output or name)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(generator.generate(row, template_html, args.format))
        print(f"Saved: {out}")
        return

    def progress(done: int, total: int) -> None:
        if args.verbose:
            print(f"  [{done}/{total}] rows processed", file=sys.stderr)

    batch = generator.generate_batch(
        rows,
        template_html,
        fmt=args.format,
        filename_pattern=args.pattern,
        fallback_prefix=prefix,
        on_progress=progress,
    )

    out = Path(args.output or f"{prefix}_documents.zip")
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(batch.to_zip())

    print(f"Saved: {out} ({len(batch.succeeded)} documents)")
    if batch.failed:
        print(f"{len(batch.failed)} rows failed; see errors.txt in the archive.", file=sys.stderr)
        sys.exit(3)


if __name__ == "__main__":
    main()
