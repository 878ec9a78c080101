"""Command line entry point: match boleto PDFs against a resident roster.

Usage:
    qualivida-boletos residents.json boleto.pdf
    qualivida-boletos residents.json ./boletos/ --ocr
    qualivida-boletos residents.json extracted.txt --text

Prints one JSON object per document on stdout. Logs go to stderr.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import structlog

from .config import ExtractionConfig, QualividaConfig
from .exceptions import QualividaError
from .processor import BoletoProcessor, DocumentSource, TextSource, load_roster

logger = structlog.get_logger()


def configure_logging(level: str) -> None:
    """Send structlog output to stderr, filtered at ``level``."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def find_pdf_files(folder_path: Path, recursive: bool = True) -> list[Path]:
    """Find all PDF files in a folder, sorted by path."""
    pattern = "*.pdf"
    files = folder_path.rglob(pattern) if recursive else folder_path.glob(pattern)
    return sorted(files)


def collect_sources(
    paths: Sequence[str], as_text: bool, recursive: bool
) -> list[tuple[str, DocumentSource]]:
    """Expand folders and wrap text files; returns (label, source) pairs."""
    sources: list[tuple[str, DocumentSource]] = []
    for raw in paths:
        path = Path(raw)
        if as_text:
            sources.append(
                (str(path), TextSource(path.read_text(encoding="utf-8"), name=str(path)))
            )
        elif path.is_dir():
            sources.extend((str(p), p) for p in find_pdf_files(path, recursive))
        else:
            sources.append((str(path), path))
    return sources


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qualivida-boletos",
        description="Extract boleto fields and match them to condominium residents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # A single boleto
  qualivida-boletos residents.json boleto_03-005.pdf

  # Every PDF under a folder, with OCR for scanned documents
  qualivida-boletos residents.json ./boletos --ocr

  # Text already extracted by another tool
  qualivida-boletos residents.json boleto.txt --text
        """,
    )
    parser.add_argument(
        "roster",
        type=str,
        help="JSON file with the resident roster",
    )
    parser.add_argument(
        "documents",
        nargs="+",
        help="PDF files or folders (text files with --text)",
    )
    parser.add_argument(
        "--text",
        action="store_true",
        help="Treat inputs as UTF-8 text files instead of PDFs",
    )
    parser.add_argument(
        "--ocr",
        action="store_true",
        help="Use OCR when a PDF has too little text (needs the 'ocr' extra)",
    )
    parser.add_argument(
        "--no-recursive",
        action="store_true",
        help="Don't scan subfolders",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (default: QUALIVIDA_LOG_LEVEL or INFO)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        overrides = {}
        if args.log_level:
            overrides["log_level"] = args.log_level
        if args.ocr:
            overrides["extraction"] = ExtractionConfig(ocr_enabled=True)
        config = QualividaConfig(**overrides)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    configure_logging(config.log_level)

    try:
        roster = load_roster(args.roster)
        sources = collect_sources(args.documents, args.text, not args.no_recursive)
    except (QualividaError, OSError, UnicodeDecodeError) as e:
        logger.error("cli_input_error", error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 2

    processor = BoletoProcessor(config)
    results = asyncio.run(processor.process_many([s for _, s in sources], roster))

    for (label, _), result in zip(sources, results):
        print(
            json.dumps(
                {"source": label, "result": result.model_dump(mode="json")},
                ensure_ascii=False,
            )
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
