#!/usr/bin/env python3
"""Extract one invoice from a local file and print the result as JSON.

Runs the same pipeline as the HTTP service, without the server:

    python scripts/extract_invoice.py nota.pdf
    python scripts/extract_invoice.py --text nota.txt --provider ollama

Requirements:
    - GEMINI_API_KEY for the default gemini provider
    - OPENAI_API_KEY for the openai provider
    - A running Ollama server for the ollama provider (text input only)

Exits with status 1 when the extraction fails.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from nfextract.extraction.base import ExtractionResult
from nfextract.extraction.factory import ProviderRegistry, create_extraction_service
from nfextract.extraction.request_builder import TEXT_MEDIA_TYPE
from nfextract.shared.config import Settings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Extract structured data from a Brazilian invoice (NF-e)."
    )
    parser.add_argument("path", type=Path, help="Invoice PDF, or a text file with --text")
    parser.add_argument(
        "--provider",
        choices=ProviderRegistry.list_providers(),
        help="Inference provider (defaults to APP_EXTRACTION_PROVIDER)",
    )
    parser.add_argument(
        "--text",
        action="store_true",
        help="Treat the input file as already-extracted UTF-8 text",
    )
    parser.add_argument("--indent", type=int, default=2, help="JSON indentation (default: 2)")
    return parser


def result_envelope(result: ExtractionResult) -> dict[str, Any]:
    """Shape a result the same way the HTTP endpoint does."""
    if result.success and result.record is not None:
        return {
            "success": True,
            "method": result.metadata.method,
            "data": result.record.to_json_dict(),
            "metadata": result.metadata.model_dump(mode="json"),
        }
    return {
        "success": False,
        "error": result.error,
        "error_type": result.error_type,
        "stage": result.stage,
        "details": result.details,
        "processing_time_seconds": result.metadata.processing_time_seconds,
        "timestamp": result.metadata.timestamp.isoformat(),
    }


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    overrides = {"extraction_provider": args.provider} if args.provider else {}
    settings = Settings(**overrides)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    if not args.path.is_file():
        logger.error(f"File not found: {args.path}")
        return 1

    service = create_extraction_service(settings)
    content = args.path.read_bytes()
    media_type = TEXT_MEDIA_TYPE if args.text else "application/pdf"

    result = service.extract(content, media_type, args.path.name)
    print(json.dumps(result_envelope(result), indent=args.indent, ensure_ascii=False))

    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
