"""
Command-line interface for the analyzer.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from webanalyzer.config import AnalyzerConfig
from webanalyzer.core import AnalysisOptions, AnalysisRequest, AnalysisResult, analyze
from webanalyzer.errors import AnalysisError, InvalidInput

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID_INPUT = 2
EXIT_INTERRUPTED = 130


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr; debug when verbose, warnings otherwise."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    # Connection pool chatter drowns out our own debug output
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def print_summary(url: str, result: AnalysisResult) -> None:
    """Print analysis summary to stderr."""
    sys.stderr.write("=" * 50 + "\n")
    sys.stderr.write("PAGE SUMMARY\n")
    sys.stderr.write("=" * 50 + "\n\n")

    sys.stderr.write(f"URL:                    {url}\n")
    sys.stderr.write(f"HTML version:           {result.html_version}\n")
    sys.stderr.write(f"Title:                  {result.title or '(none)'}\n")
    headings = ", ".join(f"{level}={count}" for level, count in result.headings.items())
    sys.stderr.write(f"Headings:               {headings}\n")
    sys.stderr.write(f"Internal links:         {result.internal_links}\n")
    sys.stderr.write(f"External links:         {result.external_links}\n")
    if result.accessible_external_links is not None:
        sys.stderr.write(f"  accessible:           {result.accessible_external_links}\n")
        sys.stderr.write(f"  broken:               {result.broken_external_links}\n")
    sys.stderr.write(f"Login form:             {'yes' if result.has_login_form else 'no'}\n")
    sys.stderr.write("\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="web-analyzer",
        description="Analyze a web page and output a JSON summary.",
    )
    parser.add_argument("url", help="Page URL (e.g. https://example.com)")
    parser.add_argument("--no-probe", action="store_true", help="Skip liveness checks of external links")
    parser.add_argument("--timeout", type=float, help="Page fetch timeout in seconds (default: 15)")
    parser.add_argument("--probe-timeout", type=float, help="Per-link probe timeout in seconds (default: 5)")
    parser.add_argument("--workers", type=int, help="Maximum concurrent link probes (default: 10)")
    parser.add_argument("--user-agent", help="User-Agent header")
    parser.add_argument("--out", default="-", help="Output file path, or '-' for stdout (default: stdout)")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    parser.add_argument("--verbose", action="store_true", help="Show debug logging and a summary")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the analyzer CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        request = AnalysisRequest(url=args.url)
        config = AnalyzerConfig.from_env().with_overrides(
            fetch_timeout=args.timeout,
            probe_timeout=args.probe_timeout,
            max_probe_workers=args.workers,
            user_agent=args.user_agent,
        )
    except (InvalidInput, ValueError) as e:
        sys.stderr.write(f"error: {e}\n")
        return EXIT_INVALID_INPUT

    try:
        result = analyze(
            request,
            AnalysisOptions(enable_liveness_probe=not args.no_probe),
            config=config,
        )
    except AnalysisError as e:
        logger.error("Error analyzing page: %s", e)
        sys.stderr.write(f"error: {e}\n")
        return EXIT_FAILED
    except KeyboardInterrupt:
        sys.stderr.write("\ninterrupted\n")
        return EXIT_INTERRUPTED

    if args.verbose:
        print_summary(request.url, result)

    json_text = json.dumps(result.to_dict(), ensure_ascii=False, indent=2 if args.pretty else None)

    if args.out == "-":
        print(json_text)
    else:
        output_path = Path(args.out)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json_text, encoding="utf-8")
        if args.verbose:
            sys.stderr.write(f"Results written to: {output_path}\n")

    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
