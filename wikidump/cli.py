#!/usr/bin/env python
"""
WikiDump: processes a MediaWiki XML dump and prints the stripped markup text.

Parsed articles are written to stdout (or --output), status updates are
logged to stderr. Filtering can be applied to include only certain articles;
if no filtering options are given, all articles are kept.

Usage:
    wikidump --xml enwiki-latest-pages-articles.xml.bz2 --workers 8 \\
        --categories novels films --transclusions "featured article"
"""
import argparse
import logging
import sys
from pathlib import Path

from wikidump.config import ExtractorConfig, default_worker_count
from wikidump.pages import dump_size
from wikidump.pipeline import TextSink, run_dump
from wikidump.progress import LoggingProgressReporter


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wikidump",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--xml",
        required=True,
        help="MediaWiki XML dump (.xml, .xml.bz2 or .xml.gz), or '-' for stdin"
    )
    parser.add_argument(
        "-w", "--workers",
        type=int,
        default=None,
        help=f"Number of worker processes to use (default: {default_worker_count()})"
    )
    parser.add_argument(
        "--categories",
        nargs='+',
        default=None,
        metavar="TERM",
        help="Keep articles with a category containing any of these terms"
    )
    parser.add_argument(
        "--transclusions",
        nargs='+',
        default=None,
        metavar="TERM",
        help="Keep articles transcluding a template containing any of these terms"
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Write articles to this file instead of stdout"
    )
    parser.add_argument(
        "--ordered",
        action="store_true",
        default=None,
        help="Write articles in dump order instead of completion order"
    )
    parser.add_argument(
        "--threads",
        action="store_true",
        help="Use worker threads instead of worker processes"
    )
    parser.add_argument(
        "--queue-size",
        type=int,
        default=None,
        help="Articles waiting for a worker before reading pauses (default: 4096)"
    )
    parser.add_argument(
        "--status-interval",
        type=float,
        default=None,
        help="Seconds between status updates (default: 30)"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON file with ExtractorConfig values; command line options take precedence"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress progress reporting"
    )
    return parser


def build_config(args: argparse.Namespace) -> ExtractorConfig:
    """Merges the optional config file with the command line options."""
    values = ExtractorConfig.load(args.config).to_dict() if args.config else {}

    overrides = {
        'workers': args.workers,
        'categories': args.categories,
        'transclusions': args.transclusions,
        'queue_size': args.queue_size,
        'status_interval': args.status_interval,
        'ordered': args.ordered,
        'backend': 'thread' if args.threads else None,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return ExtractorConfig.from_dict(values)


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging
    log_level = logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=log_level, format='%(levelname)s: %(message)s')

    try:
        config = build_config(args)
    except (OSError, ValueError, TypeError) as e:
        logging.error(f"Invalid configuration: {e}")
        return 1

    try:
        output = open(args.output, 'w', encoding='utf-8') if args.output else sys.stdout
    except OSError as e:
        logging.error(f"Cannot open output file {args.output}: {e}")
        return 1

    reporter = LoggingProgressReporter(
        bytes_total=dump_size(args.xml),
        show_progress=not args.quiet,
        description=Path(args.xml).name,
    )

    try:
        run_dump(args.xml, config, TextSink(output), reporter=reporter)
    except OSError as e:
        logging.error(f"I/O error while processing {args.xml}: {e}")
        return 1
    except Exception as e:
        logging.error(f"Extraction failed: {e}", exc_info=True)
        return 1
    finally:
        reporter.close()
        if output is not sys.stdout:
            output.close()

    return 0


if __name__ == '__main__':
    sys.exit(main())
