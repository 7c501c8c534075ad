"""
CLI main entry point for the documentation change monitor.

Thin wrapper around the core engine - no business logic here.
"""

import argparse
import asyncio
import logging
import sys

from docwatch import Monitor, MonitorConfig, scrape_page
from docwatch.config import DEFAULT_URLS, RENDERERS, ConfigurationError, URLInput, read_urls_from_file
from docwatch.models import NormalizationStrategy
from docwatch.normalizer import ContentNormalizer
from docwatch.session import open_session
from docwatch.storage import PersistenceError, ScrapeResultStore

from .output import print_run_report, print_scrape_result, scrape_result_data

OUTPUT_MODES = ("file", "console")


def _add_page_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-r",
        "--renderer",
        type=str,
        choices=RENDERERS,
        default="browser",
        help="Page renderer: headless browser or static HTML (default: browser)",
    )

    parser.add_argument(
        "-s",
        "--strategy",
        type=str,
        choices=[strategy.value for strategy in NormalizationStrategy],
        default=NormalizationStrategy.EXPAND_SECTIONS.value,
        help="Normalization strategy (default: expand)",
    )

    parser.add_argument(
        "-t",
        "--timeout",
        type=int,
        default=30,
        help="Navigation timeout in seconds (default: 30)",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docwatch",
        description="Monitor documentation pages for content changes across runs.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s run
  %(prog)s run --urls-file urls.txt --snapshot-file state.json
  %(prog)s scrape https://www.agego.com/verification-methods
  %(prog)s scrape https://www.agego.com/verification-methods console --hash-key
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a monitoring pass over all URLs")
    run_parser.add_argument(
        "-u",
        "--urls-file",
        type=str,
        default=None,
        help="Text file containing one URL per line (default: built-in URL set)",
    )
    run_parser.add_argument(
        "--snapshot-file",
        type=str,
        default="outputs/agegodoc_snapshots.json",
        help="Snapshot state file (default: outputs/agegodoc_snapshots.json)",
    )
    run_parser.add_argument(
        "--changes-file",
        type=str,
        default="outputs/agegodoc_changed.json",
        help="Change batch file (default: outputs/agegodoc_changed.json)",
    )
    _add_page_options(run_parser)

    scrape_parser = subparsers.add_parser("scrape", help="Scrape a single page")
    scrape_parser.add_argument("url", type=str, nargs="?", default=None, help="URL to scrape")
    scrape_parser.add_argument(
        "output_mode",
        type=str,
        nargs="?",
        default="file",
        help="Where to write the result: file (default) or console",
    )
    scrape_parser.add_argument(
        "--hash-key",
        action="store_true",
        help="Key console output by the SHA-1 of the URL",
    )
    scrape_parser.add_argument(
        "-o",
        "--output-dir",
        type=str,
        default="outputs/scraped_results",
        help="Directory for file output (default: outputs/scraped_results)",
    )
    _add_page_options(scrape_parser)

    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_command(args: argparse.Namespace) -> None:
    """Run a monitoring pass and print its report."""
    urls = read_urls_from_file(args.urls_file) if args.urls_file else DEFAULT_URLS
    config = MonitorConfig.from_env(
        urls=urls,
        snapshot_file=args.snapshot_file,
        changes_file=args.changes_file,
        strategy=NormalizationStrategy(args.strategy),
        renderer=args.renderer,
        navigation_timeout=args.timeout * 1000,
    )

    print(f"Monitoring {len(config.urls)} URLs...")
    result = Monitor(config, session_factory=lambda: open_session(config.renderer)).run()
    print_run_report(result)


def scrape_command(args: argparse.Namespace) -> None:
    """Scrape one page and write or print the result."""
    if not args.url:
        raise ConfigurationError("Usage: docwatch scrape <URL> [file|console] [--hash-key]")
    if args.output_mode not in OUTPUT_MODES:
        raise ConfigurationError('Invalid output mode. Use "file" or "console"')
    if args.timeout <= 0:
        raise ConfigurationError("Timeout must be a positive number of seconds")
    URLInput(args.url)

    print(f"Scraping: {args.url}", file=sys.stderr)
    record = asyncio.run(
        scrape_page(
            args.url,
            session_factory=lambda: open_session(args.renderer),
            normalizer=ContentNormalizer(strategy=NormalizationStrategy(args.strategy)),
            timeout=args.timeout * 1000,
        )
    )

    if args.output_mode == "console":
        print_scrape_result(record, hash_key=args.hash_key)
    else:
        store = ScrapeResultStore(args.output_dir)
        output_path = store.save(scrape_result_data(record), record)
        stream = sys.stderr if record.is_error else sys.stdout
        print(f"Result saved to: {output_path}", file=stream)

    if record.is_error:
        sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    """
    Main CLI entry point.

    Exits 1 on configuration or persistence errors. A monitoring run that
    completes exits 0 even when some URLs failed.
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        if args.command == "run":
            run_command(args)
        else:
            scrape_command(args)
    except (ConfigurationError, PersistenceError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
