"""Command line interface for the Flutter ARB text extractor."""
import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from arb_extractor.app_config import load_app_config
from arb_extractor.errors import ConfigurationError
from arb_extractor.l10n_manager import L10nManager
from arb_extractor.logging_config import LOGGER_NAME, setup_logger
from arb_extractor.project_initializer import ProjectInitializer

logger = logging.getLogger(LOGGER_NAME)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="arb-extractor",
        description="Extract hardcoded widget texts from a Flutter project into ARB files."
    )
    parser.add_argument(
        "-p",
        "--project",
        default=".",
        help="Path to the Flutter project (default: current directory).",
    )
    parser.add_argument(
        "-r",
        "--replace",
        action="store_true",
        help="Replace hardcoded texts with AppLocalizations calls.",
    )
    parser.add_argument(
        "-d",
        "--dry-run",
        action="store_true",
        help="Report what would be extracted without changing any file.",
    )
    parser.add_argument(
        "-l",
        "--add-locale",
        metavar="CODE",
        help="Add a new locale file (e.g. es, fr, ar) from the template ARB file.",
    )
    parser.add_argument(
        "--no-translate",
        action="store_true",
        help="Copy template texts into new locale files instead of translating them.",
    )
    parser.add_argument(
        "--no-build",
        action="store_true",
        help="Do not run flutter clean / pub get / gen-l10n after replacing texts.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )

    subparsers = parser.add_subparsers(dest="command")
    start = subparsers.add_parser("start", help="Set up a Flutter project for localization.")
    start.add_argument(
        "-p",
        "--project",
        default=argparse.SUPPRESS,
        help="Path to the Flutter project (default: current directory).",
    )
    start.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Show detailed progress information.",
    )
    return parser


def run_start(project_path: str, verbose: bool) -> int:
    setup_logger("DEBUG" if verbose else "INFO", None, True)
    result = ProjectInitializer(project_path).initialize()
    if not result.success:
        logger.error("Setup completed with %d error(s)", len(result.errors))
        return 1
    logger.info("Setup complete. Next: run 'arb-extractor' to extract texts, then add the "
                "localization delegates to your MaterialApp.")
    return 0


def run_add_locale(manager: L10nManager, locale: str) -> int:
    logger.info("Adding locale: %s", locale)
    result = asyncio.run(manager.add_locale(locale))
    if result.created:
        logger.info("Locale added successfully! Review %s for accuracy.", result.file_path)
    return 0


def run_extract(manager: L10nManager, replace: bool, dry_run: bool) -> int:
    result = manager.process_project(replace_in_code=replace, dry_run=dry_run)
    if result.warnings:
        logger.warning("%d warning(s) during the run, see the log above", len(result.warnings))

    if result.has_errors:
        logger.error("Completed with %d error(s)", len(result.errors))
        return 1
    if result.extracted_count == 0:
        logger.info("No hardcoded texts found - your project is already localized!")
    elif not dry_run:
        logger.info("Process completed successfully!")
        if not replace:
            logger.info("Tip: Run with --replace to replace the texts in your code.")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    project_path = os.path.abspath(args.project)
    if not os.path.isdir(project_path):
        print(f"Error: Project directory not found: {args.project}", file=sys.stderr)
        return 1

    if args.command == "start":
        return run_start(project_path, args.verbose)

    try:
        config = load_app_config(
            project_path,
            dry_run=args.dry_run,
            translate=not args.no_translate,
            log_level="DEBUG" if args.verbose else None
        )
        if args.no_build:
            config.run_build_commands = False
        manager = L10nManager(config)

        if args.add_locale:
            return run_add_locale(manager, args.add_locale)
        return run_extract(manager, args.replace, args.dry_run)
    except ConfigurationError as e:
        logger.critical("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
