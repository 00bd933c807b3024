# SPDX-License-Identifier: Apache-2.0
"""
locale-sync - CLI Tool

Keeps per-language JSON files in sync with a reference document, translating
only keys that are missing or whose reference value changed.

Usage:
    locale-sync -r <reference> -o <output-dir> [options]

Examples:
    locale-sync -r locales/en.json -o locales -l fr,de
    locale-sync -r localization/reference.js -o locales -l ja -p claude
    locale-sync -r locales/en.json -o locales --force
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import NoReturn

from dotenv import load_dotenv

from locale_sync import __version__
from locale_sync.sync.engine import SyncConfig, SyncEngine, SyncResult
from locale_sync.sync.errors import SyncError
from locale_sync.sync.progress import LoggingProgress
from locale_sync.translators import (
    ConfigurationError,
    ProviderKind,
    TranslatorBackend,
    create_translator,
    resolve_api_key,
)

logger = logging.getLogger(__name__)


def comma_separated_list(value: str) -> list[str]:
    """Split a comma-separated option into trimmed, non-empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed argument Namespace.
    """
    parser = argparse.ArgumentParser(
        prog="locale-sync",
        description="Synchronize translated key/value files with a reference document",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -r en.json -o locales -l fr,de           # Google Translate (default)
  %(prog)s -r en.json -o locales -l fr -p deepl     # DeepL
  %(prog)s -r reference.js -o locales -l ja -p claude
  %(prog)s -r en.json -o locales --force            # Retranslate everything

Environment Variables:
  DEEPL_API_KEY    DeepL API key (required for --provider deepl)
  OPENAI_API_KEY   OpenAI API key (required for --provider openai)
  CLAUDE_API_KEY   Anthropic API key (required for --provider claude)
  OPENAI_MODEL     OpenAI model override
  CLAUDE_MODEL     Claude model override
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parser.add_argument(
        "-r",
        "--reference",
        type=Path,
        required=True,
        help="Path to reference file (.json, or .js/.mjs module)",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        required=True,
        help="Output directory for localized files",
    )
    parser.add_argument(
        "-l",
        "--languages",
        type=comma_separated_list,
        default=None,
        help="Comma-separated list of language codes (default: languages in the state file)",
    )
    parser.add_argument(
        "-g",
        "--reference-language",
        default="en",
        help="The reference file's language (default: en)",
    )
    parser.add_argument(
        "-e",
        "--reference-export",
        default="default",
        help="Exported name holding the mapping in a JS reference (default: default)",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Force regeneration of all translations",
    )
    parser.add_argument(
        "-p",
        "--provider",
        default=ProviderKind.GOOGLE.value,
        choices=[kind.value for kind in ProviderKind],
        help="Translation provider (default: google)",
    )
    parser.add_argument(
        "-s",
        "--state-file",
        type=Path,
        default=None,
        help="Path to state file (default: <output-dir>/.localization.json)",
    )

    tuning = parser.add_argument_group("Dispatch options")
    tuning.add_argument(
        "-c",
        "--concurrency",
        type=int,
        default=4,
        help="Concurrent translations per language (default: 4)",
    )
    tuning.add_argument(
        "--max-retries",
        type=int,
        default=3,
        help="Retries per key after a failed translation (default: 3)",
    )

    provider_group = parser.add_argument_group("Provider options")
    provider_group.add_argument(
        "--api-key",
        help="Provider API key (or set <PROVIDER>_API_KEY)",
    )
    provider_group.add_argument(
        "--model",
        help="Model for LLM providers (openai, claude)",
    )

    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 if any key failed to translate",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    verbosity.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only show warnings and errors",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> SyncConfig:
    """Create the sync configuration from CLI arguments.

    Raises:
        ConfigurationError: If numeric options are out of range.
    """
    return SyncConfig(
        reference_path=args.reference,
        output_dir=args.output_dir,
        languages=args.languages or [],
        reference_language=args.reference_language,
        reference_export=args.reference_export,
        state_file=args.state_file,
        force=args.force,
        max_retries=args.max_retries,
        concurrency=args.concurrency,
    )


def create_translator_from_args(args: argparse.Namespace) -> TranslatorBackend:
    """Create translator based on provider selection.

    Raises:
        ConfigurationError: If the provider is unknown or its key is missing.
    """
    kind = ProviderKind.parse(args.provider)
    api_key = resolve_api_key(kind, explicit=args.api_key)
    return create_translator(kind, api_key=api_key, model=args.model)


def print_report(result: SyncResult) -> None:
    """Print a per-language summary."""
    print()
    for report in result.reports:
        print(f"  {report.summary()}")
        for failure in report.failures:
            print(f"    ! {failure.key}: {failure.error}")
    print()
    if result.has_failures:
        print(f"Finished with {result.failed_count} error(s)")
    elif result.translated_count == 0:
        print("Nothing to do")
    else:
        print("Localization completed successfully")


async def run(args: argparse.Namespace) -> int:
    """Execute a synchronization run.

    Args:
        args: Command line arguments.

    Returns:
        Exit code (0: success, 1: failure).
    """
    try:
        config = build_config(args)
        translator = create_translator_from_args(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Reference: {config.reference_path}")
    print(f"Output: {config.output_dir}")
    print(f"Provider: {translator.name}")
    if config.languages:
        print(f"Languages: {', '.join(config.languages)}")
    if config.force:
        print("Force: enabled")

    engine = SyncEngine(translator, config, progress_callback=LoggingProgress())
    _install_signal_handlers()

    try:
        result = await engine.run()
    except (ConfigurationError, SyncError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1
    finally:
        await translator.close()

    print_report(result)
    if args.strict and result.has_failures:
        return 1
    return 0


def _install_signal_handlers() -> None:
    """Turn SIGTERM into cancellation of the running task."""
    task = asyncio.current_task()
    if task is None:
        return
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGTERM, task.cancel)
    except (NotImplementedError, RuntimeError):
        # Not supported on this platform / loop
        logger.debug("SIGTERM handler not installed")


def main() -> NoReturn:
    """Main entry point."""
    load_dotenv()
    args = parse_args()

    # Configure logging
    if args.verbose:
        log_level = logging.DEBUG
    elif args.quiet:
        log_level = logging.WARNING
    else:
        log_level = logging.INFO
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")

    try:
        exit_code = asyncio.run(run(args))
    except (KeyboardInterrupt, asyncio.CancelledError):
        print("Interrupted", file=sys.stderr)
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
