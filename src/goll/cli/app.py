"""goll command line.

Usage examples:
    goll -f summarize                      # one folder, prompt from prompt.txt
    goll -f draft,review,polish -p "..."   # chain; -p feeds the first step
    goll -f batch -r -p "..."              # every subfolder of batch, same prompt

Exit codes: 0 ok, 1 configuration / step failure, 2 usage, 130 interrupted.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from goll.cancellation import CancellationController
from goll.config import ConfigError, ToolSettings, load_settings
from goll.errors import CancellationError, ConfigLoadError, GollError, StepFailedError
from goll.llm.client import GenerationClient
from goll.log import setup_logging
from goll.pipeline import PipelineRunner, RunReport

from .reporter import ConsoleReporter
from .spinner import Spinner

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="goll",
        description=(
            "Send folder-configured prompts to a local LLM generate API, "
            "optionally chaining each response into the next folder."
        ),
    )
    parser.add_argument(
        "-f",
        "--folders",
        required=True,
        help="One or more comma separated folder names.",
    )
    parser.add_argument(
        "-p",
        "--prompt",
        default="",
        help=(
            "Optional. Prompt text used instead of prompt.txt (first folder "
            "when chaining, every subfolder with -r)."
        ),
    )
    parser.add_argument(
        "-r",
        "--recursive",
        action="store_true",
        help="Run every immediate subfolder of the single given folder, unchained.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print model config and metrics; debug logging.",
    )
    parser.add_argument(
        "-s",
        "--settings",
        default=None,
        help="Settings file (default: $GOLL_SETTINGS or settings.json).",
    )
    return parser


def parse_folders(value: str) -> List[str]:
    return [f.strip() for f in value.split(",") if f.strip()]


def check_folders(base: Path, folders: Sequence[str]) -> None:
    for folder in folders:
        path = base / folder
        if not path.is_dir():
            raise ConfigLoadError(
                f"folder {path} does not exist in {base}", str(path)
            )


async def run_pipeline(
    settings: ToolSettings,
    folders: Sequence[str],
    prompt: Optional[str] = None,
    recursive: bool = False,
    verbose: bool = False,
    stream: TextIO | None = None,
) -> RunReport:
    reporter = ConsoleReporter(stream, verbose=verbose).attach()
    try:
        with CancellationController() as token:
            spinner = Spinner(token, stream=stream)
            async with GenerationClient(
                settings.api_base_url, timeout=settings.timeout
            ) as client:
                runner = PipelineRunner.from_settings(
                    client, settings, indicator=spinner
                )
                return await runner.run(
                    token, folders, prompt_override=prompt, recursive=recursive
                )
    finally:
        if verbose:
            reporter.print_metrics()
        reporter.detach()


def _exit_code(err: GollError) -> int:
    cause = err.cause if isinstance(err, StepFailedError) else err
    if isinstance(cause, CancellationError) and not cause.timed_out:
        return EXIT_INTERRUPTED
    return EXIT_FAILURE


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    folders = parse_folders(args.folders)
    if not folders:
        parser.error("at least one folder is required")
    if args.recursive and len(folders) > 1:
        parser.error("-r/--recursive takes exactly one folder")

    try:
        settings = load_settings(args.settings)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    setup_logging(settings.logging, verbose=args.verbose)

    try:
        check_folders(Path(settings.folder_base_path), folders)
        report = asyncio.run(
            run_pipeline(
                settings,
                folders,
                prompt=args.prompt or None,
                recursive=args.recursive,
                verbose=args.verbose,
            )
        )
    except GollError as e:
        print(f"Error running goll: {e}", file=sys.stderr)
        return _exit_code(e)

    logger.info("run finished: %d step(s) completed", report.completed)
    return EXIT_OK


__all__ = [
    "main",
    "build_parser",
    "parse_folders",
    "check_folders",
    "run_pipeline",
    "EXIT_OK",
    "EXIT_FAILURE",
    "EXIT_INTERRUPTED",
]
