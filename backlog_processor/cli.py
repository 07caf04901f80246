"""
Command Line Interface for the Backlog Processor.

Runs the example epic (or a supplied one) through the pipeline and writes
results to the output log.
"""

import argparse
import asyncio
import signal
import sys

from . import __version__
from .config import PipelineConfig, EXAMPLE_EPIC, EXAMPLE_REPO
from .processor import EpicProcessor
from .utils.logger import setup_logging, get_logger

logger = get_logger("cli")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="backlog-processor",
        description="Turn an epic into user stories, a workflow and backlog items",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s run
  %(prog)s run --epic "Build an app. Track orders." --repo acme/shop
  %(prog)s stories --epic "Build an app. Track orders."
  %(prog)s run --stories-per-step 2 --verbose
        """,
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Run the full epic-to-backlog pipeline")
    _add_common_arguments(run_parser)
    run_parser.add_argument(
        "--repo",
        type=str,
        default=EXAMPLE_REPO,
        help=f"Repository identifier for backlog items (default: {EXAMPLE_REPO})",
    )
    run_parser.add_argument(
        "--stories-per-step",
        type=int,
        default=1,
        help="User stories grouped into each workflow step (default: 1)",
    )

    # Stories command
    stories_parser = subparsers.add_parser("stories", help="Only generate user stories from an epic")
    _add_common_arguments(stories_parser)

    return parser


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--epic", "-e",
        type=str,
        default=EXAMPLE_EPIC,
        help="Epic text to process (default: bookstore example)",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=30000,
        help="Per-stage timeout in milliseconds (default: 30000)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def build_config(args) -> PipelineConfig:
    """Build the pipeline configuration from parsed arguments."""
    return PipelineConfig(
        stories_per_step=getattr(args, "stories_per_step", 1),
        stage_timeout_ms=args.timeout,
        example_epic=args.epic,
        example_repo=getattr(args, "repo", EXAMPLE_REPO),
        verbose=args.verbose,
    )


async def run_processor(args) -> int:
    """Run the selected pipeline with the given arguments."""
    config = build_config(args)
    processor = EpicProcessor(config)

    def handle_signal(signum, frame):
        logger.warning(f"Received signal {signum}, cancelling...")
        processor.cancel_all(f"Received signal {signum}")

    previous = {
        signum: signal.signal(signum, handle_signal)
        for signum in (signal.SIGINT, signal.SIGTERM)
    }

    try:
        if args.command == "stories":
            stories = await processor.generate_stories(config.example_epic)
            logger.info(f"Generated {len(stories)} user stories")
        else:
            backlog = await processor.run(config.example_epic, config.example_repo)
            logger.info(f"Generated {len(backlog)} backlog items for {config.example_repo}")
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)

    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        # Default to run if no command specified
        args = parser.parse_args(["run"])

    setup_logging(verbose=args.verbose)

    try:
        return asyncio.run(run_processor(args))
    except Exception as e:
        logger.error(f"Pipeline failed: {e}", extra={"error_type": type(e).__name__})
        return 1


if __name__ == "__main__":
    sys.exit(main())
