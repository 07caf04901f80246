"""
Structured logging setup for the Backlog Processor.

Two channels share one stream:
- diagnostic logs (stages, interceptors, CLI) in a structured, timestamped format
- the ``output`` channel carrying the pipeline's intermediate results as bare lines
"""

import logging
import sys
from datetime import datetime
from typing import Any, TextIO

OUTPUT_CHANNEL = "output"

# stageflow logs every graph and stage transition at INFO
NOISY_LOGGERS = ("asyncio", "stageflow", "pipeline_dag", "interceptors")


def _is_tty(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class StructuredFormatter(logging.Formatter):
    """Formats records as ``[time][logger][LEVEL] message {context}``."""

    LEVEL_COLORS = {
        "DEBUG": "\033[90m",
        "INFO": "\033[36m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True, stream: TextIO | None = None):
        super().__init__()
        self.use_colors = use_colors and _is_tty(stream or sys.stdout)

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).isoformat()
        header = f"[{timestamp}][{record.name}][{record.levelname.ljust(5)}]"
        if self.use_colors:
            header = f"{self.LEVEL_COLORS.get(record.levelname, '')}{header}{self.RESET}"

        line = f"{header} {record.getMessage()}"

        context: dict[str, Any] | None = getattr(record, "extra_data", None)
        if context:
            line += f" {context}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter merging bound context with per-call ``extra``."""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        context = {**(self.extra or {}), **(kwargs.get("extra") or {})}
        # The formatter only reads extra_data; the flat keys stay for other handlers
        kwargs["extra"] = {**context, "extra_data": context} if context else {}
        return msg, kwargs


def setup_logging(verbose: bool = False, quiet: bool = False, stream: TextIO | None = None) -> None:
    """Configure the diagnostic and output channels."""
    stream = stream or sys.stdout

    if quiet:
        level = logging.WARNING
    else:
        level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter(use_colors=True, stream=stream))
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    # Results are printed verbatim and stay visible even when quiet
    output_handler = logging.StreamHandler(stream)
    output_handler.setFormatter(logging.Formatter("%(message)s"))
    output = logging.getLogger(OUTPUT_CHANNEL)
    output.setLevel(logging.DEBUG if verbose else logging.INFO)
    output.handlers = [output_handler]
    output.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)


def get_logger(name: str, **context) -> ContextLogger:
    """Get a context-aware logger."""
    return ContextLogger(logging.getLogger(name), context)
