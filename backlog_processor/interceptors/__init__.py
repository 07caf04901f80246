"""Custom interceptors for the Backlog Processor."""

from .fail_fast import FailFastInterceptor, MissingRunInputError
from .observability import ObservabilityInterceptor
from .stage_output import StageOutputInterceptor

__all__ = [
    "FailFastInterceptor",
    "MissingRunInputError",
    "ObservabilityInterceptor",
    "StageOutputInterceptor",
]
