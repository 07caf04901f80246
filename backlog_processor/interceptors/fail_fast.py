"""
Fail Fast Interceptor - validates run inputs before stage execution.

Implements fail-fast principles to reject malformed inputs before a stage runs.
"""

from datetime import datetime
from typing import Any

from stageflow import BaseInterceptor, ErrorAction
from stageflow.pipeline.interceptors import CriticalInterceptorError

from ..utils.logger import get_logger

logger = get_logger("fail_fast")


class MissingRunInputError(CriticalInterceptorError):
    """Raised when a stage's required run input is absent or not a string."""

    def __init__(self, stage_name: str, invalid: list[str]):
        super().__init__(
            f"Stage '{stage_name}' missing required inputs: {', '.join(invalid)}",
            interceptor_name=FailFastInterceptor.name,
        )
        self.stage_name = stage_name
        self.invalid = invalid


class FailFastInterceptor(BaseInterceptor):
    """
    Interceptor that validates run inputs before stage execution.

    Features:
    - Required input validation (present and a string)
    - Early failure with clear error messages
    """

    name = "fail_fast"
    priority = 3  # Very early, before timeouts

    # Required run inputs per stage
    STAGE_REQUIREMENTS: dict[str, list[str]] = {
        "refine_epic": ["input_text"],
        "create_backlog": ["repo"],
    }

    def __init__(self):
        self._validation_errors: list[dict[str, Any]] = []

    @staticmethod
    def _lookup(ctx, key: str) -> Any:
        value = getattr(ctx, key, None)
        if value is None:
            value = (getattr(ctx, "metadata", None) or {}).get(key)
        return value

    async def before(self, stage_name: str, ctx) -> None:
        """Validate stage inputs before execution."""
        requirements = self.STAGE_REQUIREMENTS.get(stage_name, [])

        invalid = [req for req in requirements if not isinstance(self._lookup(ctx, req), str)]
        if not invalid:
            return None

        error = MissingRunInputError(stage_name, invalid)
        self._validation_errors.append({
            "stage": stage_name,
            "missing": invalid,
            "timestamp": datetime.now().isoformat(),
        })

        logger.error(str(error))
        raise error

    async def after(self, stage_name: str, result, ctx) -> None:
        """No-op for completed stages."""
        pass

    async def on_error(self, stage_name: str, error: Exception, ctx) -> ErrorAction:
        """Log validation-related errors."""
        if isinstance(error, (TypeError, AttributeError)):
            logger.error(f"Possible input error in {stage_name}: {error}")
        return ErrorAction.FAIL

    def get_validation_errors(self) -> list[dict[str, Any]]:
        """Get accumulated validation errors."""
        return list(self._validation_errors)
