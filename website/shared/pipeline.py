"""
Explicit stage pipeline for the terminal error path.

Each stage receives the request and the current error condition (None when
nothing has failed yet) and returns either Handled, carrying the response
that ends the request, or Continue, carrying the condition for the next
stage. The runner stops at the first Handled result, so exactly one
response is produced per run.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Union

from starlette.requests import Request
from starlette.responses import Response

from website.domain.errors import ErrorCondition


@dataclass(frozen=True)
class Handled:
    """Stage result that terminates the request with a response."""

    response: Response


@dataclass(frozen=True)
class Continue:
    """Stage result that forwards control, optionally with an error."""

    condition: Optional[ErrorCondition] = None


StageResult = Union[Handled, Continue]
Stage = Callable[[Request, Optional[ErrorCondition]], StageResult]


class PipelineExhaustedError(RuntimeError):
    """Raised when every stage continued and none produced a response."""


class Pipeline:
    """Ordered list of stages run one after another for a single request."""

    def __init__(self, stages: Sequence[Stage]) -> None:
        if not stages:
            raise ValueError("A pipeline needs at least one stage")
        self._stages = tuple(stages)

    @property
    def stages(self) -> tuple[Stage, ...]:
        return self._stages

    def run(
        self, request: Request, condition: Optional[ErrorCondition] = None
    ) -> Response:
        """Run the stages in order and return the first response produced.

        Args:
            request: The request being processed.
            condition: The error forwarded into the pipeline, if any.

        Returns:
            The response of the first stage that returned Handled.

        Raises:
            PipelineExhaustedError: If no stage handled the request.
        """
        for stage in self._stages:
            result = stage(request, condition)
            if isinstance(result, Handled):
                return result.response
            condition = result.condition
        raise PipelineExhaustedError(
            f"No stage handled {request.method} {request.url.path}"
        )
