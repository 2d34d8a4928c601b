"""Exception types raised by roombot."""

from __future__ import annotations

from typing import Any


class RoomBotError(Exception):
    """Base class for roombot errors."""


class MatrixRequestError(RoomBotError):
    """A Matrix client-server call returned an error response."""

    def __init__(self, operation: str, response: Any) -> None:  # noqa: ANN401
        self.operation = operation
        self.response = response
        super().__init__(f"Matrix request '{operation}' failed: {response}")


class AssistantRunTimeoutError(RoomBotError, TimeoutError):
    """An assistant run did not reach a terminal status before its deadline."""

    def __init__(self, run_id: str, timeout: float) -> None:
        self.run_id = run_id
        self.timeout = timeout
        super().__init__(f"Assistant run {run_id} did not finish within {timeout:.0f}s")


class AssistantRunCancelledError(RoomBotError):
    """Driving an assistant run was cancelled by the caller."""

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        super().__init__(f"Assistant run {run_id} was cancelled")
