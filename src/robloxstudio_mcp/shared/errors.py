from __future__ import annotations

from typing import Any


class RobloxStudioError(Exception):
    code = "robloxstudio_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidArgument(RobloxStudioError):
    code = "invalid_argument"


class UnknownOperation(RobloxStudioError):
    code = "unknown_operation"


class TransportFailure(RobloxStudioError):
    code = "transport_failure"


class InvocationTimeout(RobloxStudioError):
    code = "timeout"


class InvocationCancelled(RobloxStudioError):
    code = "cancelled"


class RemoteExecutionError(RobloxStudioError):
    """The Studio plugin reported that it could not perform the request."""

    code = "remote_execution_error"

    def __init__(self, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.detail = detail

    @classmethod
    def from_payload(cls, error: Any) -> "RemoteExecutionError":
        if isinstance(error, str):
            return cls(error, detail=error)
        if isinstance(error, dict):
            message = error.get("message") or error.get("error")
            if isinstance(message, str) and message:
                return cls(message, detail=error)
        return cls(f"Studio plugin error: {error!r}", detail=error)


class ToolExecutionError(RobloxStudioError):
    code = "tool_execution_error"

    def __init__(self, message: str, kind: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind or self.code
