from __future__ import annotations

from typing import Any, Optional


class KeelError(Exception):
    """Base class for every error raised by keel."""


class InvalidCredential(KeelError):
    """
    Credentials could not be turned into a configured client.

    Raised before any remote call is made.
    """


class TransportError(KeelError):
    """
    A remote call failed (network error or an error response).

    `cause` is the SDK exception; `status` and `code` are copied from it
    when the remote reported them.
    """

    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause
        self.status: Optional[int] = getattr(cause, "status", None)
        self.code: Optional[str] = getattr(cause, "code", None)


class OperationTimedOut(KeelError):
    def __init__(
        self,
        handle: str,
        timeout: float,
        elapsed: float,
        last_status: Any = None,
    ) -> None:
        super().__init__(
            f"Work request {handle} not finished after {elapsed:.1f}s "
            f"(timeout={timeout}s, last status={last_status})"
        )
        self.handle = handle
        self.timeout = timeout
        self.elapsed = elapsed
        self.last_status = last_status


class OperationFailed(KeelError):
    """The remote reported a terminal FAILED or CANCELED status."""

    def __init__(self, status: Any, detail: str = "", snapshot: Any = None) -> None:
        msg = f"Work request status: {getattr(status, 'value', status)}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)
        self.status = status
        self.detail = detail
        self.snapshot = snapshot


class OperationCancelled(KeelError):
    """The caller's cancellation token was set while waiting."""

    def __init__(self, handle: str) -> None:
        super().__init__(f"Wait for work request {handle} was cancelled")
        self.handle = handle


class PaginationCycleDetected(KeelError):
    def __init__(self, cursor: str, pages_fetched: int) -> None:
        super().__init__(
            f"Page cursor {cursor!r} repeated after {pages_fetched} page(s)"
        )
        self.cursor = cursor
        self.pages_fetched = pages_fetched


class EntityNotFound(KeelError):
    def __init__(self, entity_type: str, identifier: str) -> None:
        super().__init__(f"{entity_type} not found: {identifier}")
        self.entity_type = entity_type
        self.identifier = identifier
