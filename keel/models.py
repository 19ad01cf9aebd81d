from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar

T = TypeVar("T")


class WorkRequestStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    IN_PROGRESS = "IN_PROGRESS"
    CANCELING = "CANCELING"
    FAILED = "FAILED"
    SUCCEEDED = "SUCCEEDED"
    CANCELED = "CANCELED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_value(cls, value: Any) -> "WorkRequestStatus":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            # The SDK reports values it does not know as UNKNOWN_ENUM_VALUE
            return cls.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES


_TERMINAL_STATUSES = frozenset(
    {WorkRequestStatus.SUCCEEDED, WorkRequestStatus.FAILED, WorkRequestStatus.CANCELED}
)


class ActionType(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"
    RELATED = "RELATED"
    IN_PROGRESS = "IN_PROGRESS"
    FAILED = "FAILED"


@dataclass(frozen=True)
class ResourceAction:
    entity_type: str
    action_type: str
    resource_id: Optional[str]
    entity_uri: Optional[str] = None


@dataclass
class WorkRequestSnapshot:
    """
    Everything one status poll returned for a work request.

    `resources` keeps the order the remote reported them in; resource
    correlation depends on it.
    """
    handle: str
    status: WorkRequestStatus
    resources: List[ResourceAction] = field(default_factory=list)
    operation_type: Optional[str] = None
    percent_complete: Optional[float] = None
    time_accepted: Optional[datetime] = None
    time_finished: Optional[datetime] = None
    raw: Any = None


@dataclass(frozen=True)
class ResourceNotCorrelated:
    """
    No resource matched the requested action/entity pair.

    A value, not an exception: callers that only want an id opportunistically
    can test it for truth.
    """
    action_type: str
    entity_type: str

    def __bool__(self) -> bool:
        return False


@dataclass
class Page(Generic[T]):
    items: Sequence[T]
    next_cursor: Optional[str] = None

    @property
    def is_last(self) -> bool:
        return self.next_cursor is None


@dataclass(frozen=True)
class SubResourceState:
    id: str
    lifecycle_state: str
    lifecycle_detail: Optional[str] = None


@dataclass
class NodePoolOptions:
    images: List[str] = field(default_factory=list)
    kubernetes_versions: List[str] = field(default_factory=list)
    shapes: List[str] = field(default_factory=list)


@dataclass
class OperationResult:
    """
    Standard result for a CLI action. Keeps output consistent and easy
    to log/serialize.
    """
    operation: str
    target: str
    success: bool
    details: Dict[str, Any] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    error_type: Optional[str] = None

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.success = False

    def add_exception(self, exc: BaseException) -> None:
        self.add_error(str(exc))
        self.error_type = type(exc).__name__
