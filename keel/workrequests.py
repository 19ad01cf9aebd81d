from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Iterable, List, Optional, Union

from .errors import OperationCancelled, OperationFailed, OperationTimedOut, TransportError
from .models import (
    ActionType,
    ResourceAction,
    ResourceNotCorrelated,
    WorkRequestSnapshot,
    WorkRequestStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_TIMEOUT = 1800.0

StatusSource = Callable[[str], WorkRequestSnapshot]
ErrorSource = Callable[[str], List[str]]


class WorkRequestPoller:
    """
    Blocks until an asynchronous work request reaches a terminal state.

    `fetch_status(handle)` must return a WorkRequestSnapshot and raise
    TransportError when the query itself fails. Failures are surfaced as-is;
    retrying the whole wait is up to the caller.

    `fetch_errors(handle)` is optional and is only consulted once a request
    ends FAILED or CANCELED, to build the OperationFailed detail.

    Example:
        poller = WorkRequestPoller(services.get_work_request, timeout=600)
        snapshot = poller.wait("ocid1.clustersworkrequest...")
    """

    def __init__(
        self,
        fetch_status: StatusSource,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
        fetch_errors: Optional[ErrorSource] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch_status = fetch_status
        self._fetch_errors = fetch_errors
        self._clock = clock
        self.poll_interval = poll_interval
        self.timeout = timeout

    def wait(
        self,
        handle: str,
        *,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> WorkRequestSnapshot:
        """
        Poll `handle` until SUCCEEDED (returned), FAILED/CANCELED
        (OperationFailed), the deadline passes (OperationTimedOut) or
        `cancel` is set (OperationCancelled).

        The status is always queried at least once, and the poller never
        sleeps past the deadline.
        """
        interval = self.poll_interval if poll_interval is None else poll_interval
        limit = self.timeout if timeout is None else timeout

        if not handle:
            raise ValueError("work request handle must be non-empty")
        if interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {interval}")
        if limit < interval:
            raise ValueError(
                f"timeout ({limit}) must be >= poll_interval ({interval})"
            )

        if cancel is None:
            cancel = threading.Event()

        logger.info("Waiting on work request %s (timeout=%ss)", handle, limit)
        start = self._clock()
        polls = 0

        while True:
            snapshot = self._fetch_status(handle)
            polls += 1
            logger.info(
                "Work request %s status=%s operation=%s percent=%s",
                handle,
                snapshot.status.value,
                snapshot.operation_type,
                snapshot.percent_complete,
            )

            if snapshot.status == WorkRequestStatus.SUCCEEDED:
                logger.info(
                    "Work request %s succeeded after %d poll(s)", handle, polls
                )
                return snapshot

            if snapshot.status.is_terminal:
                detail = self._failure_detail(handle)
                logger.error(
                    "Work request %s ended with status %s: %s",
                    handle,
                    snapshot.status.value,
                    detail or "no detail reported",
                )
                raise OperationFailed(snapshot.status, detail, snapshot)

            elapsed = self._clock() - start
            if elapsed >= limit:
                raise OperationTimedOut(handle, limit, elapsed, snapshot.status.value)

            if cancel.wait(min(interval, limit - elapsed)):
                raise OperationCancelled(handle)

    def _failure_detail(self, handle: str) -> str:
        if self._fetch_errors is None:
            return ""
        try:
            return "; ".join(self._fetch_errors(handle))
        except TransportError as exc:
            logger.warning("Failed to fetch errors for work request %s: %s", handle, exc)
            return ""


def extract_resource_id(
    source: Union[WorkRequestSnapshot, Iterable[ResourceAction]],
    action_type: Union[ActionType, str],
    entity_type: str,
) -> Union[str, ResourceNotCorrelated]:
    """
    Return the id of the first resource reported with the given action and
    entity type, or a ResourceNotCorrelated value when none matches.

    A first match that carries no identifier is also ResourceNotCorrelated;
    an empty-string identifier is returned as-is.
    """
    resources = source.resources if isinstance(source, WorkRequestSnapshot) else source
    wanted_action = _normalize(action_type)
    wanted_entity = _normalize(entity_type)
    absent = ResourceNotCorrelated(action_type=wanted_action, entity_type=wanted_entity)

    for resource in resources:
        if (
            _normalize(resource.action_type) == wanted_action
            and _normalize(resource.entity_type) == wanted_entity
        ):
            if resource.resource_id is None:
                return absent
            return resource.resource_id

    return absent


def _normalize(value: Union[ActionType, str]) -> str:
    if isinstance(value, ActionType):
        return value.value
    return str(value).upper()
