# tests/test_workrequests.py

import threading
import time
from typing import List

import pytest

from keel.errors import (
    OperationCancelled,
    OperationFailed,
    OperationTimedOut,
    TransportError,
)
from keel.models import (
    ActionType,
    ResourceAction,
    ResourceNotCorrelated,
    WorkRequestSnapshot,
    WorkRequestStatus,
)
from keel.workrequests import WorkRequestPoller, extract_resource_id


class FakeStatusSource:
    """Returns the given statuses in order, repeating the last one."""

    def __init__(self, statuses: List[str], resources=None):
        self._statuses = statuses
        self._resources = resources or []
        self.calls = 0

    def __call__(self, handle: str) -> WorkRequestSnapshot:
        status = self._statuses[min(self.calls, len(self._statuses) - 1)]
        self.calls += 1
        return WorkRequestSnapshot(
            handle=handle,
            status=WorkRequestStatus.from_value(status),
            resources=list(self._resources),
        )


def test_wait_returns_snapshot_after_in_progress_polls():
    created = ResourceAction("NODEPOOL", "CREATED", "pool-123")
    source = FakeStatusSource(["IN_PROGRESS", "IN_PROGRESS", "SUCCEEDED"], [created])
    poller = WorkRequestPoller(source, poll_interval=0.01, timeout=5.0)

    snapshot = poller.wait("wr-1")

    assert snapshot.status == WorkRequestStatus.SUCCEEDED
    assert source.calls == 3
    assert extract_resource_id(snapshot, ActionType.CREATED, "NODEPOOL") == "pool-123"


def test_wait_polls_at_least_once_when_already_terminal():
    source = FakeStatusSource(["SUCCEEDED"])
    poller = WorkRequestPoller(source, poll_interval=0.01, timeout=1.0)

    poller.wait("wr-1")

    assert source.calls == 1


def test_wait_raises_operation_failed_with_remote_detail():
    source = FakeStatusSource(["ACCEPTED", "FAILED"])
    poller = WorkRequestPoller(
        source,
        poll_interval=0.01,
        timeout=5.0,
        fetch_errors=lambda handle: ["quota exceeded", "shape unavailable"],
    )

    with pytest.raises(OperationFailed) as exc_info:
        poller.wait("wr-1")

    assert exc_info.value.status == WorkRequestStatus.FAILED
    assert exc_info.value.detail == "quota exceeded; shape unavailable"


def test_wait_treats_canceled_as_failure():
    poller = WorkRequestPoller(FakeStatusSource(["CANCELED"]), poll_interval=0.01, timeout=1.0)

    with pytest.raises(OperationFailed) as exc_info:
        poller.wait("wr-1")

    assert exc_info.value.status == WorkRequestStatus.CANCELED


def test_wait_still_fails_when_error_lookup_breaks():
    def broken_errors(handle):
        raise TransportError("list_work_request_errors failed")

    poller = WorkRequestPoller(
        FakeStatusSource(["FAILED"]),
        poll_interval=0.01,
        timeout=1.0,
        fetch_errors=broken_errors,
    )

    with pytest.raises(OperationFailed) as exc_info:
        poller.wait("wr-1")

    assert exc_info.value.detail == ""


def test_wait_times_out_no_earlier_than_timeout():
    source = FakeStatusSource(["IN_PROGRESS"])
    poller = WorkRequestPoller(source, poll_interval=0.01, timeout=0.05)

    start = time.monotonic()
    with pytest.raises(OperationTimedOut) as exc_info:
        poller.wait("wr-1")
    elapsed = time.monotonic() - start

    assert elapsed >= 0.05
    assert exc_info.value.elapsed >= 0.05
    assert exc_info.value.last_status == "IN_PROGRESS"
    assert source.calls >= 2


def test_wait_timeout_uses_injected_clock():
    ticks = iter([0.0, 0.4, 0.8, 1.2])
    source = FakeStatusSource(["ACCEPTED"])
    poller = WorkRequestPoller(
        source,
        poll_interval=0.001,
        timeout=1.0,
        clock=lambda: next(ticks),
    )

    with pytest.raises(OperationTimedOut) as exc_info:
        poller.wait("wr-1")

    assert source.calls == 3
    assert exc_info.value.elapsed == pytest.approx(1.2)


def test_unknown_status_is_not_terminal():
    source = FakeStatusSource(["UNKNOWN_ENUM_VALUE", "SUCCEEDED"])
    poller = WorkRequestPoller(source, poll_interval=0.01, timeout=1.0)

    poller.wait("wr-1")

    assert source.calls == 2


def test_wait_propagates_transport_error_without_retry():
    calls = []

    def failing(handle):
        calls.append(handle)
        raise TransportError("get_work_request failed: boom")

    poller = WorkRequestPoller(failing, poll_interval=0.01, timeout=1.0)

    with pytest.raises(TransportError):
        poller.wait("wr-1")

    assert calls == ["wr-1"]


def test_wait_honours_cancellation_token():
    cancel = threading.Event()
    cancel.set()
    poller = WorkRequestPoller(FakeStatusSource(["IN_PROGRESS"]), poll_interval=0.5, timeout=10.0)

    start = time.monotonic()
    with pytest.raises(OperationCancelled):
        poller.wait("wr-1", cancel=cancel)

    assert time.monotonic() - start < 0.5


def test_wait_aborts_when_cancelled_during_sleep():
    cancel = threading.Event()
    source = FakeStatusSource(["IN_PROGRESS"])
    poller = WorkRequestPoller(source, poll_interval=5.0, timeout=60.0)
    timer = threading.Timer(0.05, cancel.set)

    start = time.monotonic()
    timer.start()
    try:
        with pytest.raises(OperationCancelled) as exc_info:
            poller.wait("wr-1", cancel=cancel)
    finally:
        timer.cancel()
    elapsed = time.monotonic() - start

    assert exc_info.value.handle == "wr-1"
    assert elapsed < 2.0
    assert source.calls == 1


@pytest.mark.parametrize(
    "handle, interval, timeout",
    [
        ("", 1.0, 10.0),
        ("wr-1", 0.0, 10.0),
        ("wr-1", -1.0, 10.0),
        ("wr-1", 2.0, 1.0),
    ],
)
def test_wait_rejects_invalid_arguments(handle, interval, timeout):
    source = FakeStatusSource(["SUCCEEDED"])
    poller = WorkRequestPoller(source)

    with pytest.raises(ValueError):
        poller.wait(handle, poll_interval=interval, timeout=timeout)

    assert source.calls == 0


def test_extract_returns_first_match_in_reported_order():
    resources = [
        ResourceAction("CLUSTER", "RELATED", "cluster-1"),
        ResourceAction("NODEPOOL", "CREATED", "pool-a"),
        ResourceAction("NODEPOOL", "CREATED", "pool-b"),
    ]

    first = extract_resource_id(resources, ActionType.CREATED, "NODEPOOL")
    again = extract_resource_id(resources, ActionType.CREATED, "NODEPOOL")

    assert first == "pool-a"
    assert again == first


def test_extract_matches_entity_type_case_insensitively():
    resources = [ResourceAction("nodepool", "UPDATED", "pool-1")]

    assert extract_resource_id(resources, "updated", "NODEPOOL") == "pool-1"


def test_extract_reports_absence_as_value():
    resources = [ResourceAction("NODEPOOL", "UPDATED", "pool-1")]

    result = extract_resource_id(resources, ActionType.CREATED, "NODEPOOL")

    assert isinstance(result, ResourceNotCorrelated)
    assert not result
    assert result.action_type == "CREATED"
    assert result.entity_type == "NODEPOOL"


def test_extract_keeps_empty_string_id_distinct_from_absence():
    resources = [ResourceAction("NODEPOOL", "CREATED", "")]

    assert extract_resource_id(resources, ActionType.CREATED, "NODEPOOL") == ""
