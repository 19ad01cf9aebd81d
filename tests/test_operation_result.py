# tests/test_operation_result.py

from keel.errors import OperationTimedOut
from keel.models import OperationResult


def test_operation_result_initial_state():
    r = OperationResult(operation="test-op", target="foo", success=True)
    assert r.success is True
    assert r.errors == []
    assert r.error_type is None
    assert isinstance(r.details, dict)


def test_operation_result_add_error_marks_failure():
    r = OperationResult(operation="test-op", target="foo", success=True)
    r.add_error("something went wrong")
    assert r.success is False
    assert r.errors == ["something went wrong"]


def test_operation_result_add_exception_records_kind():
    r = OperationResult(operation="test-op", target="foo", success=True)
    r.add_exception(OperationTimedOut("wr-1", timeout=5.0, elapsed=5.2))
    assert r.success is False
    assert r.error_type == "OperationTimedOut"
    assert "wr-1" in r.errors[0]
