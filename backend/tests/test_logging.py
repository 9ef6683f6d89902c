"""Tests for request log context."""
import structlog

from hippo.middleware.logging import bind_record_ids, record_ids


def test_record_ids_picks_domain_path_params():
    """Test that only conversation, loan and user ids are carried into the log context."""
    params = {"conversation_id": "c-1", "loan_id": "l-1", "user_id": "u-1", "page": "2"}

    assert record_ids(params) == {"conversation_id": "c-1", "loan_id": "l-1", "user_id": "u-1"}
    assert record_ids({}) == {}


def test_bind_record_ids_adds_to_context():
    """Test that bound ids sit next to the trace_id for later events."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(trace_id="t-1")
    try:
        bound = bind_record_ids({"loan_id": "l-1"})

        assert bound == {"loan_id": "l-1"}
        assert structlog.contextvars.get_contextvars() == {"trace_id": "t-1", "loan_id": "l-1"}
    finally:
        structlog.contextvars.clear_contextvars()
