# tests/test_core/test_errors.py
from core.errors import (
    ConflictError, NetworkError, PartialFailureError, ProviderError,
    RequestTimeoutError, UnknownError, ValidationError,
)

def test_retryable_categories():
    assert RequestTimeoutError("slow").retryable
    assert NetworkError("down").retryable
    assert PartialFailureError("half", succeeded=1, failed=1).retryable
    assert not ValidationError("bad").retryable
    assert not ConflictError("dup").retryable

def test_provider_error_retryable_only_for_rate_limit_and_server_errors():
    assert ProviderError("busy", status_code=429).retryable
    assert ProviderError("boom", status_code=503).retryable
    assert not ProviderError("bad key", status_code=401).retryable
    assert ProviderError("bad key", status_code=401).to_dict()["status_code"] == 401

def test_partial_failure_carries_counts():
    data = PartialFailureError("2 of 5 imported", succeeded=2, failed=3).to_dict()
    assert data == {"category": "partial", "message": "2 of 5 imported", "succeeded": 2, "failed": 3}

def test_unknown_error_hides_detail():
    error = UnknownError("psycopg2.OperationalError: password authentication failed")
    assert error.message.startswith("psycopg2")
    assert error.to_dict() == {"category": "unknown", "message": "An unexpected error occurred"}
    assert error.retryable
