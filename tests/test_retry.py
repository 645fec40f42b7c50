import pytest

from utils.errors import AIError, AIOutputError, AIRateLimitError
from utils.retry import extract_retry_after, is_rate_limited, with_retry


class Flaky:
    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def test_exponential_backoff_then_success():
    sleeps = []
    op = Flaky([AIError("boom"), AIError("boom")])

    assert with_retry(op, max_retries=2, base_delay=2.0, sleep=sleeps.append) == "ok"
    assert op.calls == 3
    assert sleeps == [2.0, 4.0]


def test_exhausted_retries_reraise_last_error():
    sleeps = []
    op = Flaky([AIError("first"), AIError("second"), AIError("third")])

    with pytest.raises(AIError, match="third"):
        with_retry(op, max_retries=2, base_delay=1.0, sleep=sleeps.append)
    assert op.calls == 3
    assert len(sleeps) == 2


def test_rate_limit_uses_structured_retry_delay():
    body = {
        "error": {
            "code": 429,
            "details": [
                {"@type": "type.googleapis.com/google.rpc.RetryInfo", "retryDelay": "7s"},
            ],
        }
    }
    error = AIError("quota", body=body)
    sleeps = []

    assert is_rate_limited(error)
    assert extract_retry_after(error) == 7.0
    with_retry(Flaky([error]), sleep=sleeps.append)
    assert sleeps == [7.0]


def test_rate_limit_message_hint_and_header():
    assert extract_retry_after(AIRateLimitError("Quota exceeded. Please retry in 12.5s.")) == 12.5
    assert extract_retry_after(AIRateLimitError("slow down", retry_after="3")) == 3.0


def test_rate_limit_without_hint_falls_back_to_backoff():
    sleeps = []
    with_retry(Flaky([AIRateLimitError("slow down")]), base_delay=2.0, sleep=sleeps.append)
    assert sleeps == [2.0]


def test_no_retry_errors_propagate_immediately():
    sleeps = []
    op = Flaky([AIOutputError("bad output")])

    with pytest.raises(AIOutputError):
        with_retry(op, sleep=sleeps.append, no_retry=(AIOutputError,))
    assert op.calls == 1
    assert sleeps == []
