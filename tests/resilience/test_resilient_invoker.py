from __future__ import annotations

import pytest
import requests

from src.attendance_admission.attendance_admission.attendance.model import Denial
from src.attendance_admission.attendance_admission.core.enums import DenialReason
from src.attendance_admission.attendance_admission.core.exceptions import (
    AdmissionDenied,
    CollaboratorUnavailable,
    UpstreamError,
    ValidationError,
)
from src.attendance_admission.attendance_admission.resilience.classifier import is_retryable
from src.attendance_admission.attendance_admission.resilience.client import AdmissionClient
from src.attendance_admission.attendance_admission.resilience.retry import (
    ResilientInvoker,
    RetryPolicy,
    compute_delay,
)


def _denied(reason):
    return AdmissionDenied(Denial(reason, "x"))


class Flaky:
    def __init__(self, *errors, value="ok"):
        self.errors = list(errors)
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.value


def _invoker(sleeps):
    return ResilientInvoker(sleep=sleeps.append, rng=lambda: 0.0)


def test_delays_grow_exponentially_and_cap():
    policy = RetryPolicy(base_delay_ms=1000, max_delay_ms=10_000, backoff_multiplier=2, jitter=False)
    assert [compute_delay(n, policy) for n in range(1, 6)] == [1000, 2000, 4000, 8000, 10_000]


def test_delay_stays_capped_for_very_late_attempts():
    policy = RetryPolicy(base_delay_ms=1000, max_delay_ms=10_000, backoff_multiplier=10, jitter=False)
    assert compute_delay(10_000, policy) == 10_000


@pytest.mark.parametrize("draw", [0.0, 0.5, 0.999999])
def test_jitter_stays_within_ten_percent(draw):
    policy = RetryPolicy(base_delay_ms=1000, jitter=True)
    for attempt in (1, 2, 3):
        base = compute_delay(attempt, RetryPolicy(base_delay_ms=1000, jitter=False))
        jittered = compute_delay(attempt, policy, rng=lambda: draw)
        assert base <= jittered < base * 1.1


def test_success_on_first_attempt_does_not_sleep():
    sleeps = []
    outcome = _invoker(sleeps).invoke(lambda: 42)

    assert outcome.succeeded
    assert outcome.value == 42
    assert outcome.attempts == 1
    assert sleeps == []


def test_retries_transient_errors_then_succeeds():
    sleeps = []
    fn = Flaky(CollaboratorUnavailable("database"), UpstreamError(503))

    outcome = _invoker(sleeps).invoke(fn, RetryPolicy(max_attempts=3, jitter=False))

    assert outcome.succeeded
    assert outcome.attempts == 3
    assert sleeps == [1.0, 2.0]
    assert outcome.total_delay_ms == 3000


def test_gives_up_after_max_attempts():
    sleeps = []
    fn = Flaky(*[TimeoutError("slow")] * 5)

    outcome = _invoker(sleeps).invoke(fn, RetryPolicy(max_attempts=3, jitter=False))

    assert not outcome.succeeded
    assert isinstance(outcome.error, TimeoutError)
    assert outcome.attempts == 3
    assert fn.calls == 3
    assert len(sleeps) == 2


@pytest.mark.parametrize(
    "error",
    [
        _denied(DenialReason.ALREADY_ON_DUTY),
        _denied(DenialReason.OUT_OF_RANGE),
        UpstreamError(400, "AlreadyOnDuty"),
        UpstreamError(403, "EvidenceOwnershipViolation"),
        ValidationError("bad"),
    ],
)
def test_non_retryable_errors_stop_immediately(error):
    sleeps = []
    fn = Flaky(error)

    outcome = _invoker(sleeps).invoke(fn)

    assert not outcome.succeeded
    assert outcome.error is error
    assert outcome.attempts == 1
    assert sleeps == []


@pytest.mark.parametrize(
    "error,expected",
    [
        (_denied(DenialReason.RATE_LIMITED), True),
        (_denied(DenialReason.NOT_ON_DUTY), False),
        (UpstreamError(429), True),
        (UpstreamError(500), True),
        (UpstreamError(502), True),
        (UpstreamError(404), False),
        (CollaboratorUnavailable("identity"), True),
        (ConnectionError(), True),
        (requests.exceptions.ConnectTimeout(), True),
        (requests.exceptions.ConnectionError(), True),
        (ValueError("x"), False),
    ],
)
def test_is_retryable(error, expected):
    assert is_retryable(error) is expected


class FakeResponse:
    def __init__(self, status, payload, headers=None):
        self.status_code = status
        self._payload = payload
        self.headers = headers or {}
        self.reason = "Reason"

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        return self._payload


class ScriptedSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.headers = {}
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs.get("json")))
        return self.responses.pop(0)


def test_client_retries_rate_limited_check_in():
    session = ScriptedSession(
        FakeResponse(429, {"error": "RateLimited"}, {"Retry-After": "3"}),
        FakeResponse(200, {"session_id": "s-1"}),
    )
    sleeps = []
    client = AdmissionClient("http://api.test/", session=session, invoker=_invoker(sleeps))

    outcome = client.check_in("loc-1", 13.7, 100.5, evidence_ref="checkin/u1/a.jpg")

    assert outcome.succeeded
    assert outcome.value == {"session_id": "s-1"}
    assert outcome.attempts == 2
    assert len(sleeps) == 1
    method, url, body = session.calls[0]
    assert (method, url) == ("POST", "http://api.test/api/employee/time-entries/check-in")
    assert body == {"location_id": "loc-1", "latitude": 13.7, "longitude": 100.5, "evidence_ref": "checkin/u1/a.jpg"}


def test_client_does_not_retry_denials():
    session = ScriptedSession(FakeResponse(400, {"error": "NotOnDuty", "message": "No open session"}))
    client = AdmissionClient("http://api.test", session=session, invoker=_invoker([]))

    outcome = client.check_out()

    assert not outcome.succeeded
    assert isinstance(outcome.error, UpstreamError)
    assert outcome.error.status == 400
    assert outcome.error.error_code == "NotOnDuty"
    assert len(session.calls) == 1
    assert session.calls[0][2] == {}
