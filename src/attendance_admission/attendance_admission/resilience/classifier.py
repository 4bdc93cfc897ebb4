from __future__ import annotations

import requests

from ..core.enums import DenialReason
from ..core.exceptions import AdmissionDenied, CollaboratorUnavailable, UpstreamError


def is_retryable(exc: BaseException) -> bool:
    """Transient failures only; denials and other client errors are final."""
    if isinstance(exc, AdmissionDenied):
        return exc.denial.reason is DenialReason.RATE_LIMITED
    if isinstance(exc, UpstreamError):
        return exc.status == 429 or exc.status >= 500
    if isinstance(exc, CollaboratorUnavailable):
        return True
    if isinstance(exc, (requests.exceptions.ConnectionError, requests.exceptions.Timeout)):
        return True
    return isinstance(exc, (TimeoutError, ConnectionError))
