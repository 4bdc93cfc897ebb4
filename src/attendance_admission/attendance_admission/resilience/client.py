"""HTTP client for the admission API with retry on transient failures."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from ..core.exceptions import UpstreamError
from .retry import InvocationOutcome, ResilientInvoker, RetryPolicy

logger = logging.getLogger(__name__)

CHECK_IN_PATH = "/api/employee/time-entries/check-in"
CHECK_OUT_PATH = "/api/employee/time-entries/check-out"


class AdmissionClient:
    """Thin ``requests.Session`` wrapper; the session keeps the login cookie.

    ``check_in`` / ``check_out`` go through the ResilientInvoker, so a 429,
    5xx or network error is retried while a denial such as AlreadyOnDuty
    comes back on the first attempt.
    """

    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 10,
        invoker: Optional[ResilientInvoker] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.setdefault("Accept", "application/json")
        self.timeout = timeout
        self.invoker = invoker or ResilientInvoker()
        self.retry_policy = retry_policy or RetryPolicy()

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self._request("POST", "/api/auth/login", json={"email": email, "password": password})

    def logout(self) -> Dict[str, Any]:
        return self._request("POST", "/api/auth/logout")

    def status(self) -> Dict[str, Any]:
        return self._request("GET", "/api/employee/time-entries/status")

    def check_in(
        self,
        location_id: str,
        latitude: float,
        longitude: float,
        evidence_ref: Optional[str] = None,
    ) -> InvocationOutcome[Dict[str, Any]]:
        body = {"location_id": location_id, "latitude": latitude, "longitude": longitude}
        if evidence_ref:
            body["evidence_ref"] = evidence_ref
        return self.invoker.invoke(lambda: self._request("POST", CHECK_IN_PATH, json=body), self.retry_policy)

    def check_out(
        self,
        evidence_ref: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> InvocationOutcome[Dict[str, Any]]:
        body: Dict[str, Any] = {}
        if evidence_ref:
            body["evidence_ref"] = evidence_ref
        if latitude is not None and longitude is not None:
            body.update(latitude=latitude, longitude=longitude)
        return self.invoker.invoke(lambda: self._request("POST", CHECK_OUT_PATH, json=body), self.retry_policy)

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        response = self.session.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if response.ok:
            return payload

        if not isinstance(payload, dict):
            payload = {}
        retry_after = response.headers.get("Retry-After")
        logger.info("%s %s -> %s %s", method, path, response.status_code, payload.get("error"))
        raise UpstreamError(
            response.status_code,
            error_code=payload.get("error"),
            message=payload.get("message") or response.reason or "",
            retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
        )
