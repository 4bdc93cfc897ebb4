from __future__ import annotations

from ..core.enums import EndpointClass

_PAYROLL_CRITICAL_MARKERS = ("/payroll", "/time-entries")
_ADMINISTRATIVE_MARKERS = ("/reports", "/audit")
_PUBLIC_MARKERS = ("/location", "/health", "/status")


def classify_path(path: str) -> EndpointClass:
    """Map a request path onto its rate-limit class; first match wins."""
    path = path or "/"
    if path.startswith("/api/auth") or path.startswith("/login/"):
        return EndpointClass.AUTH
    if any(marker in path for marker in _PAYROLL_CRITICAL_MARKERS):
        return EndpointClass.PAYROLL_CRITICAL
    if path.startswith("/api/admin/") or any(marker in path for marker in _ADMINISTRATIVE_MARKERS):
        return EndpointClass.ADMINISTRATIVE
    if any(marker in path for marker in _PUBLIC_MARKERS):
        return EndpointClass.PUBLIC
    return EndpointClass.GENERAL
