from __future__ import annotations

import logging
import math

from flask import Flask, g, jsonify, request

from ..common.datetime_utils import isoformat, from_epoch_ms
from ..common.http import client_address, role_required
from ..container import Container
from ..core.enums import DenialReason, Role
from .classifier import classify_path
from .model import RateDecision

logger = logging.getLogger(__name__)

# Always reachable, never counted.
EXEMPT_ENDPOINTS = {"static"}


def too_many_requests(decision: RateDecision):
    seconds = decision.retry_after_seconds
    unit = f"{seconds} seconds" if seconds < 120 else f"{-(-seconds // 60)} minutes"
    response = jsonify(
        {
            "error": DenialReason.RATE_LIMITED.value,
            "message": f"Too many requests, try again in {unit}",
            "retry_after": seconds,
            "reset_at": isoformat(from_epoch_ms(decision.reset_at_ms)),
        }
    )
    response.status_code = 429
    response.headers["Retry-After"] = str(seconds)
    return response


def register(app: Flask, container: Container) -> None:
    governor = container.rate_governor
    admin_only = role_required(container.identity, Role.ADMIN)

    @app.before_request
    def rate_gate():
        if request.endpoint in EXEMPT_ENDPOINTS:
            return None
        endpoint_class = classify_path(request.path)
        decision = governor.hit(client_address(), endpoint_class)
        g.rate_decision = decision
        if decision.admitted:
            return None
        logger.info("rate limited: client=%s class=%s path=%s", client_address(), endpoint_class.value, request.path)
        return too_many_requests(decision)

    @app.after_request
    def rate_headers(response):
        decision = g.get("rate_decision")
        if decision is not None:
            response.headers["X-RateLimit-Limit"] = str(decision.limit)
            response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
            response.headers["X-RateLimit-Reset"] = str(math.ceil(decision.reset_at_ms / 1000))
        return response

    @app.route("/api/rate-limit/status", methods=["GET"], endpoint="rate_limit_status")
    def rate_limit_status():
        endpoint_class = classify_path(request.args.get("path") or request.path)
        status = governor.status(client_address(), endpoint_class)
        policy = governor.policy_for(endpoint_class)
        return jsonify(
            {
                "current": {**status.to_dict(), "reset_at": isoformat(from_epoch_ms(status.reset_at_ms))},
                "limits": {
                    "max_requests": policy.max_requests,
                    "window_ms": policy.window_ms,
                    "lockout_ms": policy.lockout_ms,
                },
            }
        )

    @app.route("/api/admin/rate-limit/analytics", methods=["GET"], endpoint="rate_limit_analytics")
    @admin_only
    def rate_limit_analytics(principal):
        return jsonify(governor.analytics())
