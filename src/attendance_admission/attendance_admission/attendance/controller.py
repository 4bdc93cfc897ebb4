from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import isoformat
from ..common.http import DENIAL_STATUS, claimed_user_id, client_address, login_required, role_required
from ..container import Container
from ..core.enums import Role
from ..sessions.model import AttendanceSession, hours_from_seconds
from .model import AdmissionResult, CheckInCommand, CheckOutCommand


def _respond(result: AdmissionResult):
    if result.ok:
        return jsonify(result.summary.to_dict()), 200
    return jsonify(result.denial.to_dict()), DENIAL_STATUS[result.denial.reason]


def _session_dict(s: AttendanceSession, now) -> dict:
    data = {
        "session_id": s.session_id,
        "user_id": s.user_id,
        "location_id": s.location_id,
        "start_time": isoformat(s.start_time),
        "end_time": isoformat(s.end_time),
    }
    if s.is_open:
        data["elapsed_seconds"] = s.elapsed_seconds(now)
    else:
        data["total_duration_hours"] = s.total_hours
    return data


def register(app: Flask, container: Container) -> None:
    admission = container.admission
    ledger = container.ledger
    employee_only = role_required(container.identity, container.settings.eligible_role)
    admin_only = role_required(container.identity, Role.ADMIN)

    @app.route("/api/employee/time-entries/check-in", methods=["POST"], endpoint="check_in")
    @login_required
    def check_in():
        command = CheckInCommand.from_payload(request.get_json(silent=True), client_address=client_address())
        return _respond(admission.check_in(claimed_user_id(), command))

    @app.route("/api/employee/time-entries/check-out", methods=["POST"], endpoint="check_out")
    @login_required
    def check_out():
        command = CheckOutCommand.from_payload(request.get_json(silent=True), client_address=client_address())
        return _respond(admission.check_out(claimed_user_id(), command))

    @app.route("/api/employee/time-entries/status", methods=["GET"], endpoint="time_entry_status")
    @employee_only
    def time_entry_status(principal):
        now = ledger.now()
        current = ledger.current(principal.user_id)
        closed = ledger.closed_today(principal.user_id)
        return jsonify(
            {
                "on_duty": current is not None,
                "current_session": _session_dict(current, now) if current else None,
                "today": {
                    "sessions": len(closed),
                    "total_hours": hours_from_seconds(sum(s.total_seconds or 0 for s in closed)),
                },
            }
        )

    @app.route("/api/admin/attendance/open", methods=["GET"], endpoint="admin_open_sessions")
    @admin_only
    def admin_open_sessions(principal):
        limit = min(max(request.args.get("limit", default=200, type=int), 1), 1000)
        now = ledger.now()
        sessions = ledger.open_sessions(limit=limit)
        return jsonify({"count": len(sessions), "sessions": [_session_dict(s, now) for s in sessions]})
