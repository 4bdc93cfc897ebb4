from __future__ import annotations

from flask import Flask, jsonify, request, session

from ..common.validators import require_fields
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        body = require_fields(request.get_json(silent=True), ("email", "password"))
        principal = container.auth_service.authenticate(str(body["email"]), str(body["password"]))

        session.clear()
        session["user_id"] = principal.user_id
        session["role"] = principal.role.value
        session["name"] = principal.full_name
        return jsonify({"user_id": principal.user_id, "role": principal.role.value, "full_name": principal.full_name})

    @app.route("/api/auth/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"message": "Logged out"})
