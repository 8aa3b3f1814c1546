from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.auth import current_user, token_required
from ..container import Container


def register(app: Flask, container: Container) -> None:
    auth = token_required(container.tokens)

    @app.route("/api/check-in", methods=["POST"], endpoint="check_in")
    @auth
    def check_in():
        data = request.get_json(silent=True) or {}
        record = container.attendance_service.check_in(
            current_user().user_id, location=data.get("location"), remarks=data.get("remarks")
        )
        return jsonify({"success": True, "message": "Checked in successfully", "data": record.to_dict()}), 201

    @app.route("/api/check-out", methods=["POST"], endpoint="check_out")
    @auth
    def check_out():
        data = request.get_json(silent=True) or {}
        record = container.attendance_service.check_out(
            current_user().user_id, location=data.get("location"), remarks=data.get("remarks")
        )
        return jsonify({"success": True, "message": "Checked out successfully", "data": record.to_dict()})

    @app.route("/api/attendance", methods=["GET"], endpoint="fetch_attendance")
    @auth
    def fetch_attendance():
        records = container.attendance_service.list_attendance(
            current_user(),
            start_date=request.args.get("startDate"),
            end_date=request.args.get("endDate"),
            user_id=request.args.get("userId"),
        )
        return jsonify({"success": True, "data": [r.to_dict() for r in records]})
