from __future__ import annotations

from flask import Flask, jsonify

from ..common.auth import current_user, token_required
from ..container import Container


def register(app: Flask, container: Container) -> None:
    auth = token_required(container.tokens)

    @app.route("/api/notifications", methods=["GET"], endpoint="list_notifications")
    @auth
    def list_notifications():
        items = container.notification_service.list_for_user(current_user())
        return jsonify({"success": True, "data": [n.to_dict() for n in items]})

    @app.route("/api/notifications/<notification_id>/read", methods=["POST"], endpoint="mark_notification_read")
    @auth
    def mark_notification_read(notification_id: str):
        container.notification_service.mark_read(current_user(), notification_id)
        return jsonify({"success": True, "message": "Notification marked as read"})

    @app.route("/api/notifications", methods=["DELETE"], endpoint="clear_notifications")
    @auth
    def clear_notifications():
        removed = container.notification_service.clear_for_user(current_user())
        return jsonify({"success": True, "message": "Notifications cleared", "count": removed})
