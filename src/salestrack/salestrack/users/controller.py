from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.auth import current_user, token_required
from ..container import Container
from .service import public_user


def register(app: Flask, container: Container) -> None:
    auth = token_required(container.tokens)

    @app.route("/auth/signup", methods=["POST"], endpoint="signup")
    def signup():
        data = request.get_json(silent=True) or {}
        result = container.auth_service.signup(
            username=data.get("username"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role"),
        )
        return jsonify({
            "success": True,
            "message": "User created successfully",
            "user": public_user(result.user),
            "token": result.token,
        }), 201

    @app.route("/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = request.get_json(silent=True) or {}
        result = container.auth_service.login(email=data.get("email"), password=data.get("password"))
        return jsonify({
            "success": True,
            "message": "Login successful",
            "user": public_user(result.user),
            "token": result.token,
        })

    @app.route("/api/user-role", methods=["GET"], endpoint="user_role")
    @auth
    def user_role():
        info = container.user_service.role_info(current_user())
        return jsonify({"success": True, **info})

    @app.route("/api/users", methods=["GET"], endpoint="list_users")
    @auth
    def list_users():
        if request.args.get("assignable") in {"1", "true"}:
            users = container.user_service.list_assignable(current_user())
        else:
            users = container.user_service.list_users(current_user())
        return jsonify([public_user(u) for u in users])

    @app.route("/api/assign-user", methods=["POST"], endpoint="assign_user")
    @auth
    def assign_user():
        data = request.get_json(silent=True) or {}
        user = container.user_service.assign_user(
            current_user(), user_id=data.get("userId"), admin_id=data.get("adminId")
        )
        return jsonify({"success": True, "message": "User assigned successfully", "user": public_user(user)})

    @app.route("/api/unassign-user", methods=["POST"], endpoint="unassign_user")
    @auth
    def unassign_user():
        data = request.get_json(silent=True) or {}
        user = container.user_service.unassign_user(current_user(), user_id=data.get("userId"))
        return jsonify({"success": True, "message": "User unassigned successfully", "user": public_user(user)})
