from __future__ import annotations

import io

from flask import Flask, jsonify, request, send_file

from ..common.auth import current_user, token_required
from ..container import Container
from .export import XLSX_MIMETYPE, build_workbook
from .service import parse_entry_filters


def register(app: Flask, container: Container) -> None:
    auth = token_required(container.tokens)

    @app.route("/api/entry", methods=["POST"], endpoint="create_entry")
    @auth
    def create_entry():
        view = container.entry_service.create_entry(current_user(), request.get_json(silent=True) or {})
        return jsonify({"success": True, "data": view.to_dict(), "message": "Entry created successfully."}), 201

    @app.route("/api/fetch-entry", methods=["GET"], endpoint="fetch_entries")
    @auth
    def fetch_entries():
        views = container.entry_service.list_entries(current_user(), parse_entry_filters(request.args))
        return jsonify([v.to_dict() for v in views])

    @app.route("/api/editentry/<entry_id>", methods=["PUT"], endpoint="edit_entry")
    @auth
    def edit_entry(entry_id: str):
        view = container.entry_service.edit_entry(current_user(), entry_id, request.get_json(silent=True) or {})
        return jsonify({"success": True, "data": view.to_dict(), "message": "Entry updated successfully"})

    @app.route("/api/entry/<entry_id>", methods=["DELETE"], endpoint="delete_entry")
    @auth
    def delete_entry(entry_id: str):
        container.entry_service.delete_entry(current_user(), entry_id)
        return jsonify({"success": True, "message": "Entry deleted successfully"})

    @app.route("/api/entries", methods=["POST"], endpoint="bulk_upload")
    @auth
    def bulk_upload():
        result = container.entry_service.bulk_import(current_user(), request.get_json(silent=True))
        return jsonify({
            "success": True,
            "message": "Entries uploaded successfully!",
            "count": result.submitted,
            "inserted": result.inserted,
        }), 201

    @app.route("/api/export", methods=["GET"], endpoint="export_entries")
    @auth
    def export_entries():
        rows = container.entry_service.export_rows(current_user(), parse_entry_filters(request.args))
        return send_file(
            io.BytesIO(build_workbook(rows)),
            mimetype=XLSX_MIMETYPE,
            as_attachment=True,
            download_name="entries.xlsx",
        )
