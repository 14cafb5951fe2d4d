"""Agronomy (spray program) API routes."""

from __future__ import annotations

import io
import logging

from flask import Blueprint, jsonify, request, send_file

from .agronomy import AgronomyFilters
from .auth import api_roles
from .errors import BadRequest
from .models import ALL_ROLES, Identity, Role
from .spreadsheets import XLSX_MIMETYPE, detect_format, read_rows, saved_upload
from .stores import get_stores

logger = logging.getLogger(__name__)

agro_bp = Blueprint("agro", __name__, url_prefix="/agro")

EDITORS = (Role.AGRONOMIST, Role.GENERAL_MANAGER)
REMARKERS = (Role.SUPERVISOR, Role.AGRONOMIST, Role.GENERAL_MANAGER)


@agro_bp.route("", methods=["GET"])
@agro_bp.route("/search", methods=["GET"])
@api_roles(*ALL_ROLES)
def list_rows(identity: Identity):
    """List agronomy rows, optionally filtered by q, farm, gh/greenhouse and time."""
    rows = get_stores().agronomy.search(AgronomyFilters.from_args(request.args))
    return jsonify({"success": True, "data": rows, "total": len(rows)})


@agro_bp.route("/add", methods=["POST"])
@api_roles(*EDITORS)
def add_row(identity: Identity):
    row_id = get_stores().agronomy.add(request.get_json(silent=True) or {})
    logger.info(f"{identity.username} added agronomy row {row_id}")
    return jsonify({"success": True, "id": row_id})


@agro_bp.route("/bulk_set", methods=["POST"])
@api_roles(*EDITORS)
def bulk_set(identity: Identity):
    count = get_stores().agronomy.bulk_set(request.get_json(silent=True))
    logger.info(f"{identity.username} bulk-set {count} agronomy row(s)")
    return jsonify({"success": True, "count": count})


@agro_bp.route("/supervisor-remarks", methods=["POST"])
@api_roles(*REMARKERS)
def supervisor_remarks(identity: Identity):
    data = request.get_json(silent=True) or {}
    get_stores().agronomy.patch_supervisor_remarks(data.get("id"), data.get("supervisorRemarks"))
    return jsonify({"success": True})


@agro_bp.route("/export", methods=["GET"])
@api_roles(*ALL_ROLES)
def export_rows(identity: Identity):
    content = get_stores().agronomy.export(AgronomyFilters.from_args(request.args))
    return send_file(
        io.BytesIO(content),
        as_attachment=True,
        download_name="agronomist_data.xlsx",
        mimetype=XLSX_MIMETYPE,
    )


@agro_bp.route("/import", methods=["POST"])
@api_roles(*EDITORS)
def import_rows(identity: Identity):
    """Import a CSV/XLSX/XLSM upload (multipart field `file`)."""
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise BadRequest("No file uploaded")
    fmt = detect_format(upload.filename)

    stores = get_stores()
    with saved_upload(upload, stores.upload_dir) as path:
        rows = read_rows(path, fmt)
        result = stores.agronomy.import_rows(rows)

    logger.info(f"{identity.username} imported {upload.filename}: {result.count} row(s)")
    return jsonify(
        {
            "success": True,
            "count": result.count,
            "created": result.created,
            "replaced": result.replaced,
            "duplicates": result.duplicates,
        }
    )
