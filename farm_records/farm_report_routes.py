"""Farm inspection report API routes."""

from __future__ import annotations

import io
import logging

from flask import Blueprint, jsonify, request, send_file

from .auth import api_roles
from .farm_report import FarmReportFilters
from .models import ALL_ROLES, Identity, Role
from .spreadsheets import XLSX_MIMETYPE
from .stores import get_stores

logger = logging.getLogger(__name__)

farm_report_bp = Blueprint("farm_report", __name__, url_prefix="/farmreport")


@farm_report_bp.route("", methods=["GET"])
@api_roles(*ALL_ROLES)
def list_reports(identity: Identity):
    rows = get_stores().farm_report.all()
    return jsonify({"success": True, "data": rows, "total": len(rows)})


@farm_report_bp.route("", methods=["POST"])
@api_roles(Role.AGRONOMIST, Role.GENERAL_MANAGER)
def add_report(identity: Identity):
    row_id = get_stores().farm_report.append(request.get_json(silent=True) or {})
    logger.info(f"{identity.username} recorded farm report row {row_id}")
    return jsonify({"success": True, "id": row_id})


@farm_report_bp.route("/search", methods=["GET"])
@api_roles(*ALL_ROLES)
def search_reports(identity: Identity):
    """Filtered rows, newest first.

    Query parameters: year, farm, greenhouse, bed, crop, variety, pest, disease
    (exact), pestRateMin/Max, diseaseRateMin/Max and weekFrom/weekTo.
    """
    rows = get_stores().farm_report.search(FarmReportFilters.from_args(request.args))
    return jsonify({"success": True, "data": rows, "total": len(rows)})


@farm_report_bp.route("/chart", methods=["GET"])
@api_roles(*ALL_ROLES)
def chart_reports(identity: Identity):
    series = get_stores().farm_report.chart_series(FarmReportFilters.from_args(request.args))
    return jsonify({"success": True, "data": series})


@farm_report_bp.route("/export", methods=["GET"])
@api_roles(*ALL_ROLES)
def export_reports(identity: Identity):
    content = get_stores().farm_report.export(FarmReportFilters.from_args(request.args))
    return send_file(
        io.BytesIO(content),
        as_attachment=True,
        download_name="farm_report.xlsx",
        mimetype=XLSX_MIMETYPE,
    )
