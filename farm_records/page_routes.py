from __future__ import annotations

from flask import Blueprint, current_app, send_from_directory

from .auth import page_roles
from .models import ALL_ROLES, Identity, Role

pages_bp = Blueprint("pages", __name__)


def _page(filename: str):
    return send_from_directory(current_app.static_folder, filename, mimetype="text/html")


@pages_bp.route("/")
def index():
    return _page("index.html")


@pages_bp.route("/login.html")
def login_page():
    return _page("login.html")


@pages_bp.route("/register.html")
def register_page():
    return _page("register.html")


@pages_bp.route("/viewer.html")
@page_roles(*ALL_ROLES)
def viewer_page(identity: Identity):
    return _page("viewer.html")


@pages_bp.route("/supervisor.html")
@page_roles(Role.SUPERVISOR, Role.AGRONOMIST, Role.GENERAL_MANAGER)
def supervisor_page(identity: Identity):
    return _page("supervisor.html")


@pages_bp.route("/agronomist.html")
@page_roles(Role.AGRONOMIST, Role.GENERAL_MANAGER)
def agronomist_page(identity: Identity):
    return _page("agronomist.html")


@pages_bp.route("/farmreport.html")
@page_roles(Role.AGRONOMIST, Role.GENERAL_MANAGER)
def farm_report_page(identity: Identity):
    return _page("farmreport.html")
