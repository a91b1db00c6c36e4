# serenite/routes/associations.py

# Associations / groupes / familles : réservé aux adhérents connectés.

from flask import Blueprint, abort, flash, render_template, request

from serenite.api.client import ApiError
from serenite.auth.guard import role_required
from serenite.auth.roles import Role
from serenite.models.admin import members_from_payload
from serenite.routes.admin import admin_api

bp = Blueprint("associations", __name__, url_prefix="/app/associations")


def _matches(member, query: str) -> bool:
    values = [member.label, member.email or "", member.type or ""]
    return any(query in v.lower() for v in values)


def _load_members():
    try:
        return members_from_payload(admin_api().list_membres()), None
    except ApiError as e:
        return [], e.message


@bp.get("/")
@role_required(Role.ADHERENT)
def index():
    members, error = _load_members()
    query = (request.args.get("q") or "").strip().lower()
    if query:
        members = [m for m in members if _matches(m, query)]
    if error:
        flash(error, "danger")
    return render_template("associations/index.html", members=members, q=request.args.get("q", ""))


@bp.get("/<membre_id>")
@role_required(Role.ADHERENT)
def details(membre_id):
    members, error = _load_members()
    if error:
        flash(error, "danger")
    member = next((m for m in members if m.id == membre_id), None)
    if member is None:
        abort(404)
    return render_template("associations/details.html", member=member)
