# serenite/routes/admin.py

# Console admin : liste des utilisateurs (actions de ligne optimistes) et fiche détaillée.
# Réservée aux ADMIN_MEMBRE et plus.
#
# L'état de la liste (UserListState) est gardé par session navigateur dans le
# registre de l'app : une action de ligne applique son changement, appelle l'API,
# fusionne ou annule, puis on ré-affiche ce même état (sans recharger).
# Un affichage "normal" de la page recharge tout depuis l'API.

from uuid import uuid4

from flask import (
    Blueprint,
    abort,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    send_file,
    session,
    url_for,
)

from serenite.admin.user_details import UserDetailsController
from serenite.admin.user_list import ALL, DETAILS_LOAD_ERROR, UserListController
from serenite.api.admin import AdminApi
from serenite.api.client import ApiError
from serenite.auth.guard import role_required
from serenite.auth.roles import Role
from serenite.auth.session import get_session_store
from serenite.forms.admin_forms import (
    AssignMemberForm,
    DocumentUploadForm,
    RoleForm,
    RowActionForm,
    UserEditForm,
)

bp = Blueprint("admin", __name__, url_prefix="/app/admin/users")

VIEW_KEY = "admin_view"
RERENDER_KEY = "admin_view_rerender"


def admin_api() -> AdminApi:
    cfg = current_app.config
    return AdminApi(cfg.get("API_URL"), token=get_session_store().token, timeout=cfg.get("API_TIMEOUT", 10.0))


def _registry():
    return current_app.extensions["serenite_admin_views"]


def _view_key() -> str:
    key = session.get(VIEW_KEY)
    if not key:
        key = uuid4().hex
        session[VIEW_KEY] = key
    return key


def forget_view_state() -> None:
    key = session.pop(VIEW_KEY, None)
    session.pop(RERENDER_KEY, None)
    if key:
        _registry().discard(key)


def list_controller(reload: bool = False) -> UserListController:
    key = _view_key()
    state = None if reload else _registry().get(key)
    ctrl = UserListController(admin_api(), state)
    if state is None:
        ctrl.load()
        _registry().put(key, ctrl.state)
    return ctrl


def _back_to_list():
    """Retour à la liste (filtres conservés) sans rechargement : on ré-affiche l'état courant."""
    session[RERENDER_KEY] = True
    nxt = request.form.get("next") or ""
    if nxt.startswith(url_for("admin.users")):
        return redirect(nxt)
    return redirect(url_for("admin.users"))


def _row_action(user_id: str, run) -> bool:
    ctrl = list_controller()
    try:
        ok = run(ctrl)
    except KeyError:
        abort(404)
    if not ok:
        current_app.logger.warning(f"[Admin] action sur {user_id} annulée : {ctrl.state.error}")
    return ok


# ---------------------------
#   LISTE
# ---------------------------
@bp.get("/")
@role_required(Role.ADMIN_MEMBRE)
def users():
    rerender = session.pop(RERENDER_KEY, False)
    ctrl = list_controller(reload=not rerender)
    state = ctrl.state

    q = request.args.get("q", "")
    role_filter = request.args.get("role") or ALL
    member_filter = request.args.get("membre") or ALL
    return render_template(
        "admin/users.html",
        state=state,
        users=ctrl.filtered(q, role_filter, member_filter),
        members_by_id=state.members_by_id,
        q=q,
        role_filter=role_filter,
        member_filter=member_filter,
    )


@bp.post("/<user_id>/role")
@role_required(Role.ADMIN_MEMBRE)
def change_role(user_id):
    form = RoleForm()
    if not form.validate_on_submit():
        flash("Rôle invalide.", "warning")
        return _back_to_list()
    _row_action(user_id, lambda ctrl: ctrl.change_role(user_id, form.role.data))
    return _back_to_list()


@bp.post("/<user_id>/active")
@role_required(Role.ADMIN_MEMBRE)
def toggle_active(user_id):
    if RowActionForm().validate_on_submit():
        _row_action(user_id, lambda ctrl: ctrl.toggle_active(user_id))
    return _back_to_list()


@bp.post("/<user_id>/validate")
@role_required(Role.ADMIN_MEMBRE)
def validate(user_id):
    if RowActionForm().validate_on_submit():
        _row_action(user_id, lambda ctrl: ctrl.validate(user_id))
    return _back_to_list()


@bp.post("/<user_id>/membre")
@role_required(Role.ADMIN_MEMBRE)
def assign_member(user_id):
    form = AssignMemberForm()
    if form.validate_on_submit():
        _row_action(user_id, lambda ctrl: ctrl.assign_member(user_id, form.membre_id.data or None))
    return _back_to_list()


# ---------------------------
#   FICHE UTILISATEUR
# ---------------------------
def details_controller(user_id: str) -> UserDetailsController:
    lc = list_controller()
    dc = UserDetailsController(lc.api, on_user_updated=lc.user_updated)
    row = lc.state.find(user_id)
    if row is not None:
        dc.open(row)
    dc.state.loading = True
    try:
        dc.open(lc.fetch_details(user_id))
    except ApiError as e:
        dc.state.error = e.message or DETAILS_LOAD_ERROR
    finally:
        dc.state.loading = False
    return dc


def _render_details(dc: UserDetailsController, form=None, status=200):
    preview_id = request.args.get("preview")
    asset = None
    if preview_id and not dc.state.is_editing:
        try:
            asset = dc.preview(preview_id)
        except ValueError:
            flash("Aperçu indisponible : contenu illisible.", "warning")
    try:
        return render_template(
            "admin/user_details.html",
            state=dc.state,
            user=dc.state.user,
            slots=dc.slots(),
            form=form,
            upload_form=DocumentUploadForm(formdata=None),
            asset=asset,
        ), status
    finally:
        # la ressource d'aperçu ne survit pas à la page
        dc.close_preview()


@bp.get("/<user_id>")
@role_required(Role.ADMIN_MEMBRE)
def details(user_id):
    dc = details_controller(user_id)
    form = None
    if request.args.get("edit") and dc.state.user is not None:
        dc.start_edit()
        form = UserEditForm(formdata=None, data=dc.state.form)
    status = 200 if dc.state.user is not None else 404
    return _render_details(dc, form, status)


@bp.post("/<user_id>")
@role_required(Role.ADMIN_MEMBRE)
def save(user_id):
    dc = details_controller(user_id)
    if dc.state.user is None:
        flash(dc.state.error or DETAILS_LOAD_ERROR, "danger")
        return redirect(url_for("admin.users"))

    form = UserEditForm()
    dc.start_edit()
    if not form.validate_on_submit():
        return _render_details(dc, form, 400)

    if not dc.save(form.values()):
        # on reste en édition, la saisie est conservée
        return _render_details(dc, form)

    flash("Modifications enregistrées.", "success")
    return redirect(url_for("admin.details", user_id=user_id))


@bp.post("/<user_id>/documents/<doc_type>")
@role_required(Role.ADMIN_MEMBRE)
def upload_document(user_id, doc_type):
    form = DocumentUploadForm()
    if not form.validate_on_submit():
        flash("Fichier requis.", "warning")
        return redirect(url_for("admin.details", user_id=user_id, edit=1))

    dc = details_controller(user_id)
    if dc.state.user is None:
        flash(dc.state.error or DETAILS_LOAD_ERROR, "danger")
        return redirect(url_for("admin.users"))

    dc.start_edit()
    dc.stage_file(doc_type, form.file.data)
    if dc.upload(doc_type):
        flash("Document téléversé.", "success")
    else:
        flash(dc.state.form_error, "danger")
    return redirect(url_for("admin.details", user_id=user_id, edit=1))


@bp.get("/<user_id>/documents/<doc_id>/content")
@role_required(Role.ADMIN_MEMBRE)
def document_content(user_id, doc_id):
    dc = details_controller(user_id)
    try:
        asset = dc.preview(doc_id)
    except ValueError:
        abort(404)
    if asset is None:
        abort(404)

    download = bool(request.args.get("download")) or asset.kind == "other"
    resp = send_file(
        asset.stream(),
        mimetype=asset.mime,
        as_attachment=download,
        download_name=asset.filename,
    )
    resp.call_on_close(asset.release)
    return resp
