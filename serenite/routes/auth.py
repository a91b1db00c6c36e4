# serenite/routes/auth.py

# Les vues d'authentification. On y manipule :
# - l'API (connexion, profil, inscriptions) via le SessionStore
# - les sessions Flask-Login via login_user() / logout_user()

from urllib.parse import urljoin, urlparse

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_user, logout_user

from serenite.api.auth import extract_token
from serenite.api.client import ApiError
from serenite.auth.session import auth_api_from_config, get_session_store
from serenite.forms.auth_forms import (
    AdherentRegisterForm,
    ForgotPasswordForm,
    LoginForm,
    MembreRegisterForm,
)
from serenite.routes.admin import forget_view_state

bp = Blueprint("auth", __name__)

REGISTER_SUCCESS = (
    "Votre inscription a bien ete prise en compte. Un email a ete envoye pour "
    "confirmer que votre inscription est en cours de validation."
)


# -- permet d'éviter les redirections externes (pour la securité)
def is_safe_url(target: str) -> bool:
    """On n'autorise que des redirections vers NOTRE domaine."""
    if not target:
        return False
    ref_url = urlparse(request.host_url)
    test_url = urlparse(urljoin(request.host_url, target))
    return test_url.scheme in ("http", "https") and ref_url.netloc == test_url.netloc


def _clean_next(value: str | None) -> str | None:
    """Évite les cas 'None', 'null', 'undefined' -> None"""
    if not value:
        return None
    if value.strip().lower() in {"none", "null", "undefined"}:
        return None
    return value


def _redirect_after_login():
    next_url = _clean_next(request.form.get("next") or request.args.get("next"))
    return redirect(next_url) if is_safe_url(next_url) else redirect(url_for("associations.index"))


def _open_session_from_registration(data: dict) -> bool:
    """Si l'API renvoie un token à l'inscription, on ouvre directement la session."""
    token = extract_token(data)
    if not token:
        return False
    try:
        user = get_session_store().adopt_token(token)
    except ApiError as e:
        current_app.logger.warning(f"[Auth] token d'inscription inutilisable : {e.message}")
        return False
    login_user(user)
    return True


# ----------------------
#   CONNEXION /login
# ----------------------
@bp.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(url_for("associations.index"))

    form = LoginForm()
    if form.validate_on_submit():
        email = form.email.data.strip()
        try:
            user = get_session_store().login(email, form.password.data)
        except ApiError as e:
            current_app.logger.info(f"[Auth] échec de connexion pour {email}: {e.message}")
            return render_template("auth/login.html", form=form, error=e.message or "Échec de connexion."), 401

        login_user(user)
        flash("Connexion réussie.", "success")
        return _redirect_after_login()

    status = 400 if request.method == "POST" else 200
    return render_template("auth/login.html", form=form), status


# ------------------------
#   DÉCONNEXION /logout
# ------------------------
@bp.get("/logout")
def logout():
    if current_user.is_authenticated:
        logout_user()
        flash("Vous êtes déconnecté.", "info")
    forget_view_state()
    get_session_store().logout()
    return redirect(url_for("accueil.index"))


# ---------------------------
#   MOT DE PASSE OUBLIÉ
# ---------------------------
@bp.route("/forgot-password", methods=["GET", "POST"])
def forgot_password():
    form = ForgotPasswordForm()
    if form.validate_on_submit():
        try:
            auth_api_from_config().request_password_reset(form.email.data.strip().lower())
        except ApiError as e:
            return render_template("auth/forgot_password.html", form=form, error=e.message), 400
        flash("Si un compte existe pour cet email, un lien de réinitialisation a été envoyé.", "info")
        return redirect(url_for("auth.login"))

    status = 400 if request.method == "POST" else 200
    return render_template("auth/forgot_password.html", form=form), status


# ---------------------------
#   INSCRIPTION ADHÉRENT /register
# ---------------------------
@bp.route("/register", methods=["GET", "POST"])
def register():
    form = AdherentRegisterForm()
    cfg = current_app.config
    years = form.adhesion_years.data or 1
    total = years * cfg["ANNUAL_FEE_EUR"] + cfg["SUBSCRIPTION_FEE_EUR"]

    if form.validate_on_submit():
        try:
            data = auth_api_from_config().register_adherent(
                form.api_fields(cfg["ANNUAL_FEE_EUR"]), form.api_files()
            )
        except ApiError as e:
            return render_template(
                "auth/register.html", form=form, total=total, error=e.message or "Echec d'inscription."
            ), 400

        flash(REGISTER_SUCCESS, "success")
        if _open_session_from_registration(data):
            return redirect(url_for("associations.index"))
        return redirect(url_for("accueil.index"))

    status = 400 if request.method == "POST" else 200
    return render_template("auth/register.html", form=form, total=total), status


# ---------------------------
#   INSCRIPTION ASSOCIATION / GROUPE / FAMILLE
# ---------------------------
@bp.route("/registerAssociation", methods=["GET", "POST"])
def register_association():
    form = MembreRegisterForm()
    if form.validate_on_submit():
        try:
            data = auth_api_from_config().register_membre(form.api_fields(), form.api_files())
        except ApiError as e:
            return render_template(
                "auth/register_association.html", form=form, error=e.message or "Echec d'inscription."
            ), 400

        flash(REGISTER_SUCCESS, "success")
        if _open_session_from_registration(data):
            return redirect(url_for("associations.index"))
        return redirect(url_for("accueil.index"))

    status = 400 if request.method == "POST" else 200
    return render_template("auth/register_association.html", form=form), status
