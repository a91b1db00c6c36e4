# serenite/routes/accueil.py
from flask import Blueprint, render_template

bp = Blueprint("accueil", __name__)


@bp.get("/")
def index():
    # Page d'accueil: tout le monde peut y accéder, connecté ou non
    return render_template("accueil.html")


@bp.get("/homeLogin")
def home_login():
    return render_template("home_login.html")


@bp.get("/unauthorized")
def unauthorized():
    return render_template("unauthorized.html"), 403


@bp.get("/healthz")
def healthz():
    # Pour Docker/K8s: simple check
    return {"status": "ok"}, 200
