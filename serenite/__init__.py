# serenite/__init__.py

# Crée l'application Flask, configure Flask-Login (session côté front),
# attache l'état des consoles admin, enregistre les blueprints (routes).

from dotenv import load_dotenv
from flask import Flask, current_app, render_template
from flask_wtf.csrf import CSRFError, generate_csrf
from werkzeug.exceptions import HTTPException

from config import DevelopmentConfig
from serenite.admin.user_list import ViewStateRegistry
from serenite.auth.guard import user_has_role
from serenite.auth.roles import ROLE_OPTIONS, Role
from serenite.auth.session import get_session_store
from serenite.extensions import csrf, login_manager
from serenite.models.admin import build_address_line, format_file_size
from serenite.routes import register_blueprints


def create_app(config_object=None):
    app = Flask(__name__)
    load_dotenv()
    app.config.from_object(config_object or DevelopmentConfig)

    # Petit log utile : sans URL d'API, chaque appel lèvera ApiConfigError
    if app.config.get("API_URL"):
        app.logger.info(f"[API] base {app.config['API_URL']}")
    else:
        app.logger.warning("[API] API_URL manquante : les appels à l'API échoueront.")

    # -----  Initialisation des extensions ------ #
    csrf.init_app(app)

    # Si une vue est protégée, on redirige ici si non connecté
    login_manager.init_app(app)
    login_manager.login_view = "auth.login"
    login_manager.login_message = "Veuillez vous connecter pour continuer."

    # Etat des consoles admin (une par session navigateur)
    app.extensions["serenite_admin_views"] = ViewStateRegistry(app.config.get("ADMIN_VIEW_STATES_MAX", 256))

    register_blueprints(app)

    @login_manager.user_loader
    def load_user(user_id):
        """
        Flask-Login appelle cette fonction à chaque requête avec l'ID stocké
        en session ; l'utilisateur lui-même est relu depuis la session front
        (réhydratée et validée par le SessionStore).
        """
        user = get_session_store().user
        return user if user is not None and user.get_id() == user_id else None

    # Permet d'appeler {{ csrf_token() }} et {{ has_role(...) }} dans les templates Jinja
    @app.context_processor
    def inject_helpers():
        return dict(
            csrf_token=generate_csrf,
            has_role=user_has_role,
            Role=Role,
            ROLE_OPTIONS=ROLE_OPTIONS,
        )

    app.add_template_filter(format_file_size, "filesize")
    app.add_template_filter(build_address_line, "address_line")

    #--- Les differents types d'erreurs ----
    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        current_app.logger.warning(f"CSRF error: {getattr(e, 'description', e)}")
        return render_template("error.html", message=e.description), 400

    @app.errorhandler(404)
    def page_not_found(error):
        return render_template("error.html", message="La page que vous cherchez est introuvable."), 404

    @app.errorhandler(500)
    def internal_server_error(error):
        current_app.logger.error(f"Erreur 500 : {error}")
        return render_template("error.html", message="Une erreur interne est survenue."), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        # les HTTPException (redirections de routage, 405...) gardent leur réponse
        if isinstance(error, HTTPException):
            return error
        current_app.logger.exception("Une erreur inattendue s'est produite.")
        return render_template("error.html", message="Quelque chose s'est mal passé."), 500

    return app
