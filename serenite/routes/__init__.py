# serenite/routes/__init__.py

# Centralise l'enregistrement des ensembles de routes (blueprints).


def register_blueprints(app):
    # En important ici, on évite les imports circulaires
    from .accueil import bp as home_bp
    from .admin import bp as admin_bp
    from .associations import bp as associations_bp
    from .auth import bp as auth_bp

    app.register_blueprint(home_bp)           # pages publiques (Accueil, /unauthorized)
    app.register_blueprint(auth_bp)           # login / logout / inscriptions
    app.register_blueprint(associations_bp)   # /app/associations (adhérents et plus)
    app.register_blueprint(admin_bp)          # /app/admin/users (admins)
