# config.py

# Ce fichier centralise la configuration de l'appli.

import os


def _as_float(value, default):
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class Config:
    # Clé Flask sert à signer le cookie de session (token + profil)
    # et à protéger les formulaires (CSRF).
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

    # API REST de la mutuelle (toute la persistance est derrière)
    API_URL = os.getenv("API_URL", "")
    API_TIMEOUT = _as_float(os.getenv("API_TIMEOUT"), 10.0)

    # Deux variantes du backend existent pour l'inscription adhérent
    ADHERENT_REGISTER_PATH = os.getenv("ADHERENT_REGISTER_PATH", "/api/adherent/register")

    # CSRF activé (Flask-WTF)
    WTF_CSRF_ENABLED = True
    WTF_CSRF_TIME_LIMIT = None
    WTF_CSRF_SSL_STRICT = False
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = False
    SESSION_COOKIE_HTTPONLY = True

    # Téléversements : 3 justificatifs + marge
    MAX_CONTENT_LENGTH = 20 * 1024 * 1024

    # Adhésion
    ANNUAL_FEE_EUR = 10
    SUBSCRIPTION_FEE_EUR = 100

    # Nombre de consoles admin gardées en mémoire (une par session navigateur)
    ADMIN_VIEW_STATES_MAX = int(os.getenv("ADMIN_VIEW_STATES_MAX", 256))


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    API_URL = "http://api.test"
    WTF_CSRF_ENABLED = False
