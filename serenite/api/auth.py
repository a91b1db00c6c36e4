# serenite/api/auth.py
# Endpoints publics : connexion, profil courant, inscriptions, mot de passe oublié.

from __future__ import annotations

from typing import Any

from serenite.api.client import ApiClient, ApiError

TOKEN_KEYS = ("token", "accessToken", "jwt")


def extract_token(data) -> str | None:
    if not isinstance(data, dict):
        return None
    for key in TOKEN_KEYS:
        if data.get(key):
            return str(data[key])
    return None


def file_part(file) -> tuple:
    """
    Accepte un FileStorage (werkzeug) ou un tuple (nom, contenu, mimetype)
    et renvoie le tuple attendu par httpx pour le multipart.
    """
    if isinstance(file, tuple):
        return file
    filename = getattr(file, "filename", None) or "fichier"
    mimetype = getattr(file, "mimetype", None) or "application/octet-stream"
    stream = getattr(file, "stream", file)
    return (filename, stream, mimetype)


def multipart_files(files: dict[str, Any]) -> list[tuple[str, tuple]]:
    return [(key, file_part(f)) for key, f in files.items() if f is not None]


class AuthApi(ApiClient):
    def __init__(self, base_url, token=None, timeout=10.0, adherent_register_path="/api/adherent/register"):
        super().__init__(base_url, token=token, timeout=timeout)
        self.adherent_register_path = adherent_register_path

    def login(self, email: str, password: str) -> str:
        data = self.request_json("POST", "/api/auth/login", json={"email": email, "password": password})
        token = extract_token(data)
        if not token:
            raise ApiError("Login failed: token missing.")
        return token

    def me(self, token: str | None = None) -> dict:
        auth_token = token or self.token
        if not auth_token:
            raise ApiError("Not authorized", 401)
        data = self.request_json("GET", "/api/me", token=auth_token)
        return data if isinstance(data, dict) else {}

    def register_adherent(self, fields: dict[str, str], files: dict[str, Any]) -> dict:
        data = self.request_json(
            "POST", self.adherent_register_path, data=fields, files=multipart_files(files)
        )
        return data if isinstance(data, dict) else {}

    def register_membre(self, fields: dict[str, str], files: dict[str, Any]) -> dict:
        data = self.request_json(
            "POST", "/api/membre/register", data=fields, files=multipart_files(files)
        )
        return data if isinstance(data, dict) else {}

    def request_password_reset(self, email: str) -> Any:
        return self.request_json("POST", "/api/auth/forgot-password", json={"email": email})
