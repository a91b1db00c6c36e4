# serenite/api/client.py
"""
Client HTTP de base vers l'API REST de la mutuelle.

Points clés :
  - L'URL de base vient de la config (API_URL) ; si elle manque on lève
    ApiConfigError AVANT toute requête.
  - Header "Authorization: Bearer <token>" dès qu'un token est connu.
  - Toute réponse non 2xx devient une seule ApiError, avec le message le plus
    lisible possible : champ "message" du JSON > texte du statut HTTP > "HTTP <code>".
  - Aucun retry automatique : c'est l'utilisateur qui relance l'action.
"""

from __future__ import annotations

from typing import Any

import httpx
from flask import current_app, has_app_context

LIST_KEYS = ("items", "data", "results")


class ApiConfigError(RuntimeError):
    pass


class ApiError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _log_warning(msg: str) -> None:
    if has_app_context():
        current_app.logger.warning(msg)


def unwrap_list(payload: Any) -> list:
    """Liste nue, ou liste rangée sous items / data / results. Sinon []."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in LIST_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


def read_error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return resp.reason_phrase or f"HTTP {resp.status_code}"


class ApiClient:
    def __init__(self, base_url: str | None, token: str | None = None, timeout: float = 10.0):
        self.base_url = base_url or ""
        self.token = token
        self.timeout = timeout

    def build_url(self, path: str) -> str:
        if not self.base_url:
            raise ApiConfigError("API_URL is not set.")
        base = self.base_url.rstrip("/")
        return f"{base}{'' if path.startswith('/') else '/'}{path}"

    def _headers(self, token: str | None = None, json_body: bool = False) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if json_body:
            headers["Content-Type"] = "application/json"
        auth_token = token or self.token
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        data: dict[str, Any] | None = None,
        files: Any = None,
        token: str | None = None,
    ) -> httpx.Response:
        url = self.build_url(path)
        kwargs: dict[str, Any] = {
            "headers": self._headers(token, json_body=json is not None),
            "timeout": self.timeout,
        }
        if json is not None:
            kwargs["json"] = json
        if data is not None:
            kwargs["data"] = data
        if files is not None:
            kwargs["files"] = files

        try:
            resp = httpx.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            _log_warning(f"[API] {method} {path} injoignable: {e}")
            raise ApiError(f"Service indisponible ({e.__class__.__name__}).") from e

        if resp.is_error:
            message = read_error_message(resp)
            _log_warning(f"[API] {method} {path} -> {resp.status_code}: {message}")
            raise ApiError(message, resp.status_code)
        return resp

    def request_json(self, method: str, path: str, **kwargs) -> Any:
        resp = self.request(method, path, **kwargs)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ApiError(f"Réponse JSON invalide ({path}).", resp.status_code) from e
