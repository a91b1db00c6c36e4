# serenite/auth/session.py
"""
Session côté front : utilisateur courant + token de l'API.

Le stockage durable est un mapping (la session Flask, cookie signé, en prod ;
un simple dict dans les tests) avec deux clés :
  - "token" : le token brut
  - "auth"  : l'état sérialisé {"user": {...}, "token": "..."} en JSON

Cycle de vie :
  - rehydrate() au début de chaque requête (données invalides -> session vide)
  - login() / adopt_token() créent la session
  - logout() efface les deux clés
"""

from __future__ import annotations

import json
from collections.abc import MutableMapping
from dataclasses import dataclass

from flask import current_app, g, has_app_context, session
from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from serenite.api.auth import AuthApi
from serenite.api.client import ApiError
from serenite.models.user import SessionUser, StoredUser, profile_to_user

TOKEN_KEY = "token"
AUTH_KEY = "auth"


@dataclass(frozen=True)
class AuthState:
    user: SessionUser | None = None
    token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and bool(self.token)


EMPTY_STATE = AuthState()


def _log_warning(msg: str) -> None:
    if has_app_context():
        current_app.logger.warning(msg)


class StoredAuth(BaseModel):
    """Schéma de la clé "auth" : tout ou rien (utilisateur ET token, ou aucun des deux)."""

    model_config = ConfigDict(extra="ignore")

    user: StoredUser | None = None
    token: str | None = None

    @model_validator(mode="after")
    def _complete(self):
        if self.user is None and self.token is None:
            return self
        if not self.token:
            raise ValueError("stored token missing")
        if self.user is None:
            raise ValueError("stored user missing")
        return self


def parse_stored_state(raw) -> AuthState:
    """Relit l'état persisté. Lève ValidationError si la forme ne colle pas."""
    if isinstance(raw, (str, bytes)):
        stored = StoredAuth.model_validate_json(raw)
    else:
        stored = StoredAuth.model_validate(raw)
    if stored.user is None:
        return EMPTY_STATE
    return AuthState(user=SessionUser.from_stored(stored.user), token=stored.token)


class SessionStore:
    def __init__(self, storage: MutableMapping, auth_api: AuthApi):
        self.storage = storage
        self.auth_api = auth_api
        self.state = EMPTY_STATE

    @property
    def user(self) -> SessionUser | None:
        return self.state.user

    @property
    def token(self) -> str | None:
        return self.state.token

    def rehydrate(self) -> AuthState:
        raw = self.storage.get(AUTH_KEY)
        if raw is None:
            self.state = EMPTY_STATE
            return self.state
        try:
            self.state = parse_stored_state(raw)
        except ValidationError as e:
            _log_warning(f"[Auth] session stockée invalide, on repart à vide : {e}")
            self._clear_storage()
            self.state = EMPTY_STATE
        return self.state

    def login(self, email: str, password: str) -> SessionUser:
        token = self.auth_api.login(email, password)
        return self.adopt_token(token)

    def adopt_token(self, token: str) -> SessionUser:
        """Récupère le profil avec ce token, normalise, persiste."""
        self.storage[TOKEN_KEY] = token
        try:
            user = profile_to_user(self.auth_api.me(token))
        except ValueError as e:
            self.storage.pop(TOKEN_KEY, None)
            raise ApiError("Profil utilisateur invalide.") from e
        except ApiError:
            # pas de token orphelin sans utilisateur
            self.storage.pop(TOKEN_KEY, None)
            raise
        self._persist(AuthState(user=user, token=token))
        return user

    def logout(self) -> None:
        self._clear_storage()
        self.state = EMPTY_STATE

    def _persist(self, state: AuthState) -> None:
        self.state = state
        self.storage[TOKEN_KEY] = state.token
        self.storage[AUTH_KEY] = json.dumps(
            {"user": state.user.to_dict() if state.user else None, "token": state.token}
        )

    def _clear_storage(self) -> None:
        self.storage.pop(TOKEN_KEY, None)
        self.storage.pop(AUTH_KEY, None)


def auth_api_from_config(token: str | None = None) -> AuthApi:
    cfg = current_app.config
    return AuthApi(
        cfg.get("API_URL"),
        token=token,
        timeout=cfg.get("API_TIMEOUT", 10.0),
        adherent_register_path=cfg.get("ADHERENT_REGISTER_PATH", "/api/adherent/register"),
    )


def get_session_store() -> SessionStore:
    """Une instance par requête, rangée sur flask.g et réhydratée à la création."""
    store = g.get("session_store")
    if store is None:
        store = SessionStore(session, auth_api_from_config())
        store.rehydrate()
        g.session_store = store
    return store
