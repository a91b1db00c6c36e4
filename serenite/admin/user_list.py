# serenite/admin/user_list.py
"""
Liste des utilisateurs de la console admin.

Protocole de mise à jour optimiste (par ligne) :
  1) on applique le changement voulu à l'état local
  2) la ligne passe en "pending" (avec un instantané de TOUTE la liste)
  3) appel API
  4a) succès : les champs renvoyés par le serveur écrasent l'état local
  4b) échec  : retour à l'instantané + message d'erreur
  5) la ligne n'est plus "pending", quel que soit le résultat

Chaque appel porte un numéro de séquence par ligne ; une réponse qui n'est
pas la dernière émise pour cette ligne est ignorée.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Any

from flask import current_app, has_app_context

from serenite.api.admin import AdminApi
from serenite.api.client import ApiError
from serenite.models.admin import (
    AdminUser,
    MemberOption,
    admin_user_from_payload,
    admin_users_from_payload,
    members_from_payload,
)

ALL = "ALL"
NONE = "NONE"

DEFAULT_ERROR = "Une erreur est survenue."
USERS_LOAD_ERROR = "Impossible de charger les utilisateurs."
MEMBERS_LOAD_ERROR = "Impossible de charger les membres."
DETAILS_LOAD_ERROR = "Impossible de charger le détail utilisateur."


# ---------------------------
#   ÉTATS D'UNE LIGNE
# ---------------------------
@dataclass(frozen=True)
class RowIdle:
    pass


@dataclass(frozen=True)
class RowPending:
    snapshot: tuple[AdminUser, ...]
    seq: int


@dataclass(frozen=True)
class RowError:
    snapshot: tuple[AdminUser, ...]
    message: str


IDLE = RowIdle()


def _log_warning(msg: str) -> None:
    # les workers du pool n'ont pas de contexte applicatif : on journalise ici
    if has_app_context():
        current_app.logger.warning(msg)


class UserListState:
    def __init__(self, users=None, members=None):
        self.users: list[AdminUser] = list(users or [])
        self.members: list[MemberOption] = list(members or [])
        self.error: str | None = None
        self.members_error: str | None = None
        self.loading = False
        self.rows: dict[str, RowIdle | RowPending | RowError] = {}
        self.seq: dict[str, int] = {}

    def row(self, user_id: str):
        return self.rows.get(user_id, IDLE)

    def is_pending(self, user_id: str) -> bool:
        return isinstance(self.row(user_id), RowPending)

    def find(self, user_id: str) -> AdminUser | None:
        return next((u for u in self.users if u.id == user_id), None)

    @property
    def members_by_id(self) -> dict[str, MemberOption]:
        return {m.id: m for m in self.members}

    def merge_user(self, user_id: str, payload) -> None:
        self.users = [u.merged_with(payload) if u.id == user_id else u for u in self.users]

    def update_user(self, user_id: str, changes: dict) -> None:
        self.users = [replace(u, **changes) if u.id == user_id else u for u in self.users]


# ---------------------------
#   RÉDUCTEUR
# ---------------------------
def begin(state: UserListState, user_id: str, apply: Callable[[AdminUser], AdminUser]) -> int:
    """Étapes 1-2 : changement optimiste + ligne en attente. Renvoie le n° de séquence."""
    snapshot = tuple(state.users)
    state.users = [apply(u) if u.id == user_id else u for u in state.users]
    seq = state.seq.get(user_id, 0) + 1
    state.seq[user_id] = seq
    state.rows[user_id] = RowPending(snapshot=snapshot, seq=seq)
    state.error = None
    return seq


def is_latest(state: UserListState, user_id: str, seq: int) -> bool:
    return state.seq.get(user_id) == seq


def succeed(state: UserListState, user_id: str, seq: int, payload) -> bool:
    """Étape 4a + 5. Renvoie False si la réponse est périmée (ignorée)."""
    if not is_latest(state, user_id, seq):
        return False
    if payload:
        try:
            state.merge_user(user_id, payload)
        except ValueError as e:
            # réponse illisible : l'état optimiste reste en place
            _log_warning(f"[Admin] réponse illisible pour {user_id} : {e}")
    state.rows[user_id] = IDLE
    return True


def fail(state: UserListState, user_id: str, seq: int, message: str) -> bool:
    """Étape 4b + 5 : retour à l'instantané complet de la liste."""
    if not is_latest(state, user_id, seq):
        return False
    status = state.rows.get(user_id)
    snapshot = status.snapshot if isinstance(status, RowPending) else tuple(state.users)
    state.users = list(snapshot)
    state.error = message or DEFAULT_ERROR
    state.rows[user_id] = RowError(snapshot=snapshot, message=state.error)
    return True


# ---------------------------
#   FILTRES
# ---------------------------
def search_values(user: AdminUser) -> list[str]:
    return [
        user.display_name,
        user.email or "",
        user.telephone or "",
        str(user.effective_role),
        *(m.label for m in user.membres),
    ]


def filter_users(
    users: list[AdminUser],
    query: str = "",
    role_filter: str = ALL,
    member_filter: str = ALL,
) -> list[AdminUser]:
    normalized_query = (query or "").strip().lower()
    role_filter = role_filter or ALL
    member_filter = member_filter or ALL
    result = []
    for user in users:
        if role_filter != ALL and user.effective_role != role_filter:
            continue
        member_id = user.assigned_member_id
        if member_filter == NONE and member_id:
            continue
        if member_filter not in (ALL, NONE) and member_id != member_filter:
            continue
        if normalized_query and not any(normalized_query in v.lower() for v in search_values(user)):
            continue
        result.append(user)
    return result


# ---------------------------
#   CONTRÔLEUR
# ---------------------------
class UserListController:
    def __init__(self, api: AdminApi, state: UserListState | None = None, on_change=None):
        self.api = api
        self.state = state if state is not None else UserListState()
        self.on_change = on_change

    def _changed(self) -> None:
        if self.on_change:
            self.on_change(self.state)

    def load(self) -> UserListState:
        """Utilisateurs et membres en parallèle ; un échec n'empêche pas l'autre."""
        state = self.state
        state.loading = True
        state.error = None
        state.members_error = None
        self._changed()

        with ThreadPoolExecutor(max_workers=2) as pool:
            users_future = pool.submit(self.api.list_users)
            members_future = pool.submit(self.api.list_membres)

        try:
            state.users = admin_users_from_payload(users_future.result())
        except ApiError as e:
            _log_warning(f"[Admin] chargement des utilisateurs : {e.message}")
            state.error = e.message or USERS_LOAD_ERROR
        try:
            state.members = members_from_payload(members_future.result())
        except ApiError as e:
            _log_warning(f"[Admin] chargement des membres : {e.message}")
            state.members_error = e.message or MEMBERS_LOAD_ERROR

        state.rows = {}
        state.loading = False
        self._changed()
        return state

    def _mutate(self, user_id: str, apply: Callable[[AdminUser], AdminUser], action: Callable[[], Any]) -> bool:
        if self.state.find(user_id) is None:
            raise KeyError(user_id)
        seq = begin(self.state, user_id, apply)
        self._changed()
        try:
            payload = action()
        except ApiError as e:
            fail(self.state, user_id, seq, e.message)
            self._changed()
            return False
        succeed(self.state, user_id, seq, payload)
        self._changed()
        return True

    def change_role(self, user_id: str, role: str) -> bool:
        role = str(role)
        return self._mutate(
            user_id,
            lambda u: replace(u, role=role),
            lambda: self.api.update_role(user_id, role),
        )

    def toggle_active(self, user_id: str) -> bool:
        user = self.state.find(user_id)
        next_value = not user.active if user else True
        return self._mutate(
            user_id,
            lambda u: replace(u, is_active=next_value),
            lambda: self.api.set_active(user_id, next_value),
        )

    def validate(self, user_id: str) -> bool:
        return self._mutate(
            user_id,
            lambda u: replace(u, is_validated=True),
            lambda: self.api.validate_user(user_id, True),
        )

    def assign_member(self, user_id: str, member_id: str | None) -> bool:
        selected = self.state.members_by_id.get(member_id) if member_id else None
        next_membres = [selected] if selected else []
        return self._mutate(
            user_id,
            lambda u: replace(u, membres=next_membres),
            lambda: self.api.assign_membre(user_id, member_id or None, True),
        )

    def fetch_details(self, user_id: str) -> AdminUser:
        """Charge la fiche complète et la fusionne dans la ligne correspondante."""
        payload = self.api.get_user(user_id)
        try:
            details = admin_user_from_payload(payload)
        except ValueError as e:
            raise ApiError(DETAILS_LOAD_ERROR) from e
        if details is None:
            raise ApiError(DETAILS_LOAD_ERROR)
        if self.state.find(details.id) is not None:
            self.state.merge_user(details.id, payload)
        self._changed()
        return details

    def user_updated(self, user_id: str, changes: dict) -> None:
        """Répercute sur la ligne les seuls champs modifiés depuis la fiche."""
        self.state.update_user(user_id, changes)
        self._changed()

    def filtered(self, query="", role_filter=ALL, member_filter=ALL) -> list[AdminUser]:
        return filter_users(self.state.users, query, role_filter, member_filter)


# ---------------------------
#   ÉTATS PAR SESSION NAVIGATEUR
# ---------------------------
class ViewStateRegistry:
    """LRU borné : une UserListState par session admin, gardée entre les requêtes."""

    def __init__(self, max_entries: int = 256):
        self.max_entries = max_entries
        self._states: OrderedDict[str, UserListState] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> UserListState | None:
        with self._lock:
            state = self._states.get(key)
            if state is not None:
                self._states.move_to_end(key)
            return state

    def put(self, key: str, state: UserListState) -> UserListState:
        with self._lock:
            self._states[key] = state
            self._states.move_to_end(key)
            while len(self._states) > self.max_entries:
                self._states.popitem(last=False)
        return state

    def discard(self, key: str) -> None:
        with self._lock:
            self._states.pop(key, None)

    def __len__(self):
        return len(self._states)
