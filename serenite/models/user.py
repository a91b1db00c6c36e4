# serenite/models/user.py
# Utilisateur de session (côté front) + adaptateur du payload /api/me.

from __future__ import annotations

from typing import Any

from flask_login import UserMixin
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictStr, field_validator, model_validator

from serenite.auth.roles import Role, coerce_role


class StoredUser(BaseModel):
    """Forme persistée dans la session (cookie signé) ; aucune conversion implicite."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: StrictStr = Field(min_length=1)
    email: StrictStr
    full_name: StrictStr | None = Field(None, validation_alias=AliasChoices("fullName", "full_name"))
    role: StrictStr


class ProfilePayload(BaseModel):
    """Payload de /api/me, éventuellement enveloppé sous 'user'."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str | None = Field(None, validation_alias=AliasChoices("id", "_id", "userId", "uuid"))
    email: str | None = Field(None, validation_alias=AliasChoices("email", "mail", "username"))
    prenom: str | None = Field(None, validation_alias=AliasChoices("prenom", "firstName"))
    nom: str | None = Field(None, validation_alias=AliasChoices("nom", "lastName"))
    name: str | None = None
    full_name: str | None = Field(None, validation_alias="fullName")
    role: Any = None
    roles: list[Any] = Field(default_factory=list, validation_alias=AliasChoices("roles", "authorities"))

    @model_validator(mode="before")
    @classmethod
    def _unwrap_user(cls, data):
        if isinstance(data, dict) and isinstance(data.get("user"), dict):
            return data["user"]
        return data

    @field_validator("roles", mode="before")
    @classmethod
    def _roles_list(cls, value):
        return value if isinstance(value, list) else []

    def display_name(self, default: str = "Utilisateur") -> str:
        """Prénom + nom (nom/prenom ou firstName/lastName), sinon name, sinon email."""
        full = " ".join(p for p in ((self.prenom or "").strip(), (self.nom or "").strip()) if p)
        return full or self.name or self.full_name or self.email or default

    def role_name(self) -> str | None:
        # "role", sinon le premier de roles/authorities ({"authority": "ROLE_X"} accepté)
        raw = self.role if self.role is not None else (self.roles[0] if self.roles else None)
        if isinstance(raw, dict):
            raw = raw.get("name") or raw.get("authority")
        if not isinstance(raw, str):
            return None
        return raw[5:] if raw.upper().startswith("ROLE_") else raw


class SessionUser(UserMixin):
    """
    UserMixin fournit :
      - is_authenticated / is_active / is_anonymous
      - get_id() -> ici on expose 'id'
    L'objet vit dans la session (cookie signé) sous forme de dict.
    """

    def __init__(self, id: str, email: str, full_name: str, role: Role):
        self.id = str(id)
        self.email = email
        self.full_name = full_name
        self.role = role

    def to_dict(self) -> dict:
        return {"id": self.id, "email": self.email, "fullName": self.full_name, "role": self.role.value}

    @classmethod
    def from_stored(cls, stored: StoredUser) -> "SessionUser":
        return cls(stored.id, stored.email, stored.full_name or stored.email, coerce_role(stored.role))

    def __eq__(self, other):
        return isinstance(other, SessionUser) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"SessionUser({self.email!r}, {self.role.value})"


def profile_to_user(payload) -> SessionUser:
    """Adaptateur du payload /api/me. Lève ValueError si le profil est inexploitable."""
    if not isinstance(payload, dict):
        raise ValueError("profile payload must be an object")
    profile = ProfilePayload.model_validate(payload)

    email = profile.email or ""
    # Certains profils n'exposent que l'email
    user_id = profile.id or email
    if not user_id:
        raise ValueError("profile payload has no id")

    return SessionUser(
        id=user_id,
        email=email,
        full_name=profile.display_name(),
        role=coerce_role(profile.role_name()),
    )
