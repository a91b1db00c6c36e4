# serenite/models/admin.py
"""
Enregistrements canoniques de la console admin, et un adaptateur par forme
de payload renvoyée par l'API.

L'API mélange plusieurs conventions pour un même concept (nom/name,
numeroRue/numero_rue, ...). Les payloads sont validés par des modèles pydantic
(alias acceptés via AliasChoices), puis convertis une seule fois en
enregistrements canoniques ; le reste du code ne manipule que ces objets.

Pour les fusions, seuls les champs réellement renvoyés (model_fields_set) et
non nuls comptent : le serveur gagne champ par champ, jamais en bloc.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_ROLE = "ADHERENT"

KNOWN_DOCUMENT_TYPES = ("IDENTITE", "JUSTIFICATIF_DOMICILE", "RIB")
DOCUMENT_LABELS = {
    "IDENTITE": "Pièce d'identité",
    "JUSTIFICATIF_DOMICILE": "Justificatif de domicile",
    "RIB": "RIB",
}


def is_known_document_type(value) -> bool:
    return value in KNOWN_DOCUMENT_TYPES


# ---------------------------
#   ENREGISTREMENTS CANONIQUES
# ---------------------------
@dataclass(frozen=True)
class Address:
    numero_rue: str = ""
    rue: str = ""
    code_postal: str = ""
    ville: str = ""
    complement: str = ""

    def line(self) -> str:
        line1 = " ".join(p for p in (self.numero_rue, self.rue) if p).strip()
        line2 = " ".join(p for p in (self.code_postal, self.ville) if p).strip()
        lines = [p for p in (line1, line2, self.complement) if p]
        return ", ".join(lines) if lines else "-"


@dataclass(frozen=True)
class MemberOption:
    id: str
    nom: str | None = None
    initiales: str | None = None
    email: str | None = None
    type: str | None = None

    @property
    def label(self) -> str:
        name = self.nom or "Membre"
        return f"{name} ({self.initiales})" if self.initiales else name


@dataclass(frozen=True)
class AdminDocument:
    id: str | None
    nom: str | None = None
    type: str | None = None
    size: int | None = None
    fichier_base64: str | None = None

    @property
    def name(self) -> str:
        return self.nom or "Document"

    @property
    def label(self) -> str:
        if self.type:
            return DOCUMENT_LABELS.get(self.type, self.type)
        return self.name


@dataclass(frozen=True)
class AdminUser:
    id: str
    email: str | None = None
    nom: str | None = None
    prenom: str | None = None
    name: str | None = None
    telephone: str | None = None
    role: str | None = None
    is_active: bool | None = None
    is_validated: bool | None = None
    membres: list[MemberOption] = field(default_factory=list)
    documents: list[AdminDocument] = field(default_factory=list)
    adresse: Address | None = None

    @property
    def display_name(self) -> str:
        full = " ".join(p for p in ((self.prenom or "").strip(), (self.nom or "").strip()) if p)
        return full or self.name or self.email or "Utilisateur"

    @property
    def effective_role(self) -> str:
        return self.role or DEFAULT_ROLE

    @property
    def active(self) -> bool:
        return True if self.is_active is None else self.is_active

    @property
    def validation_state(self) -> str:
        if self.is_validated is True:
            return "validated"
        if self.is_validated is False:
            return "pending"
        return "unknown"

    @property
    def assigned_member_id(self) -> str:
        return self.membres[0].id if self.membres else ""

    def merged_with(self, payload) -> "AdminUser":
        """Le serveur gagne pour chaque champ qu'il renvoie."""
        changes = admin_user_changes(payload)
        return replace(self, **changes) if changes else self


# ---------------------------
#   PAYLOADS DE L'API (pydantic)
# ---------------------------
class ApiPayload(BaseModel):
    # clés inconnues ignorées ; ids et téléphones numériques acceptés comme texte
    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    def returned_fields(self) -> dict[str, Any]:
        """Champs présents dans le payload et non nuls."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if getattr(self, name) is not None
        }


class AddressPayload(ApiPayload):
    numero_rue: str | None = Field(None, validation_alias=AliasChoices("numeroRue", "numero_rue"))
    rue: str | None = None
    code_postal: str | None = Field(None, validation_alias=AliasChoices("codePostal", "code_postal"))
    ville: str | None = None
    complement: str | None = Field(None, validation_alias=AliasChoices("complement", "complement_adresse"))

    def to_address(self) -> Address:
        return Address(
            numero_rue=self.numero_rue or "",
            rue=self.rue or "",
            code_postal=self.code_postal or "",
            ville=self.ville or "",
            complement=self.complement or "",
        )


class MemberPayload(ApiPayload):
    id: str | None = None
    nom: str | None = Field(None, validation_alias=AliasChoices("nom", "name"))
    initiales: str | None = None
    email: str | None = None
    type: str | None = None

    def to_member(self) -> MemberOption | None:
        if self.id is None:
            return None
        return MemberOption(id=self.id, nom=self.nom, initiales=self.initiales, email=self.email, type=self.type)


class DocumentPayload(ApiPayload):
    id: str | None = None
    nom: str | None = Field(None, validation_alias=AliasChoices("nom", "name"))
    type: str | None = None
    size: int | None = None
    fichier_base64: str | None = Field(None, validation_alias=AliasChoices("fichierBase64", "fichier_base64"))

    @field_validator("size", mode="before")
    @classmethod
    def _numeric_size(cls, value):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return int(value)

    def to_document(self) -> AdminDocument:
        return AdminDocument(
            id=self.id, nom=self.nom, type=self.type, size=self.size, fichier_base64=self.fichier_base64
        )


class UserPayload(ApiPayload):
    id: str | None = None
    email: str | None = None
    nom: str | None = Field(None, validation_alias=AliasChoices("nom", "lastName"))
    prenom: str | None = Field(None, validation_alias=AliasChoices("prenom", "firstName"))
    name: str | None = None
    telephone: str | None = None
    role: str | None = None
    is_active: bool | None = Field(None, validation_alias=AliasChoices("isActive", "is_active"))
    is_validated: bool | None = Field(None, validation_alias=AliasChoices("isValidated", "is_validated"))
    membres: list[MemberPayload] | None = None
    documents: list[DocumentPayload] | None = None
    adresse: AddressPayload | None = None

    @field_validator("membres", "documents", mode="before")
    @classmethod
    def _objects_only(cls, value):
        # entrées non-objet ignorées
        if not isinstance(value, list):
            return None
        return [item for item in value if isinstance(item, dict)]

    @field_validator("adresse", mode="before")
    @classmethod
    def _address_object(cls, value):
        return value if isinstance(value, dict) else None

    def to_fields(self) -> dict[str, Any]:
        """Champs canoniques renvoyés par le serveur, prêts pour AdminUser / replace()."""
        fields = self.returned_fields()
        if "membres" in fields:
            fields["membres"] = [m for m in (p.to_member() for p in self.membres) if m is not None]
        if "documents" in fields:
            fields["documents"] = [p.to_document() for p in self.documents]
        if "adresse" in fields:
            fields["adresse"] = self.adresse.to_address()
        return fields


def _valid_only(adapter, items) -> list:
    """Adapte une liste d'entrées ; celles qui ne passent pas la validation sont écartées."""
    result = []
    for item in items or []:
        try:
            record = adapter(item)
        except ValidationError:
            continue
        if record is not None:
            result.append(record)
    return result


# ---------------------------
#   ADAPTATEURS
# ---------------------------
def address_from_payload(payload) -> Address | None:
    if not isinstance(payload, dict):
        return None
    return AddressPayload.model_validate(payload).to_address()


def address_to_payload(address: Address) -> dict[str, str]:
    """Écriture : l'API attend la convention camelCase."""
    return {
        "numeroRue": address.numero_rue.strip(),
        "rue": address.rue.strip(),
        "codePostal": address.code_postal.strip(),
        "ville": address.ville.strip(),
        "complement": address.complement.strip(),
    }


def build_address_line(address: Address | None) -> str:
    return address.line() if address else "-"


def member_from_payload(payload) -> MemberOption | None:
    if not isinstance(payload, dict):
        return None
    return MemberPayload.model_validate(payload).to_member()


def members_from_payload(items) -> list[MemberOption]:
    return _valid_only(member_from_payload, items)


def document_from_payload(payload) -> AdminDocument | None:
    if not isinstance(payload, dict):
        return None
    return DocumentPayload.model_validate(payload).to_document()


def documents_from_payload(items) -> list[AdminDocument]:
    return _valid_only(document_from_payload, items)


def merge_documents(documents: list[AdminDocument], updated: AdminDocument) -> list[AdminDocument]:
    """Fusion d'un document renvoyé par l'API : par id, sinon par type, sinon ajout."""
    def overlay(current: AdminDocument) -> AdminDocument:
        changes = {k: v for k, v in vars(updated).items() if v is not None}
        return replace(current, **changes)

    if updated.id:
        for i, doc in enumerate(documents):
            if doc.id == updated.id:
                return documents[:i] + [overlay(doc)] + documents[i + 1:]
    if updated.type:
        for i, doc in enumerate(documents):
            if doc.type == updated.type:
                return documents[:i] + [overlay(doc)] + documents[i + 1:]
    return documents + [updated]


def format_file_size(size) -> str:
    if not isinstance(size, (int, float)) or isinstance(size, bool):
        return "-"
    if size < 1024:
        return f"{size} o"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} Ko"
    return f"{size / 1024 / 1024:.1f} Mo"


def admin_user_fields(payload: dict) -> dict[str, Any]:
    """Champs canoniques présents dans un payload utilisateur (ceux absents sont omis)."""
    return UserPayload.model_validate(payload).to_fields()


def admin_user_changes(payload) -> dict[str, Any]:
    """Ce qu'une réponse du serveur change sur un utilisateur existant (l'id ne bouge pas)."""
    if not isinstance(payload, dict):
        return {}
    fields = admin_user_fields(payload)
    fields.pop("id", None)
    return fields


def admin_user_from_payload(payload) -> AdminUser | None:
    if not isinstance(payload, dict):
        return None
    fields = admin_user_fields(payload)
    if fields.get("id") is None:
        return None
    return AdminUser(**fields)


def admin_users_from_payload(items) -> list[AdminUser]:
    return _valid_only(admin_user_from_payload, items)
