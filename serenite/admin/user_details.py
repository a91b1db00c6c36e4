# serenite/admin/user_details.py
"""
Fiche utilisateur de la console admin : lecture, édition, justificatifs.

  - start_edit()  : fige les valeurs confirmées par le serveur dans le formulaire
  - cancel_edit() : abandonne et revient à ces valeurs
  - save()        : envoie nom / prénom / téléphone / adresse en une requête ;
                    succès -> on prend la réponse du serveur et on sort de l'édition,
                    échec  -> on reste en édition, erreur en ligne, saisie conservée
  - stage_file() / upload() : un fichier par type, indépendant de save()
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from serenite.admin.documents import DocumentAsset, resolve_document_asset
from serenite.api.admin import AdminApi
from serenite.api.client import ApiError
from serenite.models.admin import (
    DOCUMENT_LABELS,
    KNOWN_DOCUMENT_TYPES,
    Address,
    AdminDocument,
    AdminUser,
    address_to_payload,
    admin_user_changes,
    document_from_payload,
    is_known_document_type,
    merge_documents,
)

VIEW = "view"
EDIT = "edit"

FORM_FIELDS = ("nom", "prenom", "telephone", "numero_rue", "rue", "code_postal", "ville", "complement")

SAVE_ERROR = "Impossible d'enregistrer les modifications."
UPLOAD_ERROR = "Impossible de téléverser le document."


@dataclass(frozen=True)
class DocumentSlot:
    type: str
    label: str
    doc: AdminDocument | None = None


def initial_form(user: AdminUser | None) -> dict[str, str]:
    address = (user.adresse if user else None) or Address()
    return {
        "nom": (user.nom if user else None) or "",
        "prenom": (user.prenom if user else None) or "",
        "telephone": (user.telephone if user else None) or "",
        "numero_rue": address.numero_rue,
        "rue": address.rue,
        "code_postal": address.code_postal,
        "ville": address.ville,
        "complement": address.complement,
    }


def build_update_payload(form: dict[str, str]) -> dict:
    address = Address(
        numero_rue=form.get("numero_rue") or "",
        rue=form.get("rue") or "",
        code_postal=form.get("code_postal") or "",
        ville=form.get("ville") or "",
        complement=form.get("complement") or "",
    )
    return {
        "nom": (form.get("nom") or "").strip(),
        "prenom": (form.get("prenom") or "").strip(),
        "telephone": (form.get("telephone") or "").strip(),
        "adresse": address_to_payload(address),
    }


def document_slots(documents: list[AdminDocument], editing: bool) -> list[DocumentSlot]:
    if not editing:
        return [DocumentSlot(type=doc.type or doc.id or "", label=doc.label, doc=doc) for doc in documents]

    by_type = {doc.type: doc for doc in documents if doc.type}
    slots = [
        DocumentSlot(type=t, label=DOCUMENT_LABELS.get(t, t), doc=by_type.get(t))
        for t in KNOWN_DOCUMENT_TYPES
    ]
    for doc in documents:
        if doc.type and not is_known_document_type(doc.type):
            slots.append(DocumentSlot(type=doc.type, label=doc.type, doc=doc))
        elif not doc.type:
            slots.append(DocumentSlot(type=doc.id or "", label=doc.name, doc=doc))
    return slots


class UserDetailsState:
    def __init__(self, user: AdminUser | None = None):
        self.user = user
        self.mode = VIEW
        self.form = initial_form(user)
        self.form_error: str | None = None
        self.saving = False
        self.staged: dict[str, object] = {}
        self.uploading: dict[str, bool] = {}
        self.preview_doc_id: str | None = None
        self.loading = False
        self.error: str | None = None

    @property
    def is_editing(self) -> bool:
        return self.mode == EDIT

    @property
    def documents(self) -> list[AdminDocument]:
        return self.user.documents if self.user else []


class UserDetailsController:
    def __init__(self, api: AdminApi, state: UserDetailsState | None = None, on_user_updated=None):
        self.api = api
        self.state = state if state is not None else UserDetailsState()
        self.on_user_updated = on_user_updated
        self._asset: DocumentAsset | None = None

    # -- ouverture / fermeture
    def open(self, user: AdminUser) -> None:
        if self.state.user is None or self.state.user.id != user.id:
            self.close_preview()
            self.state.mode = VIEW
        self.state.user = user
        if not self.state.is_editing:
            self._reset_form()

    def close(self) -> None:
        self.close_preview()
        self.state.user = None
        self.state.mode = VIEW
        self._reset_form()

    def _reset_form(self) -> None:
        self.state.form = initial_form(self.state.user)
        self.state.form_error = None
        self.state.staged = {}
        self.state.preview_doc_id = None

    def _publish(self, user: AdminUser, changes: dict) -> None:
        # la liste ne reçoit que les champs modifiés
        self.state.user = user
        if self.on_user_updated:
            self.on_user_updated(user.id, changes)

    # -- édition du profil
    def start_edit(self) -> None:
        if self.state.user is None:
            return
        self.state.form = initial_form(self.state.user)
        self.state.form_error = None
        self.state.staged = {}
        self.state.mode = EDIT

    def cancel_edit(self) -> None:
        self.state.mode = VIEW
        self._reset_form()

    def save(self, values: dict | None = None) -> bool:
        state = self.state
        if state.user is None:
            return False
        if values:
            state.form.update({k: v for k, v in values.items() if k in FORM_FIELDS and v is not None})
        state.saving = True
        state.form_error = None
        try:
            payload = self.api.update_user(state.user.id, build_update_payload(state.form))
        except ApiError as e:
            state.form_error = e.message or SAVE_ERROR
            return False
        finally:
            state.saving = False
        try:
            changes = admin_user_changes(payload)
        except ValueError:
            state.form_error = SAVE_ERROR
            return False
        self._publish(replace(state.user, **changes), changes)
        state.mode = VIEW
        self._reset_form()
        return True

    # -- justificatifs
    def slots(self) -> list[DocumentSlot]:
        return document_slots(self.state.documents, self.state.is_editing)

    def stage_file(self, doc_type: str, file) -> None:
        if file is None:
            return
        self.state.staged[doc_type] = file

    def upload(self, doc_type: str) -> bool:
        state = self.state
        file = state.staged.get(doc_type)
        if state.user is None or file is None:
            return False
        state.uploading[doc_type] = True
        state.form_error = None
        try:
            payload = self.api.upsert_document(state.user.id, doc_type, file)
        except ApiError as e:
            state.form_error = e.message or UPLOAD_ERROR
            return False
        finally:
            state.uploading[doc_type] = False
        try:
            doc = document_from_payload(payload)
        except ValueError:
            doc = None
        doc = doc or AdminDocument(id=None, type=doc_type)
        if doc.type is None:
            doc = replace(doc, type=doc_type)
        documents = merge_documents(list(state.documents), doc)
        self._publish(replace(state.user, documents=documents), {"documents": documents})
        state.staged.pop(doc_type, None)
        return True

    # -- aperçu
    def find_document(self, doc_id: str) -> AdminDocument | None:
        return next((d for d in self.state.documents if d.id == doc_id), None)

    def preview(self, doc_id: str) -> DocumentAsset | None:
        doc = self.find_document(doc_id)
        if doc is None or not doc.fichier_base64:
            return None
        self.close_preview()
        self._asset = resolve_document_asset(doc)
        self.state.preview_doc_id = doc_id
        return self._asset

    def close_preview(self) -> None:
        if self._asset is not None:
            self._asset.release()
            self._asset = None
        self.state.preview_doc_id = None
