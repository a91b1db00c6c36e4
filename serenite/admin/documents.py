# serenite/admin/documents.py
"""
Aperçu des justificatifs.

Le contenu arrive éventuellement en base64 dans le champ fichierBase64 :
  - soit déjà sous forme de data URL ("data:image/png;base64,...") -> utilisée telle quelle
  - soit en base64 brut -> décodé dans un buffer mémoire, à libérer après usage
Images et PDF s'affichent dans la page ; le reste se télécharge.
"""

from __future__ import annotations

import base64
import binascii
import re
from io import BytesIO
from urllib.parse import unquote_to_bytes

from serenite.models.admin import AdminDocument

EXTENSION_MIMES = {
    "pdf": "application/pdf",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
}
DEFAULT_MIME = "application/octet-stream"

_DATA_URL = re.compile(r"^data:(?P<mime>[^;,]*)(?P<b64>;base64)?,(?P<payload>.*)$", re.DOTALL)
_WHITESPACE = re.compile(r"\s+")


def document_extension(doc: AdminDocument) -> str:
    parts = doc.name.split(".")
    return parts[-1].lower() if len(parts) > 1 else ""


def infer_mime_type(doc: AdminDocument) -> str:
    # Le "type" déclaré est le plus souvent une catégorie (IDENTITE, RIB...),
    # on ne le prend comme mimetype que s'il en a la forme.
    if doc.type and "/" in doc.type:
        return doc.type
    raw = (doc.fichier_base64 or "").strip()
    match = _DATA_URL.match(raw) if raw.startswith("data:") else None
    if match and match.group("mime"):
        return match.group("mime")
    return EXTENSION_MIMES.get(document_extension(doc), DEFAULT_MIME)


def preview_kind(mime: str) -> str:
    if mime.startswith("image/"):
        return "image"
    if mime == "application/pdf":
        return "pdf"
    return "other"


class DocumentAsset:
    """Ressource affichable construite à partir d'un document ; à libérer via release()."""

    def __init__(self, doc: AdminDocument, mime: str, data_url: str | None = None, raw: bytes | None = None):
        self.doc_id = doc.id
        self.filename = doc.name
        self.mime = mime
        self.kind = preview_kind(mime)
        self.data_url = data_url
        self.revoke = data_url is None
        self._buffer = BytesIO(raw) if raw is not None else None
        self.released = False

    def stream(self) -> BytesIO:
        if self.released:
            raise ValueError("asset already released")
        if self._buffer is None:
            self._buffer = BytesIO(decode_data_url(self.data_url))
        self._buffer.seek(0)
        return self._buffer

    def release(self) -> None:
        if self._buffer is not None:
            self._buffer.close()
            self._buffer = None
        self.released = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.release()
        return False


def decode_base64(payload: str) -> bytes:
    try:
        return base64.b64decode(_WHITESPACE.sub("", payload), validate=True)
    except binascii.Error as e:
        raise ValueError("contenu base64 invalide") from e


def decode_data_url(url: str) -> bytes:
    match = _DATA_URL.match(url or "")
    if not match:
        raise ValueError("data URL invalide")
    if match.group("b64"):
        return decode_base64(match.group("payload"))
    return unquote_to_bytes(match.group("payload"))


def resolve_document_asset(doc: AdminDocument) -> DocumentAsset | None:
    raw = (doc.fichier_base64 or "").strip()
    if not raw:
        return None
    mime = infer_mime_type(doc)
    if raw.startswith("data:"):
        return DocumentAsset(doc, mime, data_url=raw)
    return DocumentAsset(doc, mime, raw=decode_base64(raw))
