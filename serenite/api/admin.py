# serenite/api/admin.py
# Endpoints de la console admin (/api/admin/users..., /api/membres).

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from serenite.api.auth import file_part
from serenite.api.client import ApiClient, unwrap_list


def _seg(value) -> str:
    return quote(str(value), safe="")


class AdminApi(ApiClient):
    """Renvoie des payloads JSON bruts ; la normalisation se fait dans serenite.models."""

    def list_users(self) -> list[dict]:
        return unwrap_list(self.request_json("GET", "/api/admin/users"))

    def get_user(self, user_id: str) -> dict:
        return self._object(self.request_json("GET", f"/api/admin/users/{_seg(user_id)}"))

    def validate_user(self, user_id: str, validated: bool) -> dict:
        return self._patch(f"/api/admin/users/{_seg(user_id)}/validate", {"validated": validated})

    def update_user(self, user_id: str, payload: dict[str, Any]) -> dict:
        return self._patch(f"/api/admin/users/{_seg(user_id)}", payload)

    def set_active(self, user_id: str, active: bool) -> dict:
        return self._patch(f"/api/admin/users/{_seg(user_id)}/active", {"active": active})

    def update_role(self, user_id: str, role: str) -> dict:
        return self._patch(f"/api/admin/users/{_seg(user_id)}/role", {"role": str(role)})

    def assign_membre(self, user_id: str, membre_id: str | None, replace: bool = True) -> dict:
        return self._patch(
            f"/api/admin/users/{_seg(user_id)}/assign-membre",
            {"membreId": membre_id or None, "replace": replace},
        )

    def list_membres(self) -> list[dict]:
        return unwrap_list(self.request_json("GET", "/api/membres"))

    def upsert_document(self, user_id: str, doc_type: str, file) -> dict:
        data = self.request_json(
            "PATCH",
            f"/api/admin/users/{_seg(user_id)}/documents/{_seg(doc_type)}",
            files=[("file", file_part(file))],
        )
        return self._object(data)

    # -- helpers
    def _patch(self, path: str, body: dict[str, Any]) -> dict:
        return self._object(self.request_json("PATCH", path, json=body))

    @staticmethod
    def _object(data) -> dict:
        return data if isinstance(data, dict) else {}
