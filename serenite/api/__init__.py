# serenite/api/__init__.py
# Clients de l'API REST de la mutuelle.

from serenite.api.client import ApiClient, ApiConfigError, ApiError, unwrap_list

__all__ = ["ApiClient", "ApiConfigError", "ApiError", "unwrap_list"]
