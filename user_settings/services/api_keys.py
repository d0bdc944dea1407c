"""
Provider API keys for admins.

Keys are stored hashed and can never be read back. ``get`` returns a fixed
mask for every provider that has a key, and ``update`` treats that mask as
"keep the stored key".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from django.contrib.auth.hashers import make_password
from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError

from authentication.documents import ROLE_ADMIN, USER_COLLECTION
from authentication.services import user_object_id
from datastore.access import DocumentStore, active_only, get_store
from datastore.patch import Patch
from utils import clean_serializer, track_service_operation

from ..serializers import API_KEY_PROVIDERS, ApiKeysSerializer

MASKED_KEY = "••••••••••••••••"


@dataclass(frozen=True)
class ApiKeysResult:
    success: bool
    message: str
    has_api_keys: bool


def masked(stored: Optional[Mapping[str, str]]) -> Dict[str, str]:
    stored = stored or {}
    return {provider: MASKED_KEY if stored.get(provider) else "" for provider in API_KEY_PROVIDERS}


class ApiKeyService:
    def __init__(self, store: Optional[DocumentStore] = None) -> None:
        self._store = store or get_store()

    def _admin(self, user_id, action: str) -> Dict[str, Any]:
        user = self._store.find_one(USER_COLLECTION, active_only({"_id": user_object_id(user_id)}))
        if user is None:
            raise ObjectDoesNotExist("User not found")
        if user.get("role") != ROLE_ADMIN:
            raise PermissionDenied(f"You are not authorized to {action} API keys")
        return user

    def _validated(self, keys) -> Dict[str, str]:
        return clean_serializer(ApiKeysSerializer(data={"apiKeys": keys}))["apiKeys"]

    def _store_keys(self, user: Dict[str, Any], hashed: Dict[str, str], message: str) -> ApiKeysResult:
        self._store.update_one(USER_COLLECTION, {"_id": user["_id"]}, Patch(apiKeys=hashed))
        return ApiKeysResult(success=True, message=message, has_api_keys=bool(hashed))

    @track_service_operation("api_keys.save")
    def save(self, user_id, keys: Mapping[str, str]) -> ApiKeysResult:
        """Replace every stored key with the non-empty ones given."""
        user = self._admin(user_id, "save")
        keys = self._validated(keys)
        if not keys:
            raise ValidationError("API keys are required and must be an object with at least one key")

        hashed = {provider: make_password(key) for provider, key in keys.items() if key and key.strip()}
        return self._store_keys(user, hashed, "API keys saved successfully")

    def get(self, user_id) -> Dict[str, str]:
        user = self._admin(user_id, "get")
        return masked(user.get("apiKeys"))

    @track_service_operation("api_keys.update")
    def update(self, user_id, keys: Mapping[str, str]) -> ApiKeysResult:
        """
        Merge ``keys`` into the stored ones: the mask keeps a key, an empty
        string removes it, anything else replaces it.
        """
        user = self._admin(user_id, "update")
        keys = self._validated(keys)

        hashed = dict(user.get("apiKeys") or {})
        for provider, key in keys.items():
            if key == "":
                hashed.pop(provider, None)
            elif key.strip() and key != MASKED_KEY:
                hashed[provider] = make_password(key)
        return self._store_keys(user, hashed, "API keys updated successfully")
