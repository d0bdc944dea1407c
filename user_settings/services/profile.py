"""Profile details, profile picture reference and theme preference."""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

from django.core.exceptions import ObjectDoesNotExist, ValidationError

from authentication.documents import PUBLIC_PROJECTION, USER_COLLECTION
from authentication.services import user_object_id
from datastore.access import DocumentStore, active_only, get_store
from datastore.patch import Patch
from utils import clean_form, clean_serializer, track_service_operation

from ..serializers import ProfilePictureSerializer, ProfileSerializer, ThemeSerializer

PROFILE_UPLOAD_PREFIX = "/uploads/profiles"
DEFAULT_THEME = "light"


def profile_picture_ref(user_id, filename: str, timestamp_ms: Optional[int] = None) -> str:
    extension = filename.rsplit(".", 1)[-1]
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{PROFILE_UPLOAD_PREFIX}/profile_{user_id}_{timestamp_ms}.{extension}"


class ProfileService:
    def __init__(self, store: Optional[DocumentStore] = None) -> None:
        self._store = store or get_store()

    def _require(self, user_id) -> Dict[str, Any]:
        user = self._store.find_one(USER_COLLECTION, active_only({"_id": user_object_id(user_id)}), PUBLIC_PROJECTION)
        if user is None:
            raise ObjectDoesNotExist("User not found")
        return user

    def _save(self, user: Dict[str, Any], patch: Patch) -> Dict[str, Any]:
        self._store.update_one(USER_COLLECTION, {"_id": user["_id"]}, patch)
        return self._store.find_one(USER_COLLECTION, {"_id": user["_id"]}, PUBLIC_PROJECTION)

    @track_service_operation("profile.update")
    def update_profile(self, user_id, name: str, email: str) -> Dict[str, Any]:
        user = self._require(user_id)
        data = clean_form(ProfileSerializer(data={"name": name, "email": email}))

        taken = self._store.find_one(USER_COLLECTION, {"email": data["email"], "_id": {"$ne": user["_id"]}})
        if taken is not None:
            raise ValidationError({"email": ["Email is already taken"]})

        return self._save(user, Patch(name=data["name"], email=data["email"]))

    @track_service_operation("profile.set_picture")
    def set_profile_picture(self, user_id, filename: str, content_type: str, size: int) -> Dict[str, Any]:
        """
        Record the location of a new profile picture.

        The upload itself belongs to the storage layer; only the reference
        ``/uploads/profiles/profile_<id>_<ts>.<ext>`` is stored here.
        """
        user = self._require(user_id)
        data = clean_serializer(ProfilePictureSerializer(data={
            "filename": filename, "content_type": content_type, "size": size,
        }))
        return self._save(user, Patch(profilePic=profile_picture_ref(user["_id"], data["filename"])))

    @track_service_operation("profile.set_theme")
    def set_theme(self, user_id, theme: str) -> str:
        user = self._require(user_id)
        data = clean_form(ThemeSerializer(data={"theme": theme}))
        self._store.update_one(USER_COLLECTION, {"_id": user["_id"]}, Patch().set("preferences.theme", data["theme"]))
        return data["theme"]

    def get_theme(self, user_id) -> str:
        user = self._require(user_id)
        return (user.get("preferences") or {}).get("theme") or DEFAULT_THEME
