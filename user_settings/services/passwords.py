"""Password change and account deletion, with persistence and hashing kept behind small interfaces."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from django.contrib.auth.hashers import check_password, make_password
from django.core.exceptions import ObjectDoesNotExist

from authentication.documents import USER_COLLECTION
from authentication.services import user_object_id
from datastore.access import DocumentStore, active_only, get_store
from datastore.patch import Patch
from utils import clean_form, track_service_operation

from ..serializers import ChangePasswordSerializer


class PasswordEncoder(Protocol):
    """Abstraction for password hashing."""

    def encode(self, raw_password: str) -> str:
        raise NotImplementedError

    def verify(self, raw_password: str, encoded: str) -> bool:
        raise NotImplementedError


class DjangoPasswordEncoder:
    """Adapter for Django's password hashing utilities."""

    def encode(self, raw_password: str) -> str:
        return make_password(raw_password)

    def verify(self, raw_password: str, encoded: str) -> bool:
        return check_password(raw_password, encoded)


class UserRepository(Protocol):
    """Abstraction for user persistence operations."""

    def get_active(self, user_id) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def save_password(self, user: Dict[str, Any], encoded_password: str) -> None:
        raise NotImplementedError

    def deactivate(self, user: Dict[str, Any]) -> None:
        raise NotImplementedError


class DocumentUserRepository:
    """Concrete repository backed by the ``users`` collection."""

    def __init__(self, store: Optional[DocumentStore] = None):
        self._store = store or get_store()

    def get_active(self, user_id) -> Optional[Dict[str, Any]]:
        return self._store.find_one(USER_COLLECTION, active_only({"_id": user_object_id(user_id)}))

    def save_password(self, user: Dict[str, Any], encoded_password: str) -> None:
        self._store.update_one(USER_COLLECTION, {"_id": user["_id"]}, Patch(password=encoded_password))
        # keep the in-memory document consistent
        user["password"] = encoded_password

    def deactivate(self, user: Dict[str, Any]) -> None:
        self._store.soft_delete(USER_COLLECTION, {"_id": user["_id"]})


@dataclass(frozen=True)
class PasswordChangeResult:
    """Value object describing the result of a password update."""

    success: bool
    message: str


@dataclass(frozen=True)
class AccountDeletionResult:
    """Value object describing the result of an account deletion."""

    success: bool
    message: str


class PasswordChangeService:
    """Coordinates password change logic while keeping collaborators abstract."""

    def __init__(
        self,
        *,
        user_repository: Optional[UserRepository] = None,
        password_encoder: Optional[PasswordEncoder] = None,
    ) -> None:
        self._users = user_repository or DocumentUserRepository()
        self._encoder = password_encoder or DjangoPasswordEncoder()

    def _require(self, user_id) -> Dict[str, Any]:
        user = self._users.get_active(user_id)
        if user is None:
            raise ObjectDoesNotExist("User not found")
        return user

    @track_service_operation("password_change")
    def change_password(
        self,
        *,
        user_id,
        current_password: str,
        new_password: str,
        confirm_password: str = "",
    ) -> PasswordChangeResult:
        user = self._require(user_id)
        data = clean_form(ChangePasswordSerializer(user, data={
            "current_password": current_password,
            "new_password": new_password,
            "confirm_password": confirm_password,
        }))
        self._users.save_password(user, self._encoder.encode(data["new_password"]))
        return PasswordChangeResult(success=True, message="Password changed successfully")

    @track_service_operation("account_deletion")
    def delete_account(
        self,
        *,
        user_id,
        password: str,
    ) -> AccountDeletionResult:
        user = self._require(user_id)

        # Verify current password before deletion
        if not password or not self._encoder.verify(password, user.get("password") or ""):
            return AccountDeletionResult(success=False, message="Current password is incorrect")

        self._users.deactivate(user)
        return AccountDeletionResult(success=True, message="Account deleted successfully")
