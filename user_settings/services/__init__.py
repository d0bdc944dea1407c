"""Service layer for the user_settings app."""

from .api_keys import ApiKeyService, ApiKeysResult
from .passwords import AccountDeletionResult, PasswordChangeResult, PasswordChangeService
from .profile import ProfileService

__all__ = [
    "AccountDeletionResult",
    "ApiKeyService",
    "ApiKeysResult",
    "PasswordChangeResult",
    "PasswordChangeService",
    "ProfileService",
]
