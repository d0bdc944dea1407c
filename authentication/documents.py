# authentication/documents.py
"""
Shape of documents in the ``users`` collection.

Field names are camelCase as stored. Secrets (password hash, one-time
codes, hashed provider keys) never leave the service layer: reads that go
back to callers use PUBLIC_PROJECTION or public_user().
"""

from typing import Any, Dict, Optional

USER_COLLECTION = "users"

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLES = (ROLE_ADMIN, ROLE_USER)

SECRET_FIELDS = (
    "password",
    "verificationToken",
    "verificationTokenExpiresAt",
    "resetPasswordToken",
    "resetPasswordExpiresAt",
    "apiKeys",
)

PUBLIC_PROJECTION = {field: 0 for field in SECRET_FIELDS}


def build_user_document(
    *,
    name: str,
    email: str,
    password: str,
    role: str = ROLE_USER,
    is_verified: bool = False,
    verification_token: Optional[str] = None,
    verification_expires_at=None,
) -> Dict[str, Any]:
    """New user document. ``password`` must already be hashed."""
    document = {
        "name": name,
        "email": email.lower(),
        "password": password,
        "role": role,
        "isActive": True,
        "isVerified": is_verified,
        "apiKeys": {},
        "profilePic": "",
    }
    if verification_token:
        document["verificationToken"] = verification_token
        document["verificationTokenExpiresAt"] = verification_expires_at
    return document


def public_user(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Copy of a user document without its secret fields."""
    if document is None:
        return None
    return {key: value for key, value in document.items() if key not in SECRET_FIELDS}
