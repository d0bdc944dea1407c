# team/documents.py
"""Shape of documents in the ``invitations`` collection."""

from typing import Any, Dict
from urllib.parse import quote

from django.conf import settings

INVITATION_COLLECTION = "invitations"

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_EXPIRED = "expired"


def build_invitation(*, email: str, role: str, invited_by, token: str, expires_at) -> Dict[str, Any]:
    return {
        "email": email,
        "role": role,
        "invitedBy": invited_by,
        "token": token,
        "status": STATUS_PENDING,
        "expiresAt": expires_at,
    }


def invitation_link(token: str, email: str) -> str:
    base = settings.APP_URL.rstrip("/")
    return f"{base}/accept-invitation?token={quote(token)}&email={quote(email, safe='')}"
