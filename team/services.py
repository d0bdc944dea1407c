# team/services.py
"""
Team management for admins: invitations, member permissions and which of
the admin's GPTs each member can use.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from django.conf import settings
from django.contrib.auth.hashers import make_password
from django.core.exceptions import ObjectDoesNotExist, ValidationError

from authentication.documents import (
    PUBLIC_PROJECTION,
    USER_COLLECTION,
    build_user_document,
    public_user,
)
from authentication.services import AuthService, user_object_id
from authentication.tokens import expires_in, generate_otp
from conversations.services import ConversationService
from custom_gpts.services import CustomGptService, ReassignmentResult
from datastore.access import DocumentStore, active_only, get_store, utcnow
from datastore.patch import Patch
from utils import clean_form, track_service_operation

from .documents import (
    INVITATION_COLLECTION,
    STATUS_ACCEPTED,
    STATUS_EXPIRED,
    STATUS_PENDING,
    build_invitation,
    invitation_link,
)
from .forms import AcceptInvitationForm, InviteMemberForm, MemberPermissionsForm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvitationResult:
    """What a delivery layer needs to send the invitation email."""

    success: bool
    message: str
    invitation_id: Any
    token: str
    link: str


@dataclass(frozen=True)
class ActionResult:
    success: bool
    message: str


def invitation_token() -> str:
    """6-digit code followed by the last 6 digits of the current epoch milliseconds."""
    return generate_otp() + str(int(time.time() * 1000))[-6:]


class TeamService:
    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        *,
        users: Optional[AuthService] = None,
        gpts: Optional[CustomGptService] = None,
        conversations: Optional[ConversationService] = None,
    ) -> None:
        self._store = store or get_store()
        self._users = users or AuthService(self._store)
        self._gpts = gpts or CustomGptService(self._store)
        self._conversations = conversations or ConversationService(self._store, self._gpts)

    def _member(self, user_id) -> Dict[str, Any]:
        member = self._users.get_user_by_id(user_id)
        if member is None:
            raise ObjectDoesNotExist("User not found")
        return member

    def _any_member(self, user_id) -> Dict[str, Any]:
        """Member lookup that also finds deactivated accounts."""
        member = self._store.find_one(USER_COLLECTION, {"_id": user_object_id(user_id)}, PUBLIC_PROJECTION)
        if member is None:
            raise ObjectDoesNotExist("User not found")
        return member

    def _pending_query(self, **extra) -> Dict[str, Any]:
        return {"status": STATUS_PENDING, "expiresAt": {"$gt": utcnow()}, **extra}

    def _expire_stale(self) -> int:
        """Mark pending invitations past their expiry as expired."""
        expired = self._store.update_many(
            INVITATION_COLLECTION,
            {"status": STATUS_PENDING, "expiresAt": {"$lte": utcnow()}},
            Patch(status=STATUS_EXPIRED),
        )
        if expired:
            logger.info("%d invitations expired", expired)
        return expired

    # invitations

    @track_service_operation("team.invite")
    def invite(self, email: str, role: str, invited_by) -> InvitationResult:
        data = clean_form(InviteMemberForm(data={"email": email, "role": role}))
        inviter = user_object_id(invited_by)
        self._expire_stale()

        # soft-deleted accounts keep their email, so they count too
        if self._store.find_one(USER_COLLECTION, {"email": data["email"]}) is not None:
            raise ValidationError({"email": ["User with this email already exists"]})
        if self._store.find_one(INVITATION_COLLECTION, self._pending_query(email=data["email"])) is not None:
            raise ValidationError({"email": ["An active invitation already exists for this email"]})

        token = invitation_token()
        invitation_id = self._store.insert_one(
            INVITATION_COLLECTION,
            build_invitation(
                email=data["email"],
                role=data["role"],
                invited_by=inviter,
                token=token,
                expires_at=expires_in(days=settings.INVITATION_TTL_DAYS),
            ),
        )
        logger.info("Invitation %s created by %s", invitation_id, inviter)
        return InvitationResult(
            success=True,
            message="Invitation sent successfully",
            invitation_id=invitation_id,
            token=token,
            link=invitation_link(token, data["email"]),
        )

    @track_service_operation("team.accept")
    def accept(self, token: str, email: str, name: str, password: str) -> Dict[str, Any]:
        data = clean_form(AcceptInvitationForm(data={
            "token": token, "email": email, "name": name, "password": password,
        }))

        self._expire_stale()
        invitation = self._store.find_one(
            INVITATION_COLLECTION,
            self._pending_query(email=data["email"], token=data["token"]),
        )
        if invitation is None:
            raise ValidationError("Invalid or expired invitation")
        if self._store.find_one(USER_COLLECTION, {"email": invitation["email"]}) is not None:
            raise ValidationError({"email": ["User with this email already exists"]})

        document = build_user_document(
            name=data["name"],
            email=invitation["email"],
            password=make_password(data["password"]),
            role=invitation["role"],
            is_verified=True,
        )
        document["_id"] = self._store.insert_one(USER_COLLECTION, document)
        self._store.update_one(
            INVITATION_COLLECTION,
            {"_id": invitation["_id"]},
            Patch(status=STATUS_ACCEPTED),
        )
        logger.info("Invitation %s accepted", invitation["_id"])
        return public_user(document)

    def pending_invitations(self) -> List[Dict[str, Any]]:
        self._expire_stale()
        return self._store.find(INVITATION_COLLECTION, self._pending_query(), sort=[("createdAt", -1)])

    # members

    def list_members(self) -> List[Dict[str, Any]]:
        return self._users.get_all_users()

    @track_service_operation("team.member_details")
    def member_details(self, member_id) -> Dict[str, Any]:
        """Member profile with their assigned GPTs and conversation history."""
        member = self._member(member_id)
        return {
            "member": member,
            "assignedGpts": self._gpts.assigned_details(member["_id"]),
            "conversations": self._conversations.history(member["_id"]),
        }

    @track_service_operation("team.update_permissions")
    def update_permissions(self, user_id, updates: Mapping[str, Any]) -> Dict[str, Any]:
        member = self._any_member(user_id)
        changes = clean_form(MemberPermissionsForm(data=dict(updates or {})))
        self._store.update_one(USER_COLLECTION, {"_id": member["_id"]}, Patch.from_fields(changes))
        return public_user(self._store.find_one(USER_COLLECTION, {"_id": member["_id"]}))

    @track_service_operation("team.remove_member")
    def remove_member(self, user_id) -> ActionResult:
        member = self._member(user_id)
        self._store.soft_delete(USER_COLLECTION, active_only({"_id": member["_id"]}))
        removed = self._store.delete_many(INVITATION_COLLECTION, {"email": member["email"]})
        logger.info("Member %s removed (%d invitations deleted)", member["_id"], removed)
        return ActionResult(success=True, message="Member removed successfully")

    @track_service_operation("team.set_member_gpts")
    def set_member_gpts(self, member_id, gpt_ids, admin_id) -> ReassignmentResult:
        member = self._member(member_id)
        return self._gpts.replace_assignments(member["_id"], gpt_ids, admin_id)
