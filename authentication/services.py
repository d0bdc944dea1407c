# authentication/services.py
"""
Account lifecycle: signup, login, email verification and password reset.

Nothing here sends email. Methods that would trigger one return the code a
delivery layer needs instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from bson.errors import InvalidId
from django.conf import settings
from django.contrib.auth.hashers import check_password, make_password
from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError

from datastore.access import DocumentStore, active_only, as_object_id, get_store, utcnow
from datastore.patch import Patch
from utils import clean_form, track_service_operation

from .documents import (
    PUBLIC_PROJECTION,
    ROLE_ADMIN,
    ROLE_USER,
    USER_COLLECTION,
    build_user_document,
    public_user,
)
from .forms import (
    LoginForm,
    PasswordResetRequestForm,
    ResetPasswordForm,
    SignupForm,
    VerifyEmailForm,
)
from .tokens import expires_in, generate_otp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignupResult:
    """Value object describing a new, unverified account."""

    success: bool
    message: str
    user: Dict[str, Any]
    verification_token: str


@dataclass(frozen=True)
class LoginResult:
    """Value object describing the outcome of a login attempt."""

    success: bool
    message: str
    user: Dict[str, Any]
    require_verification: bool = False
    verification_token: Optional[str] = None


@dataclass(frozen=True)
class PasswordResetRequest:
    success: bool
    message: str
    reset_token: str


@dataclass(frozen=True)
class ActionResult:
    success: bool
    message: str


def user_object_id(user_id):
    try:
        return as_object_id(user_id)
    except InvalidId:
        raise ValidationError("Invalid User ID provided")


class AuthService:
    """Coordinates account operations over the ``users`` collection."""

    def __init__(self, store: Optional[DocumentStore] = None) -> None:
        self._store = store or get_store()

    def _verification_ttl(self) -> int:
        return settings.VERIFICATION_CODE_TTL_MINUTES

    def _reset_ttl(self) -> int:
        return settings.PASSWORD_RESET_TTL_MINUTES

    def _email_taken(self, email: str) -> bool:
        return self._store.find_one(USER_COLLECTION, {"email": email}) is not None

    def _create_user(self, data: Dict[str, str], *, role: str, verified: bool) -> Dict[str, Any]:
        if self._email_taken(data["email"]):
            raise ValidationError({"email": ["User already exists"]})

        token = None if verified else generate_otp()
        document = build_user_document(
            name=data["name"],
            email=data["email"],
            password=make_password(data["password"]),
            role=role,
            is_verified=verified,
            verification_token=token,
            verification_expires_at=None if verified else expires_in(minutes=self._verification_ttl()),
        )
        document["_id"] = self._store.insert_one(USER_COLLECTION, document)
        return document

    @track_service_operation("auth.signup")
    def signup(self, name: str, email: str, password: str) -> SignupResult:
        data = clean_form(SignupForm(data={"name": name, "email": email, "password": password}))
        document = self._create_user(data, role=ROLE_USER, verified=False)
        logger.info("User %s signed up", document["_id"])
        return SignupResult(
            success=True,
            message="Account created successfully! Please check your email for verification.",
            user=public_user(document),
            verification_token=document["verificationToken"],
        )

    @track_service_operation("auth.create_admin")
    def create_admin(self, name: str, email: str, password: str) -> Dict[str, Any]:
        """Verified admin account, used to bootstrap a fresh deployment."""
        data = clean_form(SignupForm(data={"name": name, "email": email, "password": password}))
        document = self._create_user(data, role=ROLE_ADMIN, verified=True)
        logger.info("Admin %s created", document["_id"])
        return public_user(document)

    @track_service_operation("auth.login")
    def login(self, email: str, password: str) -> LoginResult:
        data = clean_form(LoginForm(data={"email": email, "password": password}))

        user = self._store.find_one(USER_COLLECTION, {"email": data["email"]})
        if user is None or not check_password(data["password"], user.get("password") or ""):
            raise PermissionDenied("Invalid credentials")
        if user.get("isActive") is False:
            raise PermissionDenied("Account has been deactivated")

        if not user.get("isVerified"):
            token = generate_otp()
            self._store.update_one(
                USER_COLLECTION,
                {"_id": user["_id"]},
                Patch(
                    verificationToken=token,
                    verificationTokenExpiresAt=expires_in(minutes=self._verification_ttl()),
                ),
            )
            return LoginResult(
                success=False,
                message="Please verify your email. A new verification code has been sent.",
                user=public_user(user),
                require_verification=True,
                verification_token=token,
            )

        return LoginResult(success=True, message="Login successful", user=public_user(user))

    @track_service_operation("auth.verify_email")
    def verify_email(self, email: str, token: str) -> Dict[str, Any]:
        data = clean_form(VerifyEmailForm(data={"email": email, "token": token}))

        user = self._store.find_one(
            USER_COLLECTION,
            {
                "email": data["email"],
                "verificationToken": data["token"],
                "verificationTokenExpiresAt": {"$gt": utcnow()},
            },
        )
        if user is None:
            raise ValidationError("Invalid or expired verification token")

        self._store.update_one(
            USER_COLLECTION,
            {"_id": user["_id"]},
            Patch(isVerified=True).unset("verificationToken").unset("verificationTokenExpiresAt"),
        )
        user["isVerified"] = True
        return public_user(user)

    @track_service_operation("auth.request_password_reset")
    def request_password_reset(self, email: str) -> PasswordResetRequest:
        data = clean_form(PasswordResetRequestForm(data={"email": email}))

        user = self._store.find_one(USER_COLLECTION, active_only({"email": data["email"]}))
        if user is None:
            raise ObjectDoesNotExist("User not found")

        token = generate_otp()
        self._store.update_one(
            USER_COLLECTION,
            {"_id": user["_id"]},
            Patch(resetPasswordToken=token, resetPasswordExpiresAt=expires_in(minutes=self._reset_ttl())),
        )
        return PasswordResetRequest(
            success=True,
            message="Password reset email sent successfully",
            reset_token=token,
        )

    @track_service_operation("auth.reset_password")
    def reset_password(self, email: str, token: str, new_password: str) -> ActionResult:
        data = clean_form(ResetPasswordForm(data={"email": email, "token": token, "new_password": new_password}))

        user = self._store.find_one(
            USER_COLLECTION,
            {
                "email": data["email"],
                "resetPasswordToken": data["token"],
                "resetPasswordExpiresAt": {"$gt": utcnow()},
            },
        )
        if user is None:
            raise ValidationError("Invalid or expired reset token")

        self._store.update_one(
            USER_COLLECTION,
            {"_id": user["_id"]},
            Patch(password=make_password(data["new_password"]))
            .unset("resetPasswordToken")
            .unset("resetPasswordExpiresAt"),
        )
        return ActionResult(success=True, message="Password reset successfully")

    @track_service_operation("auth.get_all_users")
    def get_all_users(self) -> List[Dict[str, Any]]:
        return self._store.find(
            USER_COLLECTION,
            active_only(),
            sort=[("createdAt", -1)],
            projection=PUBLIC_PROJECTION,
        )

    def get_user_by_id(self, user_id) -> Optional[Dict[str, Any]]:
        try:
            oid = as_object_id(user_id)
        except InvalidId:
            return None
        return self._store.find_one(USER_COLLECTION, active_only({"_id": oid}), PUBLIC_PROJECTION)

    def require_user(self, user_id, *, verified: bool = False) -> Dict[str, Any]:
        user = self.get_user_by_id(user_id)
        if user is None:
            raise PermissionDenied("Unauthorized")
        if verified and not user.get("isVerified"):
            raise PermissionDenied("Email not verified")
        return user

    def require_admin(self, user_id) -> Dict[str, Any]:
        user = self.require_user(user_id)
        if user.get("role") != ROLE_ADMIN:
            raise PermissionDenied("Admin access required")
        return user
