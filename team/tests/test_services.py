from datetime import timedelta
from unittest.mock import patch

from bson import ObjectId
from django.contrib.auth.hashers import check_password
from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.test import SimpleTestCase, override_settings

from authentication.documents import USER_COLLECTION
from custom_gpts.services import CustomGptService
from datastore.access import utcnow
from datastore.tests.helpers import add_user, memory_store
from team.documents import INVITATION_COLLECTION, invitation_link
from team.services import TeamService, invitation_token


class TeamTestBase(SimpleTestCase):

    def setUp(self):
        self.store = memory_store()
        self.gpts = CustomGptService(self.store)
        self.service = TeamService(self.store, gpts=self.gpts)
        self.admin = add_user(self.store, name="Admin", email="admin@example.com", role="admin")


@override_settings(APP_URL="https://app.example.com")
class InvitationTestCase(TeamTestBase):

    def test_invite(self):
        result = self.service.invite("New.Person@Example.com", "user", self.admin["_id"])

        self.assertTrue(result.success)
        self.assertEqual(len(result.token), 12)
        self.assertTrue(result.token.isdigit())
        self.assertEqual(
            result.link,
            f"https://app.example.com/accept-invitation?token={result.token}&email=new.person%40example.com",
        )
        invitation = self.store.find_one(INVITATION_COLLECTION, {"_id": result.invitation_id})
        self.assertEqual(invitation["status"], "pending")
        self.assertEqual(invitation["invitedBy"], self.admin["_id"])
        self.assertGreater(invitation["expiresAt"], utcnow() + timedelta(days=6, hours=23))

    def test_invite_existing_user(self):
        add_user(self.store, email="taken@example.com")
        with self.assertRaises(ValidationError) as cm:
            self.service.invite("taken@example.com", "user", self.admin["_id"])
        self.assertEqual(cm.exception.message_dict["email"], ["User with this email already exists"])

    def test_invite_twice(self):
        self.service.invite("new@example.com", "user", self.admin["_id"])
        with self.assertRaises(ValidationError) as cm:
            self.service.invite("new@example.com", "admin", self.admin["_id"])
        self.assertEqual(cm.exception.message_dict["email"], ["An active invitation already exists for this email"])

    def test_expired_invitation_does_not_block_a_new_one(self):
        self.service.invite("new@example.com", "user", self.admin["_id"])
        with patch("team.services.utcnow", return_value=utcnow() + timedelta(days=8)):
            self.service.invite("new@example.com", "user", self.admin["_id"])
        self.assertEqual(self.store.count_documents(INVITATION_COLLECTION, {"email": "new@example.com"}), 2)

    def test_invite_rejects_unknown_role(self):
        with self.assertRaises(ValidationError) as cm:
            self.service.invite("new@example.com", "owner", self.admin["_id"])
        self.assertIn("role", cm.exception.message_dict)

    def test_accept(self):
        invitation = self.service.invite("new@example.com", "admin", self.admin["_id"])

        user = self.service.accept(invitation.token, "new@example.com", "New Person", "secret1")

        self.assertEqual(user["role"], "admin")
        self.assertTrue(user["isVerified"])
        self.assertNotIn("password", user)
        stored = self.store.find_one(USER_COLLECTION, {"email": "new@example.com"})
        self.assertTrue(check_password("secret1", stored["password"]))
        self.assertEqual(
            self.store.find_one(INVITATION_COLLECTION, {"_id": invitation.invitation_id})["status"],
            "accepted",
        )
        self.assertEqual(self.service.pending_invitations(), [])

    def test_accept_twice_or_with_wrong_token(self):
        invitation = self.service.invite("new@example.com", "user", self.admin["_id"])
        with self.assertRaisesMessage(ValidationError, "Invalid or expired invitation"):
            self.service.accept("000000000000", "new@example.com", "New Person", "secret1")
        self.service.accept(invitation.token, "new@example.com", "New Person", "secret1")
        with self.assertRaisesMessage(ValidationError, "Invalid or expired invitation"):
            self.service.accept(invitation.token, "new@example.com", "New Person", "secret1")

    def test_accept_expired(self):
        invitation = self.service.invite("new@example.com", "user", self.admin["_id"])
        with patch("team.services.utcnow", return_value=utcnow() + timedelta(days=8)):
            with self.assertRaises(ValidationError):
                self.service.accept(invitation.token, "new@example.com", "New Person", "secret1")

    def test_pending_invitations(self):
        self.service.invite("a@example.com", "user", self.admin["_id"])
        self.service.invite("b@example.com", "user", self.admin["_id"])
        self.assertEqual({i["email"] for i in self.service.pending_invitations()}, {"a@example.com", "b@example.com"})

    def test_stale_invitations_are_marked_expired(self):
        stale = self.service.invite("old@example.com", "user", self.admin["_id"])
        fresh = self.service.invite("new@example.com", "user", self.admin["_id"])
        self.store.update_one(
            INVITATION_COLLECTION,
            {"_id": stale.invitation_id},
            {"expiresAt": utcnow() - timedelta(minutes=1)},
        )

        pending = self.service.pending_invitations()

        self.assertEqual([i["email"] for i in pending], ["new@example.com"])
        self.assertEqual(self.store.find_one(INVITATION_COLLECTION, {"_id": stale.invitation_id})["status"], "expired")
        self.assertEqual(self.store.find_one(INVITATION_COLLECTION, {"_id": fresh.invitation_id})["status"], "pending")

    def test_accepting_a_stale_invitation_expires_it(self):
        invitation = self.service.invite("new@example.com", "user", self.admin["_id"])
        with patch("team.services.utcnow", return_value=utcnow() + timedelta(days=8)):
            with self.assertRaisesMessage(ValidationError, "Invalid or expired invitation"):
                self.service.accept(invitation.token, "new@example.com", "New Person", "secret1")
        self.assertEqual(
            self.store.find_one(INVITATION_COLLECTION, {"_id": invitation.invitation_id})["status"],
            "expired",
        )


class MemberTestCase(TeamTestBase):

    def setUp(self):
        super().setUp()
        self.member = add_user(self.store, name="Member", email="member@example.com")

    def test_list_members(self):
        add_user(self.store, email="gone@example.com", isActive=False)
        self.assertEqual(
            {m["email"] for m in self.service.list_members()},
            {"admin@example.com", "member@example.com"},
        )

    def test_update_permissions(self):
        updated = self.service.update_permissions(self.member["_id"], {"role": "admin", "isActive": False})
        self.assertEqual(updated["role"], "admin")
        self.assertFalse(updated["isActive"])
        self.assertNotIn("password", updated)

        reactivated = self.service.update_permissions(self.member["_id"], {"isActive": True})
        self.assertTrue(reactivated["isActive"])
        self.assertEqual(reactivated["role"], "admin")

    def test_update_permissions_rejects_other_fields(self):
        with self.assertRaises(ValidationError):
            self.service.update_permissions(self.member["_id"], {"email": "x@example.com"})
        with self.assertRaises(ValidationError):
            self.service.update_permissions(self.member["_id"], {"role": "owner"})
        stored = self.store.find_one(USER_COLLECTION, {"_id": self.member["_id"]})
        self.assertEqual((stored["email"], stored["role"]), ("member@example.com", "user"))

    def test_update_permissions_unknown_member(self):
        with self.assertRaises(ObjectDoesNotExist):
            self.service.update_permissions(ObjectId(), {"role": "admin"})
        with self.assertRaises(ValidationError):
            self.service.update_permissions("null", {"role": "admin"})

    def test_remove_member(self):
        self.store.insert_one(INVITATION_COLLECTION, {"email": "member@example.com", "status": "accepted"})

        result = self.service.remove_member(self.member["_id"])

        self.assertTrue(result.success)
        stored = self.store.find_one(USER_COLLECTION, {"_id": self.member["_id"]})
        self.assertFalse(stored["isActive"])
        self.assertIsNotNone(stored["deletedAt"])
        self.assertEqual(self.store.count_documents(INVITATION_COLLECTION, {"email": "member@example.com"}), 0)
        with self.assertRaises(ObjectDoesNotExist):
            self.service.remove_member(self.member["_id"])

    def test_set_member_gpts(self):
        payload = {"description": "Useful assistant here.", "instructions": "Always be helpful please."}
        one = self.gpts.create({"name": "One", **payload}, self.admin["_id"])
        two = self.gpts.create({"name": "Two", **payload}, self.admin["_id"])
        self.gpts.assign_to_user(self.member["_id"], [one["_id"]], self.admin["_id"])

        result = self.service.set_member_gpts(self.member["_id"], [two["_id"]], self.admin["_id"])

        self.assertEqual((result.added, result.removed), (1, 1))
        self.assertEqual([g["name"] for g in self.gpts.list_assigned(self.member["_id"])], ["Two"])

    def test_set_member_gpts_for_unknown_member(self):
        with self.assertRaises(ObjectDoesNotExist):
            self.service.set_member_gpts("undefined", [], self.admin["_id"])

    def test_member_details(self):
        payload = {"name": "Solo", "description": "Useful assistant here.", "instructions": "Always be helpful please."}
        gpt = self.gpts.create(payload, self.admin["_id"])
        self.gpts.assign_to_user(self.member["_id"], [gpt["_id"]], self.admin["_id"])

        details = self.service.member_details(self.member["_id"])

        self.assertEqual(details["member"]["email"], "member@example.com")
        self.assertEqual([g["name"] for g in details["assignedGpts"]], ["Solo"])
        self.assertEqual(details["conversations"], [])


class HelpersTestCase(SimpleTestCase):

    def test_invitation_token_shape(self):
        token = invitation_token()
        self.assertEqual(len(token), 12)
        self.assertTrue(token.isdigit())

    @override_settings(APP_URL="http://localhost:5173/")
    def test_invitation_link_encodes_email(self):
        self.assertEqual(
            invitation_link("123", "a+b@example.com"),
            "http://localhost:5173/accept-invitation?token=123&email=a%2Bb%40example.com",
        )
