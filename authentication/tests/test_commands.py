from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase

from authentication.documents import USER_COLLECTION
from authentication.services import AuthService
from datastore.tests.helpers import memory_store


class CreateAdminCommandTestCase(SimpleTestCase):

    def setUp(self):
        self.store = memory_store()
        patcher = patch(
            "authentication.management.commands.create_admin.AuthService",
            side_effect=lambda: AuthService(self.store),
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_creates_verified_admin(self):
        out = StringIO()
        call_command("create_admin", name="Root", email="root@example.com", password="secret1", stdout=out)

        self.assertIn("root@example.com", out.getvalue())
        admin = self.store.find_one(USER_COLLECTION, {"email": "root@example.com"})
        self.assertEqual(admin["role"], "admin")
        self.assertTrue(admin["isVerified"])

    def test_invalid_input_is_a_command_error(self):
        with self.assertRaises(CommandError):
            call_command("create_admin", name="Root", email="bad", password="secret1", stdout=StringIO())
