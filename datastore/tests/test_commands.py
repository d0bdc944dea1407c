from io import StringIO
from unittest.mock import MagicMock, patch

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase

from datastore.management.commands.ensure_indexes import INDEXES

from .helpers import memory_store


class CheckDatastoreCommandTestCase(SimpleTestCase):

    @patch("datastore.management.commands.check_datastore.get_default_context")
    def test_healthy(self, get_context):
        get_context.return_value.health.return_value = {
            "status": "healthy", "message": "Database connection is working",
        }
        out = StringIO()
        call_command("check_datastore", stdout=out)
        self.assertIn("Database connection is working", out.getvalue())

    @patch("datastore.management.commands.check_datastore.get_default_context")
    def test_unhealthy_raises_command_error(self, get_context):
        get_context.return_value.health.return_value = {"status": "unhealthy", "message": "no servers"}
        with self.assertRaisesMessage(CommandError, "no servers"):
            call_command("check_datastore", stdout=StringIO())


class EnsureIndexesCommandTestCase(SimpleTestCase):

    def test_creates_every_index(self):
        store = memory_store()
        out = StringIO()
        with patch("datastore.management.commands.ensure_indexes.get_store", return_value=store):
            call_command("ensure_indexes", stdout=out)

        self.assertIn(f"Ensured {len(INDEXES)} indexes", out.getvalue())
        user_indexes = store.collection("users").index_information()
        self.assertTrue(user_indexes["email_1"]["unique"])

    def test_unique_email_index_is_declared(self):
        store = MagicMock()
        with patch("datastore.management.commands.ensure_indexes.get_store", return_value=store):
            call_command("ensure_indexes", stdout=StringIO())
        store.create_index.assert_any_call("users", [("email", 1)], unique=True)
