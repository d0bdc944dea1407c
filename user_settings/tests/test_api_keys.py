from django.contrib.auth.hashers import check_password
from django.core.exceptions import PermissionDenied, ValidationError
from django.test import SimpleTestCase

from authentication.documents import USER_COLLECTION
from datastore.tests.helpers import add_user, memory_store
from user_settings.services.api_keys import MASKED_KEY, ApiKeyService, masked


class ApiKeyServiceTestCase(SimpleTestCase):

    def setUp(self):
        self.store = memory_store()
        self.admin = add_user(self.store, email="admin@example.com", role="admin")
        self.user = add_user(self.store, email="user@example.com")
        self.service = ApiKeyService(self.store)

    def stored_keys(self):
        return self.store.find_one(USER_COLLECTION, {"_id": self.admin["_id"]}).get("apiKeys")

    def test_non_admin_is_rejected(self):
        with self.assertRaisesMessage(PermissionDenied, "You are not authorized to save API keys"):
            self.service.save(self.user["_id"], {"openai": "sk-1"})
        with self.assertRaisesMessage(PermissionDenied, "You are not authorized to get API keys"):
            self.service.get(self.user["_id"])

    def test_save_hashes_keys(self):
        result = self.service.save(self.admin["_id"], {"openai": "sk-openai", "claude": "  "})

        self.assertTrue(result.success)
        self.assertTrue(result.has_api_keys)
        keys = self.stored_keys()
        self.assertEqual(set(keys), {"openai"})
        self.assertNotEqual(keys["openai"], "sk-openai")
        self.assertTrue(check_password("sk-openai", keys["openai"]))

    def test_save_requires_keys(self):
        with self.assertRaises(ValidationError):
            self.service.save(self.admin["_id"], {})

    def test_unknown_provider_rejected(self):
        with self.assertRaises(ValidationError) as cm:
            self.service.save(self.admin["_id"], {"mistral": "key"})
        self.assertIn("apiKeys", cm.exception.message_dict)

    def test_get_masks_keys(self):
        self.service.save(self.admin["_id"], {"gemini": "g-key"})

        self.assertEqual(
            self.service.get(self.admin["_id"]),
            {"openai": "", "claude": "", "gemini": MASKED_KEY, "llama": ""},
        )

    def test_update_merges_keys(self):
        self.service.save(self.admin["_id"], {"openai": "sk-old", "claude": "c-old"})
        old_openai = self.stored_keys()["openai"]

        result = self.service.update(self.admin["_id"], {
            "openai": MASKED_KEY,
            "claude": "",
            "llama": "l-new",
        })

        self.assertTrue(result.success)
        keys = self.stored_keys()
        self.assertEqual(set(keys), {"openai", "llama"})
        self.assertEqual(keys["openai"], old_openai)
        self.assertTrue(check_password("l-new", keys["llama"]))

    def test_update_removing_everything(self):
        self.service.save(self.admin["_id"], {"openai": "sk-old"})
        result = self.service.update(self.admin["_id"], {"openai": ""})
        self.assertFalse(result.has_api_keys)
        self.assertEqual(self.stored_keys(), {})

    def test_masked_helper(self):
        self.assertEqual(masked(None), {provider: "" for provider in ("openai", "claude", "gemini", "llama")})
