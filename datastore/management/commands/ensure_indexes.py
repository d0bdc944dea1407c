from django.core.management.base import BaseCommand

from datastore.access import get_store
from authentication.documents import USER_COLLECTION
from conversations.documents import CONVERSATION_COLLECTION
from custom_gpts.documents import CUSTOMGPT_COLLECTION
from team.documents import INVITATION_COLLECTION

INDEXES = [
    (USER_COLLECTION, [("email", 1)], {"unique": True}),
    (CUSTOMGPT_COLLECTION, [("createdBy", 1), ("isActive", 1), ("createdAt", -1)], {}),
    (CUSTOMGPT_COLLECTION, [("assignedUsers", 1)], {}),
    (CONVERSATION_COLLECTION, [("userId", 1), ("isActive", 1), ("updatedAt", -1)], {}),
    (INVITATION_COLLECTION, [("token", 1)], {}),
    (INVITATION_COLLECTION, [("email", 1), ("status", 1)], {}),
]


class Command(BaseCommand):
    help = "Create the indexes the services rely on (unique user email, lookup indexes)."

    def handle(self, *args, **options):
        store = get_store()
        for collection, keys, extra in INDEXES:
            name = store.create_index(collection, keys, **extra)
            self.stdout.write(f"{collection}: {name}")
        self.stdout.write(self.style.SUCCESS(f"Ensured {len(INDEXES)} indexes"))
