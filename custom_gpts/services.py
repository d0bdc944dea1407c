# custom_gpts/services.py
"""
Custom GPT management.

GPTs are owned by the admin who created them (``createdBy``) and shared with
members through ``assignedUsers``. Assignment changes are set operations
($addToSet / $pull) so concurrent edits of the same GPT never clobber each
other. Deleting a GPT only marks it inactive; every read filters those out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from bson.errors import InvalidId
from django.core.exceptions import ObjectDoesNotExist, ValidationError

from authentication.documents import USER_COLLECTION
from authentication.services import user_object_id
from datastore.access import DocumentStore, active_only, as_object_id, get_store, utcnow
from datastore.patch import Patch
from utils import clean_serializer, track_service_operation

from .documents import (
    CUSTOMGPT_COLLECTION,
    USER_SUMMARY_PROJECTION,
    build_gpt_document,
    knowledge_file,
)
from .serializers import CustomGptSerializer, KnowledgeFileSerializer

logger = logging.getLogger(__name__)

NEWEST_FIRST = [("createdAt", -1)]


@dataclass(frozen=True)
class ActionResult:
    success: bool
    message: str


@dataclass(frozen=True)
class AssignmentResult:
    """Value object describing an assign/unassign call."""

    message: str
    count: int


@dataclass(frozen=True)
class ReassignmentResult:
    """Value object describing a full replacement of a member's GPTs."""

    added: int
    removed: int

    @property
    def message(self) -> str:
        return f"Assigned {self.added} and removed {self.removed} GPTs"


def gpt_object_id(gpt_id):
    try:
        return as_object_id(gpt_id)
    except InvalidId:
        raise ObjectDoesNotExist("Custom GPT not found")


def _unique(values: Iterable) -> List:
    seen = set()
    ordered = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


def _plain(data) -> Dict[str, Any]:
    """Serializer output (OrderedDicts all the way down) as plain dicts."""
    result = {}
    for key, value in data.items():
        if key == "knowledgeBase":
            value = [dict(item) for item in value]
        elif key == "capabilities":
            value = dict(value)
        result[key] = value
    return result


class CustomGptService:
    """Coordinates GPT CRUD and member assignment over the ``customgpts`` collection."""

    def __init__(self, store: Optional[DocumentStore] = None) -> None:
        self._store = store or get_store()

    # helpers

    def _reload(self, gpt_oid) -> Dict[str, Any]:
        return self._store.find_one(CUSTOMGPT_COLLECTION, {"_id": gpt_oid})

    def _owned(self, gpt_id, owner) -> Dict[str, Any]:
        gpt = self._store.find_one(
            CUSTOMGPT_COLLECTION,
            active_only({"_id": gpt_object_id(gpt_id), "createdBy": owner}),
        )
        if gpt is None:
            raise ObjectDoesNotExist("Custom GPT not found")
        return gpt

    def _name_taken(self, name: str, owner, exclude=None) -> bool:
        query = active_only({"name": name, "createdBy": owner})
        if exclude is not None:
            query["_id"] = {"$ne": exclude}
        return self._store.find_one(CUSTOMGPT_COLLECTION, query) is not None

    def _stamp_files(self, files) -> List[Dict[str, Any]]:
        now = utcnow()
        return [knowledge_file(f["fileName"], f.get("fileUrl", ""), now) for f in files]

    def _owned_ids(self, gpt_ids, admin) -> List:
        if not isinstance(gpt_ids, (list, tuple, set)):
            raise ValidationError("GPT IDs must be a list")
        oids = _unique(gpt_object_id(gpt_id) for gpt_id in gpt_ids)
        found = self._store.count_documents(
            CUSTOMGPT_COLLECTION,
            active_only({"_id": {"$in": oids}, "createdBy": admin}),
        )
        if found != len(oids):
            raise ObjectDoesNotExist("Some GPTs not found or access denied")
        return oids

    # CRUD

    @track_service_operation("custom_gpt.create")
    def create(self, data: Dict[str, Any], user_id) -> Dict[str, Any]:
        owner = user_object_id(user_id)
        validated = _plain(clean_serializer(CustomGptSerializer(data=data)))

        if self._name_taken(validated["name"], owner):
            raise ValidationError({"name": ["Custom GPT with this name already exists"]})

        validated["knowledgeBase"] = self._stamp_files(validated.get("knowledgeBase") or [])
        inserted_id = self._store.insert_one(CUSTOMGPT_COLLECTION, build_gpt_document(validated, owner))
        logger.info("Custom GPT %s created by %s", inserted_id, owner)
        return self._reload(inserted_id)

    @track_service_operation("custom_gpt.list_for_owner")
    def list_for_owner(self, user_id) -> List[Dict[str, Any]]:
        return self._store.find(
            CUSTOMGPT_COLLECTION,
            active_only({"createdBy": user_object_id(user_id)}),
            sort=NEWEST_FIRST,
        )

    @track_service_operation("custom_gpt.list_assigned")
    def list_assigned(self, user_id) -> List[Dict[str, Any]]:
        return self._store.find(
            CUSTOMGPT_COLLECTION,
            active_only({"assignedUsers": user_object_id(user_id)}),
            sort=NEWEST_FIRST,
        )

    def get(self, gpt_id, user_id) -> Dict[str, Any]:
        """A GPT the user created or was assigned."""
        uid = user_object_id(user_id)
        gpt = self._store.find_one(
            CUSTOMGPT_COLLECTION,
            active_only({
                "_id": gpt_object_id(gpt_id),
                "$or": [{"createdBy": uid}, {"assignedUsers": uid}],
            }),
        )
        if gpt is None:
            raise ObjectDoesNotExist("Custom GPT not found or access denied")
        return gpt

    @track_service_operation("custom_gpt.update")
    def update(self, gpt_id, data: Dict[str, Any], user_id) -> Dict[str, Any]:
        owner = user_object_id(user_id)
        gpt = self._owned(gpt_id, owner)
        validated = _plain(clean_serializer(CustomGptSerializer(data=data, partial=True)))

        if "name" in validated and self._name_taken(validated["name"], owner, exclude=gpt["_id"]):
            raise ValidationError({"name": ["Custom GPT with this name already exists"]})
        if "knowledgeBase" in validated:
            validated["knowledgeBase"] = self._stamp_files(validated["knowledgeBase"])

        self._store.update_one(CUSTOMGPT_COLLECTION, {"_id": gpt["_id"]}, Patch.from_fields(validated))
        return self._reload(gpt["_id"])

    @track_service_operation("custom_gpt.move_to_folder")
    def move_to_folder(self, gpt_id, folder: Optional[str], user_id) -> Dict[str, Any]:
        gpt = self._owned(gpt_id, user_object_id(user_id))
        label = (folder or "").strip() or None
        self._store.update_one(CUSTOMGPT_COLLECTION, {"_id": gpt["_id"]}, {"folder": label})
        return self._reload(gpt["_id"])

    def list_folders(self, user_id) -> List[str]:
        gpts = self._store.find(
            CUSTOMGPT_COLLECTION,
            active_only({"createdBy": user_object_id(user_id), "folder": {"$ne": None}}),
            projection={"folder": 1},
        )
        return sorted({gpt["folder"] for gpt in gpts if gpt.get("folder")})

    @track_service_operation("custom_gpt.delete")
    def delete(self, gpt_id, user_id) -> ActionResult:
        gpt = self._owned(gpt_id, user_object_id(user_id))
        self._store.soft_delete(CUSTOMGPT_COLLECTION, {"_id": gpt["_id"]})
        logger.info("Custom GPT %s deleted", gpt["_id"])
        return ActionResult(success=True, message="Custom GPT deleted successfully")

    # knowledge base

    @track_service_operation("custom_gpt.add_knowledge_file")
    def add_knowledge_file(self, gpt_id, user_id, file_name: str, file_url: str = "") -> Dict[str, Any]:
        gpt = self._owned(gpt_id, user_object_id(user_id))
        validated = clean_serializer(KnowledgeFileSerializer(data={"fileName": file_name, "fileUrl": file_url}))
        entry = self._stamp_files([validated])[0]
        self._store.update_one(CUSTOMGPT_COLLECTION, {"_id": gpt["_id"]}, Patch().push("knowledgeBase", entry))
        return entry

    @track_service_operation("custom_gpt.remove_knowledge_file")
    def remove_knowledge_file(self, gpt_id, user_id, file_name: str) -> ActionResult:
        gpt = self._owned(gpt_id, user_object_id(user_id))
        if not any(f.get("fileName") == file_name for f in gpt.get("knowledgeBase") or []):
            raise ObjectDoesNotExist("Knowledge file not found")
        self._store.update_one(
            CUSTOMGPT_COLLECTION,
            {"_id": gpt["_id"]},
            Patch().pull("knowledgeBase", {"fileName": file_name}),
        )
        return ActionResult(success=True, message="Knowledge file removed")

    # assignment

    @track_service_operation("custom_gpt.assign_to_user")
    def assign_to_user(self, user_id, gpt_ids, admin_id) -> AssignmentResult:
        uid = user_object_id(user_id)
        admin = user_object_id(admin_id)
        oids = self._owned_ids(gpt_ids, admin)
        count = self._store.update_many(
            CUSTOMGPT_COLLECTION,
            active_only({"_id": {"$in": oids}, "createdBy": admin}),
            Patch().add_to_set("assignedUsers", uid),
        )
        return AssignmentResult(message=f"Successfully assigned {count} GPTs to user", count=count)

    @track_service_operation("custom_gpt.remove_from_user")
    def remove_from_user(self, user_id, gpt_ids, admin_id) -> AssignmentResult:
        uid = user_object_id(user_id)
        admin = user_object_id(admin_id)
        if not isinstance(gpt_ids, (list, tuple, set)):
            raise ValidationError("GPT IDs must be a list")
        oids = _unique(gpt_object_id(gpt_id) for gpt_id in gpt_ids)
        count = self._store.update_many(
            CUSTOMGPT_COLLECTION,
            active_only({"_id": {"$in": oids}, "createdBy": admin}),
            Patch().pull("assignedUsers", uid),
        )
        return AssignmentResult(message=f"Successfully removed {count} GPT assignments from user", count=count)

    @track_service_operation("custom_gpt.replace_assignments")
    def replace_assignments(self, user_id, gpt_ids, admin_id) -> ReassignmentResult:
        """
        Make ``gpt_ids`` the exact set of the admin's GPTs assigned to the user.

        Additions and removals go to the store as one ordered bulk write.
        """
        uid = user_object_id(user_id)
        admin = user_object_id(admin_id)
        if not gpt_ids:
            raise ValidationError("Please select at least one GPT")
        desired = self._owned_ids(gpt_ids, admin)

        current = {
            gpt["_id"]
            for gpt in self._store.find(
                CUSTOMGPT_COLLECTION,
                active_only({"createdBy": admin, "assignedUsers": uid}),
                projection={"_id": 1},
            )
        }
        to_add = [oid for oid in desired if oid not in current]
        to_remove = sorted(current.difference(desired))

        operations = []
        if to_add:
            operations.append((
                active_only({"_id": {"$in": to_add}, "createdBy": admin}),
                Patch().add_to_set("assignedUsers", uid),
                True,
            ))
        if to_remove:
            operations.append((
                active_only({"_id": {"$in": to_remove}, "createdBy": admin}),
                Patch().pull("assignedUsers", uid),
                True,
            ))
        self._store.bulk_update(CUSTOMGPT_COLLECTION, operations)
        return ReassignmentResult(added=len(to_add), removed=len(to_remove))

    # population

    def _user_summaries(self, user_ids) -> Dict[Any, Dict[str, Any]]:
        ids = _unique(user_ids)
        if not ids:
            return {}
        users = self._store.find(
            USER_COLLECTION,
            {"_id": {"$in": ids}},
            projection=USER_SUMMARY_PROJECTION,
        )
        return {user["_id"]: user for user in users}

    @track_service_operation("custom_gpt.with_assignments")
    def with_assignments(self, admin_id) -> List[Dict[str, Any]]:
        """Admin's GPTs with ``assignedUsers`` expanded to {_id, name, email}."""
        gpts = self.list_for_owner(admin_id)
        users = self._user_summaries(uid for gpt in gpts for uid in gpt.get("assignedUsers") or [])
        for gpt in gpts:
            gpt["assignedUsers"] = [users[uid] for uid in gpt.get("assignedUsers") or [] if uid in users]
        return gpts

    @track_service_operation("custom_gpt.assigned_details")
    def assigned_details(self, user_id) -> List[Dict[str, Any]]:
        """GPTs assigned to the user with ``createdBy`` expanded to {_id, name, email}."""
        gpts = self.list_assigned(user_id)
        creators = self._user_summaries(gpt["createdBy"] for gpt in gpts)
        for gpt in gpts:
            gpt["createdBy"] = creators.get(gpt["createdBy"])
        return gpts

    def count_assigned(self, user_id) -> int:
        return self._store.count_documents(
            CUSTOMGPT_COLLECTION,
            active_only({"assignedUsers": user_object_id(user_id)}),
        )
