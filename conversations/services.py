# conversations/services.py
"""
Conversation history between a user and one of their GPTs.

Messages are appended with $push so two writers never lose each other's
message. No assistant reply is produced here; callers add both sides.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

from bson.errors import InvalidId
from django.core.exceptions import ObjectDoesNotExist

from authentication.services import user_object_id
from custom_gpts.documents import CUSTOMGPT_COLLECTION
from custom_gpts.services import CustomGptService
from datastore.access import DocumentStore, active_only, as_object_id, get_store, utcnow
from datastore.patch import PUSH
from utils import clean_serializer, track_service_operation

from .documents import (
    CONVERSATION_COLLECTION,
    GPT_SUMMARY_PROJECTION,
    ROLE_USER,
    build_conversation_document,
    build_message,
    conversation_summary,
)
from .serializers import MessageSerializer

logger = logging.getLogger(__name__)

Message = Union[str, Mapping[str, Any]]


@dataclass(frozen=True)
class ActionResult:
    success: bool
    message: str


def conversation_object_id(conversation_id):
    try:
        return as_object_id(conversation_id)
    except InvalidId:
        raise ObjectDoesNotExist("Conversation not found or access denied")


class ConversationService:
    def __init__(self, store: Optional[DocumentStore] = None, gpts: Optional[CustomGptService] = None) -> None:
        self._store = store or get_store()
        self._gpts = gpts or CustomGptService(self._store)

    def _message(self, role: str, content: str) -> Dict[str, Any]:
        validated = clean_serializer(MessageSerializer(data={"role": role, "content": content}))
        return build_message(validated["role"], validated["content"], utcnow())

    @track_service_operation("conversation.create")
    def create(self, user_id, gpt_id, initial_message: Optional[Message] = None) -> Dict[str, Any]:
        """
        Start a conversation with a GPT the user can read.

        ``initial_message`` is either plain text (a user message) or a
        ``{"role", "content"}`` mapping.
        """
        uid = user_object_id(user_id)
        gpt = self._gpts.get(gpt_id, uid)

        messages = []
        if initial_message is not None:
            if isinstance(initial_message, str):
                messages.append(self._message(ROLE_USER, initial_message))
            else:
                messages.append(self._message(initial_message.get("role"), initial_message.get("content")))

        inserted_id = self._store.insert_one(
            CONVERSATION_COLLECTION,
            build_conversation_document(uid, gpt, messages),
        )
        logger.info("Conversation %s started with GPT %s", inserted_id, gpt["_id"])
        return self._store.find_one(CONVERSATION_COLLECTION, {"_id": inserted_id})

    def get(self, conversation_id, user_id) -> Dict[str, Any]:
        conversation = self._store.find_one(
            CONVERSATION_COLLECTION,
            active_only({
                "_id": conversation_object_id(conversation_id),
                "userId": user_object_id(user_id),
            }),
        )
        if conversation is None:
            raise ObjectDoesNotExist("Conversation not found or access denied")
        return conversation

    @track_service_operation("conversation.add_message")
    def add_message(self, conversation_id, user_id, role: str, content: str) -> Dict[str, Any]:
        conversation = self.get(conversation_id, user_id)
        message = self._message(role, content)

        # operator and plain fields together; the access layer moves the plain ones under $set
        update = {PUSH: {"messages": message}, "lastMessage": message["content"]}
        if role == ROLE_USER and not conversation.get("summary"):
            update["summary"] = conversation_summary(message["content"])

        self._store.update_one(CONVERSATION_COLLECTION, {"_id": conversation["_id"]}, update)
        return self._store.find_one(CONVERSATION_COLLECTION, {"_id": conversation["_id"]})

    @track_service_operation("conversation.history")
    def history(self, user_id) -> List[Dict[str, Any]]:
        """Active conversations, most recently updated first, each with ``gpt`` = {name, model, imageUrl}."""
        conversations = self._store.find(
            CONVERSATION_COLLECTION,
            active_only({"userId": user_object_id(user_id)}),
            sort=[("updatedAt", -1)],
        )
        gpt_ids = list({c["gptId"] for c in conversations})
        gpts = {}
        if gpt_ids:
            gpts = {
                gpt["_id"]: gpt
                for gpt in self._store.find(
                    CUSTOMGPT_COLLECTION,
                    {"_id": {"$in": gpt_ids}},
                    projection=GPT_SUMMARY_PROJECTION,
                )
            }
        for conversation in conversations:
            conversation["gpt"] = gpts.get(conversation["gptId"])
        return conversations

    @track_service_operation("conversation.delete")
    def delete(self, user_id, conversation_id) -> ActionResult:
        conversation = self.get(conversation_id, user_id)
        self._store.soft_delete(CONVERSATION_COLLECTION, {"_id": conversation["_id"]})
        return ActionResult(success=True, message="Conversation deleted successfully")
