# conversations/documents.py
"""Shape of documents in the ``conversations`` collection."""

import re
from typing import Any, Dict, List, Optional

CONVERSATION_COLLECTION = "conversations"

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
MESSAGE_ROLES = (ROLE_USER, ROLE_ASSISTANT)

GPT_SUMMARY_PROJECTION = {"name": 1, "model": 1, "imageUrl": 1}

SUMMARY_WORDS = 6
SUMMARY_MAX_CHARS = 117
MARKDOWN_MARKS = re.compile(r"[*_`#>]+")


def conversation_summary(text: Optional[str], words: int = SUMMARY_WORDS) -> str:
    """Title for a conversation: the opening words of ``text`` with markdown removed."""
    title = " ".join(MARKDOWN_MARKS.sub("", text or "").split()[:words])
    if len(title) > SUMMARY_MAX_CHARS:
        return title[:SUMMARY_MAX_CHARS - 1] + "…"
    return title


def build_message(role: str, content: str, timestamp) -> Dict[str, Any]:
    return {"role": role, "content": content, "timestamp": timestamp}


def build_conversation_document(user_id, gpt: Dict[str, Any], messages: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    messages = list(messages or [])
    opening = next((m["content"] for m in messages if m["role"] == ROLE_USER), "")
    return {
        "userId": user_id,
        "gptId": gpt["_id"],
        "gptName": gpt["name"],
        "model": gpt.get("model") or "",
        "messages": messages,
        "lastMessage": messages[-1]["content"] if messages else "",
        "summary": conversation_summary(opening),
        "isActive": True,
        "deletedAt": None,
    }
