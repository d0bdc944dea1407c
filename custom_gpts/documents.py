# custom_gpts/documents.py
"""Shape of documents in the ``customgpts`` collection."""

from typing import Any, Dict, Mapping

CUSTOMGPT_COLLECTION = "customgpts"

DEFAULT_MODEL = "openrouter/auto"

# populated user references carry only these
USER_SUMMARY_PROJECTION = {"name": 1, "email": 1}


def default_capabilities() -> Dict[str, bool]:
    return {"webBrowsing": False}


def knowledge_file(file_name: str, file_url: str, uploaded_at) -> Dict[str, Any]:
    return {"fileName": file_name, "fileUrl": file_url, "uploadedAt": uploaded_at}


def build_gpt_document(data: Mapping[str, Any], created_by) -> Dict[str, Any]:
    """New GPT document from validated serializer data."""
    return {
        "name": data["name"],
        "description": data["description"],
        "instructions": data["instructions"],
        "conversationStarter": data.get("conversationStarter") or "",
        "model": data.get("model") or DEFAULT_MODEL,
        "capabilities": dict(data.get("capabilities") or default_capabilities()),
        "imageUrl": data.get("imageUrl") or "",
        "knowledgeBase": list(data.get("knowledgeBase") or []),
        "folder": data.get("folder") or None,
        "createdBy": created_by,
        "assignedUsers": [],
        "isActive": True,
    }
