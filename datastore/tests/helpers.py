"""Shared fixtures for tests that run against an in-memory MongoDB."""

import mongomock
from django.contrib.auth.hashers import make_password

from authentication.documents import USER_COLLECTION, build_user_document
from datastore.access import DocumentStore


def memory_store():
    """DocumentStore over a fresh mongomock database."""
    return DocumentStore(database=mongomock.MongoClient().get_database("customgpt_test"))


def add_user(store, *, name="Test User", email="test@example.com", password="secret123",
             role="user", verified=True, **extra):
    document = build_user_document(
        name=name,
        email=email,
        password=make_password(password),
        role=role,
        is_verified=verified,
    )
    document.update(extra)
    document["_id"] = store.insert_one(USER_COLLECTION, document)
    return document
