# datastore/connection.py
"""
Connection Manager.

A DataStoreContext owns one MongoClient and the database handle it serves.
The handle is created on the first ``connect()`` and reused afterwards, so
requests share the client's internal pool instead of reconnecting.

The module keeps a process-wide default context for code that does not
inject its own; ``reset_connection()`` drops it.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import urlsplit

from django.conf import settings
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import ConfigurationError as DriverConfigurationError
from pymongo.errors import PyMongoError

from .errors import ConfigurationError, DatabaseConnectionError

logger = logging.getLogger(__name__)

SCHEMES = ("mongodb://", "mongodb+srv://")
DEFAULT_DB_NAME = "customgpt"

DEFAULT_OPTIONS = {
    "maxPoolSize": 10,
    "minPoolSize": 0,
    "serverSelectionTimeoutMS": 10000,
    "connectTimeoutMS": 10000,
    "socketTimeoutMS": 20000,
    "maxIdleTimeMS": 30000,
}

# settings.DATASTORE key -> MongoClient keyword
SETTINGS_OPTION_KEYS = {
    "MAX_POOL_SIZE": "maxPoolSize",
    "MIN_POOL_SIZE": "minPoolSize",
    "SERVER_SELECTION_TIMEOUT_MS": "serverSelectionTimeoutMS",
    "CONNECT_TIMEOUT_MS": "connectTimeoutMS",
    "SOCKET_TIMEOUT_MS": "socketTimeoutMS",
    "MAX_IDLE_TIME_MS": "maxIdleTimeMS",
}


def validate_uri(uri: Optional[str]) -> str:
    if not uri or not str(uri).strip():
        raise ConfigurationError("MONGODB_URI is not set")
    uri = str(uri).strip()
    if not uri.startswith(SCHEMES):
        raise ConfigurationError(
            f"Unsupported connection string scheme; expected one of {', '.join(SCHEMES)}"
        )
    if not uri.split("://", 1)[1].split("/", 1)[0]:
        raise ConfigurationError("Connection string has no host")
    return uri


def database_name_from_uri(uri: str) -> Optional[str]:
    """'mongodb://host/app?x=1' -> 'app'. None when the URI has no path."""
    try:
        path = urlsplit(uri.replace("mongodb+srv://", "mongodb://", 1)).path
    except ValueError:
        logger.warning("Could not extract database name from connection string")
        return None
    name = path.lstrip("/").split("?")[0]
    return name or None


class DataStoreContext:
    """
    Lazily connected, cached database handle.

    Pass one of these to a DocumentStore (or to the services built on it)
    to control exactly which client a piece of code talks to. Tests use a
    fresh context, or a client_factory that returns a fake client.
    """

    def __init__(
        self,
        uri: Optional[str],
        name: Optional[str] = None,
        *,
        client_factory: Optional[Callable[..., Any]] = None,
        **options,
    ):
        self.uri = uri
        self.name = name
        self.options = {**DEFAULT_OPTIONS, **options}
        self._client_factory = client_factory or MongoClient
        self._client = None
        self._db: Optional[Database] = None
        self._lock = threading.Lock()
        self.connections_opened = 0

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **kwargs) -> "DataStoreContext":
        options = {
            client_key: config[settings_key]
            for settings_key, client_key in SETTINGS_OPTION_KEYS.items()
            if config.get(settings_key) is not None
        }
        options.update(kwargs)
        return cls(config.get("URI"), config.get("NAME"), **options)

    @property
    def connected(self) -> bool:
        return self._db is not None

    @property
    def client(self):
        return self._client

    def connect(self) -> Database:
        if self._db is not None:
            return self._db

        with self._lock:
            if self._db is not None:
                return self._db

            uri = validate_uri(self.uri)
            db_name = self.name or database_name_from_uri(uri) or DEFAULT_DB_NAME

            try:
                client = self._client_factory(uri, **self.options)
            except DriverConfigurationError as exc:
                raise ConfigurationError(str(exc)) from exc
            self.connections_opened += 1
            db = client[db_name]
            try:
                db.command("ping")
            except PyMongoError as exc:
                logger.error("MongoDB ping failed for database %s: %s", db_name, exc)
                client.close()
                raise DatabaseConnectionError(f"Database connection failed: {exc}") from exc

            logger.info("MongoDB connected (database=%s)", db_name)
            self._client = client
            self._db = db
            return db

    def health(self) -> Dict[str, str]:
        try:
            db = self.connect()
            db.command("ping")
        except (ConfigurationError, DatabaseConnectionError, PyMongoError) as exc:
            return {"status": "unhealthy", "message": str(exc)}
        return {"status": "healthy", "message": "Database connection is working"}

    def close(self) -> None:
        with self._lock:
            client, self._client, self._db = self._client, None, None
        if client is not None:
            client.close()
            logger.info("MongoDB connection closed")

    reset = close


_default_context: Optional[DataStoreContext] = None
_default_lock = threading.Lock()


def get_default_context(config: Optional[Mapping[str, Any]] = None) -> DataStoreContext:
    global _default_context
    if _default_context is None:
        with _default_lock:
            if _default_context is None:
                _default_context = DataStoreContext.from_config(
                    config if config is not None else settings.DATASTORE
                )
    return _default_context


def connect(config: Optional[Mapping[str, Any]] = None) -> Database:
    """
    Return the process-wide database handle, opening it on first use.

    ``config`` is shaped like ``settings.DATASTORE`` and is only read when
    the default context does not exist yet.
    """
    return get_default_context(config).connect()


def reset_connection() -> None:
    global _default_context
    with _default_lock:
        context, _default_context = _default_context, None
    if context is not None:
        context.close()
