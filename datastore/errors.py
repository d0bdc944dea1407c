"""Error taxonomy for the document-store layer."""

from __future__ import annotations

import enum
from typing import Optional

from bson.errors import BSONError, InvalidDocument, InvalidId
from pymongo import errors as mongo_errors

DUPLICATE_KEY_CODES = {11000, 11001, 12582}
DOCUMENT_VALIDATION_CODE = 121


class ErrorKind(str, enum.Enum):
    DUPLICATE_KEY = "duplicate_key"
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    VALIDATION = "validation"
    OPERATION = "operation"


RETRYABLE_KINDS = frozenset({ErrorKind.TIMEOUT, ErrorKind.CONNECTION})


class DataStoreError(Exception):
    """Base class for everything raised by the datastore app."""


class ConfigurationError(DataStoreError):
    """Connection string is missing or malformed. Raised before any network I/O."""


class DatabaseConnectionError(DataStoreError):
    """The liveness check on a freshly opened client failed."""


class DataAccessError(DataStoreError):
    """
    A driver failure during a CRUD call.

    Keeps the original message and adds the collection, the operation name
    and an ErrorKind so callers can branch without string inspection.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.OPERATION,
        collection: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.collection = collection
        self.operation = operation

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    def __repr__(self):
        return (
            f"DataAccessError(kind={self.kind.value!r}, collection={self.collection!r}, "
            f"operation={self.operation!r}, message={self.message!r})"
        )


def _has_duplicate_key_write_error(exc: mongo_errors.BulkWriteError) -> bool:
    details = exc.details or {}
    return any(err.get("code") in DUPLICATE_KEY_CODES for err in details.get("writeErrors", []))


def classify(exc: BaseException) -> ErrorKind:
    """Map a driver exception onto the closed ErrorKind set."""
    # timeouts first: ServerSelectionTimeoutError and NetworkTimeout are also AutoReconnect
    if isinstance(exc, (
        mongo_errors.ServerSelectionTimeoutError,
        mongo_errors.NetworkTimeout,
        mongo_errors.ExecutionTimeout,
        mongo_errors.WTimeoutError,
    )):
        return ErrorKind.TIMEOUT
    if isinstance(exc, mongo_errors.DuplicateKeyError):
        return ErrorKind.DUPLICATE_KEY
    if isinstance(exc, mongo_errors.BulkWriteError) and _has_duplicate_key_write_error(exc):
        return ErrorKind.DUPLICATE_KEY
    if isinstance(exc, mongo_errors.ConnectionFailure):
        return ErrorKind.CONNECTION
    if isinstance(exc, (InvalidDocument, InvalidId, mongo_errors.InvalidOperation)):
        return ErrorKind.VALIDATION
    if isinstance(exc, mongo_errors.OperationFailure) and exc.code == DOCUMENT_VALIDATION_CODE:
        return ErrorKind.VALIDATION
    if isinstance(exc, mongo_errors.OperationFailure) and exc.code in DUPLICATE_KEY_CODES:
        return ErrorKind.DUPLICATE_KEY
    return ErrorKind.OPERATION


def wrap(exc: BaseException, *, collection: str, operation: str) -> DataAccessError:
    return DataAccessError(
        str(exc),
        kind=classify(exc),
        collection=collection,
        operation=operation,
    )


DRIVER_ERRORS = (mongo_errors.PyMongoError, BSONError)
