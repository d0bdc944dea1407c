"""
Update documents for the access layer.

Callers either build an explicit ``Patch`` or hand over a raw mapping. Raw
mappings are normalised by ``normalize_update``:

- no operator keys (``{"folder": "Marketing"}``): every field goes under
  ``$set``;
- operator keys mixed with plain fields (``{"$push": {...}, "lastMessage": "hi"}``):
  plain fields move under ``$set``, operator keys pass through untouched;
- an existing ``$set`` keeps its fields.

In every case ``$set.updatedAt`` carries the call time.
"""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Any, Dict, Mapping, Union

OPERATOR_PREFIX = "$"
SET = "$set"
UNSET = "$unset"
ADD_TO_SET = "$addToSet"
PULL = "$pull"
PUSH = "$push"
INC = "$inc"
SET_ON_INSERT = "$setOnInsert"

UPDATED_AT = "updatedAt"
CREATED_AT = "createdAt"


def is_operator(key: str) -> bool:
    return isinstance(key, str) and key.startswith(OPERATOR_PREFIX)


class Patch:
    """
    Explicit builder for an update document.

        Patch().set("folder", "Marketing").unset("imageUrl")
        Patch().add_to_set("assignedUsers", user_id)

    Every method returns the patch so calls can be chained.
    """

    def __init__(self, **fields):
        self._ops: Dict[str, Dict[str, Any]] = {}
        for field, value in fields.items():
            self.set(field, value)

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any]) -> "Patch":
        patch = cls()
        for field, value in fields.items():
            patch.set(field, value)
        return patch

    def _op(self, operator: str) -> Dict[str, Any]:
        return self._ops.setdefault(operator, {})

    def set(self, field: str, value: Any) -> "Patch":
        self._op(SET)[field] = value
        return self

    def unset(self, field: str) -> "Patch":
        self._op(UNSET)[field] = ""
        return self

    def add_to_set(self, field: str, *values: Any) -> "Patch":
        if not values:
            raise ValueError("add_to_set needs at least one value")
        self._op(ADD_TO_SET)[field] = values[0] if len(values) == 1 else {"$each": list(values)}
        return self

    def pull(self, field: str, value: Any) -> "Patch":
        self._op(PULL)[field] = value
        return self

    def push(self, field: str, value: Any) -> "Patch":
        self._op(PUSH)[field] = value
        return self

    def inc(self, field: str, amount: Union[int, float] = 1) -> "Patch":
        self._op(INC)[field] = amount
        return self

    def to_update(self, now: datetime) -> Dict[str, Dict[str, Any]]:
        update = copy.deepcopy(self._ops)
        return _stamp(update, now)

    def __bool__(self):
        return any(self._ops.values())

    def __eq__(self, other):
        return isinstance(other, Patch) and self._ops == other._ops

    def __repr__(self):
        return f"Patch({self._ops!r})"


def _stamp(update: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    set_fields = dict(update.get(SET) or {})
    set_fields[UPDATED_AT] = now
    update[SET] = set_fields

    # $set and $unset on the same path is a write conflict
    unset_fields = update.get(UNSET)
    if isinstance(unset_fields, dict) and UPDATED_AT in unset_fields:
        unset_fields = {k: v for k, v in unset_fields.items() if k != UPDATED_AT}
        if unset_fields:
            update[UNSET] = unset_fields
        else:
            update.pop(UNSET)
    return update


def normalize_update(update: Union[Patch, Mapping[str, Any]], now: datetime) -> Dict[str, Any]:
    """Turn a Patch or raw mapping into an operator document with $set.updatedAt = now."""
    if isinstance(update, Patch):
        return update.to_update(now)
    if not isinstance(update, Mapping):
        raise TypeError(f"update must be a Patch or a mapping, got {type(update).__name__}")

    operators = {key: value for key, value in update.items() if is_operator(key)}
    plain = {key: value for key, value in update.items() if not is_operator(key)}

    if not operators:
        return _stamp({SET: plain}, now)

    normalized = {key: (dict(value) if isinstance(value, Mapping) else value) for key, value in operators.items()}
    if plain:
        set_fields = dict(normalized.get(SET) or {})
        set_fields.update(plain)
        normalized[SET] = set_fields
    return _stamp(normalized, now)
