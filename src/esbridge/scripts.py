"""Typed field updates through one stored painless script.

Instead of building a script per update, callers describe changes as a list
of UpdateField operations and send them as params to a single stored script:

    set   ctx._source[name] = value
    incr  ctx._source[name] += value   (value when the field is missing)
    push  append every element of value (value itself when missing)

The script id is the sha1 of its source, so a changed source is stored
under a new id and never overwrites a version older clients still call.
"""

import hashlib
from enum import Enum
from typing import Any, Dict, Iterable, List, Union

from pydantic import BaseModel, field_validator, model_validator

UPDATE_FIELDS_SCRIPT = """\
for (item in params.fields) {
    String tp = item['tp'];
    String name = item['name'];
    if (tp == 'set') {
        ctx._source[name] = item['value'];
    } else if (tp == 'incr') {
        ctx._source[name] = ctx._source[name] == null ? item['value'] : ctx._source[name] + item['value'];
    } else if (tp == 'push') {
        if (ctx._source[name] == null) {
            ctx._source[name] = item['value'];
        } else {
            for (v in item['value']) {
                ctx._source[name].add(v);
            }
        }
    }
}
"""

UPDATE_FIELDS_SCRIPT_ID = hashlib.sha1(UPDATE_FIELDS_SCRIPT.encode("utf-8")).hexdigest()


class UpdateType(str, Enum):
    SET = "set"
    INCR = "incr"
    PUSH = "push"


class UpdateField(BaseModel):
    """One field change, serialized as {"tp", "name", "value"}."""

    tp: UpdateType
    name: str
    value: Any = None

    @field_validator("name")
    @classmethod
    def _require_name(cls, name: str) -> str:
        if not name:
            raise ValueError("field name must not be empty")
        return name

    @model_validator(mode="after")
    def _check_value(self) -> "UpdateField":
        if self.tp is UpdateType.PUSH and not isinstance(self.value, list):
            raise ValueError(f"push on '{self.name}' needs a list value")
        # bool is an int subclass but painless cannot add it
        if self.tp is UpdateType.INCR and (
            isinstance(self.value, bool) or not isinstance(self.value, (int, float))
        ):
            raise ValueError(f"incr on '{self.name}' needs a numeric value")
        return self

    @classmethod
    def set(cls, name: str, value: Any) -> "UpdateField":
        return cls(tp=UpdateType.SET, name=name, value=value)

    @classmethod
    def incr(cls, name: str, value: Union[int, float]) -> "UpdateField":
        return cls(tp=UpdateType.INCR, name=name, value=value)

    @classmethod
    def push(cls, name: str, values: List[Any]) -> "UpdateField":
        return cls(tp=UpdateType.PUSH, name=name, value=values)


def update_fields_script(fields: Iterable[Union[UpdateField, Dict[str, Any]]]) -> Dict[str, Any]:
    """Script reference for an _update body running the stored field-update script.

    Raises:
        ValueError: If fields is empty or an entry is not a valid UpdateField
    """
    items = [f if isinstance(f, UpdateField) else UpdateField.model_validate(f) for f in fields]
    if not items:
        raise ValueError("no fields to update")
    return {
        "id": UPDATE_FIELDS_SCRIPT_ID,
        "params": {"fields": [item.model_dump(mode="json") for item in items]},
    }


__all__ = [
    "UPDATE_FIELDS_SCRIPT",
    "UPDATE_FIELDS_SCRIPT_ID",
    "UpdateType",
    "UpdateField",
    "update_fields_script",
]
