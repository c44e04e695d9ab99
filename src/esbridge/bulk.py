"""Bulk API body encoding and response inspection.

A bulk body is newline-delimited JSON: one action line per operation,
followed by a source line for every operation except delete, and a trailing
newline after the last line.

    {"index": {"_index": "books", "_id": "1"}}
    {"title": "Dune"}
    {"delete": {"_index": "books", "_id": "2"}}
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from pydantic import Field, model_validator

from .models import ResponseModel, ShardStats

BULK_OPERATIONS = ("index", "create", "update", "delete")


@dataclass
class BulkAction:
    """One operation in a bulk request.

    Attributes:
        op: One of index, create, update, delete
        index: Target index (None to use the index in the request path)
        id: Document id (required for update and delete)
        document: Source for index/create, partial document for update
    """
    op: str
    index: Optional[str] = None
    id: Optional[str] = None
    document: Optional[Any] = None

    def meta_line(self) -> Dict[str, Dict[str, str]]:
        meta: Dict[str, str] = {}
        if self.index:
            meta["_index"] = self.index
        if self.id is not None:
            meta["_id"] = str(self.id)
        return {self.op: meta}

    def source_line(self) -> Optional[Any]:
        if self.op == "delete":
            return None
        if self.op == "update":
            return {"doc": self.document}
        return self.document


def encode_bulk(actions: Iterable[BulkAction]) -> bytes:
    """Encode actions as an NDJSON bulk body.

    Raises:
        ValueError: On an unknown operation, a missing id for update/delete,
                    or a missing document for index/create/update
    """
    lines: List[str] = []
    for position, action in enumerate(actions):
        if action.op not in BULK_OPERATIONS:
            raise ValueError(f"action {position}: unknown bulk operation '{action.op}'")
        if action.op in ("update", "delete") and action.id is None:
            raise ValueError(f"action {position}: '{action.op}' requires a document id")
        if action.op != "delete" and action.document is None:
            raise ValueError(f"action {position}: '{action.op}' requires a document")

        lines.append(json.dumps(action.meta_line(), separators=(",", ":")))
        source = action.source_line()
        if source is not None:
            lines.append(json.dumps(source, separators=(",", ":"), default=str))

    if not lines:
        raise ValueError("bulk request has no actions")
    return ("\n".join(lines) + "\n").encode("utf-8")


class BulkItemError(ResponseModel):
    type: str = ""
    reason: str = ""
    index: Optional[str] = None
    index_uuid: Optional[str] = None
    shard: Optional[str] = None


class BulkItem(ResponseModel):
    """Result of one bulk operation.

    On the wire each item is {"<op>": {...}}; the op name is lifted into `op`.
    """
    op: str = ""
    index: str = Field("", alias="_index")
    id: str = Field("", alias="_id")
    version: Optional[int] = Field(None, alias="_version")
    result: Optional[str] = None
    shards: Optional[ShardStats] = Field(None, alias="_shards")
    seq_no: Optional[int] = Field(None, alias="_seq_no")
    primary_term: Optional[int] = Field(None, alias="_primary_term")
    status: int = 0
    error: Optional[BulkItemError] = None

    @model_validator(mode="before")
    @classmethod
    def _unwrap_op(cls, data: Any) -> Any:
        if isinstance(data, dict) and len(data) == 1:
            op, detail = next(iter(data.items()))
            if op in BULK_OPERATIONS and isinstance(detail, dict):
                return {**detail, "op": op}
        return data

    @property
    def succeeded(self) -> bool:
        return 200 <= self.status < 300


class BulkResponse(ResponseModel):
    took: int = 0
    errors: bool = False
    items: List[BulkItem] = Field(default_factory=list)

    def error_items(self) -> List[BulkItem]:
        """Items with a non-2xx status; empty when the server reported no errors."""
        if not self.errors:
            return []
        return [item for item in self.items if not item.succeeded]
