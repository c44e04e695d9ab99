"""Pydantic models for server responses and error envelopes.

Field names follow the server's JSON; underscore-prefixed keys (_index, _id,
_source...) are mapped through aliases.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, RootModel

from .sort.values import SortValues

DocT = TypeVar("DocT")


class ResponseModel(BaseModel):
    """Base for response models: unknown keys ignored, aliases or names accepted."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ============================================================================
# Error envelopes
# ============================================================================

class ScriptPosition(ResponseModel):
    offset: int = 0
    start: int = 0
    end: int = 0


class ErrorCause(ResponseModel):
    """One level of the server's error structure.

    Example:
        {"type": "invalid_index_name_exception",
         "reason": "Invalid index name [@!], must be lowercase",
         "index_uuid": "_na_", "index": "@!"}
    """
    type: str = ""
    reason: Optional[str] = None
    index: Optional[str] = None
    index_uuid: Optional[str] = None
    root_cause: List[ErrorCause] = Field(default_factory=list)
    caused_by: Optional[ErrorCause] = None
    script: Optional[str] = None
    script_stack: List[str] = Field(default_factory=list)
    lang: Optional[str] = None
    position: Optional[ScriptPosition] = None

    def describe(self) -> str:
        text = f"{self.type}: {self.reason}" if self.type else str(self.reason)
        if self.position is not None:
            text += (f" (position offset: {self.position.offset}"
                     f" start-end: {self.position.start}-{self.position.end})")
        if self.script_stack:
            text += f", script_stack: {self.script_stack}"
        if self.caused_by is not None:
            text += f", caused_by: [{self.caused_by.describe()}]"
        return text


class ErrorResponse(ResponseModel):
    """Standard error envelope: {"error": {...}, "status": 400}."""
    error: ErrorCause
    status: int = 0

    def describe(self) -> str:
        text = f"{self.error.describe()}, status: {self.status}"
        if self.error.root_cause:
            causes = "; ".join(c.describe() for c in self.error.root_cause)
            text += f", root_cause: [{causes}]"
        return text


class GenericErrorBody(RootModel[Dict[str, Any]]):
    """Any JSON object; the fallback error model."""

    def describe(self) -> str:
        return self.model_dump_json()


class DocumentMissing(ResponseModel):
    """Body of a document GET that found nothing."""
    index: str = Field("", alias="_index")
    id: str = Field("", alias="_id")
    found: bool = False

    def describe(self) -> str:
        return f"document not found: {self.index}/{self.id}"


# ============================================================================
# Success responses
# ============================================================================

class ShardStats(ResponseModel):
    total: int = 0
    successful: int = 0
    skipped: int = 0
    failed: int = 0


class TotalHits(ResponseModel):
    value: int = 0
    relation: str = "eq"


class Hit(ResponseModel, Generic[DocT]):
    index: str = Field("", alias="_index")
    id: str = Field("", alias="_id")
    score: Optional[float] = Field(None, alias="_score")
    source: Optional[DocT] = Field(None, alias="_source")
    fields: Dict[str, List[Any]] = Field(default_factory=dict)
    sort: Optional[SortValues] = None
    highlight: Dict[str, List[str]] = Field(default_factory=dict)


class Hits(ResponseModel, Generic[DocT]):
    total: TotalHits = Field(default_factory=TotalHits)
    max_score: Optional[float] = None
    hits: List[Hit[DocT]] = Field(default_factory=list)


class SearchResponse(ResponseModel, Generic[DocT]):
    """Search response with typed _source documents.

    Each hit's sort array is decoded with SortValues, so 64-bit integer sort
    keys survive intact into the next search_after.
    """
    scroll_id: Optional[str] = Field(None, alias="_scroll_id")
    took: int = 0
    timed_out: bool = False
    shards: ShardStats = Field(default_factory=ShardStats, alias="_shards")
    hits: Hits[DocT] = Field(default_factory=Hits)
    aggregations: Optional[Dict[str, Any]] = None

    def sources(self) -> List[DocT]:
        return [hit.source for hit in self.hits.hits]

    def last_sort(self, signature: Optional[str] = None) -> Optional[SortValues]:
        """Sort values of the last hit, the cursor for the next page.

        Args:
            signature: Optional per-position type signature ("isf"); the
                       last hit's sort array is re-decoded with it

        Returns:
            SortValues, or None when the page is empty or unsorted
        """
        if not self.hits.hits:
            return None
        last = self.hits.hits[-1].sort
        if last is None or signature is None:
            return last
        return SortValues.from_json(last.to_json(), signature=signature)


class CountResponse(ResponseModel):
    count: int = 0
    shards: ShardStats = Field(default_factory=ShardStats, alias="_shards")


class DocumentResponse(ResponseModel, Generic[DocT]):
    index: str = Field("", alias="_index")
    id: str = Field("", alias="_id")
    version: Optional[int] = Field(None, alias="_version")
    seq_no: Optional[int] = Field(None, alias="_seq_no")
    primary_term: Optional[int] = Field(None, alias="_primary_term")
    found: bool = False
    source: Optional[DocT] = Field(None, alias="_source")


class MultiGetResponse(ResponseModel, Generic[DocT]):
    docs: List[DocumentResponse[DocT]] = Field(default_factory=list)

    def sources(self) -> List[DocT]:
        """Sources of found documents only, in request order."""
        return [doc.source for doc in self.docs if doc.found]


class WriteResponse(ResponseModel):
    """Result of create/index/update/delete of a single document."""
    index: str = Field("", alias="_index")
    id: str = Field("", alias="_id")
    version: Optional[int] = Field(None, alias="_version")
    result: str = ""
    shards: ShardStats = Field(default_factory=ShardStats, alias="_shards")
    seq_no: Optional[int] = Field(None, alias="_seq_no")
    primary_term: Optional[int] = Field(None, alias="_primary_term")


class Acknowledged(ResponseModel):
    acknowledged: bool = False


class IndexCreated(Acknowledged):
    shards_acknowledged: bool = False
    index: str = ""


class VersionInfo(ResponseModel):
    number: str = ""
    build_flavor: Optional[str] = None
    build_type: Optional[str] = None
    build_hash: Optional[str] = None
    build_date: Optional[str] = None  # nanosecond precision, kept as text
    build_snapshot: bool = False
    lucene_version: Optional[str] = None
    minimum_wire_compatibility_version: Optional[str] = None
    minimum_index_compatibility_version: Optional[str] = None


class ClusterInfo(ResponseModel):
    name: str = ""
    cluster_name: str = ""
    cluster_uuid: str = ""
    version: VersionInfo = Field(default_factory=VersionInfo)
    tagline: str = ""


class License(ResponseModel):
    status: str = ""
    uid: str = ""
    type: str = ""
    issue_date: Optional[datetime] = None
    issue_date_in_millis: Optional[int] = None
    max_nodes: Optional[int] = None
    max_resource_units: Optional[int] = None
    issued_to: str = ""
    issuer: str = ""
    start_date_in_millis: Optional[int] = None


class LicenseInfo(ResponseModel):
    license: License = Field(default_factory=License)


class ScriptSource(ResponseModel):
    lang: str = ""
    source: str = ""


class StoredScript(ResponseModel):
    id: str = Field("", alias="_id")
    found: bool = False
    script: Optional[ScriptSource] = None
