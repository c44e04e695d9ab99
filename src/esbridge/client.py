"""Search server client for esbridge.

Every endpoint builds a PendingRequest and hands it to dispatch() with the
response model it expects and the error envelope the endpoint returns.
"""

import json
import logging
import re
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Type, Union
from urllib.parse import quote

import requests
from pydantic import BaseModel
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .bulk import BulkAction, BulkResponse, encode_bulk
from .config import ClientConfig
from .decoders import JSON, DecoderLike
from .dispatch import dispatch, probe
from .errors import TransportError
from .models import (
    Acknowledged,
    ClusterInfo,
    CountResponse,
    DocumentMissing,
    DocumentResponse,
    ErrorResponse,
    GenericErrorBody,
    IndexCreated,
    LicenseInfo,
    MultiGetResponse,
    SearchResponse,
    StoredScript,
    WriteResponse,
)
from .scripts import UPDATE_FIELDS_SCRIPT, UPDATE_FIELDS_SCRIPT_ID, UpdateField, update_fields_script
from .sort.values import SortValues
from .transport import (
    JSON_CONTENT_TYPE,
    NDJSON_CONTENT_TYPE,
    HeaderProvider,
    PendingRequest,
    build_session,
)

logger = logging.getLogger(__name__)

Refresh = Union[bool, str, None]

# Painless snippet adding params.<param> to ctx._source.<field>, creating it if absent
COUNTER_SCRIPT = """
if (ctx._source.{field} == null) {{
    ctx._source.{field} = params.{param};
}} else {{
    ctx._source.{field} += params.{param};
}}
"""

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _json_default(value: Any) -> Any:
    if isinstance(value, SortValues):
        return value.to_list()
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_json(body: Any) -> bytes:
    """Serialize a request body; SortValues and pydantic models are allowed inside."""
    return json.dumps(body, default=_json_default, allow_nan=False).encode("utf-8")


def _refresh_param(refresh: Refresh) -> Optional[str]:
    if refresh is None:
        return None
    if isinstance(refresh, bool):
        return "true" if refresh else "false"
    return refresh


def _path_segment(segment: str, index: bool = False) -> str:
    # index expressions may be comma lists or wildcards
    return quote(str(segment), safe=",*" if index else "")


class SearchClient:
    """Manages an HTTP session against an Elasticsearch-compatible server.

    Usage:
        client = SearchClient(ClientConfig(hosts=["http://localhost:9200"]))
        page = client.search_page("books", {"query": {"match_all": {}}},
                                  size=100, sort=[{"published": "asc"}, {"isbn": "asc"}])
        cursor = page.last_sort()
        next_page = client.search_page("books", {...}, size=100,
                                       sort=[...], search_after=cursor)
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        session: Optional[requests.Session] = None,
        header_provider: Optional[HeaderProvider] = None
    ):
        """
        Initialize the client. No network traffic happens here.

        Args:
            config: Connection configuration (defaults to localhost:9200)
            session: Pre-built requests session (tests, custom adapters)
            header_provider: Callable returning extra headers per request
        """
        self.config = config or ClientConfig()
        self.session = session if session is not None else build_session(self.config, header_provider)

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs) -> "SearchClient":
        """Build a client and register the configured stored scripts."""
        client = cls(config, **kwargs)
        client.register_scripts()
        return client

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "SearchClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Any = None,
        raw: Optional[bytes] = None,
        content_type: str = JSON_CONTENT_TYPE
    ) -> PendingRequest:
        """Build an unexecuted request against the configured server.

        Args:
            method: HTTP method
            path: Path below the base URL, already escaped
            params: Query string parameters (None values dropped)
            body: JSON-serializable request body
            raw: Pre-encoded body, used instead of body
            content_type: Content type sent with a body
        """
        data = raw if raw is not None else (encode_json(body) if body is not None else None)
        headers = {"Content-Type": content_type} if data is not None else None
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        return PendingRequest(
            self.session,
            method,
            f"{self.config.url}/{path.lstrip('/')}",
            params=params or None,
            headers=headers,
            data=data,
        )

    def _dispatch(
        self,
        request: PendingRequest,
        decoder: DecoderLike,
        error_model: Type[BaseModel] = GenericErrorBody
    ) -> Any:
        return dispatch(request, decoder, error_model=error_model, timeout=self.config.timeout)

    def _probe(self, request: PendingRequest) -> bool:
        return probe(request, timeout=self.config.timeout)

    # ------------------------------------------------------------------
    # Cluster
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Check if the server answers; transport failures count as down."""
        try:
            return self._probe(self.request("HEAD", "/"))
        except TransportError as e:
            logger.debug(f"ping failed: {e}")
            return False

    def info(self) -> ClusterInfo:
        """Get cluster name and version information."""
        return self._dispatch(self.request("GET", "/"), ClusterInfo)

    def license(self) -> LicenseInfo:
        return self._dispatch(self.request("GET", "/_license"), LicenseInfo)

    def wait_for_cluster(self, attempts: int = 10, max_wait: float = 10.0) -> ClusterInfo:
        """Block until the server answers the info endpoint.

        Only transport failures are retried; status errors surface at once.

        Args:
            attempts: Maximum number of info calls
            max_wait: Upper bound on the backoff between calls, in seconds

        Raises:
            TransportError: If the server is still unreachable after all attempts
        """
        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=0.5, max=max_wait),
            retry=retry_if_exception_type(TransportError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(self.info)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def count(self, index: str, query: Optional[Dict[str, Any]] = None) -> int:
        """Count documents in an index, optionally matching a query."""
        body = {"query": query} if query is not None else None
        request = self.request("POST", f"{_path_segment(index, True)}/_count", body=body)
        return self._dispatch(request, CountResponse).count

    def search(
        self,
        index: str,
        body: Optional[Dict[str, Any]] = None,
        response_model: Type[BaseModel] = SearchResponse,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Run a search request.

        Args:
            index: Index name, comma list, or "_all"
            body: Search request body (query DSL is passed through untouched)
            response_model: Model for the response, e.g. SearchResponse[Book]
            params: Extra query string parameters
        """
        request = self.request("POST", f"{_path_segment(index, True)}/_search",
                               params=params, body=body or {})
        return self._dispatch(request, response_model)

    def search_raw(
        self,
        index: str,
        raw: bytes,
        response_model: Type[BaseModel] = SearchResponse
    ) -> Any:
        """Run a search with a pre-built JSON body."""
        request = self.request("POST", f"{_path_segment(index, True)}/_search", raw=raw)
        return self._dispatch(request, response_model)

    def search_page(
        self,
        index: str,
        body: Optional[Dict[str, Any]] = None,
        size: int = 10,
        sort: Optional[List[Any]] = None,
        search_after: Optional[Union[SortValues, Sequence[Any]]] = None,
        response_model: Type[BaseModel] = SearchResponse
    ) -> Any:
        """Fetch one page of a search_after pagination.

        Args:
            index: Index to search
            body: Base search body; not modified
            size: Page size
            sort: Sort clauses, e.g. [{"date": "asc"}, {"tie_breaker_id": "asc"}]
            search_after: Cursor from the previous page's last_sort()
            response_model: Model for the response
        """
        page_body = dict(body or {})
        page_body["size"] = size
        if sort:
            page_body["sort"] = sort
        if search_after is not None and len(search_after) > 0:
            page_body["search_after"] = (
                search_after.to_list() if isinstance(search_after, SortValues) else list(search_after)
            )
        return self.search(index, page_body, response_model=response_model)

    def scan(
        self,
        index: str,
        body: Optional[Dict[str, Any]] = None,
        sort: Optional[List[Any]] = None,
        size: int = 100,
        response_model: Type[BaseModel] = SearchResponse,
        signature: Optional[str] = None
    ) -> Iterator[Any]:
        """Yield successive pages, following the last hit's sort values.

        Stops after a page shorter than size or a page without sort values.

        Args:
            signature: Optional type signature used to decode each cursor
        """
        if not sort:
            raise ValueError("scan requires sort clauses to paginate")

        cursor: Optional[SortValues] = None
        pages = 0
        while True:
            page = self.search_page(index, body, size=size, sort=sort,
                                    search_after=cursor, response_model=response_model)
            pages += 1
            yield page

            if len(page.hits.hits) < size:
                break
            cursor = page.last_sort(signature=signature)
            if not cursor:
                break
            logger.debug(f"scan {index}: page {pages} done, next cursor {cursor.to_json()}")

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def get_document(
        self,
        index: str,
        doc_id: str,
        response_model: Type[BaseModel] = DocumentResponse
    ) -> Any:
        """Get a document by id.

        Raises:
            NotFoundError: If the document or index does not exist
        """
        request = self.request("GET", f"{_path_segment(index)}/_doc/{_path_segment(doc_id)}")
        return self._dispatch(request, response_model, error_model=DocumentMissing)

    def multi_get(
        self,
        index: str,
        ids: Iterable[str],
        response_model: Type[BaseModel] = MultiGetResponse
    ) -> Any:
        """Get several documents by id; missing ones come back with found=False."""
        request = self.request("POST", f"{_path_segment(index)}/_mget", body={"ids": list(ids)})
        return self._dispatch(request, response_model)

    def create_document(
        self,
        index: str,
        doc_id: str,
        document: Any,
        refresh: Refresh = None
    ) -> WriteResponse:
        """Create a document that must not exist yet.

        Raises:
            ConflictError: If a document with the same id exists
        """
        request = self.request(
            "PUT", f"{_path_segment(index)}/_create/{_path_segment(doc_id)}",
            params={"refresh": _refresh_param(refresh)}, body=document,
        )
        return self._dispatch(request, WriteResponse, error_model=ErrorResponse)

    def index_document(
        self,
        index: str,
        document: Any,
        doc_id: Optional[str] = None,
        refresh: Refresh = None
    ) -> WriteResponse:
        """Create or replace a document; the server assigns an id when doc_id is None."""
        if doc_id is None:
            request = self.request("POST", f"{_path_segment(index)}/_doc",
                                   params={"refresh": _refresh_param(refresh)}, body=document)
        else:
            request = self.request("PUT", f"{_path_segment(index)}/_doc/{_path_segment(doc_id)}",
                                   params={"refresh": _refresh_param(refresh)}, body=document)
        return self._dispatch(request, WriteResponse, error_model=ErrorResponse)

    def update_document(
        self,
        index: str,
        doc_id: str,
        doc: Optional[Dict[str, Any]] = None,
        script: Optional[Dict[str, Any]] = None,
        scripted_upsert: bool = False,
        retry_on_conflict: Optional[int] = None,
        refresh: Refresh = None
    ) -> WriteResponse:
        """Partially update a document with a partial doc or a script.

        Use index_document for a full replacement.

        Raises:
            ValueError: If neither doc nor script is given
            NotFoundError: If the document does not exist (and no upsert applies)
            ApplicationError: With the script error position for failing scripts
        """
        if doc is None and script is None:
            raise ValueError("update requires a partial doc or a script")

        body: Dict[str, Any] = {}
        if doc is not None:
            body["doc"] = doc
        if script is not None:
            body["script"] = script
            if scripted_upsert:
                body["scripted_upsert"] = True
                body["upsert"] = {}

        request = self.request(
            "POST", f"{_path_segment(index)}/_update/{_path_segment(doc_id)}",
            params={
                "retry_on_conflict": retry_on_conflict,
                "refresh": _refresh_param(refresh),
            },
            body=body,
        )
        return self._dispatch(request, WriteResponse, error_model=ErrorResponse)

    def update_counters(
        self,
        index: str,
        doc_id: str,
        increments: Dict[str, int],
        refresh: Refresh = None
    ) -> WriteResponse:
        """Add deltas to numeric fields, creating missing fields and the document.

        Args:
            increments: Field name -> delta

        Raises:
            ValueError: If increments is empty or a field name is not a plain identifier
        """
        if not increments:
            raise ValueError("no counter fields given")

        sources = []
        params = {}
        for field, delta in increments.items():
            if not _FIELD_NAME.match(field):
                raise ValueError(f"invalid counter field name: {field!r}")
            param = f"count_{field}"
            sources.append(COUNTER_SCRIPT.format(field=field, param=param))
            params[param] = delta

        script = {"source": "".join(sources), "lang": "painless", "params": params}
        return self.update_document(index, doc_id, script=script, scripted_upsert=True, refresh=refresh)

    def update_fields(
        self,
        index: str,
        doc_id: str,
        fields: Sequence[Union[UpdateField, Dict[str, Any]]],
        retry_on_conflict: Optional[int] = None,
        refresh: Refresh = None
    ) -> WriteResponse:
        """Apply set/incr/push field changes with the stored field-update script.

        register_update_fields_script() must have run against the cluster
        once; otherwise the server answers with a missing-script error.

        Raises:
            ValueError: If fields is empty or malformed
        """
        return self.update_document(
            index, doc_id,
            script=update_fields_script(fields),
            retry_on_conflict=retry_on_conflict,
            refresh=refresh,
        )

    def register_update_fields_script(self) -> Acknowledged:
        """Store the field-update script under its content-hash id."""
        logger.info(f"Registering field-update script '{UPDATE_FIELDS_SCRIPT_ID}'")
        return self.put_stored_script(UPDATE_FIELDS_SCRIPT_ID, UPDATE_FIELDS_SCRIPT)

    def delete_document(self, index: str, doc_id: str, refresh: Refresh = None) -> WriteResponse:
        """Delete a document by id.

        Raises:
            NotFoundError: If the document does not exist
        """
        request = self.request(
            "DELETE", f"{_path_segment(index)}/_doc/{_path_segment(doc_id)}",
            params={"refresh": _refresh_param(refresh)},
        )
        return self._dispatch(request, WriteResponse, error_model=ErrorResponse)

    def bulk(
        self,
        actions: Iterable[BulkAction],
        index: Optional[str] = None,
        refresh: Refresh = None
    ) -> BulkResponse:
        """Send a bulk request.

        A 200 response can still contain failed items; check
        BulkResponse.error_items().
        """
        path = f"{_path_segment(index)}/_bulk" if index else "_bulk"
        request = self.request(
            "POST", path,
            params={"refresh": _refresh_param(refresh)},
            raw=encode_bulk(actions),
            content_type=NDJSON_CONTENT_TYPE,
        )
        return self._dispatch(request, BulkResponse, error_model=ErrorResponse)

    # ------------------------------------------------------------------
    # Indices
    # ------------------------------------------------------------------

    def create_index(
        self,
        name: str,
        mappings: Optional[Dict[str, Any]] = None,
        settings: Optional[Dict[str, Any]] = None,
        raw: Optional[bytes] = None
    ) -> IndexCreated:
        """Create an index.

        Raises:
            ApplicationError: If the index exists or the name is invalid (HTTP 400)
        """
        body: Dict[str, Any] = {}
        if mappings:
            body["mappings"] = mappings
        if settings:
            body["settings"] = settings

        request = self.request(
            "PUT", _path_segment(name),
            params={"timeout": "30s", "wait_for_active_shards": "1"},
            body=body if raw is None else None,
            raw=raw,
        )
        return self._dispatch(request, IndexCreated, error_model=ErrorResponse)

    def delete_index(self, name: str) -> bool:
        """Delete an index; False if it did not exist."""
        return self._probe(self.request("DELETE", _path_segment(name, True)))

    def index_exists(self, name: str) -> bool:
        return self._probe(self.request("HEAD", _path_segment(name, True)))

    def get_index(self, name: str) -> Dict[str, Any]:
        """Aliases, mappings and settings keyed by index name."""
        return self._dispatch(self.request("GET", _path_segment(name, True)), JSON)

    def index_stats(self, name: str) -> Dict[str, Any]:
        return self._dispatch(self.request("GET", f"{_path_segment(name, True)}/_stats"), JSON)

    # ------------------------------------------------------------------
    # Stored scripts
    # ------------------------------------------------------------------

    def put_stored_script(self, script_id: str, source: str, lang: str = "painless") -> Acknowledged:
        """Create or update a stored script."""
        request = self.request(
            "PUT", f"_scripts/{_path_segment(script_id)}",
            body={"script": {"lang": lang, "source": source}},
        )
        return self._dispatch(request, Acknowledged, error_model=ErrorResponse)

    def get_stored_script(self, script_id: str) -> StoredScript:
        return self._dispatch(self.request("GET", f"_scripts/{_path_segment(script_id)}"), StoredScript)

    def delete_stored_script(self, script_id: str) -> Acknowledged:
        return self._dispatch(self.request("DELETE", f"_scripts/{_path_segment(script_id)}"), Acknowledged)

    def register_scripts(self, scripts: Optional[Dict[str, str]] = None) -> int:
        """Store every configured script.

        Returns:
            Number of scripts registered

        Raises:
            RuntimeError: Naming the script that failed to register
        """
        scripts = self.config.scripts if scripts is None else scripts
        for script_id, source in scripts.items():
            try:
                self.put_stored_script(script_id, source)
            except Exception as e:
                raise RuntimeError(f"failed to register script {script_id}: {e}") from e
            logger.info(f"Registered stored script '{script_id}'")
        return len(scripts)
