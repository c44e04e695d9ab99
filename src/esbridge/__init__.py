"""esbridge: typed dispatch and precision-safe sort cursors for Elasticsearch-compatible servers."""

__version__ = "0.3.0"

from esbridge.client import SearchClient
from esbridge.config import ClientConfig, config_from_env, load_config
from esbridge.decoders import IGNORE, JSON, IgnoreResponse, JSONDecoder, ModelDecoder
from esbridge.dispatch import dispatch, probe
from esbridge.errors import (
    ERR_CONFLICT,
    ERR_NOT_FOUND,
    ApplicationError,
    ConflictError,
    DecodeError,
    EmptyResponseError,
    EsbridgeError,
    GenericStatusError,
    NotFoundError,
    ResponseStatusError,
    SortDecodeError,
    TransportError,
    is_response_status_error,
)
from esbridge.scripts import UpdateField, UpdateType, update_fields_script
from esbridge.sort import SortDecoder, SortKind, SortValue, SortValues

__all__ = [
    "__version__",
    "SearchClient",
    "ClientConfig",
    "config_from_env",
    "load_config",
    "IGNORE",
    "JSON",
    "IgnoreResponse",
    "JSONDecoder",
    "ModelDecoder",
    "dispatch",
    "probe",
    "ERR_CONFLICT",
    "ERR_NOT_FOUND",
    "ApplicationError",
    "ConflictError",
    "DecodeError",
    "EmptyResponseError",
    "EsbridgeError",
    "GenericStatusError",
    "NotFoundError",
    "ResponseStatusError",
    "SortDecodeError",
    "TransportError",
    "is_response_status_error",
    "UpdateField",
    "UpdateType",
    "update_fields_script",
    "SortDecoder",
    "SortKind",
    "SortValue",
    "SortValues",
]
