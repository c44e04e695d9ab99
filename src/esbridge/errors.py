"""Exception classes for esbridge error handling.

Every error a caller can see from a dispatched request derives from
EsbridgeError. Status-derived errors carry the HTTP status code, errors built
from a response body carry (an excerpt of) that body.

Exit Codes (used by the esb CLI):
- 0: Success
- 1: General error
- 2: Invalid arguments / configuration
- 3: Resource not found
- 4: Conflict
- 5: Transport failure
"""

from http import HTTPStatus
from typing import Any, Optional


EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_INVALID_ARGS = 2
EXIT_NOT_FOUND = 3
EXIT_CONFLICT = 4
EXIT_TRANSPORT = 5

# Maximum number of body characters carried into error messages
BODY_EXCERPT_LIMIT = 512


def body_excerpt(body: Any, limit: int = BODY_EXCERPT_LIMIT) -> str:
    """Render a response body as text, truncated for error messages."""
    if body is None:
        return ""
    if isinstance(body, (bytes, bytearray)):
        text = bytes(body).decode("utf-8", errors="replace")
    else:
        text = str(body)
    if len(text) > limit:
        return text[:limit] + "..."
    return text


class EsbridgeError(Exception):
    """Base exception for esbridge errors.

    Default exit code is EXIT_ERROR (1).
    """
    exit_code = EXIT_ERROR


class ConfigError(EsbridgeError, ValueError):
    """Invalid client configuration (missing address, unreadable CA file...)."""
    exit_code = EXIT_INVALID_ARGS


class TransportError(EsbridgeError):
    """Network level failure: connection refused, DNS, timeout, broken body.

    Never derived from a response body. The original requests exception is
    available as __cause__.
    """
    exit_code = EXIT_TRANSPORT


class ResponseStatusError(EsbridgeError):
    """A non-2xx HTTP status.

    Two status errors are equal when they have the same class and status
    code, so callers can compare against the ERR_NOT_FOUND / ERR_CONFLICT
    sentinels regardless of which endpoint produced the error.
    """

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(status_code)

    def __str__(self) -> str:
        try:
            return HTTPStatus(self.status_code).phrase
        except ValueError:
            return f"HTTP status {self.status_code}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.status_code})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResponseStatusError):
            return NotImplemented
        return type(self) is type(other) and self.status_code == other.status_code

    def __hash__(self) -> int:
        return hash((type(self), self.status_code))


class NotFoundError(ResponseStatusError):
    """HTTP 404. The body is never parsed."""
    exit_code = EXIT_NOT_FOUND

    def __init__(self, status_code: int = HTTPStatus.NOT_FOUND):
        super().__init__(int(status_code))


class ConflictError(ResponseStatusError):
    """HTTP 409, e.g. creating a document whose id already exists."""
    exit_code = EXIT_CONFLICT

    def __init__(self, status_code: int = HTTPStatus.CONFLICT):
        super().__init__(int(status_code))


ERR_NOT_FOUND = NotFoundError()
ERR_CONFLICT = ConflictError()


class ApplicationError(ResponseStatusError):
    """Error envelope returned by the server, decoded into a typed model.

    Attributes:
        status_code: HTTP status of the response
        error: The decoded error model instance
        body: Raw response body
    """

    def __init__(self, status_code: int, error: Any, body: bytes = b""):
        super().__init__(status_code)
        self.error = error
        self.body = body

    def __str__(self) -> str:
        describe = getattr(self.error, "describe", None)
        detail = describe() if callable(describe) else body_excerpt(self.body)
        return f"request failed, code={self.status_code}: {detail}"

    __eq__ = Exception.__eq__
    __hash__ = Exception.__hash__


class GenericStatusError(ResponseStatusError):
    """Non-2xx response whose body did not match the expected error model."""

    def __init__(self, status_code: int, body: bytes = b""):
        super().__init__(status_code)
        self.body = body

    @property
    def text(self) -> str:
        return bytes(self.body).decode("utf-8", errors="replace")

    def __str__(self) -> str:
        return f"request failed, code={self.status_code}, body={body_excerpt(self.body)}"

    __eq__ = Exception.__eq__
    __hash__ = Exception.__hash__


class DecodeError(EsbridgeError, ValueError):
    """Bytes did not match the expected shape.

    Raised for a 2xx body the success decoder rejects, and for sort arrays
    whose elements cannot be classified.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: bytes = b""
    ):
        self.message = message
        self.status_code = status_code
        self.body = body
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code is not None:
            parts.append(f"code={self.status_code}")
        if self.body:
            parts.append(f"body={body_excerpt(self.body)}")
        return ", ".join(parts)


class EmptyResponseError(DecodeError):
    """Successful status with an empty body where content was required."""

    def __init__(self, status_code: Optional[int] = None):
        super().__init__("empty response", status_code=status_code)


class SortDecodeError(DecodeError):
    """A sort array element could not be converted to its kind."""

    def __init__(self, index: Optional[int], raw: str, reason: str):
        self.index = index
        self.raw = raw
        self.reason = reason
        super().__init__(f"unmarshal sort data index={index} value={raw}: {reason}")


def new_response_status_error(status_code: int) -> Optional[ResponseStatusError]:
    """Build the status error for a status code, or None for 2xx."""
    if 200 <= status_code < 300:
        return None
    if status_code == HTTPStatus.NOT_FOUND:
        return NotFoundError()
    if status_code == HTTPStatus.CONFLICT:
        return ConflictError()
    return ResponseStatusError(status_code)


def is_response_status_error(exc: Optional[BaseException], status_code: int) -> bool:
    """Check whether exc, or anything in its cause/context chain, has status_code."""
    seen = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        if isinstance(exc, ResponseStatusError) and exc.status_code == status_code:
            return True
        exc = exc.__cause__ or exc.__context__
    return False
