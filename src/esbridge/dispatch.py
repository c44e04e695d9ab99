"""Single-shot response dispatch.

dispatch() executes one PendingRequest and maps the result to either a
decoded value or a typed exception:

    transport failure   -> TransportError
    2xx                 -> decoder.decode(body)  (failure: DecodeError)
    404                 -> NotFoundError         (body ignored)
    409                 -> ConflictError         (body ignored)
    other               -> ApplicationError      (body fits error_model)
                           GenericStatusError    (it doesn't)

Nothing is retried. The response is closed on every path.
"""

import logging
from http import HTTPStatus
from typing import Any, Optional, Type

import requests
from pydantic import BaseModel

from .decoders import DecoderLike, as_decoder
from .errors import (
    ApplicationError,
    ConflictError,
    DecodeError,
    EmptyResponseError,
    GenericStatusError,
    NotFoundError,
    TransportError,
    new_response_status_error,
)
from .models import GenericErrorBody
from .transport import PendingRequest

logger = logging.getLogger(__name__)


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def _execute(request: PendingRequest, timeout: Any) -> requests.Response:
    try:
        return request.execute(timeout=timeout)
    except requests.RequestException as e:
        logger.debug(f"{request} failed before a response: {e}")
        raise TransportError(f"error on do request {request.method} {request.url}: {e}") from e


def _read_body(response: requests.Response) -> bytes:
    try:
        return response.content or b""
    except requests.RequestException as e:
        raise TransportError(
            f"error on read response body: {e}, code: {response.status_code}"
        ) from e


def decode_error_body(
    status_code: int,
    body: bytes,
    error_model: Type[BaseModel] = GenericErrorBody
) -> Exception:
    """Build the exception for a non-2xx response.

    404 and 409 map to their sentinels without looking at the body.
    """
    if status_code == HTTPStatus.NOT_FOUND:
        return NotFoundError()
    if status_code == HTTPStatus.CONFLICT:
        return ConflictError()
    try:
        error = error_model.model_validate_json(body)
    except ValueError:
        return GenericStatusError(status_code, body)
    return ApplicationError(status_code, error, body)


def dispatch(
    request: PendingRequest,
    decoder: DecoderLike,
    error_model: Type[BaseModel] = GenericErrorBody,
    timeout: Any = None
) -> Any:
    """Execute request once and decode its outcome.

    Args:
        request: The unexecuted request
        decoder: Decoder instance or pydantic model class for 2xx bodies
        error_model: Pydantic model for the server's error envelope
        timeout: Seconds or (connect, read) tuple passed to the transport

    Returns:
        Whatever the decoder produced

    Raises:
        TransportError: On network failure
        NotFoundError, ConflictError: On 404 / 409
        ApplicationError: On other non-2xx with a body matching error_model
        GenericStatusError: On other non-2xx bodies
        DecodeError: If a 2xx body does not fit the decoder
    """
    decoder = as_decoder(decoder)
    response = _execute(request, timeout)

    with response:
        status_code = response.status_code
        body = _read_body(response)

    if not is_success(status_code):
        error = decode_error_body(status_code, body, error_model)
        logger.debug(f"{request} -> {status_code}: {type(error).__name__}")
        raise error

    logger.debug(f"{request} -> {status_code} ({len(body)} bytes)")
    try:
        return decoder.decode(body)
    except EmptyResponseError:
        raise EmptyResponseError(status_code) from None
    except ValueError as e:
        raise DecodeError(f"decode response with {decoder!r} failed: {e}", status_code, body) from e


def probe(request: PendingRequest, timeout: Optional[Any] = None) -> bool:
    """Execute request once and report whether it succeeded.

    Returns:
        True on 2xx, False on 404

    Raises:
        TransportError: On network failure
        ResponseStatusError: On any other status
    """
    response = _execute(request, timeout)
    with response:
        status_code = response.status_code
        _read_body(response)

    if status_code == HTTPStatus.NOT_FOUND:
        return False
    error = new_response_status_error(status_code)
    if error is not None:
        raise error
    return True
