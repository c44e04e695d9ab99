"""Response body decoders.

A decoder turns the raw bytes of a successful response into a value. It
raises ValueError (pydantic's ValidationError and json's JSONDecodeError are
both ValueErrors) when the bytes do not fit; the dispatcher turns that into a
DecodeError carrying the status code and body.
"""

import json
from typing import Any, Generic, Protocol, Type, TypeVar, Union, runtime_checkable

from pydantic import BaseModel

from .errors import EmptyResponseError
from .sort.typed import SortDecoder

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)
M = TypeVar("M", bound=BaseModel)


@runtime_checkable
class Decoder(Protocol[T_co]):
    """Anything that can decode raw response bytes."""

    def decode(self, data: bytes) -> T_co:
        ...


class ModelDecoder(Generic[M]):
    """Validate JSON bytes into a pydantic model."""

    def __init__(self, model: Type[M]):
        self.model = model

    def decode(self, data: bytes) -> M:
        return self.model.model_validate_json(data)

    def __repr__(self) -> str:
        return f"ModelDecoder({self.model.__name__})"


class JSONDecoder:
    """Plain json.loads, for callers that want dicts and lists."""

    def decode(self, data: bytes) -> Any:
        return json.loads(data)


class IgnoreResponse:
    """Require a non-empty body and discard it.

    Used by endpoints where only success or failure matters.
    """

    def decode(self, data: bytes) -> None:
        if not data:
            raise EmptyResponseError()
        return None


IGNORE = IgnoreResponse()
JSON = JSONDecoder()

DecoderLike = Union[Decoder[T], Type[BaseModel]]


def as_decoder(target: DecoderLike) -> Decoder:
    """Normalize a decoder argument.

    Accepts a Decoder instance or a pydantic model class (including
    parametrized generics like SearchResponse[MyDoc]).

    Raises:
        TypeError: If target is neither
    """
    if isinstance(target, type) and issubclass(target, BaseModel):
        return ModelDecoder(target)
    if isinstance(target, Decoder):
        return target
    raise TypeError(f"not a decoder: {target!r}")


__all__ = [
    "Decoder",
    "DecoderLike",
    "ModelDecoder",
    "JSONDecoder",
    "IgnoreResponse",
    "SortDecoder",
    "IGNORE",
    "JSON",
    "as_decoder",
]
