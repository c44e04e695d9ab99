"""Sort decoding driven by a per-position type signature.

When the sort keys of a query are known up front, a signature string such as
"isf" says position 0 is an integer, 1 a string and 2 a float. Each position
is converted straight to that kind; the decimal-point heuristic is not used.

Signature characters:
- i: signed 64-bit integer (integral numeric literal required)
- f: float64 (any numeric literal)
- s: string (JSON string content, or the element's JSON text otherwise)
- anything else, or positions past the end of the signature: natural decoding
"""

import json
from typing import Any, Callable, Dict, Optional, Union

from ..errors import DecodeError, SortDecodeError
from .values import (
    NumberLiteral,
    SortKind,
    SortValue,
    SortValues,
    loads_deferred,
    natural,
    parse_float64,
    parse_int64,
)


def _as_int(element: Any, index: int) -> SortValue:
    if not isinstance(element, NumberLiteral) or element.is_float:
        raise SortDecodeError(index, _raw_text(element, index), "expected integer")
    return SortValue(SortKind.INT, parse_int64(element, index))


def _as_float(element: Any, index: int) -> SortValue:
    if not isinstance(element, NumberLiteral):
        raise SortDecodeError(index, _raw_text(element, index), "expected number")
    return SortValue(SortKind.FLOAT, parse_float64(element, index))


def _as_string(element: Any, index: int) -> SortValue:
    if isinstance(element, str) and not isinstance(element, NumberLiteral):
        return SortValue(SortKind.STRING, element)
    return SortValue(SortKind.STRING, _raw_text(element, index))


KIND_DECODERS: Dict[str, Callable[[Any, int], SortValue]] = {
    "i": _as_int,
    "f": _as_float,
    "s": _as_string,
}


def _raw_text(element: Any, index: Optional[int] = None) -> str:
    """JSON text of a deferred-parsed element, numbers in their literal form."""
    if isinstance(element, NumberLiteral):
        return str(element)
    return json.dumps(natural(element, index), separators=(",", ":"))


def decode_typed(data: Union[str, bytes, bytearray], signature: str) -> SortValues:
    """Decode a sort array using a type signature.

    Raises:
        DecodeError: If data is not a JSON array
        SortDecodeError: If an element does not match its declared kind
    """
    try:
        parsed = loads_deferred(data)
    except ValueError as e:
        raise DecodeError(f"invalid sort JSON: {e}") from e

    if parsed is None:
        return SortValues()
    if not isinstance(parsed, list):
        raise DecodeError("sort value must be a JSON array")

    result = SortValues()
    for idx, element in enumerate(parsed):
        code = signature[idx] if idx < len(signature) else None
        decoder = KIND_DECODERS.get(code) if code else None
        if decoder is None:
            result.push(SortValue.from_python(element, idx))
        else:
            result.push(decoder(element, idx))
    return result


class SortDecoder:
    """Decoder producing SortValues from raw bytes.

    Args:
        signature: Optional per-position type signature; None sniffs each
                   numeric literal instead
    """

    def __init__(self, signature: Optional[str] = None):
        self.signature = signature

    def decode(self, data: bytes) -> SortValues:
        return SortValues.from_json(data, signature=self.signature)

    def __repr__(self) -> str:
        return f"SortDecoder(signature={self.signature!r})"
