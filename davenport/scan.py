"""Copy raw JSON payloads out of a feed.

Feeds may reuse their read buffers between elements, so raw-byte
targets always receive a private copy. Everything else goes through
pydantic's JSON validation.

    scan(bytes, raw)          -> fresh bytes copy
    scan(buf, raw)            -> buf (a bytearray) refilled with a copy
    scan(RawJSON, raw)        -> raw itself, no copy
    scan(dict, raw)           -> decoded JSON object
    scan(MyModel, raw)        -> validated pydantic model / dataclass
    scan(None, raw)           -> NilPointerError
"""

from functools import lru_cache
from typing import Any, NewType, Union

from pydantic import TypeAdapter

from davenport.errors import NilPointerError

RawJSON = NewType("RawJSON", bytes)

RawInput = Union[bytes, bytearray, memoryview]


@lru_cache(maxsize=256)
def _adapter(target: Any) -> TypeAdapter:
    return TypeAdapter(target)


def scan(dest: Any, raw: RawInput) -> Any:
    """Decode ``raw`` into the shape described by ``dest``.

    Args:
        dest: bytes or bytearray (a raw copy), RawJSON, a bytearray
            instance to fill, or any type pydantic can validate (dict,
            list, Any, models, dataclasses, ...)
        raw: The undecoded JSON value

    Returns:
        The decoded value (or ``dest`` itself for a bytearray)

    Raises:
        NilPointerError: ``dest`` is None
        pydantic.ValidationError: ``raw`` does not decode into ``dest``
    """
    if dest is None:
        raise NilPointerError()
    if isinstance(dest, bytearray):
        dest[:] = bytes(raw)
        return dest
    if dest is bytes:
        return bytes(raw)
    if dest is bytearray:
        return bytearray(raw)
    if dest is RawJSON:
        return RawJSON(raw)
    try:
        adapter = _adapter(dest)
    except TypeError:
        # Unhashable typing forms skip the cache.
        adapter = TypeAdapter(dest)
    return adapter.validate_json(bytes(raw))


__all__ = [
    "RawJSON",
    "scan",
]
