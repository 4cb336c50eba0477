"""
Decoder for the polymorphic ``photos`` column.

The upstream schema changed several times and historical rows keep their
original shape, so the decoder accepts every known shape and maps anything
else to an empty list. It never raises.
"""
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from src.domain.references import is_http_url

URL_ALIAS_KEYS: tuple[str, ...] = ("url", "publicUrl", "public_url", "path")
WRAPPER_ALIAS_KEYS: tuple[str, ...] = ("urls", "photos", "items")
DELIMITER = ";"


class PhotoShape(Enum):
    STRING_LIST = "string_list"
    OBJECT_LIST = "object_list"
    DELIMITED = "delimited"
    WRAPPED = "wrapped"
    EMPTY = "empty"


def classify_photos(raw: Any) -> PhotoShape:
    if isinstance(raw, list):
        if all(isinstance(p, str) for p in raw):
            return PhotoShape.STRING_LIST
        if all(isinstance(p, Mapping) for p in raw):
            return PhotoShape.OBJECT_LIST
        return PhotoShape.EMPTY
    if isinstance(raw, str):
        return PhotoShape.DELIMITED
    if isinstance(raw, Mapping) and _wrapped_list(raw) is not None:
        return PhotoShape.WRAPPED
    return PhotoShape.EMPTY


def _wrapped_list(raw: Mapping[str, Any]) -> list[Any] | None:
    for key in WRAPPER_ALIAS_KEYS:
        candidate = raw.get(key)
        if candidate is not None:
            return candidate if isinstance(candidate, list) else None
    return None


def _from_string_list(raw: list[str]) -> list[str]:
    return list(raw)


def _from_object_list(raw: list[Mapping[str, Any]]) -> list[str]:
    urls: list[str] = []
    for entry in raw:
        url = next((entry[k] for k in URL_ALIAS_KEYS if entry.get(k)), None)
        if is_http_url(url):
            urls.append(url)
    return urls


def _from_delimited(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(DELIMITER) if part.strip()]


def _from_wrapped(raw: Mapping[str, Any]) -> list[str]:
    inner = _wrapped_list(raw) or []
    # Recurse once: a wrapper inside a wrapper is not a known shape.
    shape = classify_photos(inner)
    if shape in (PhotoShape.STRING_LIST, PhotoShape.OBJECT_LIST):
        return _DECODERS[shape](inner)
    return []


def _empty(_: Any) -> list[str]:
    return []


_DECODERS: dict[PhotoShape, Callable[[Any], list[str]]] = {
    PhotoShape.STRING_LIST: _from_string_list,
    PhotoShape.OBJECT_LIST: _from_object_list,
    PhotoShape.DELIMITED: _from_delimited,
    PhotoShape.WRAPPED: _from_wrapped,
    PhotoShape.EMPTY: _empty,
}


def normalize_photos(raw: Any) -> list[str]:
    """Return the ordered list of photo URLs held in `raw`."""
    return _DECODERS[classify_photos(raw)](raw)
