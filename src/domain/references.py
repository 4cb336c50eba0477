import re

_HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)


def is_http_url(value: object) -> bool:
    return isinstance(value, str) and _HTTP_URL.match(value) is not None


def is_valid_reference(reference: str | None) -> bool:
    """A destination reference must be an http(s) URL; empty and None never are."""
    return is_http_url(reference)
