"""URL parsing helpers shared by the normalizer and the icon resolver."""

from typing import Optional, NamedTuple
from urllib.parse import urlsplit, urlunsplit

from ..errors import ParseFailure

# Schemes with a tuple origin, mapped to their default port
SPECIAL_SCHEMES = {"http": 80, "https": 443, "ws": 80, "wss": 443, "ftp": 21}


class Origin(NamedTuple):
    scheme: str
    host: str
    port: int

    def serialize(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port == SPECIAL_SCHEMES[self.scheme]:
            return f"{self.scheme}://{host}"
        return f"{self.scheme}://{host}:{self.port}"


def _split(value: str):
    value = value.strip()
    try:
        parts = urlsplit(value)
        port = parts.port
    except ValueError as e:
        raise ParseFailure(f"invalid URL {value!r}: {e}") from e

    scheme = parts.scheme.lower()
    if not scheme:
        raise ParseFailure(f"invalid URL {value!r}: relative URL without a base")

    if scheme in SPECIAL_SCHEMES:
        host = parts.hostname
        if not host:
            raise ParseFailure(f"invalid URL {value!r}: empty host")
        if any(c.isspace() for c in host):
            raise ParseFailure(f"invalid URL {value!r}: invalid host")
    return parts, scheme, port


def normalize_url(value: str) -> str:
    """Parse an absolute URL and return its normalized string form.

    Scheme and host are lower-cased, the default port is dropped and an empty
    path on http-like URLs becomes ``/``. Raises ParseFailure when the value
    is not an absolute URL.
    """
    parts, scheme, port = _split(value)
    if scheme not in SPECIAL_SCHEMES:
        return urlunsplit((scheme, parts.netloc, parts.path, parts.query, parts.fragment))

    host = parts.hostname
    netloc = f"[{host}]" if ":" in host else host
    if port is not None and port != SPECIAL_SCHEMES[scheme]:
        netloc = f"{netloc}:{port}"
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    return urlunsplit((scheme, netloc, parts.path or "/", parts.query, parts.fragment))


def url_origin(value: str) -> Optional[Origin]:
    """Return the (scheme, host, port) origin of a URL, or None if it is opaque."""
    parts, scheme, port = _split(value)
    if scheme not in SPECIAL_SCHEMES:
        return None
    if port is None:
        port = SPECIAL_SCHEMES[scheme]
    return Origin(scheme, parts.hostname, port)
