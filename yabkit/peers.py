"""Parsing of peer addresses given as ``host:port`` or as URLs."""

from __future__ import annotations

import string
from typing import Iterable, Optional, Sequence


class MixedProtocolsError(ValueError):
    """Raised when peers use different protocols."""

    def __init__(self, expected: str, got: str) -> None:
        super().__init__(
            f"found mixed protocols, expected all to be {expected}, got {got}"
        )
        self.expected = expected
        self.got = got


def _is_host_port(hostport: str) -> bool:
    """Whether ``hostport`` splits cleanly into a host and a port."""
    colon = hostport.rfind(":")
    if colon < 0:
        return False
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0 or end + 1 != colon:
            return False
        host_from, port_from = 1, end + 1
    else:
        if ":" in hostport[:colon]:
            return False
        host_from, port_from = 0, 0
    if "[" in hostport[host_from:]:
        return False
    return "]" not in hostport[port_from:]


_SCHEME_LETTERS = frozenset(string.ascii_letters)
_SCHEME_OTHER = frozenset(string.digits + "+-.")


def _split_scheme(raw: str) -> tuple[str, str]:
    for index, ch in enumerate(raw):
        if ch in _SCHEME_LETTERS:
            continue
        if ch in _SCHEME_OTHER:
            if index == 0:
                return "", raw
            continue
        if ch == ":":
            if index == 0:
                raise ValueError("missing protocol scheme")
            return raw[:index].lower(), raw[index + 1:]
        return "", raw
    return "", raw


def _valid_optional_port(port: str) -> bool:
    if port == "":
        return True
    return port[0] == ":" and all(ch in string.digits for ch in port[1:])


def _parse_host(host: str) -> str:
    if host.startswith("["):
        end = host.rfind("]")
        if end < 0:
            raise ValueError("missing ']' in host")
        if not _valid_optional_port(host[end + 1:]):
            raise ValueError("invalid port after host")
        return host
    colon = host.rfind(":")
    if colon >= 0 and not _valid_optional_port(host[colon:]):
        raise ValueError("invalid port after host")
    return host


def _request_uri_host(raw: str) -> tuple[str, str]:
    """Return (scheme, host) of an absolute request URI; raise ValueError if invalid."""
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in raw):
        raise ValueError("invalid control character in URL")
    if raw == "":
        raise ValueError("empty url")

    scheme, rest = _split_scheme(raw)
    if rest.endswith("?") and rest.count("?") == 1:
        rest = rest[:-1]
    else:
        rest = rest.split("?", 1)[0]

    if not rest.startswith("/"):
        if scheme:
            return scheme, ""
        raise ValueError("invalid URI for request")

    host = ""
    if scheme and rest.startswith("//"):
        authority = rest[2:]
        slash = authority.find("/")
        if slash >= 0:
            authority = authority[:slash]
        host = _parse_host(authority[authority.rfind("@") + 1:])
    return scheme, host


def parse_peer(peer: str) -> tuple[str, str]:
    """Split a peer into (protocol, host).

    A plain ``host:port`` has an empty protocol; so does anything that is not
    an absolute URL, which is then returned unchanged as the host.
    """
    if _is_host_port(peer) and "://" not in peer:
        return "", peer
    try:
        return _request_uri_host(peer)
    except ValueError:
        return "", peer


def ensure_same_protocol(peers: Sequence[str]) -> str:
    """Return the protocol shared by all peers; raise if they differ."""
    if not peers:
        raise ValueError("at least one peer is required")
    expected, _ = parse_peer(peers[0])
    for peer in peers[1:]:
        protocol, _ = parse_peer(peer)
        if protocol != expected:
            raise MixedProtocolsError(expected, protocol)
    return expected


def get_hosts(peers: Iterable[str]) -> list[str]:
    """Return the host part of every peer."""
    return [parse_peer(peer)[1] for peer in peers]


def _first_or_none(items: Sequence[str]) -> Optional[str]:
    return items[0] if items else None