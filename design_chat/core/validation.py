"""Input sanitization and URL/email validation"""

import ipaddress
import re
import socket
from typing import List, Optional
from urllib.parse import urlsplit

# Maximum length limits for user inputs
INPUT_LIMITS = {
    "email": 254,
    "url": 2048,
    "text_field": 5000,
    "description": 2000,
    "business_description": 10000,
    "goals": 5000,
    "feedback": 5000,
}

_PROTOCOL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
_DOMAIN_PATTERN = re.compile(
    r"^([a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}(/.*)?$"
)
_URL_IN_TEXT_PATTERN = re.compile(r"https?://[^\s,|]+", re.IGNORECASE)
_DOMAIN_IN_TEXT_PATTERN = re.compile(
    r"([a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}(/[^\s,|]*)?"
)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)
_PRIVATE_IPV4_PREFIX = re.compile(r"^(10\.|172\.(1[6-9]|2[0-9]|3[01])\.|192\.168\.|169\.254\.)")
_NUMERIC_HOST_PART = re.compile(r"^(0x[0-9a-f]*|[0-9]+)$", re.IGNORECASE)


def sanitize_text(value: Optional[str]) -> str:
    """Remove null bytes and control characters (keeping newlines and tabs), then trim"""
    if not isinstance(value, str):
        return ""
    return _CONTROL_CHARS.sub("", value).strip()


def validate_and_sanitize_text(value: Optional[str], max_length: int = INPUT_LIMITS["text_field"]) -> Optional[str]:
    sanitized = sanitize_text(value)
    if not sanitized or len(sanitized) > max_length:
        return None
    return sanitized


def normalize_url(url: str) -> str:
    """
    Prepend https:// to domain-only input.

    Already-prefixed URLs and anything that does not look like a domain are
    returned trimmed but otherwise unchanged, so applying it twice is a no-op.
    """
    trimmed = url.strip()
    if not trimmed:
        return trimmed
    if _PROTOCOL_PATTERN.match(trimmed):
        return trimmed
    if " " not in trimmed and _DOMAIN_PATTERN.match(trimmed):
        return f"https://{trimmed}"
    return trimmed


def extract_urls(text: str) -> List[str]:
    """Find URLs (with or without protocol) in free text, deduplicated after normalization"""
    candidates = _URL_IN_TEXT_PATTERN.findall(text)
    candidates += [match.group(0) for match in _DOMAIN_IN_TEXT_PATTERN.finditer(text)]

    found: List[str] = []
    seen = set()
    for candidate in candidates:
        normalized = normalize_url(candidate)
        if normalized in seen:
            continue
        seen.add(normalized)
        found.append(candidate)
    return found


def has_urls(text: str) -> bool:
    return len(extract_urls(text)) > 0


def _numeric_ipv4(hostname: str) -> Optional[ipaddress.IPv4Address]:
    """
    Resolve shorthand IPv4 forms (127.1, 2130706433, 0x7f000001) the way a
    browser URL parser does. Returns None for names that are not numeric.

    Raises:
        ValueError: the host is numeric but not a usable address
    """
    parts = hostname.rstrip(".").split(".")
    if not 1 <= len(parts) <= 4 or not all(_NUMERIC_HOST_PART.match(part) for part in parts):
        return None
    try:
        return ipaddress.IPv4Address(socket.inet_aton(hostname.rstrip(".")))
    except OSError as e:
        raise ValueError(f"Unusable numeric host {hostname!r}") from e


def _is_blocked_address(address) -> bool:
    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_unspecified
        or address.is_multicast
        or address.is_reserved
    )


def _is_blocked_host(hostname: str) -> bool:
    if hostname in ("localhost", "127.0.0.1", "::1", "0.0.0.0"):
        return True
    if hostname.endswith(".local") or hostname.endswith(".localhost"):
        return True
    if _PRIVATE_IPV4_PREFIX.match(hostname):
        return True
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        try:
            address = _numeric_ipv4(hostname)
        except ValueError:
            return True
        if address is None:
            return False
    return _is_blocked_address(address)


def is_safe_url(url: Optional[str]) -> bool:
    """Reject non-http(s) schemes, loopback, private and link-local hosts, and .local names"""
    if not url or not isinstance(url, str):
        return False

    trimmed = url.strip()
    if len(trimmed) > INPUT_LIMITS["url"]:
        return False
    if not _PROTOCOL_PATTERN.match(trimmed):
        return False

    try:
        hostname = (urlsplit(trimmed).hostname or "").lower()
    except ValueError:
        return False
    if not hostname:
        return False

    return not _is_blocked_host(hostname)


def validate_and_normalize_url(url: Optional[str]) -> Optional[str]:
    """Normalized URL when it is well formed and safe to fetch, otherwise None"""
    sanitized = sanitize_text(url)
    if not sanitized:
        return None

    normalized = normalize_url(sanitized)
    if not _PROTOCOL_PATTERN.match(normalized):
        return None
    if any(char.isspace() for char in normalized):
        return None
    if not is_safe_url(normalized):
        return None
    return normalized


def validate_email(email: Optional[str]) -> Optional[str]:
    """Lower-cased address when valid, otherwise None"""
    sanitized = sanitize_text(email)
    if not sanitized or len(sanitized) > INPUT_LIMITS["email"]:
        return None
    if not _EMAIL_PATTERN.match(sanitized):
        return None
    return sanitized.lower()
