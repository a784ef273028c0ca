"""Canonical query-string encoding and HMAC signing for the EcoFlow open API.

Every signed request carries ``accessKey``, ``nonce``, ``timestamp`` and
``sign`` headers.  The signature covers the request parameters flattened
into ``key=value`` pairs, sorted, and joined with ``&``::

    deviceInfo.id=1&deviceList[0].id=1&deviceList[1].id=2&ids[0]=1&name=demo1

followed by ``accessKey=...&nonce=...&timestamp=...``.  The server performs
the same computation, so ordering and number formatting must match it
exactly.  Values are inserted verbatim (no URL encoding).
"""

from __future__ import annotations

import hashlib
import hmac
import math
import random
import time
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal


def encrypt_hmac_sha256(message: str, secret: str) -> str:
    """HMAC-SHA256 of *message* keyed by *secret*, as lowercase hex."""
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def _format_float(value: float) -> str:
    """Shortest round-tripping decimal, never in exponent notation."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def flatten(params: Mapping[str, object]) -> list[str]:
    """Flatten a parameter tree into unsorted ``key=value`` pairs.

    Top-level keys are used as-is.  Below them, dict entries extend the
    prefix with ``.key`` and list items with ``[index]``.  Values of any
    other type (``None`` included) produce no pair at all.
    """
    pairs: list[str] = []
    for key, value in params.items():
        pairs.extend(_flatten_value(str(key), value))
    return pairs


def _flatten_value(prefix: str, value: object) -> list[str]:
    if isinstance(value, dict):
        pairs: list[str] = []
        for key, nested in value.items():
            pairs.extend(_flatten_value(f"{prefix}.{key}", nested))
        return pairs
    if isinstance(value, (list, tuple)):
        pairs = []
        for index, item in enumerate(value):
            pairs.extend(_flatten_value(f"{prefix}[{index}]", item))
        return pairs
    if isinstance(value, bool):
        return [f"{prefix}={'true' if value else 'false'}"]
    if isinstance(value, int):
        return [f"{prefix}={int(value)}"]
    if isinstance(value, float):
        return [f"{prefix}={_format_float(value)}"]
    if isinstance(value, str):
        return [f"{prefix}={value}"]
    return []


def canonicalize(params: dict[str, object] | None) -> str:
    """Build the canonical query string for *params* (``""`` when empty)."""
    if not params:
        return ""
    return "&".join(sorted(flatten(params)))


def sign(query_string: str, nonce: str, timestamp: str, access_key: str, secret_key: str) -> str:
    """Compute the ``sign`` header for an already canonicalized query string."""
    message = f"accessKey={access_key}&nonce={nonce}&timestamp={timestamp}"
    if query_string:
        message = f"{query_string}&{message}"
    return encrypt_hmac_sha256(message, secret_key)


def generate_nonce() -> str:
    """Random six-digit nonce."""
    return str(random.randint(100000, 999999))  # noqa: S311


def generate_timestamp() -> str:
    """Current UTC time in nanoseconds."""
    return str(time.time_ns())


@dataclass(frozen=True)
class SignParameters:
    """Everything needed to authenticate one request."""

    query_string: str
    nonce: str
    timestamp: str
    access_key: str
    sign: str

    @property
    def headers(self) -> dict[str, str]:
        """The four authentication headers."""
        return {
            "accessKey": self.access_key,
            "nonce": self.nonce,
            "timestamp": self.timestamp,
            "sign": self.sign,
        }


def sign_parameters(
    params: dict[str, object] | None, access_key: str, secret_key: str
) -> SignParameters:
    """Generate fresh nonce/timestamp and sign *params* with them."""
    nonce = generate_nonce()
    timestamp = generate_timestamp()
    query_string = canonicalize(params)
    return SignParameters(
        query_string=query_string,
        nonce=nonce,
        timestamp=timestamp,
        access_key=access_key,
        sign=sign(query_string, nonce, timestamp, access_key, secret_key),
    )
