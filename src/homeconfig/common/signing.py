"""HMAC request signing for service-to-service auth."""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

API_KEY_HEADER = "X-API-Key"
USER_ID_HEADER = "X-User-Id"
SIGNATURE_HEADER = "X-Signature"
TIMESTAMP_HEADER = "X-Timestamp"

AUTH_HEADERS = (API_KEY_HEADER, USER_ID_HEADER, SIGNATURE_HEADER, TIMESTAMP_HEADER)

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class SigningCredentials:
    """Shared secrets between the main app and the configuration service."""

    api_key: str
    signing_secret: str

    def __repr__(self) -> str:
        return "SigningCredentials(api_key=***, signing_secret=***)"


def build_message(method: str, path: str, body: str, timestamp: str | int) -> bytes:
    """Build the canonical `METHOD:PATH:BODY:TIMESTAMP` payload."""
    return ":".join([method, path, body, str(timestamp)]).encode("utf-8")


def sign(secret: str, message: bytes) -> str:
    """Create a hex-encoded HMAC-SHA256 signature."""
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def generate_signature(
    secret: str,
    method: str,
    path: str,
    body: str,
    timestamp: str | int,
) -> str:
    """Sign a request tuple."""
    return sign(secret, build_message(method, path, body, timestamp))


def verify(secret: str, message: bytes, signature: str) -> bool:
    """Verify HMAC signature in constant time."""
    expected = sign(secret, message)
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))


def canonical_path(base_path: str, sub_path: str = "") -> str:
    """Join a mount prefix and sub path the way the signer sees it.

    Query strings are dropped and a trailing slash is stripped unless the
    whole path is ``/``.
    """
    path = f"{base_path}{sub_path}".split("?", 1)[0]
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path or "/"


def _compact(payload: Any) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def canonical_body(payload: Any) -> str:
    """Serialize a JSON payload to the compact text that gets signed.

    ``None`` means no body and signs as ``""``. Floats render the Python way
    (``1.0``) and differ from ``JSON.stringify`` (``1``), so integral floats
    signed by a JavaScript client do not verify.
    """
    if payload is None:
        return ""
    return _compact(payload)


def body_text(raw: bytes) -> str:
    """Re-derive the signed body text from raw request bytes."""
    if not raw.strip():
        return ""
    try:
        payload = json.loads(raw)
    except ValueError:
        return raw.decode("utf-8", errors="replace")
    # A literal null body is not the same as no body.
    return _compact(payload)


class RequestSigner:
    """Produces auth headers for outbound calls to the configuration service."""

    def __init__(self, credentials: SigningCredentials, clock: Clock = now_ms) -> None:
        self._credentials = credentials
        self._clock = clock

    def headers(
        self,
        caller_id: str,
        method: str,
        path: str,
        body: str = "",
    ) -> dict[str, str]:
        """Return the four auth headers for a single request."""
        timestamp = str(self._clock())
        signature = generate_signature(
            self._credentials.signing_secret,
            method,
            canonical_path(path),
            body,
            timestamp,
        )
        return {
            API_KEY_HEADER: self._credentials.api_key,
            USER_ID_HEADER: caller_id,
            SIGNATURE_HEADER: signature,
            TIMESTAMP_HEADER: timestamp,
        }
