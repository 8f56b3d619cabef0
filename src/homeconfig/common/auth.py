"""Signature auth gate and middleware for service-to-service requests."""

from __future__ import annotations

import hmac
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from homeconfig.common.errors import ErrorCode, error_response
from homeconfig.common.http import set_caller
from homeconfig.common.logging import get_logger
from homeconfig.common.settings import Settings
from homeconfig.common.signing import (
    API_KEY_HEADER,
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    USER_ID_HEADER,
    Clock,
    SigningCredentials,
    body_text,
    build_message,
    canonical_path,
    now_ms,
    verify,
)

logger = get_logger(__name__)

REPLAY_WINDOW_MS = 5 * 60 * 1000


class RejectReason(Enum):
    """Why a request failed authentication."""

    MISSING_CREDENTIAL = "missing_credential"
    INVALID_API_KEY = "invalid_api_key"
    EXPIRED_TIMESTAMP = "expired_timestamp"
    INVALID_SIGNATURE = "invalid_signature"


@dataclass(frozen=True)
class Reject:
    """Terminal authentication failure."""

    reason: RejectReason
    message: str


@dataclass(frozen=True)
class Accept:
    """Request authenticated as ``caller_id``."""

    caller_id: str


@dataclass(frozen=True)
class CallerIdentity:
    """Verified caller attached to request state."""

    caller_id: str


@dataclass(frozen=True)
class InboundRequest:
    """Materialized request as seen by the gate.

    ``base_path`` is the mount prefix and ``sub_path`` the route path below
    it; ``body`` is the signed body text (empty for bodyless requests).
    """

    method: str
    base_path: str
    sub_path: str
    headers: Mapping[str, str]
    body: str = ""

    def header(self, name: str) -> str | None:
        value = self.headers.get(name)
        if value is None:
            lowered = name.lower()
            for key, candidate in self.headers.items():
                if key.lower() == lowered:
                    value = candidate
                    break
        return value or None

    @property
    def path(self) -> str:
        return canonical_path(self.base_path, self.sub_path)


@dataclass(frozen=True)
class RuleContext:
    """Inputs shared by every rule for one evaluation."""

    credentials: SigningCredentials
    now_ms: int
    replay_window_ms: int


ValidationRule = Callable[[InboundRequest, RuleContext], Reject | None]


def require_api_key(request: InboundRequest, _ctx: RuleContext) -> Reject | None:
    if not request.header(API_KEY_HEADER):
        return Reject(
            RejectReason.MISSING_CREDENTIAL,
            "API key is required. Provide X-API-Key header.",
        )
    return None


def check_api_key(request: InboundRequest, ctx: RuleContext) -> Reject | None:
    api_key = request.header(API_KEY_HEADER) or ""
    if not hmac.compare_digest(api_key.encode("utf-8"), ctx.credentials.api_key.encode("utf-8")):
        return Reject(RejectReason.INVALID_API_KEY, "Invalid API key")
    return None


def require_user_id(request: InboundRequest, _ctx: RuleContext) -> Reject | None:
    if not request.header(USER_ID_HEADER):
        return Reject(RejectReason.MISSING_CREDENTIAL, "X-User-Id header is required")
    return None


def require_signature(request: InboundRequest, _ctx: RuleContext) -> Reject | None:
    if not request.header(SIGNATURE_HEADER):
        return Reject(RejectReason.MISSING_CREDENTIAL, "X-Signature header is required")
    return None


def require_timestamp(request: InboundRequest, _ctx: RuleContext) -> Reject | None:
    if not request.header(TIMESTAMP_HEADER):
        return Reject(RejectReason.MISSING_CREDENTIAL, "X-Timestamp header is required")
    return None


def check_replay_window(request: InboundRequest, ctx: RuleContext) -> Reject | None:
    try:
        timestamp = int(request.header(TIMESTAMP_HEADER) or "")
    except ValueError:
        return Reject(
            RejectReason.EXPIRED_TIMESTAMP,
            "X-Timestamp header must be epoch milliseconds",
        )

    if abs(ctx.now_ms - timestamp) > ctx.replay_window_ms:
        return Reject(
            RejectReason.EXPIRED_TIMESTAMP,
            "Request timestamp is too old. Possible replay attack.",
        )
    return None


def check_signature(request: InboundRequest, ctx: RuleContext) -> Reject | None:
    message = build_message(
        request.method,
        request.path,
        request.body,
        request.header(TIMESTAMP_HEADER) or "",
    )
    signature = request.header(SIGNATURE_HEADER) or ""
    if not verify(ctx.credentials.signing_secret, message, signature):
        return Reject(
            RejectReason.INVALID_SIGNATURE,
            "Invalid signature. Request may have been tampered with.",
        )
    return None


DEFAULT_RULES: tuple[ValidationRule, ...] = (
    require_api_key,
    check_api_key,
    require_user_id,
    require_signature,
    require_timestamp,
    check_replay_window,
    check_signature,
)


class SignatureAuthGate:
    """Runs the auth rules in order; the first rejection wins."""

    def __init__(
        self,
        credentials: SigningCredentials,
        clock: Clock = now_ms,
        replay_window_ms: int = REPLAY_WINDOW_MS,
        rules: Sequence[ValidationRule] = DEFAULT_RULES,
    ) -> None:
        self._credentials = credentials
        self._clock = clock
        self._replay_window_ms = replay_window_ms
        self._rules = tuple(rules)

    def evaluate(self, request: InboundRequest) -> Accept | Reject:
        ctx = RuleContext(
            credentials=self._credentials,
            now_ms=self._clock(),
            replay_window_ms=self._replay_window_ms,
        )
        for rule in self._rules:
            rejection = rule(request, ctx)
            if rejection is not None:
                logger.warning(
                    "Request rejected",
                    rule=rule.__name__,
                    reason=rejection.reason.value,
                    method=request.method,
                    path=request.path,
                )
                return rejection

        caller_id = request.header(USER_ID_HEADER)
        assert caller_id is not None
        return Accept(caller_id=caller_id)


class SignatureAuthMiddleware(BaseHTTPMiddleware):
    """Gate every request under the API prefix behind signature auth."""

    def __init__(
        self,
        app: ASGIApp,
        settings: Settings,
        gate: SignatureAuthGate | None = None,
    ) -> None:
        super().__init__(app)
        self._prefix = settings.api_prefix.rstrip("/")
        self._exempt_paths = set(settings.auth_exempt_paths)
        self._gate = gate or SignatureAuthGate(
            settings.signing_credentials(),
            replay_window_ms=settings.replay_window_ms,
        )

    def _is_protected(self, path: str) -> bool:
        if path in self._exempt_paths:
            return False
        if not self._prefix:
            return True
        return path == self._prefix or path.startswith(f"{self._prefix}/")

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if request.method == "OPTIONS" or not self._is_protected(path):
            return await call_next(request)

        # Signers sign the path as sent, before percent-decoding.
        raw_path = request.scope.get("raw_path")
        if raw_path:
            path = raw_path.decode("ascii", errors="replace").split("?", 1)[0]

        raw_body = await request.body()
        inbound = InboundRequest(
            method=request.method,
            base_path=self._prefix,
            sub_path=path[len(self._prefix):] or "/",
            headers=request.headers,
            body=body_text(raw_body),
        )

        outcome = self._gate.evaluate(inbound)
        if isinstance(outcome, Reject):
            return error_response(ErrorCode.UNAUTHORIZED, outcome.message, status_code=401)

        request.state.auth = CallerIdentity(caller_id=outcome.caller_id)
        set_caller(outcome.caller_id)
        return await call_next(request)
