"""Request dispatcher — the artwork lookup pipeline.

Pipeline: Classify -> Rate Limit -> (device) Authenticate -> Validate Slug -> Resolve

Each stage may end the request. The dispatcher is transport-neutral: it
takes a LookupRequest and returns a LookupOutcome that the HTTP layer
renders as JSON or a redirect.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from urllib.parse import quote

from nfc_router.artworks.factory import build_artwork_store
from nfc_router.artworks.resolver import ArtworkResolver
from nfc_router.config.settings import Settings
from nfc_router.counters.factory import build_counter_store
from nfc_router.errors import ArtworkStoreError
from nfc_router.logging.audit import RequestTimer, audit_extra, get_audit_logger, lookup_context
from nfc_router.security.auth import authenticate
from nfc_router.security.classifier import RequestClass, SignatureSet, classify
from nfc_router.security.ratelimit import RateLimiter, RateLimitResult
from nfc_router.security.validation import is_valid_slug
from nfc_router.tokens.provider import build_token_provider


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    REDIRECT = "redirect"
    DISCOVERY = "discovery"
    BOT_BLOCKED = "bot_blocked"
    RATE_LIMITED = "rate_limited"
    UNAUTHORIZED = "unauthorized"
    INVALID_SLUG = "invalid_slug"
    NOT_FOUND = "not_found"
    DEPENDENCY_UNAVAILABLE = "dependency_unavailable"
    INTERNAL = "internal"


@dataclass
class LookupRequest:
    slug: str
    client_ip: str
    user_agent: str = ""
    authorization: str | None = None
    device_type: str | None = None


@dataclass
class LookupOutcome:
    kind: OutcomeKind
    status_code: int
    body: dict | None = None
    redirect_url: str | None = None
    headers: dict[str, str] = field(default_factory=dict)


def internal_error(kind: OutcomeKind = OutcomeKind.INTERNAL) -> LookupOutcome:
    """Generic 500. Never carries exception detail."""
    return LookupOutcome(
        kind=kind,
        status_code=500,
        body={"error": "Internal server error"},
    )


class Dispatcher:
    """Runs every lookup through the fixed pipeline. Holds no per-request state."""

    def __init__(
        self,
        signatures: SignatureSet,
        rate_limiter: RateLimiter,
        resolver: ArtworkResolver,
        auth_token: str,
        public_base_url: str,
        api_base_url: str,
        cache_control: str,
    ):
        self.signatures = signatures
        self.rate_limiter = rate_limiter
        self.resolver = resolver
        self._auth_token = auth_token
        self._public_base_url = public_base_url.rstrip("/")
        self._api_base_url = api_base_url.rstrip("/")
        self._cache_control = cache_control

    async def handle(self, request: LookupRequest) -> LookupOutcome:
        """Serve `GET /artwork/{slug}`."""
        logger = get_audit_logger()
        audit = lookup_context(request.slug, request.client_ip, request.user_agent)

        # 1-2. Classification and rate limiting
        caller_class, rate_result, blocked = await self._admit(request, audit)
        if blocked is not None:
            return blocked

        # 3. Humans go to the public page; no lookup needed
        if caller_class is RequestClass.GENERIC:
            return self._redirect(request.slug, audit)

        # 3b. Devices must present the shared bearer token
        if not authenticate(request.authorization, self._auth_token):
            logger.warning(
                "Device authentication failed",
                extra=audit_extra("auth_failed", audit),
            )
            return LookupOutcome(
                kind=OutcomeKind.UNAUTHORIZED,
                status_code=401,
                body={"error": "Unauthorized"},
            )

        # 4. Slug format
        if not is_valid_slug(request.slug):
            logger.info(
                "Invalid slug rejected",
                extra=audit_extra("invalid_slug", audit),
            )
            return LookupOutcome(
                kind=OutcomeKind.INVALID_SLUG,
                status_code=400,
                body={"error": "Invalid slug format"},
            )

        # 5. Resolve
        try:
            with RequestTimer() as timer:
                resolved = await self.resolver.resolve(request.slug, want_machine_token=True)
        except ArtworkStoreError as e:
            logger.error(
                "Artwork store unavailable",
                extra=audit_extra("artwork_store_failed", audit, error=str(e)),
            )
            return internal_error(OutcomeKind.DEPENDENCY_UNAVAILABLE)

        if resolved is None:
            logger.info(
                "Artwork not found",
                extra=audit_extra("not_found", audit),
            )
            return LookupOutcome(
                kind=OutcomeKind.NOT_FOUND,
                status_code=404,
                body={"error": "Artwork not found", "slug": request.slug},
            )

        logger.info(
            "Artwork served",
            extra=audit_extra(
                "served",
                audit,
                exclusive=resolved.record.exclusive,
                machine_token_issued=resolved.machine_token is not None,
                latency_ms=timer.elapsed_ms,
                rate_limit_remaining=rate_result.remaining,
                rate_limit_degraded=rate_result.degraded,
            ),
        )
        return LookupOutcome(
            kind=OutcomeKind.SUCCESS,
            status_code=200,
            body=resolved.to_payload(rate_result.remaining),
            headers={
                "Cache-Control": self._cache_control,
                "X-Rate-Limit-Remaining": str(rate_result.remaining),
            },
        )

    async def discover(self, request: LookupRequest) -> LookupOutcome:
        """Serve the NFC tag URL: point devices at the authenticated endpoint."""
        audit = lookup_context(request.slug, request.client_ip, request.user_agent)

        caller_class, _, blocked = await self._admit(request, audit)
        if blocked is not None:
            return blocked

        if caller_class is RequestClass.GENERIC:
            return self._redirect(request.slug, audit)

        get_audit_logger().info(
            "Device discovery served",
            extra=audit_extra("discovery", audit),
        )
        return LookupOutcome(
            kind=OutcomeKind.DISCOVERY,
            status_code=200,
            body={
                "type": "exclusive",
                "slug": request.slug,
                "auth_required": True,
                "api_endpoint": f"{self._api_base_url}/artwork/{quote(request.slug, safe='')}",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    async def _admit(
        self, request: LookupRequest, audit: dict
    ) -> tuple[RequestClass, RateLimitResult | None, LookupOutcome | None]:
        """Classify and rate-limit. Returns (class, rate result, terminal outcome or None)."""
        logger = get_audit_logger()

        caller_class = classify(request.user_agent, request.device_type, self.signatures)
        audit["request_class"] = caller_class.value
        if caller_class is RequestClass.BOT:
            logger.warning(
                "Bot blocked",
                extra=audit_extra("bot_blocked", audit),
            )
            return caller_class, None, LookupOutcome(
                kind=OutcomeKind.BOT_BLOCKED,
                status_code=403,
                body={"error": "Forbidden"},
            )

        rate_result = await self.rate_limiter.check_and_consume(request.client_ip)
        if not rate_result.allowed:
            retry_after = rate_result.retry_after
            logger.warning(
                "Rate limit exceeded",
                extra=audit_extra(
                    "rate_limited", audit, rate_limit=rate_result.limit, retry_after=retry_after
                ),
            )
            return caller_class, rate_result, LookupOutcome(
                kind=OutcomeKind.RATE_LIMITED,
                status_code=429,
                body={"error": "Rate limit exceeded", "retry_after": retry_after},
                headers={"Retry-After": str(retry_after)},
            )

        return caller_class, rate_result, None

    def _redirect(self, slug: str, audit: dict) -> LookupOutcome:
        url = f"{self._public_base_url}/{quote(slug, safe='')}/"
        get_audit_logger().info(
            "Redirected to public page",
            extra=audit_extra("redirect", audit),
        )
        return LookupOutcome(kind=OutcomeKind.REDIRECT, status_code=302, redirect_url=url)

    async def close(self) -> None:
        await self.rate_limiter.store.close()
        await self.resolver.close()


def build_dispatcher(settings: Settings) -> Dispatcher:
    """Wire the pipeline from configuration. Called once per process."""
    rate_limiter = RateLimiter(
        store=build_counter_store(settings),
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
        timeout_seconds=settings.rate_limit_timeout_seconds,
    )
    resolver = ArtworkResolver(
        store=build_artwork_store(settings),
        token_provider=build_token_provider(settings),
        store_timeout=settings.artwork_store_timeout_seconds,
        token_timeout=settings.machine_token_timeout_seconds,
    )
    return Dispatcher(
        signatures=SignatureSet.from_settings(settings),
        rate_limiter=rate_limiter,
        resolver=resolver,
        auth_token=settings.nfc_auth_token,
        public_base_url=settings.public_base_url,
        api_base_url=settings.api_base_url,
        cache_control=settings.cache_control,
    )
