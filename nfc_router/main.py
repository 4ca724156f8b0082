"""NFC Artwork Router — FastAPI application entry point.

NFC tags and exhibit devices hit the same URLs. Humans on phones are
redirected to the public artwork page; authenticated exhibit devices get
artwork metadata as JSON; crawlers and scripted clients are refused.
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from nfc_router.config.settings import get_settings
from nfc_router.logging.audit import (
    audit_extra,
    generate_request_id,
    get_audit_logger,
    request_id_var,
    setup_logging,
)
from nfc_router.routing.dispatcher import (
    Dispatcher,
    LookupOutcome,
    LookupRequest,
    build_dispatcher,
    internal_error,
)
from nfc_router.security.identity import client_identity

VERSION = "0.3.0"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=(), payment=()",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}

DEVICE_TYPE_HEADER = "X-Device-Type"

_dispatcher: Dispatcher | None = None


def get_dispatcher() -> Dispatcher:
    """Dispatcher singleton, built from settings on first use."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = build_dispatcher(get_settings())
    return _dispatcher


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    global _dispatcher
    setup_logging()
    get_dispatcher()
    get_audit_logger().info("Router started")
    yield
    if _dispatcher is not None:
        await _dispatcher.close()
        _dispatcher = None
    get_audit_logger().info("Router stopped")


app = FastAPI(
    title="NFC Artwork Router",
    description="Routes NFC-triggered artwork requests to redirects or device payloads",
    version=VERSION,
    lifespan=lifespan,
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next) -> Response:
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers[name] = value
    return response


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework errors (unknown path, wrong method) in the router's error shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    # Runs outside the middleware stack, so headers are applied here
    get_audit_logger().error(
        "Unhandled error",
        exc_info=exc,
        extra=audit_extra("internal_error", path=request.url.path),
    )
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"},
        headers=SECURITY_HEADERS,
    )


@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}


@app.get("/artwork/{slug}")
@app.get("/api/artwork/{slug}")
async def artwork(slug: str, request: Request, dispatcher: Dispatcher = Depends(get_dispatcher)):
    """Artwork lookup.

    Pipeline: Classify -> Rate Limit -> Auth (devices) -> Validate Slug -> Resolve
    """
    return await _dispatch(dispatcher.handle, slug, request)


@app.get("/nfc/{slug}")
@app.get("/api/nfc/{slug}")
async def nfc_tag(slug: str, request: Request, dispatcher: Dispatcher = Depends(get_dispatcher)):
    """URL written to the physical tag: redirect humans, point devices at /artwork."""
    return await _dispatch(dispatcher.discover, slug, request)


async def _dispatch(step, slug: str, request: Request) -> Response:
    rid = generate_request_id()
    request_id_var.set(rid)

    lookup = LookupRequest(
        slug=slug,
        client_ip=client_identity(request.headers, request.client.host if request.client else None),
        user_agent=request.headers.get("user-agent", ""),
        authorization=request.headers.get("authorization"),
        device_type=request.headers.get(DEVICE_TYPE_HEADER),
    )

    try:
        outcome = await step(lookup)
    except Exception:
        get_audit_logger().exception(
            "Unhandled error in artwork pipeline",
            extra=audit_extra("internal_error", slug=slug),
        )
        outcome = internal_error()

    return _render(outcome, rid)


def _render(outcome: LookupOutcome, rid: str) -> Response:
    headers = {**outcome.headers, "X-Request-Id": rid}
    if outcome.redirect_url is not None:
        return RedirectResponse(url=outcome.redirect_url, status_code=outcome.status_code, headers=headers)
    return JSONResponse(status_code=outcome.status_code, content=outcome.body, headers=headers)
