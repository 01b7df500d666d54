"""
Image Proxy HTTP Server

Routes:
    GET  /              plaintext health check
    POST /api/generate  {prompt, size?, n?} -> {images: [...]} or {error}

Middlewares (outermost first): security headers, CORS, per-client rate
limit. Provider calls are blocking and run in the default executor.
"""

import time
import asyncio
from collections import defaultdict, deque
from typing import Any, Callable, Deque, Dict, Optional

from aiohttp import web

from .adapters import ImageProvider, GenerationRequest, create_provider, parse_count
from .config_manager import ProxyConfig
from .errors import ProxyError, ValidationError
from .proxy_logger import logger, log_error

MAX_BODY_SIZE = 5 * 1024 * 1024
HEALTH_TEXT = "AI Image Backend — running"
MISSING_PROMPT = "Missing prompt in request body"
RATE_LIMITED = "Too many requests, please slow down."
GENERIC_FAILURE = "Generation failed"
BODY_TOO_LARGE = "Request body exceeds 5 MB"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
}

CONFIG_KEY = web.AppKey("config", ProxyConfig)
PROVIDER_KEY = web.AppKey("provider", object)
PROVIDER_ERROR_KEY = web.AppKey("provider_error", object)


# ==========================================
# Request Validation
# ==========================================

def validate_request(body: Any, max_count: int = 1) -> GenerationRequest:
    """
    Turn a decoded JSON body into a GenerationRequest.

    n is parsed leniently (non-numbers become 1) and clamped to
    [1, max_count].

    Raises:
        ValidationError: prompt missing or blank
    """
    if not isinstance(body, dict):
        body = {}

    prompt = body.get("prompt")
    text = "" if prompt is None else str(prompt)
    if not text.strip():
        raise ValidationError(MISSING_PROMPT)

    size = body.get("size")
    if not isinstance(size, str) or not size.strip():
        size = None

    n = min(max(parse_count(body.get("n", 1)), 1), max_count)
    return GenerationRequest(prompt=text, size=size, n=n)


# ==========================================
# Rate Limiting
# ==========================================

class RateLimiter:
    """Sliding-window request counter keyed by client address"""

    def __init__(self, limit: int, window: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window = window
        self.clock = clock
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._last_sweep = clock()

    def _sweep(self, now: float):
        """Forget clients whose newest hit has left the window"""
        stale = [client for client, hits in self._hits.items()
                 if not hits or now - hits[-1] >= self.window]
        for client in stale:
            del self._hits[client]
        self._last_sweep = now

    def allow(self, client: str) -> bool:
        now = self.clock()
        if now - self._last_sweep >= self.window:
            self._sweep(now)
        hits = self._hits[client]
        while hits and now - hits[0] >= self.window:
            hits.popleft()
        if len(hits) >= self.limit:
            return False
        hits.append(now)
        return True


# ==========================================
# Middlewares
# ==========================================

@web.middleware
async def security_headers_middleware(request, handler):
    try:
        response = await handler(request)
    except web.HTTPException as exc:
        exc.headers.update(SECURITY_HEADERS)
        raise
    response.headers.update(SECURITY_HEADERS)
    return response


def cors_middleware(origin: str):
    @web.middleware
    async def middleware(request, handler):
        if request.method == "OPTIONS":
            response = web.Response(status=204)
            response.headers["Access-Control-Allow-Methods"] = "GET,HEAD,POST,OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = (
                request.headers.get("Access-Control-Request-Headers", "Content-Type")
            )
        else:
            try:
                response = await handler(request)
            except web.HTTPException as exc:
                exc.headers["Access-Control-Allow-Origin"] = origin
                raise
        response.headers["Access-Control-Allow-Origin"] = origin
        return response
    return middleware


def rate_limit_middleware(limiter: RateLimiter):
    @web.middleware
    async def middleware(request, handler):
        client = request.remote or "unknown"
        if not limiter.allow(client):
            logger.warning(f"Rate limit exceeded for {client}")
            return web.json_response({"error": RATE_LIMITED}, status=429)
        return await handler(request)
    return middleware


# ==========================================
# Handlers
# ==========================================

async def health(request):
    return web.Response(text=HEALTH_TEXT)


async def generate(request):
    config = request.app[CONFIG_KEY]
    provider = request.app[PROVIDER_KEY]

    try:
        body = await request.json()
    except web.HTTPRequestEntityTooLarge:
        return web.json_response({"error": BODY_TOO_LARGE}, status=413)
    except ValueError:
        body = {}

    try:
        gen_request = validate_request(body, provider.max_images if provider else 1)
        if provider is None:
            raise request.app[PROVIDER_ERROR_KEY]

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, provider.run, gen_request)
        logger.info(f"Generated {len(result.images)} image(s) via {provider.name}")
        return web.json_response(result.to_dict())

    except ProxyError as e:
        error_body = e.to_dict(config.secrets)
        if e.http_status >= 500:
            log_error(f"Generate error ({type(e).__name__}): {error_body['error']}")
        return web.json_response(error_body, status=e.http_status)
    except Exception as e:
        log_error(f"Unexpected generate error: {type(e).__name__}")
        return web.json_response({"error": GENERIC_FAILURE}, status=500)


# ==========================================
# Application Factory
# ==========================================

def create_app(config: ProxyConfig, provider: Optional[ImageProvider] = None) -> web.Application:
    """
    Build the aiohttp application.

    Args:
        config: Process configuration
        provider: Provider override; built from config when omitted
    """
    provider_error = None
    if provider is None:
        try:
            provider = create_provider(config)
        except ValidationError as e:
            provider_error = e
            logger.warning(e.message)

    limiter = RateLimiter(config.rate_limit_per_minute)
    app = web.Application(
        middlewares=[
            security_headers_middleware,
            cors_middleware(config.frontend_origin),
            rate_limit_middleware(limiter),
        ],
        client_max_size=MAX_BODY_SIZE,
    )
    app[CONFIG_KEY] = config
    app[PROVIDER_KEY] = provider
    app[PROVIDER_ERROR_KEY] = provider_error

    app.router.add_get("/", health)
    app.router.add_post("/api/generate", generate)
    return app
