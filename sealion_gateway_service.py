"""
Sea Lion chat gateway -> Cloudflare Workers AI as upstream.

Endpoints:
  GET  /        plain-text integration guide
  GET  /health  status + model id
  POST /chat    complete JSON response
  POST /stream  generated text as a plain-text byte stream

Every response carries permissive CORS headers.
"""

from __future__ import annotations

import contextlib
import uuid
from contextlib import asynccontextmanager
from string import Template
from types import MappingProxyType
from typing import Any, AsyncGenerator, AsyncIterator, Dict, List, Mapping

import httpx
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import load_config
from logger import setup_logging
from models import RequestShapeError, normalize_messages
from sse_handler import transform_text_stream
from upstream import InferenceClient, UpstreamError
from utils import dump_config, load_env_files

CORS_HEADERS: Mapping[str, str] = MappingProxyType(
    {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }
)

AVAILABLE_ENDPOINTS = ("/", "/health", "/chat", "/stream")

STREAM_HEADERS: Mapping[str, str] = MappingProxyType(
    {
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
    }
)

# Load environment
load_env_files()

# Load configuration
config = load_config()
config.validate(require_credentials=False)

# Initialize logging
log = setup_logging(config)
dump_config(config)

upstream_client = InferenceClient(config)


_STARTER_PROMPT = Template(
    """I want to integrate the Sea Lion AI model into my app. Here are the API details:

API Base URL: $base_url

ENDPOINTS:

1. POST /chat - Non-streaming chat completion
   Request body:
   {
     "prompt": "Your question here",
     "system": "Optional system prompt"
   }
   OR
   {
     "messages": [
       {"role": "system", "content": "System prompt"},
       {"role": "user", "content": "User message"}
     ]
   }
   Response: { "response": "AI response text" }

2. POST /stream - Streaming chat completion
   Same request body as /chat
   Response: plain-text stream of the generated text (no event parsing needed)

3. GET /health - Service status and model id

EXAMPLE (curl, non-streaming):

curl -s $base_url/chat \\
  -H 'Content-Type: application/json' \\
  -d '{"prompt": "Hello!", "system": "You are a helpful assistant"}'

EXAMPLE (curl, streaming):

curl -N $base_url/stream \\
  -H 'Content-Type: application/json' \\
  -d '{"prompt": "Tell me a story", "system": "You are a helpful assistant"}'

EXAMPLE CODE (JavaScript, streaming):

const response = await fetch('$base_url/stream', {
  method: 'POST',
  headers: { 'Content-Type': 'application/json' },
  body: JSON.stringify({
    prompt: 'Tell me a story',
    system: 'You are a helpful assistant'
  })
});

const reader = response.body.getReader();
const decoder = new TextDecoder();
let text = '';

while (true) {
  const { done, value } = await reader.read();
  if (done) break;
  text += decoder.decode(value, { stream: true });
  console.log(text); // Plain text, no parsing needed!
}

EXAMPLE CODE (Python, streaming):

import httpx

with httpx.stream("POST", "$base_url/stream", json={"prompt": "Tell me a story"}) as r:
    for text in r.iter_text():
        print(text, end="", flush=True)

Please help me build [describe your feature] using this Sea Lion AI API."""
)


def render_starter_prompt(base_url: str) -> str:
    """Integration guide with example URLs pointing at `base_url`."""
    return _STARTER_PROMPT.substitute(base_url=base_url)


def _request_origin(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"


def _request_id(request: Request) -> str:
    return (
        (request.headers.get("x-request-id") or "").strip()
        or (request.headers.get("x-correlation-id") or "").strip()
        or uuid.uuid4().hex
    )


def _create_http_client(*, stream: bool) -> httpx.AsyncClient:
    """HTTP client for one upstream call. Streams get no read timeout."""
    timeout_s = float(config.request_timeout_s)
    if stream:
        connect_timeout = min(30.0, timeout_s)
        timeout = httpx.Timeout(
            connect=connect_timeout, write=connect_timeout, pool=connect_timeout, read=None
        )
    else:
        timeout = httpx.Timeout(timeout_s)
    return httpx.AsyncClient(timeout=timeout)


def _check_request_size(request: Request) -> None:
    """Basic request size guard based on Content-Length."""
    cl = request.headers.get("content-length")
    if not cl:
        return
    try:
        n = int(cl)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid Content-Length header: {cl!r}")
    if n < 0:
        raise HTTPException(status_code=400, detail="Invalid Content-Length: must be non-negative")
    if n > config.max_request_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Request too large: {n} bytes (max {config.max_request_bytes})",
        )


async def _read_messages(request: Request) -> List[Dict[str, Any]]:
    """Parse the JSON body and normalize it into a message list."""
    _check_request_size(request)
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    try:
        return normalize_messages(body)
    except RequestShapeError as e:
        raise HTTPException(status_code=400, detail=e.to_payload())


def _require_credentials() -> None:
    if not config.has_credentials:
        raise HTTPException(
            status_code=500,
            detail="CLOUDFLARE_ACCOUNT_ID and CLOUDFLARE_API_TOKEN environment variables required",
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Log readiness at startup."""
    if not config.has_credentials:
        log.warning(
            "Workers AI credentials missing: /chat and /stream will answer 500 until "
            "CLOUDFLARE_ACCOUNT_ID and CLOUDFLARE_API_TOKEN are set."
        )
    log.info("Sea Lion gateway ready model=%s", config.model_id)
    yield
    log.info("Sea Lion gateway shutting down")


app = FastAPI(
    title="sealion-gateway",
    version="0.1.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)


@app.middleware("http")
async def cors_middleware(request: Request, call_next) -> Response:
    """Answer preflight requests and add CORS headers to every response."""
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=dict(CORS_HEADERS))
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render every HTTP error as an {"error": ...} JSON body."""
    if exc.status_code == 404:
        content: Dict[str, Any] = {
            "error": "Not found",
            "availableEndpoints": list(AVAILABLE_ENDPOINTS),
        }
    elif exc.status_code == 405:
        allowed = (exc.headers or {}).get("Allow") or "POST"
        content = {"error": f"Method not allowed. Use {allowed}."}
    elif isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"error": exc.detail}
    return JSONResponse(content, status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    log.error(
        "Upstream failure path=%s status=%s detail=%s",
        request.url.path,
        exc.status_code,
        exc.detail[:500],
    )
    return JSONResponse(
        {
            "error": "Upstream inference request failed",
            "detail": exc.detail,
            "upstreamStatus": exc.status_code,
        },
        status_code=502,
    )


@app.get("/")
async def starter_prompt(request: Request) -> PlainTextResponse:
    """Integration guide for AI coding tools."""
    return PlainTextResponse(render_starter_prompt(_request_origin(request)))


@app.get("/health")
async def health() -> Dict[str, Any]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "model": config.model_id,
        "endpoints": {
            "chat": "/chat",
            "stream": "/stream",
        },
    }


@app.post("/chat")
async def chat(request: Request) -> Response:
    """Non-streaming chat completion."""
    req_id = _request_id(request)
    messages = await _read_messages(request)
    _require_credentials()

    client_ip = request.client.host if request.client else "unknown"
    log.info("Incoming chat req_id=%s from=%s messages=%d", req_id, client_ip, len(messages))

    async with _create_http_client(stream=False) as client:
        result = await upstream_client.run(client, messages)

    return JSONResponse(result, headers={"X-Request-Id": req_id})


@app.post("/stream")
async def stream(request: Request) -> Response:
    """Streaming chat completion, re-encoded as plain text."""
    req_id = _request_id(request)
    messages = await _read_messages(request)
    _require_credentials()

    client_ip = request.client.host if request.client else "unknown"
    log.info("Incoming stream req_id=%s from=%s messages=%d", req_id, client_ip, len(messages))

    client = _create_http_client(stream=True)
    try:
        resp = await upstream_client.open_stream(client, messages)
    except Exception:
        with contextlib.suppress(Exception):
            await client.aclose()
        raise

    async def gen() -> AsyncGenerator[bytes, None]:
        sent = 0
        try:
            async for out in transform_text_stream(resp.aiter_bytes()):
                sent += len(out)
                yield out
        except httpx.HTTPError as e:
            log.warning("Upstream stream broken req_id=%s after %d bytes: %r", req_id, sent, e)
        finally:
            await resp.aclose()
            await client.aclose()
            log.info("Stream finished req_id=%s bytes=%d", req_id, sent)

    headers = dict(STREAM_HEADERS)
    headers["X-Request-Id"] = req_id
    return StreamingResponse(gen(), media_type="text/plain", headers=headers)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=config.port, reload=False)
