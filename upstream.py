"""Upstream Workers AI communication."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from config import AppConfig
from logger import LOGGER_NAME

log = logging.getLogger(LOGGER_NAME)


class UpstreamError(Exception):
    """The inference service could not be reached or returned an error."""

    def __init__(self, detail: str, status_code: Optional[int] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


def _envelope_errors(payload: Any) -> str:
    """Flatten the `errors` list of a Workers AI envelope into one message."""
    errors = payload.get("errors") if isinstance(payload, dict) else None
    if not isinstance(errors, list):
        return ""
    parts = []
    for e in errors:
        if isinstance(e, dict) and e.get("message"):
            parts.append(str(e["message"]))
        elif e:
            parts.append(str(e))
    return "; ".join(parts)


class InferenceClient:
    """Handle communication with the Workers AI REST API."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config

    @property
    def model_id(self) -> str:
        return self._config.model_id

    def get_headers(self) -> Dict[str, str]:
        """Get default headers for the Workers AI API."""
        return {
            "Authorization": f"Bearer {self._config.cloudflare_api_token}",
            "Content-Type": "application/json",
            "User-Agent": self._config.user_agent,
        }

    def run_url(self, model_id: Optional[str] = None) -> str:
        model = model_id or self._config.model_id
        return (
            f"{self._config.workers_ai_base_url}/accounts/"
            f"{self._config.cloudflare_account_id}/ai/run/{model}"
        )

    async def _send(
        self,
        client: httpx.AsyncClient,
        messages: List[Dict[str, Any]],
        *,
        stream: bool,
    ) -> httpx.Response:
        payload: Dict[str, Any] = {"messages": messages}
        if stream:
            payload["stream"] = True

        t0 = time.time()
        req = client.build_request(
            "POST",
            self.run_url(),
            headers=self.get_headers(),
            json=payload,
        )
        try:
            resp = await client.send(req, stream=stream)
        except httpx.HTTPError as e:
            log.warning("Upstream request failed model=%s stream=%s err=%r", self.model_id, stream, e)
            raise UpstreamError(f"Upstream request failed: {e.__class__.__name__}") from e

        dt = (time.time() - t0) * 1000
        log.info(
            "Upstream run model=%s stream=%s status=%s ms=%.1f messages=%d",
            self.model_id,
            stream,
            resp.status_code,
            dt,
            len(messages),
        )
        if resp.status_code != 200:
            log.warning(
                "Upstream run error model=%s status=%s content-type=%s",
                self.model_id,
                resp.status_code,
                resp.headers.get("content-type", ""),
            )
        return resp

    async def run(self, client: httpx.AsyncClient, messages: List[Dict[str, Any]]) -> Any:
        """
        Non-streaming inference call.

        Returns the `result` object of the Workers AI envelope, e.g. {"response": "..."}.
        """
        resp = await self._send(client, messages, stream=False)
        try:
            payload = resp.json()
        except ValueError:
            payload = None

        if resp.status_code != 200:
            detail = _envelope_errors(payload) or resp.text[:2000] or f"Upstream error {resp.status_code}"
            raise UpstreamError(detail, status_code=resp.status_code)
        if not isinstance(payload, dict):
            raise UpstreamError("Upstream returned a non-JSON body", status_code=resp.status_code)
        if payload.get("success") is False:
            raise UpstreamError(
                _envelope_errors(payload) or "Upstream reported failure",
                status_code=resp.status_code,
            )
        if "result" in payload:
            return payload["result"]
        return payload

    async def open_stream(
        self, client: httpx.AsyncClient, messages: List[Dict[str, Any]]
    ) -> httpx.Response:
        """
        Streaming inference call.

        Returns the open response; the caller owns it and must close it.
        """
        resp = await self._send(client, messages, stream=True)
        if resp.status_code != 200:
            snippet = await self.read_error_snippet(resp)
            await resp.aclose()
            raise UpstreamError(
                snippet or f"Upstream error {resp.status_code}",
                status_code=resp.status_code,
            )
        return resp

    @staticmethod
    async def read_error_snippet(
        resp: httpx.Response, limit: int = 2000, timeout_s: float = 2.0
    ) -> str:
        """Best-effort: read small error body without risking a hang."""
        try:
            raw = await asyncio.wait_for(resp.aread(), timeout=timeout_s)
        except (asyncio.TimeoutError, httpx.HTTPError):
            return ""
        return raw.decode("utf-8", errors="replace")[:limit]
