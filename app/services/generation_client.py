"""
Chat-completion client for the text-generation gateway.

Speaks the OpenAI-compatible ``POST {base_url}/chat/completions`` protocol and
maps gateway failures onto the error taxonomy in app.core.exceptions:

    429                      -> RateLimited
    402                      -> QuotaExceeded
    any other non-2xx        -> UpstreamError
    timeout / transport      -> UpstreamError
    malformed response body  -> UpstreamError
    empty API key            -> MissingCredential (at construction)

One network call per ``complete`` invocation; retrying is the caller's job.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, Optional

import httpx

from app.config import Settings, settings as default_settings
from app.core.exceptions import (
    MissingCredential,
    QuotaExceeded,
    RateLimited,
    UpstreamError,
)

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert academic project report writer for engineering diploma students."
)


@dataclasses.dataclass(frozen=True)
class GenerationOptions:
    """Per-call overrides; ``None`` keeps the client default."""

    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


class GenerationClient:
    """
    Thin async wrapper over the chat-completion endpoint.

    The API key is injected at construction so nothing reads the environment
    mid-pipeline. ``transport`` lets tests plug in an ``httpx.MockTransport``.
    """

    CONNECT_TIMEOUT: float = 10.0

    def __init__(
        self,
        api_key: str,
        base_url: str = default_settings.LLM_BASE_URL,
        model: str = default_settings.LLM_MODEL,
        temperature: float = default_settings.LLM_TEMPERATURE,
        max_tokens: int = default_settings.LLM_MAX_TOKENS,
        timeout: float = float(default_settings.LLM_TIMEOUT),
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise MissingCredential()
        self._api_key = api_key.strip()
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = httpx.Timeout(timeout, connect=self.CONNECT_TIMEOUT)
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        config: Settings = default_settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "GenerationClient":
        return cls(
            api_key=config.LLM_API_KEY,
            base_url=config.LLM_BASE_URL,
            model=config.LLM_MODEL,
            temperature=config.LLM_TEMPERATURE,
            max_tokens=config.LLM_MAX_TOKENS,
            timeout=float(config.LLM_TIMEOUT),
            transport=transport,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def complete(
        self,
        prompt: str,
        options: Optional[GenerationOptions] = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> str:
        """
        Send *prompt* as the user message and return the assistant's reply.

        Raises:
            RateLimited:   gateway answered 429.
            QuotaExceeded: gateway answered 402.
            UpstreamError: any other failure (status, transport, body shape).
        """
        payload = self._build_payload(prompt, options or GenerationOptions(), system_prompt)
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(self.endpoint, json=payload, headers=headers)
        except httpx.TimeoutException as exc:
            logger.error("complete: request timed out after %.0f s", self.timeout.read)
            raise UpstreamError("AI gateway timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("complete: transport failure: %s", exc)
            raise UpstreamError(f"AI gateway unreachable: {exc}") from exc

        if resp.status_code == 429:
            logger.warning("complete: gateway rate limit (429)")
            raise RateLimited()
        if resp.status_code == 402:
            logger.warning("complete: gateway quota exhausted (402)")
            raise QuotaExceeded()
        if resp.status_code < 200 or resp.status_code >= 300:
            logger.error(
                "complete: gateway returned HTTP %d: %s",
                resp.status_code,
                resp.text[:300],
            )
            raise UpstreamError(upstream_status=resp.status_code)

        text = self._reply_text(resp)
        logger.info(
            "complete: %d chars from %s (prompt %d chars)",
            len(text),
            payload["model"],
            len(prompt),
        )
        return text

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _build_payload(
        self,
        prompt: str,
        options: GenerationOptions,
        system_prompt: str,
    ) -> Dict[str, Any]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return {
            "model": options.model or self.model,
            "messages": messages,
            "temperature": (
                options.temperature if options.temperature is not None else self.temperature
            ),
            "max_tokens": options.max_tokens or self.max_tokens,
        }

    @staticmethod
    def _reply_text(resp: httpx.Response) -> str:
        """Pull ``choices[0].message.content`` out of the response body."""
        try:
            body = resp.json()
            content = body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.error("complete: malformed gateway response: %s", resp.text[:300])
            raise UpstreamError("AI gateway returned a malformed response") from exc
        if content is None:
            return ""
        if not isinstance(content, str):
            raise UpstreamError("AI gateway returned a malformed response")
        return content
