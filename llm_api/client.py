import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import httpx

from utils.errors import ConfigurationError, LLMRequestError, TransientServerError

from .parsing import parse_json_from_text

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE = 1.0
DEFAULT_HTTP_TIMEOUT = 30.0


def _is_transient(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class GeminiClient:
    """JSON-generating LLM endpoint (Gemini generateContent) with bounded retry.

    Retry behavior:
    - 429 / 5xx / transport errors: exponential backoff (base, 2*base, ...)
      up to llm_max_attempts calls in total
    - any other non-2xx: fail immediately with the provider's message
    """

    def __init__(
        self,
        config: Dict[str, Any],
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        self.config = config or {}
        self._transport = transport
        self._sleep = sleep or asyncio.sleep

    @property
    def max_attempts(self) -> int:
        return max(1, int(self.config.get("llm_max_attempts") or DEFAULT_MAX_ATTEMPTS))

    @property
    def backoff_base(self) -> float:
        value = self.config.get("llm_backoff_base")
        return float(DEFAULT_BACKOFF_BASE if value is None else value)

    def _endpoint(self) -> Tuple[str, str]:
        api_url = str(self.config.get("llm_api_url") or "").strip()
        api_key = str(self.config.get("llm_api_key") or "").strip()
        if not api_key:
            raise ConfigurationError("LLM API key is missing. Set llm_api_key in config.json or LLM_API_KEY in the environment.")
        if not api_url:
            raise ConfigurationError("LLM API URL is missing. Set llm_api_url in config.json or LLM_API_URL in the environment.")
        return api_url, api_key

    @staticmethod
    def build_request_body(prompt: str, use_search_grounding: bool = False) -> Dict[str, Any]:
        body: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        if use_search_grounding:
            body["tools"] = [{"googleSearch": {}}]
        return body

    async def call_with_retry(self, prompt: str, use_search_grounding: bool = False) -> Dict[str, Any]:
        """POST the prompt and return the raw JSON response."""

        api_url, api_key = self._endpoint()
        body = self.build_request_body(prompt, use_search_grounding)
        timeout = float(self.config.get("http_timeout") or DEFAULT_HTTP_TIMEOUT)

        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._post_once(api_url, api_key, body, timeout)
            except TransientServerError as e:
                logger.warning("LLM API attempt %d/%d failed: %s", attempt, self.max_attempts, e)
                if attempt >= self.max_attempts:
                    raise

                delay = self.backoff_base * (2 ** (attempt - 1))
                await self._sleep(delay)

    async def _post_once(self, api_url: str, api_key: str, body: Dict[str, Any], timeout: float) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                resp = await client.post(api_url, params={"key": api_key}, json=body)
        except httpx.TransportError as e:
            raise TransientServerError(f"LLM API request failed: {e}") from e

        if _is_transient(resp.status_code):
            raise TransientServerError(f"Server Busy ({resp.status_code})", status_code=resp.status_code)

        if not resp.is_success:
            raise LLMRequestError(self._describe_error(resp), status_code=resp.status_code)

        try:
            payload = resp.json()
        except ValueError as e:
            raise LLMRequestError(f"LLM API response was not JSON: {resp.text[:200]}", status_code=resp.status_code) from e

        if not isinstance(payload, dict):
            raise LLMRequestError("LLM API response was not a JSON object", status_code=resp.status_code)
        return payload

    @staticmethod
    def _describe_error(resp: httpx.Response) -> str:
        fallback = f"LLM API error: {resp.status_code}"
        try:
            payload = resp.json()
        except ValueError:
            return fallback

        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        return fallback

    @staticmethod
    def extract_text(response: Optional[Dict[str, Any]]) -> Optional[str]:
        """candidates[0].content.parts[0].text, or None when any step is missing."""

        try:
            text = response["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None
        return text or None

    async def call_json(self, prompt: str, use_search_grounding: bool = False) -> Dict[str, Any]:
        """Call the model and return its answer parsed as a JSON object."""

        response = await self.call_with_retry(prompt, use_search_grounding)
        text = self.extract_text(response)
        if not text:
            raise LLMRequestError("No response from Gemini API")
        return parse_json_from_text(text)
