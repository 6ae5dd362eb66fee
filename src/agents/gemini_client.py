"""
Gemini Text Client with Key Failover

Sends a single-turn text prompt to Gemini and returns the response text.

FAILOVER POLICY:
1. Every call starts on the primary key
2. If the primary fails with 401/403/429 or a transport error, and a
   different backup key is configured, the call is retried ONCE on the
   backup key
3. Any other failure (e.g. 400 bad request) is raised immediately
4. There is no further retry, no backoff, and no "sticky" backup

DESIGN DECISION: Credentials arrive with each call. The client keeps one
SDK client per API key but never remembers which key is "active", so a
failover in one call cannot leak into the next.

SDK clients hold an async connection pool bound to the event loop that
first used them. The cache is dropped whenever the running loop changes
(the Streamlit console runs each call on a fresh loop).
"""

import asyncio
from typing import Callable, Optional

import httpx
import structlog
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from src.config import get_settings
from src.models.credentials import GeminiCredentials


# Statuses that mean "this key cannot serve the request right now"
FAILOVER_STATUS_CODES = frozenset({401, 403, 429})

logger = structlog.get_logger(__name__)


class GeminiRequestError(Exception):
    """
    A Gemini call failed.

    `status_code` is the HTTP status, or None when the request never got
    a response (DNS, connection reset, timeout).
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_failover_eligible(self) -> bool:
        return self.status_code is None or self.status_code in FAILOVER_STATUS_CODES


class GeminiTextClient:
    """
    Thin wrapper over google-genai for prompt-in, text-out calls.

    Used by both the SMS extractor and the insights agent, each with its
    own GeminiCredentials.
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        client_factory: Optional[Callable[[str], genai.Client]] = None,
    ):
        settings = get_settings().gemini
        self._model_name = model_name or settings.model_name
        self._temperature = settings.temperature if temperature is None else temperature
        self._max_tokens = max_tokens or settings.max_tokens
        self._client_factory = client_factory or (lambda key: genai.Client(api_key=key))
        self._clients: dict[str, genai.Client] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _client_for(self, api_key: str) -> genai.Client:
        loop = asyncio.get_running_loop()
        if loop is not self._loop:
            self._clients = {}
            self._loop = loop
        if api_key not in self._clients:
            self._clients[api_key] = self._client_factory(api_key)
        return self._clients[api_key]

    async def _call_model(self, api_key: str, prompt: str) -> str:
        """
        One request against one key.

        Returns the response text ("" when the model produced no
        candidates). Every SDK, transport or runtime error is converted
        into GeminiRequestError.
        """
        client = self._client_for(api_key)
        try:
            response = await client.aio.models.generate_content(
                model=self._model_name,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=self._temperature,
                    max_output_tokens=self._max_tokens,
                ),
            )
        except genai_errors.APIError as e:
            raise GeminiRequestError(
                f"Gemini API error: {e.code} {e.message or e.status or ''}".strip(),
                status_code=e.code,
            )
        except httpx.HTTPError as e:
            raise GeminiRequestError(f"Gemini transport error: {e}", status_code=None)
        except Exception as e:
            # Closed event loops and other SDK runtime errors
            raise GeminiRequestError(
                f"Gemini request failed: {type(e).__name__}: {e}", status_code=None
            )

        return response.text or ""

    async def generate(self, prompt: str, credentials: GeminiCredentials) -> str:
        """
        Send `prompt` using `credentials`, failing over once if allowed.

        Raises:
            GeminiRequestError: No key configured, a non-failover error,
                or both keys failed
        """
        attempts = credentials.attempt_order()
        if not attempts:
            raise GeminiRequestError("No Gemini API key configured")

        last_error: Optional[GeminiRequestError] = None
        for slot, api_key in attempts:
            try:
                return await self._call_model(api_key, prompt)
            except GeminiRequestError as e:
                last_error = e
                if not e.is_failover_eligible:
                    raise
                if slot == "primary" and len(attempts) > 1:
                    logger.warning(
                        "gemini_key_failover",
                        status_code=e.status_code,
                        error=str(e),
                    )

        raise last_error
