"""Async transport for the Gemini Generative Language REST API.

Wraps httpx with the two calls the matcher needs (model listing and
generateContent) and the classifier that turns provider failures into a
small set of outcomes the fallback loop can act on.
"""
from __future__ import annotations

import json
import logging
from enum import Enum

import httpx

from tupconnect.config import GeminiSettings

logger = logging.getLogger(__name__)

GENERATE_METHOD = "generateContent"


class FailureKind(str, Enum):
    """What a failed generateContent attempt means for the remaining candidates."""
    MODEL_UNAVAILABLE = "model_unavailable"
    CREDENTIAL_REVOKED = "credential_revoked"
    PERMISSION_DENIED = "permission_denied"
    TRANSIENT = "transient"


_REVOKED_MARKERS = ("leaked", "reported")
_PERMISSION_MARKERS = ("api key", "api_key", "credential", "permission")


def classify_failure(status_code: int | None, message: str) -> FailureKind:
    """Map an HTTP status and provider message onto a FailureKind.

    Rules are checked in order:
    1. 404, or "not found" on a non-403 response -> MODEL_UNAVAILABLE
    2. 403 mentioning a leaked/reported key -> CREDENTIAL_REVOKED
    3. any other 403, or a message about keys/credentials/permission -> PERMISSION_DENIED
    4. everything else -> TRANSIENT
    """
    text = (message or "").lower()

    if status_code == 404 or (status_code != 403 and "not found" in text):
        return FailureKind.MODEL_UNAVAILABLE
    if status_code == 403 and any(marker in text for marker in _REVOKED_MARKERS):
        return FailureKind.CREDENTIAL_REVOKED
    if status_code == 403 or any(marker in text for marker in _PERMISSION_MARKERS):
        return FailureKind.PERMISSION_DENIED
    return FailureKind.TRANSIENT


class ProviderError(Exception):
    """Raised when a single Gemini API call fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def kind(self) -> FailureKind:
        return classify_failure(self.status_code, str(self))


def _error_body(response: httpx.Response) -> str:
    try:
        return json.dumps(response.json())
    except ValueError:
        return response.text


def _extract_text(data: object) -> str:
    """Pull candidates[0].content.parts[0].text out of a generateContent reply."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise ProviderError("Unexpected response format from Gemini API") from e
    if not isinstance(text, str):
        raise ProviderError("Unexpected response format from Gemini API")
    return text.strip()


class GeminiClient:
    """Request-scoped Gemini client.

    One instance owns one httpx.AsyncClient; use it as an async context
    manager so the connection is closed when the request finishes.
    """

    def __init__(
        self,
        settings: GeminiSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not settings.has_api_key:
            raise ValueError("GeminiClient requires an API key")
        self._api_key = settings.api_key.get_secret_value().strip()
        self._http = httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> GeminiClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def list_models(self) -> list[str]:
        """Return sorted short names of models that support generateContent.

        Best effort: any failure is logged and yields an empty list.
        """
        try:
            response = await self._http.get("/models", params={"key": self._api_key})
            if response.status_code != 200:
                logger.warning(f"Model listing returned HTTP {response.status_code}")
                return []
            models = response.json().get("models")
            if not isinstance(models, list):
                logger.warning("Model listing response has no models array")
                return []
            names = [
                str(m["name"]).removeprefix("models/")
                for m in models
                if isinstance(m, dict)
                and "name" in m
                and GENERATE_METHOD in (m.get("supportedGenerationMethods") or [])
            ]
        except (httpx.HTTPError, ValueError, AttributeError, TypeError) as e:
            logger.warning(f"Failed to list models, using static preferences: {e}")
            return []

        names.sort()
        logger.info(f"Found {len(names)} models supporting {GENERATE_METHOD}")
        return names

    async def generate_content(self, model: str, prompt: str) -> str:
        """Run one generateContent call and return the reply text.

        Raises:
            ProviderError: On transport failure, non-2xx status or an
                unexpected response shape.
        """
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            response = await self._http.post(
                f"/models/{model}:{GENERATE_METHOD}",
                params={"key": self._api_key},
                json=body,
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"Request to {model} failed: {type(e).__name__}: {e}") from e

        if not response.is_success:
            raise ProviderError(
                f"API returned {response.status_code}: {_error_body(response)}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError("Gemini API returned a non-JSON body") from e
        return _extract_text(data)
