"""Matching pipeline: student interest → validated category classification.

Discovers available Gemini models, merges them with the static preference
list, then tries candidates one at a time until one returns a usable reply.
A missing model moves on to the next candidate. A broken credential stops
the loop at once, because it would fail the same way for every model.
"""
from __future__ import annotations

import logging
from typing import Iterable, Sequence

import httpx

from ai.gemini import FailureKind, GeminiClient, ProviderError
from tupconnect.config import Settings
from tupconnect.pipelines.extraction import MatchResult, parse_match_response
from tupconnect.pipelines.normalization import normalize_interest
from tupconnect.pipelines.prompt import build_prompt

logger = logging.getLogger(__name__)

API_KEY_HELP_URL = "https://aistudio.google.com/app/apikey"


class MatchingError(Exception):
    """Base class for failures surfaced to API callers."""
    status_code = 500
    public_message = "Failed to process request with AI. Please try again later."


class InvalidInterestError(MatchingError):
    """Raised when student_interest is missing, blank or not a string."""
    status_code = 400
    public_message = "student_interest is required and must be a non-empty string"


class ConfigurationError(MatchingError):
    """Raised when the service is missing required configuration."""
    public_message = "Server configuration error"


class CredentialError(MatchingError):
    """Raised when the provider reports the API key as leaked and revoked."""
    public_message = (
        "The Gemini API key has been reported as leaked and was disabled. "
        f"Create a new key at {API_KEY_HELP_URL} and update GEMINI_API_KEY."
    )


class ProviderPermissionError(MatchingError):
    """Raised when the API key is invalid or lacks permission for Gemini."""
    public_message = (
        "API key or permission issue. Please check your API key and ensure "
        "the Gemini API is enabled."
    )


class InvalidOrganizationsError(MatchingError):
    """Raised when the optional organizations list is malformed."""
    status_code = 400
    public_message = "organizations must be a list of records with id, name and categories"


class ExhaustedFallbackError(MatchingError):
    """Raised when every candidate model failed."""

    def __init__(self, attempted: Sequence[str], last_error: Exception | None) -> None:
        self.attempted = list(attempted)
        self.last_error = last_error
        last = str(last_error) if last_error else "Unknown"
        super().__init__(
            f"All model attempts failed. Last error: {last}. "
            f"Tried models: {', '.join(self.attempted)}."
        )


def build_candidate_list(
    discovered: Iterable[str],
    preferred: Iterable[str],
    limit: int | None = None,
) -> list[str]:
    """Merge discovered models ahead of the static preferences.

    Duplicates are dropped keeping the first occurrence; blank names are
    skipped. ``limit`` caps the number of candidates returned.
    """
    seen: set[str] = set()
    merged: list[str] = []
    for name in [*discovered, *preferred]:
        name = name.strip()
        if name and name not in seen:
            seen.add(name)
            merged.append(name)
    return merged[:limit] if limit is not None else merged


class MatchPipeline:
    """Runs one classification request end to end.

    The pipeline holds no state between calls; the client and settings are
    injected so the transport can be stubbed.
    """

    def __init__(self, client: GeminiClient, settings: Settings) -> None:
        self.client = client
        self.settings = settings

    async def discover_models(self) -> list[str]:
        return await self.client.list_models()

    def build_candidates(self, discovered: Sequence[str]) -> list[str]:
        gemini = self.settings.gemini
        return build_candidate_list(discovered, gemini.preferred_models, limit=gemini.max_attempts)

    async def classify(self, prompt: str, candidates: Sequence[str]) -> tuple[str, str]:
        """Try candidates in order and return (model, reply text) of the first success.

        Raises:
            CredentialError: Key reported as leaked; remaining candidates are skipped
            ProviderPermissionError: Key invalid or forbidden; remaining candidates are skipped
            ExhaustedFallbackError: No candidate produced a reply
        """
        attempted: list[str] = []
        last_error: ProviderError | None = None

        for model in candidates:
            attempted.append(model)
            logger.info(f"Attempting model: {model}")
            try:
                text = await self.client.generate_content(model, prompt)
            except ProviderError as e:
                last_error = e
                kind = e.kind
                if kind == FailureKind.CREDENTIAL_REVOKED:
                    logger.error(f"API key rejected as leaked by {model}: {e}")
                    raise CredentialError(str(e)) from e
                if kind == FailureKind.PERMISSION_DENIED:
                    logger.error(f"API key or permission issue on {model}: {e}")
                    raise ProviderPermissionError(str(e)) from e
                if kind == FailureKind.MODEL_UNAVAILABLE:
                    logger.info(f"Model {model} not available, trying next candidate")
                else:
                    logger.warning(f"Model {model} failed: {e}")
                continue

            logger.info(f"Successfully used model: {model}")
            return model, text

        logger.error(f"All {len(attempted)} candidate models failed")
        raise ExhaustedFallbackError(attempted, last_error)

    async def run(self, interest: str) -> MatchResult:
        """Classify an already-validated interest.

        Steps:
        1. Normalize the text and build the prompt
        2. Discover models (best effort) and build the candidate list
        3. Call candidates until one replies
        4. Extract and filter the reply
        """
        matching = self.settings.matching
        text = normalize_interest(interest, matching.max_input_chars)
        if not text:
            raise InvalidInterestError("student_interest is blank after normalization")

        prompt = build_prompt(
            text,
            shape=matching.output_shape,
            categories=matching.categories,
            include_negative_keywords=matching.include_negative_keywords,
        )

        discovered = await self.discover_models()
        candidates = self.build_candidates(discovered)
        logger.info(f"Built {len(candidates)} candidate models ({len(discovered)} discovered)")

        _, reply = await self.classify(prompt, candidates)

        return parse_match_response(
            reply,
            shape=matching.output_shape,
            categories=matching.categories,
            include_negative_keywords=matching.include_negative_keywords,
        )


async def match_interest(
    interest: str,
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> MatchResult:
    """Build a request-scoped client and run the pipeline once.

    Raises:
        ConfigurationError: If no API key is configured
    """
    if not settings.gemini.has_api_key:
        logger.error("GEMINI_API_KEY is not set")
        raise ConfigurationError("GEMINI_API_KEY is not set")

    async with GeminiClient(settings.gemini, transport=transport) as client:
        return await MatchPipeline(client, settings).run(interest)
