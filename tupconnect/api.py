"""FastAPI app exposing the organization-matching endpoint.

POST /api/gemini-match classifies a student's interests into directory
categories using the Gemini fallback pipeline.
"""
from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, StrictStr, ValidationError, field_validator
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import Receive, Scope, Send

from .config import Settings, get_settings
from .logging_config import setup_logging
from .pipelines.extraction import ParseError
from .pipelines.matching import (
    ConfigurationError,
    ExhaustedFallbackError,
    InvalidInterestError,
    InvalidOrganizationsError,
    MatchingError,
    ProviderPermissionError,
    match_interest,
)
from .pipelines.ranking import Organization, RankedOrganization, affiliation_title, rank_organizations

logger = logging.getLogger(__name__)

MATCH_PATH = "/api/gemini-match"

# Provider error codes that warrant a more specific message than the default
_PROVIDER_MESSAGES = (
    ("API_KEY_INVALID", "Invalid API key. Please check GEMINI_API_KEY in the server environment."),
    ("MODEL_NOT_FOUND", "Model not found. The Gemini API model may have changed."),
    ("PERMISSION_DENIED", "API key does not have permission to access Gemini API."),
    ("QUOTA_EXCEEDED", "API quota exceeded. Please check your Google Cloud quotas."),
    ("RESOURCE_EXHAUSTED", "API quota exceeded. Please check your Google Cloud quotas."),
)


# Pydantic request/response models
class MatchRequest(BaseModel):
    """Match request body."""
    student_interest: StrictStr

    @field_validator("student_interest")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("student_interest must not be empty")
        return v


class OrganizationIn(BaseModel):
    """Directory record to rank against the classification."""
    id: str
    name: str
    affiliation: str | None = None
    categories: list[str] = Field(default_factory=list)
    abbreviation: str | None = None
    description: str | None = None

    def to_organization(self) -> Organization:
        return Organization(**self.model_dump())


class RankedOrganizationOut(BaseModel):
    """Organization ranked by category overlap with the student's interests."""
    id: str
    name: str
    affiliation: str | None
    affiliation_title: str
    score: float
    match_percentage: int
    matched_categories: list[str]

    @classmethod
    def from_ranked(cls, ranked: RankedOrganization) -> "RankedOrganizationOut":
        org = ranked.organization
        return cls(
            id=org.id,
            name=org.name,
            affiliation=org.affiliation,
            affiliation_title=affiliation_title(org.affiliation),
            score=ranked.score,
            match_percentage=ranked.match_percentage,
            matched_categories=ranked.matched_categories,
        )


class MatchOptions(BaseModel):
    """Optional request fields beside student_interest."""
    organizations: list[OrganizationIn] | None = None


class MatchResponse(BaseModel):
    """Match response; affiliation and keyword fields depend on the output shape.

    ranked_organizations is present only when the request carried organizations.
    """
    matched_categories: list[str]
    user_affiliation: str | None = None
    specific_keywords: list[str] | None = None
    negative_keywords: list[str] | None = None
    ranked_organizations: list[RankedOrganizationOut] | None = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    details: str | None = None


def get_transport() -> httpx.AsyncBaseTransport | None:
    """Outbound transport for Gemini calls; None means the httpx default."""
    return None


def _current_settings(request: Request) -> Settings:
    provider = request.app.dependency_overrides.get(get_settings, get_settings)
    return provider()


def public_message(exc: MatchingError) -> str:
    """User-safe message, refined by provider error codes where known."""
    if isinstance(exc, (ExhaustedFallbackError, ProviderPermissionError)):
        raw = str(exc)
        for marker, message in _PROVIDER_MESSAGES:
            if marker in raw:
                return message
    return exc.public_message


def _error_response(request: Request, status_code: int, error: str, exc: Exception) -> JSONResponse:
    details = str(exc) if _current_settings(request).expose_error_details else None
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, details=details).model_dump(exclude_none=True),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown logic."""
    # Startup
    setup_logging()
    logger.info("Application starting up")

    yield

    # Shutdown
    logger.info("Application shutting down")


app = FastAPI(
    title="TUPConnect Match Service",
    version="0.1.0",
    description="AI-assisted student organization matching",
    lifespan=lifespan,
)


class MatchPathCORSMiddleware(CORSMiddleware):
    """CORS for the service, except preflights on the match endpoint.

    The match endpoint answers every non-POST method with 405, OPTIONS
    included, so preflight requests for it fall through to the router.
    Cross-origin callers must send a simple POST (e.g. text/plain), which
    still gets CORS headers on the response.
    """

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["method"] == "OPTIONS" and scope["path"] == MATCH_PATH:
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


app.add_middleware(
    MatchPathCORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["*"],
)


def method_not_allowed_response(request: Request) -> JSONResponse:
    """Explain how to call the match endpoint when it is hit with the wrong method."""
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        headers={"Allow": "POST"},
        content={
            "error": "Method not allowed",
            "message": (
                "This endpoint only accepts POST requests. Use a tool like Postman or curl "
                "to test it, or use the \"Find Your Match\" page on the website."
            ),
            "acceptedMethods": ["POST"],
            "example": {
                "method": "POST",
                "url": str(request.url.replace(query="")),
                "headers": {"Content-Type": "application/json"},
                "body": {"student_interest": "I love programming and video games"},
            },
        },
    )


# Exception handlers
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Replace the router's bare 405 on the match endpoint with usage guidance."""
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED and request.url.path == MATCH_PATH:
        logger.info(f"Rejected {request.method} on {MATCH_PATH}")
        return method_not_allowed_response(request)
    return await http_exception_handler(request, exc)


@app.exception_handler(InvalidInterestError)
@app.exception_handler(InvalidOrganizationsError)
async def invalid_request_handler(request: Request, exc: MatchingError):
    """Handle request validation errors."""
    logger.info(f"Rejected match request: {exc}")
    return _error_response(request, status.HTTP_400_BAD_REQUEST, exc.public_message, exc)


@app.exception_handler(ParseError)
async def parse_error_handler(request: Request, exc: ParseError):
    """Handle unparseable classifier replies."""
    logger.error(f"Parse error: {exc}")
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Failed to understand the AI response. Please try again later.",
        exc,
    )


@app.exception_handler(MatchingError)
async def matching_error_handler(request: Request, exc: MatchingError):
    """Handle configuration, credential and fallback failures."""
    logger.error(f"Matching error ({type(exc).__name__}): {exc}")
    return _error_response(request, exc.status_code, public_message(exc), exc)


@app.get("/health", response_model=HealthResponse)
async def health(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", version=settings.version)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "app": "TUPConnect Match Service",
        "version": "0.1.0",
        "endpoints": {
            "health": "/health",
            "match": MATCH_PATH,
            "docs": "/docs",
        },
    }


async def _read_request(request: Request) -> tuple[str, list[Organization] | None]:
    """Validate the body: student_interest first, then the optional organizations."""
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidInterestError(f"Request body is not valid JSON: {e}") from e

    try:
        interest = MatchRequest.model_validate(payload).student_interest
    except ValidationError as e:
        raise InvalidInterestError(str(e)) from e

    try:
        options = MatchOptions.model_validate(payload)
    except ValidationError as e:
        raise InvalidOrganizationsError(str(e)) from e

    if options.organizations is None:
        return interest, None
    return interest, [o.to_organization() for o in options.organizations]


@app.post(
    MATCH_PATH,
    response_model=MatchResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
async def gemini_match(
    request: Request,
    settings: Settings = Depends(get_settings),
    transport: httpx.AsyncBaseTransport | None = Depends(get_transport),
) -> MatchResponse:
    """Classify a student's interests into organization categories.

    This endpoint:
    1. Checks the Gemini API key is configured
    2. Validates student_interest and the optional organizations list
    3. Runs the model fallback pipeline
    4. Returns the taxonomy-filtered result, plus the organizations ranked
       against it when the request included them
    """
    if not settings.gemini.has_api_key:
        logger.error("GEMINI_API_KEY is not set")
        raise ConfigurationError("GEMINI_API_KEY is not set")

    interest, organizations = await _read_request(request)
    logger.info(f"Received match request ({len(interest)} chars)")

    try:
        result = await match_interest(interest, settings, transport=transport)
    except (MatchingError, ParseError):
        # Re-raise to be caught by exception handlers
        raise
    except Exception as e:
        logger.error(f"Unexpected error matching interest: {e}", exc_info=True)
        raise MatchingError(f"Internal server error: {e}") from e

    matching = settings.matching
    response = MatchResponse(**result.to_payload(matching.output_shape, matching.include_negative_keywords))
    if organizations is not None:
        ranked = rank_organizations(organizations, result)
        response.ranked_organizations = [RankedOrganizationOut.from_ranked(r) for r in ranked]
    return response
