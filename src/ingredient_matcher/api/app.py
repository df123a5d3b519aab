"""FastAPI application for the ingredient matcher."""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ingredient_matcher.errors import (
    EmbeddingProviderError,
    InvalidInputError,
    VectorStoreError,
)
from ingredient_matcher.sdk import IngredientMatcher
from ingredient_matcher.types import MatchOutcome

logger = logging.getLogger(__name__)

PRODUCTION_PATH = "/api/match-production"

# Global SDK instance
_sdk: IngredientMatcher | None = None


def get_sdk() -> IngredientMatcher:
    """Get or create SDK instance."""
    global _sdk
    if _sdk is None:
        _sdk = IngredientMatcher()
        _sdk.ensure_index()
    return _sdk


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown."""
    logger.info("Starting ingredient matcher API")
    get_sdk()
    logger.info("SDK initialized")

    yield

    logger.info("Shutting down ingredient matcher API")
    global _sdk
    if _sdk:
        _sdk.close()
        _sdk = None


app = FastAPI(
    title="Ingredient Matcher API",
    description="Semantic matching of recipe ingredients to catalog products",
    version="0.1.0",
    lifespan=lifespan,
)


# Pydantic models
class MatchRequest(BaseModel):
    """Request body shared by both match endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    ingredients: list[str] = Field(..., min_length=1, description="Raw ingredient texts")
    instructions: str | None = Field(default=None, description="Extra matching instructions")
    recipe_slug: str | None = Field(
        default=None,
        alias="recipeSlug",
        description="Stable recipe identifier used as the result cache key",
    )


class CandidateModel(BaseModel):
    """A matched product."""

    id: str = Field(..., description="Product identifier")
    title: str | None = Field(default=None, description="Product title")
    title_original: str | None = Field(default=None, description="Original product title")
    score: float = Field(..., description="Cosine similarity")


class MatchResultModel(BaseModel):
    """Ranked candidates for one ingredient."""

    ingredient: str = Field(..., description="Ingredient as supplied")
    matches: list[CandidateModel] = Field(..., description="Candidates, best first")


class MatchFullResponse(BaseModel):
    """Response model for the full match endpoint."""

    results: list[MatchResultModel]


class MatchProductionResponse(BaseModel):
    """Response model for the production match endpoint."""

    status: str = Field(default="success")
    ids: list[str] = Field(..., description="Accepted product ids in ingredient order")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Status")
    healthy: bool = Field(..., description="Health check result")


class ApiError(Exception):
    """Error reported with the structured error envelope."""

    def __init__(self, status_code: int, code: str, message: str, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


def error_response(status_code: int, code: str, message: str, details: Any = None) -> JSONResponse:
    """Build the ``{status: "error", error: {...}, timestamp}`` envelope."""
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "error",
            "error": {"code": code, "message": message, "details": details},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


@app.exception_handler(StarletteHTTPException)
async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 405 and request.url.path == PRODUCTION_PATH:
        return error_response(
            405,
            "METHOD_NOT_ALLOWED",
            "Only POST is supported",
            f"Received {request.method}",
        )
    return await http_exception_handler(request, exc)


async def _parse_match_request(request: Request) -> MatchRequest:
    """Decode and validate a match request body, raising ApiError on bad input."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ApiError(400, "INVALID_JSON", "Request body is not valid JSON", str(e)) from e

    if not isinstance(body, dict):
        raise ApiError(400, "INVALID_INPUT", "Request body must be a JSON object")

    try:
        return MatchRequest.model_validate(body)
    except ValidationError as e:
        raise ApiError(
            400,
            "INVALID_INPUT",
            "ingredients must be a non-empty list of strings",
            e.errors(include_url=False, include_context=False, include_input=False),
        ) from e


def _cache_headers(outcome: MatchOutcome) -> dict[str, str]:
    headers = {"X-Cache": "HIT" if outcome.cache_hit else "MISS"}
    if outcome.cache_hit and outcome.hit_count is not None:
        headers["X-Cache-Hits"] = str(outcome.hit_count)
    return headers


async def _run_in_executor(func, *args) -> MatchOutcome:
    # The SDK blocks on Bedrock and Redis, keep it off the event loop
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, lambda: func(*args))


# API endpoints
@app.post("/api/match", response_model=MatchFullResponse, tags=["Match"])
async def match_full(request: Request) -> JSONResponse:
    """
    Match ingredients and return the top candidates for each.

    Results keep the order of the submitted ingredients.
    """
    try:
        match_request = await _parse_match_request(request)
    except ApiError as e:
        raise HTTPException(status_code=400, detail="Bad Request") from e

    try:
        sdk = get_sdk()
        outcome = await _run_in_executor(
            sdk.match_full,
            match_request.ingredients,
            match_request.instructions,
            match_request.recipe_slug,
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except EmbeddingProviderError as e:
        logger.error(f"Embedding error while matching: {e}")
        raise HTTPException(status_code=502, detail=str(e)) from e
    except VectorStoreError as e:
        logger.error(f"Database error while matching: {e}")
        raise HTTPException(status_code=503, detail=str(e)) from e

    return JSONResponse(content={"results": outcome.payload}, headers=_cache_headers(outcome))


@app.post(PRODUCTION_PATH, response_model=MatchProductionResponse, tags=["Match"])
async def match_production(request: Request) -> JSONResponse:
    """
    Match ingredients and return confident product ids only.

    Ingredients whose best product scores below the production threshold are
    left out.
    """
    match_request = await _parse_match_request(request)

    try:
        sdk = get_sdk()
        outcome = await _run_in_executor(
            sdk.match_production,
            match_request.ingredients,
            match_request.instructions,
            match_request.recipe_slug,
        )
    except InvalidInputError as e:
        raise ApiError(400, "INVALID_INPUT", str(e)) from e
    except EmbeddingProviderError as e:
        logger.error(f"Embedding error in production match: {e}")
        raise ApiError(502, "EMBEDDING_ERROR", "Failed to generate embeddings", str(e)) from e
    except VectorStoreError as e:
        logger.error(f"Database error in production match: {e}")
        raise ApiError(503, "DATABASE_ERROR", "Product search failed", str(e)) from e
    except Exception as e:
        logger.exception("Unexpected error in production match")
        raise ApiError(500, "INTERNAL_ERROR", "Internal server error", str(e)) from e

    logger.info(
        f"Production match returning {len(outcome.payload)} ids "
        f"for {len(match_request.ingredients)} ingredients"
    )
    return JSONResponse(
        content={"status": "success", "ids": outcome.payload},
        headers=_cache_headers(outcome),
    )


@app.get("/api/products", tags=["Catalog"])
async def list_products(limit: int = 10) -> dict[str, Any]:
    """A sample of catalog products, for checking that the catalog is loaded."""
    try:
        products = get_sdk().sample_products(limit=min(max(limit, 1), 100))
    except VectorStoreError as e:
        logger.error(f"API products error: {e}")
        raise HTTPException(status_code=503, detail=str(e)) from e
    return {"success": True, "count": len(products), "products": products}


@app.get("/api/cache/stats", tags=["Cache"])
async def cache_stats() -> dict[str, Any]:
    """Recipe cache and embedding cache statistics."""
    try:
        return get_sdk().cache_stats()
    except Exception as e:
        logger.error(f"Error reading cache stats: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get("/healthz", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    try:
        sdk = get_sdk()
        healthy = sdk.health_check()
        return HealthResponse(status="ok", healthy=healthy)
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return HealthResponse(status="error", healthy=False)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "name": "Ingredient Matcher API",
        "version": "0.1.0",
        "status": "ok",
    }
