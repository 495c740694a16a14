from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cinescout.errors import InvalidRequest

FAVORITES_ERROR = "favoriteMovies must be a non-empty array"


# --- Requests ---


class RecommendationRequest(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    favorite_movies: tuple[str, ...] = Field(alias="favoriteMovies", min_length=1)
    movie_preferences: dict[str, str | None] = Field(
        default_factory=dict, alias="moviePreferences"
    )

    @field_validator("favorite_movies")
    @classmethod
    def _titles_not_blank(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if any(not title.strip() for title in value):
            raise ValueError("titles must be non-empty strings")
        return value

    @field_validator("movie_preferences", mode="before")
    @classmethod
    def _default_preferences(cls, value: Any) -> Any:
        return {} if value is None else value


def _describe(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid request")
    return f"{location}: {message}" if location else message


def validate_recommendation_request(body: Any) -> RecommendationRequest:
    """Check the inbound body before any streaming output begins."""
    if not isinstance(body, dict):
        raise InvalidRequest("Request body must be a JSON object")
    favorites = body.get("favoriteMovies")
    if not isinstance(favorites, list) or not favorites:
        raise InvalidRequest(FAVORITES_ERROR)
    try:
        return RecommendationRequest.model_validate(body)
    except ValidationError as e:
        raise InvalidRequest(_describe(e)) from e


# --- Responses ---


class MessageEntry(BaseModel):
    id: int
    message: str
    timestamp: str
    source: str | None = None
    sender: str | None = None
