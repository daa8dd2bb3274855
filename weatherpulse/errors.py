"""Error taxonomy shared by the provider client, the fetchers and the controller."""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Category of a pipeline failure, as surfaced to consumers."""
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    DATA_UNAVAILABLE = "data_unavailable"
    UNAUTHORIZED = "unauthorized"
    TIMEOUT = "timeout"


class PipelineError(RuntimeError):
    """Base error for every failure the pipeline reports."""

    kind: ErrorKind = ErrorKind.DATA_UNAVAILABLE
    default_message = "Unable to fetch weather data. Please try again later."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidInput(PipelineError):
    """A required user-supplied field is blank or malformed; no request was sent."""
    kind = ErrorKind.INVALID_INPUT
    default_message = "City name cannot be empty."


class NotFound(PipelineError):
    """The provider has no match for the given name or coordinates."""
    kind = ErrorKind.NOT_FOUND
    default_message = "Invalid city name. Please try again."


class DataUnavailable(PipelineError):
    """Non-success response, network failure or malformed payload."""
    kind = ErrorKind.DATA_UNAVAILABLE


class Unauthorized(PipelineError):
    """The provider credential is missing or was rejected."""
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Weather provider rejected the API key."


class FetchTimeout(PipelineError):
    """A fetch did not settle within the configured bound."""
    kind = ErrorKind.TIMEOUT
    default_message = "The weather provider did not respond in time."


__all__ = [
    "ErrorKind",
    "PipelineError",
    "InvalidInput",
    "NotFound",
    "DataUnavailable",
    "Unauthorized",
    "FetchTimeout",
]
