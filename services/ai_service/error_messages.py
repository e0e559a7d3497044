"""
User-facing wording for failed generation requests.
"""

import openai

from infrastructure.external.huggingface_client import (
    ImageServiceAuthError,
    ImageServiceBusyError,
    ImageServiceConnectionError,
    ImageServiceResponseError,
)
from infrastructure.resilience import CircuitBreakerError


GENERATION_ERROR_PREFIX = "Sorry, I couldn't generate an image."

EMPTY_RESULT_MESSAGE = "Failed to generate image. Please try again or rephrase your prompt."


class EmptyImageResult(Exception):
    """The image service answered without a usable image"""

    def __init__(self, message: str = EMPTY_RESULT_MESSAGE):
        super().__init__(message)


def describe_failure(error: Exception) -> str:
    """Plain-language reason for a failed image request"""
    if isinstance(error, CircuitBreakerError):
        return (
            "The image service is temporarily unavailable. "
            f"It will be tried again automatically in about {error.remaining_timeout:.0f} seconds."
        )
    if isinstance(error, ImageServiceBusyError):
        return "The image model is busy or still loading. Please wait a moment and try again."
    if isinstance(error, ImageServiceConnectionError):
        return "The image service could not be reached. Check your internet connection and try again."
    if isinstance(error, ImageServiceAuthError):
        return "The image service rejected the API key. Please check the app configuration."
    if isinstance(error, ImageServiceResponseError):
        return "The image service returned an error. Try rephrasing your prompt."
    if isinstance(error, openai.RateLimitError):
        return "Too many requests in a short time. Please wait a few moments before trying again."
    if isinstance(error, EmptyImageResult):
        return str(error)
    return "An unexpected error occurred. Please try again."


def format_generation_error(error: Exception) -> str:
    """Transcript text for a failed image request"""
    return f"{GENERATION_ERROR_PREFIX} {describe_failure(error)}"
