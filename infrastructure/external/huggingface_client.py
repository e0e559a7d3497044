"""
Hugging Face Inference API client for text-to-image models.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from infrastructure.resilience import TransientServiceError
from utils.logging_config import get_logger

logger = get_logger(__name__)


class ImageServiceError(Exception):
    """Base exception for image service errors."""
    pass


class ImageServiceConnectionError(ImageServiceError, TransientServiceError):
    """Image service is not reachable or timed out."""
    pass


class ImageServiceBusyError(ImageServiceError, TransientServiceError):
    """Model is loading or the service is rate limiting."""
    pass


class ImageServiceAuthError(ImageServiceError):
    """API token missing or rejected."""
    pass


class ImageServiceResponseError(ImageServiceError):
    """Service answered with an error or with something that is not an image."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class ImageResponse:
    """Raw image returned by the service"""
    content: bytes
    mime_type: str


class HuggingFaceImageClient:
    """
    Client for text-to-image models on the Hugging Face Inference API.

    Handles:
    - Prompt submission
    - Mapping HTTP failures onto ImageServiceError subclasses
    - Validating that the body is an image

    Each request opens and closes its own httpx.AsyncClient, so the client
    holds no connections tied to the event loop that made an earlier request.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "black-forest-labs/FLUX.1-schnell",
        base_url: str = "https://api-inference.huggingface.co",
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize Hugging Face client.

        Args:
            api_key: Hugging Face access token
            model: Model repository id
            base_url: Inference API URL
            timeout: HTTP request timeout (seconds)
            transport: Transport for every request, mainly for tests
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.transport = transport

        logger.info(f"Hugging Face image client initialized: {self.model}")

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}"

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def generate(self, prompt: str) -> ImageResponse:
        """
        Generate one image from a prompt.

        Returns:
            The image bytes and their MIME type

        Raises:
            ImageServiceAuthError: Token missing or rejected
            ImageServiceConnectionError: Server not reachable or timed out
            ImageServiceBusyError: Model loading (503) or rate limited (429)
            ImageServiceResponseError: Any other error status or a non-image body
        """
        if not self.api_key:
            raise ImageServiceAuthError("Hugging Face API key is not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            logger.debug(f"Requesting image from {self.model} ({len(prompt)} chars prompt)")
            async with self._http_client() as client:
                response = await client.post(self.endpoint, headers=headers, json={"inputs": prompt})
        except httpx.TimeoutException as e:
            logger.error(f"Image request timed out: {e}")
            raise ImageServiceConnectionError("The image service took too long to respond")
        except httpx.TransportError as e:
            logger.error(f"Cannot connect to image service: {e}")
            raise ImageServiceConnectionError(f"Image service not reachable at {self.base_url}")

        status = response.status_code
        if status in (401, 403):
            raise ImageServiceAuthError(f"Image service rejected the API key ({status})")
        if status in (429, 503):
            raise ImageServiceBusyError(f"Image model is busy or loading ({status})")
        if status >= 400:
            raise ImageServiceResponseError(
                f"Hugging Face API error: {status} - {self._error_detail(response)}",
                status_code=status
            )

        mime_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
        if not mime_type.startswith("image/"):
            raise ImageServiceResponseError(
                f"Image service returned '{mime_type or 'unknown'}' instead of an image",
                status_code=status
            )

        logger.info(f"Image generated by {self.model} ({len(response.content)} bytes)")
        return ImageResponse(content=response.content, mime_type=mime_type)

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict) and "error" in body:
            return str(body["error"])
        return str(body)[:200]
