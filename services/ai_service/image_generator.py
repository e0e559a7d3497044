"""
Image generator - produces embeddable images through the Hugging Face client,
with retry and circuit breaker protection.
"""

import base64
from typing import Optional

from config.app_config import ImageGenerationConfig
from infrastructure.external.huggingface_client import HuggingFaceImageClient
from infrastructure.resilience import CircuitBreaker, RetryService, get_retry_service
from services.ai_service.models import GeneratedImage
from services.chat_service.cancellation import CancellationToken
from utils.logging_config import get_logger, log_execution_time


class ImageGenerator:
    """
    Service for the image-generation step.
    Returns None when the service answers without image data.
    """

    def __init__(
        self,
        client: HuggingFaceImageClient,
        settings: Optional[ImageGenerationConfig] = None,
        retry_service: Optional[RetryService] = None,
        circuit_breaker: Optional[CircuitBreaker] = None
    ):
        self.logger = get_logger(__name__)
        self.client = client
        self.settings = settings or ImageGenerationConfig()
        self.retry_service = retry_service or get_retry_service()
        self.circuit_breaker = circuit_breaker or self.retry_service.get_image_service_circuit_breaker(
            failure_threshold=self.settings.failure_threshold,
            recovery_timeout=self.settings.recovery_timeout
        )

    @classmethod
    def from_config(cls, api_key: str, settings: ImageGenerationConfig) -> 'ImageGenerator':
        client = HuggingFaceImageClient(
            api_key=api_key,
            model=settings.model,
            base_url=settings.base_url,
            timeout=settings.request_timeout
        )
        return cls(client, settings=settings)

    async def generate(self, prompt: str, token: Optional[CancellationToken] = None) -> Optional[GeneratedImage]:
        """
        Generate an image for a prompt

        Args:
            prompt: Prompt sent to the model
            token: Cancellation token of the calling request

        Returns:
            The image as a data URI, or None if the response held no image data

        Raises:
            CircuitBreakerError: Service marked as down
            ImageServiceError: Generation failed after retries
        """
        if token is not None:
            token.raise_if_cancelled()

        with log_execution_time(self.logger, "image_generation", model=self.settings.model):
            response = await self.retry_service.retry_with_circuit_breaker(
                lambda: self.client.generate(prompt),
                circuit_breaker=self.circuit_breaker,
                max_retries=self.settings.max_retries,
                base_delay=self.settings.base_delay,
                max_delay=self.settings.max_delay
            )

        if not response.content:
            self.logger.warning("Image service returned an empty body")
            return None

        encoded = base64.b64encode(response.content).decode("ascii")
        return GeneratedImage(
            image_ref=f"data:{response.mime_type};base64,{encoded}",
            source=self.settings.source_label,
            mime_type=response.mime_type,
            prompt=prompt
        )
