"""
AI service data models for generation results.
"""

from dataclasses import dataclass, field
from datetime import datetime

from services.chat_service.models import ImagePayload


@dataclass
class GeneratedImage:
    """Image produced by the image service"""
    image_ref: str  # data:<mime>;base64,<payload>
    source: str
    mime_type: str = "image/jpeg"
    prompt: str = ""
    created_at: datetime = field(default_factory=datetime.now)

    def to_payload(self, alt_text: str) -> ImagePayload:
        """Domain payload stored in the transcript"""
        return ImagePayload(image_ref=self.image_ref, alt_text=alt_text, source=self.source)
