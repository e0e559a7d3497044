"""
Unified Configuration System for FRIDAY Image Chat

This module provides a centralized configuration system that consolidates all application settings,
supports environment-based overrides, and provides type-safe configuration access.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List
import streamlit as st
import os
from pathlib import Path


ENHANCEMENT_SYSTEM_PROMPT = (
    "Create a detailed, descriptive prompt for AI image generation. Include: subject details, "
    "style (e.g., photorealistic, artistic, cinematic), lighting (natural, studio, dramatic), "
    "composition, colors, mood, camera angle, and quality descriptors (high quality, detailed, "
    "sharp, 8k). Be specific and vivid. Return only the enhanced prompt, no extra text."
)


@dataclass
class APIConfig:
    """API configuration settings"""
    openai_api_key: str = ""
    huggingface_api_key: str = ""

    @classmethod
    def from_environment(cls) -> 'APIConfig':
        """Load API config from environment variables"""
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            huggingface_api_key=os.getenv("HUGGINGFACE_API_KEY", "")
        )

    @classmethod
    def from_secrets(cls) -> 'APIConfig':
        """Load API config from Streamlit secrets"""
        # In test environment, prefer environment variables
        if os.getenv("PYTEST_CURRENT_TEST") is not None:
            return cls.from_environment()

        try:
            return cls(
                openai_api_key=st.secrets.get("OPENAI_API_KEY", ""),
                huggingface_api_key=st.secrets.get("HUGGINGFACE_API_KEY", "")
            )
        except Exception:
            # Fallback to environment variables if secrets not available
            return cls.from_environment()


@dataclass
class EnhancementConfig:
    """Prompt enhancement (text model) configuration"""
    model_name: str = "gpt-4o-mini"
    temperature: float = 0.7
    max_tokens: int = 300
    request_timeout: float = 30.0
    max_retries: int = 1
    system_prompt: str = ENHANCEMENT_SYSTEM_PROMPT

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for LangChain compatibility"""
        return {
            "model_name": self.model_name,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "timeout": self.request_timeout,
            "max_retries": self.max_retries
        }


@dataclass
class ImageGenerationConfig:
    """Image generation service configuration"""
    base_url: str = "https://api-inference.huggingface.co"
    model: str = "black-forest-labs/FLUX.1-schnell"
    source_label: str = "FLUX.1 AI"
    request_timeout: float = 120.0
    max_retries: int = 2
    base_delay: float = 1.0
    max_delay: float = 20.0
    failure_threshold: int = 5
    recovery_timeout: int = 60


@dataclass
class SpeechConfig:
    """Speech-to-text configuration"""
    model_name: str = "whisper-1"
    language: str = "en"


@dataclass
class StorageConfig:
    """Local persistence configuration"""
    db_path: str = "data/friday_chat.db"
    conversations_key: str = "conversations"
    active_conversation_key: str = "activeConversationId"
    theme_key: str = "theme"
    legacy_transcript_key: str = "imageChatHistory"
    migrate_legacy_transcript: bool = True


@dataclass
class StreamingConfig:
    """Typing animation configuration"""
    update_every: int = 3
    delay: float = 0.005


@dataclass
class UIConfig:
    """User interface configuration"""
    app_title: str = "FRIDAY AI"
    assistant_name: str = "FRIDAY AI"
    user_label: str = "You"
    creators: str = "Aditya and Vaidikdevsen"
    # Empty: named after the configured enhancement and image models
    powered_by: str = ""
    default_conversation_title: str = "New Chat"
    default_theme: str = "light"
    chat_input_placeholder: str = "Describe the image you want to create..."
    welcome_message: str = """👋 **Hi, I'm FRIDAY AI.**

Describe any picture and I will refine your idea into a detailed prompt and generate a fresh image for you.

Try something like *"a lighthouse on a cliff at sunset, watercolor"*."""


@dataclass
class LoggingConfig:
    """Logging and monitoring configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    enable_file_logging: bool = True
    log_file: str = "logs/app.log"


@dataclass
class AppConfig:
    """Main application configuration"""
    api: APIConfig = field(default_factory=APIConfig)
    enhancement: EnhancementConfig = field(default_factory=EnhancementConfig)
    image_generation: ImageGenerationConfig = field(default_factory=ImageGenerationConfig)
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    streaming: StreamingConfig = field(default_factory=StreamingConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Environment settings
    environment: str = field(default_factory=lambda: os.getenv("APP_ENV", "development"))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")

    @property
    def powered_by(self) -> str:
        """Models named in the assistant's answers about itself"""
        if self.ui.powered_by:
            return self.ui.powered_by
        return f"OpenAI {self.enhancement.model_name} and {self.image_generation.source_label}"

    @classmethod
    def load(cls) -> 'AppConfig':
        """Load configuration with environment overrides"""
        config = cls()

        # Load API configuration from secrets/environment
        config.api = APIConfig.from_secrets()

        # Apply environment-specific overrides
        if config.environment == "production":
            config.debug = False
            config.logging.level = "WARNING"
        elif config.environment == "development":
            config.debug = True
            config.logging.level = "DEBUG"

        return config

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors"""
        errors = []

        # Check required API keys
        if not self.api.huggingface_api_key:
            errors.append("Hugging Face API key is required for image generation")
        if not self.api.openai_api_key:
            errors.append("OpenAI API key is missing; prompts will not be enhanced")

        if self.ui.default_theme not in ("light", "dark"):
            errors.append(f"Unknown default theme '{self.ui.default_theme}'")

        # Check file paths exist
        if not Path(self.storage.db_path).parent.exists():
            Path(self.storage.db_path).parent.mkdir(parents=True, exist_ok=True)

        if self.logging.enable_file_logging:
            log_dir = Path(self.logging.log_file).parent
            if not log_dir.exists():
                log_dir.mkdir(parents=True, exist_ok=True)

        return errors


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance"""
    global _config
    if _config is None:
        # Environment module imports this one
        from config.environments import get_environment_config
        _config = get_environment_config()

        # Validate configuration
        errors = _config.validate()
        if errors:
            import warnings
            for error in errors:
                warnings.warn(f"Configuration error: {error}")

    return _config


def reload_config() -> AppConfig:
    """Reload configuration (useful for testing)"""
    global _config
    _config = None
    return get_config()
