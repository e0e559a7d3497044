"""
Development environment configuration overrides
"""

from dataclasses import dataclass
from config.app_config import AppConfig, APIConfig


@dataclass
class DevelopmentConfig(AppConfig):
    """Development environment configuration"""

    def __post_init__(self):

        # Development-specific overrides
        self.environment = "development"
        self.debug = True

        # More verbose logging in development
        self.logging.level = "DEBUG"
        self.logging.enable_file_logging = True
        self.logging.log_file = "logs/dev-app.log"

        # Keep development conversations apart from real ones
        self.storage.db_path = "data/dev_friday_chat.db"

        self.ui.app_title = "🧪 FRIDAY AI (DEV)"

        # Fail fast while iterating on the image service
        self.image_generation.max_retries = 0
        self.image_generation.failure_threshold = 3
        self.image_generation.recovery_timeout = 15


def get_development_config() -> DevelopmentConfig:
    """Get development-specific configuration"""
    config = DevelopmentConfig()
    config.api = APIConfig.from_secrets()
    return config
