"""
Production environment configuration overrides
"""

from dataclasses import dataclass
from config.app_config import AppConfig, APIConfig


@dataclass
class ProductionConfig(AppConfig):
    """Production environment configuration"""

    def __post_init__(self):

        # Production-specific overrides
        self.environment = "production"
        self.debug = False

        # Production logging - less verbose, focus on errors
        self.logging.level = "INFO"
        self.logging.enable_file_logging = True
        self.logging.log_file = "logs/prod-app.log"

        self.ui.app_title = "FRIDAY AI"

        # Production service settings - more patient with a busy image model
        self.image_generation.max_retries = 3
        self.image_generation.max_delay = 30.0
        self.enhancement.temperature = 0.5
        self.enhancement.max_retries = 2


def get_production_config() -> ProductionConfig:
    """Get production-specific configuration"""
    config = ProductionConfig()
    config.api = APIConfig.from_secrets()
    return config
