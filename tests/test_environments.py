"""
Test environment-specific configurations
"""

import os
import pytest
from config.app_config import AppConfig
from config.environments import get_environment_config
from config.environments.development import DevelopmentConfig, get_development_config
from config.environments.production import ProductionConfig, get_production_config


class TestEnvironmentConfigs:
    """Test environment-specific configuration loading"""

    def test_development_config(self):
        """Test development configuration"""
        config = get_development_config()

        assert isinstance(config, DevelopmentConfig)
        assert config.environment == "development"
        assert config.debug is True
        assert config.logging.level == "DEBUG"
        assert "DEV" in config.ui.app_title
        assert config.storage.db_path == "data/dev_friday_chat.db"
        assert config.image_generation.max_retries == 0

    def test_production_config(self):
        """Test production configuration"""
        config = get_production_config()

        assert isinstance(config, ProductionConfig)
        assert config.environment == "production"
        assert config.debug is False
        assert config.logging.level == "INFO"
        assert "DEV" not in config.ui.app_title
        assert config.image_generation.max_retries == 3
        assert config.enhancement.temperature == 0.5

    def test_factories_load_api_keys(self, monkeypatch):
        monkeypatch.setenv("HUGGINGFACE_API_KEY", "hf-env-key")

        assert get_development_config().api.huggingface_api_key == "hf-env-key"
        assert get_production_config().api.huggingface_api_key == "hf-env-key"

    def test_environment_selection_development(self, monkeypatch):
        """Test environment selection for development"""
        monkeypatch.setenv("APP_ENV", "development")

        config = get_environment_config()

        assert config.environment == "development"
        assert config.debug is True

    def test_environment_selection_production(self, monkeypatch):
        """Test environment selection for production"""
        monkeypatch.setenv("APP_ENV", "Production")

        config = get_environment_config()

        assert config.environment == "production"
        assert config.debug is False

    def test_default_environment(self, monkeypatch):
        """Test default environment when APP_ENV is not set"""
        monkeypatch.delenv("APP_ENV", raising=False)

        config = get_environment_config()

        # Should default to development
        assert config.environment == "development"

    def test_unknown_environment_uses_base_config(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "staging")

        config = get_environment_config()

        assert type(config) is AppConfig
        assert config.environment == "staging"

    def test_config_validation(self, monkeypatch, tmp_path):
        """Test that all environment configs pass validation"""
        monkeypatch.chdir(tmp_path)
        configs = [
            get_development_config(),
            get_production_config()
        ]

        for config in configs:
            errors = config.validate()
            # Only missing API keys are expected in tests
            assert all("API key" in e for e in errors)
