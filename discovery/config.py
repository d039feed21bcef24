"""Configuration loading for the Business Discovery Engine."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Application settings
    app_name: str = "Business Discovery Engine"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Elasticsearch settings
    elasticsearch_url: Optional[str] = Field(default=None, alias="ELASTICSEARCH_URL")
    es_host: str = Field(default="localhost", alias="ELASTICSEARCH_HOST")
    es_port: int = Field(default=9200, alias="ELASTICSEARCH_PORT")
    es_scheme: str = Field(default="http", alias="ELASTICSEARCH_SCHEME")
    es_username: Optional[str] = Field(default=None, alias="ELASTICSEARCH_USERNAME")
    es_password: Optional[str] = Field(default=None, alias="ELASTICSEARCH_PASSWORD")
    es_api_key: Optional[str] = Field(default=None, alias="ELASTICSEARCH_API_KEY")
    es_cloud_id: Optional[str] = Field(default=None, alias="ELASTICSEARCH_CLOUD_ID")
    es_verify_certs: bool = Field(default=True, alias="ELASTICSEARCH_VERIFY_CERTS")
    es_request_timeout: float = Field(default=10.0, alias="ELASTICSEARCH_REQUEST_TIMEOUT")

    # Index names
    businesses_index: str = "businesses"

    # Discovery settings
    store_backend: str = Field(default="elasticsearch", alias="DISCOVERY_STORE_BACKEND")
    reporting_timezone: str = Field(default="UTC", alias="DISCOVERY_TIMEZONE")
    candidate_pool_size: int = Field(default=500, ge=1, le=10000)
    memory_store_path: Optional[str] = Field(default=None, alias="DISCOVERY_MEMORY_STORE_PATH")

    @property
    def es_url(self) -> str:
        """Get the full Elasticsearch URL."""
        return f"{self.es_scheme}://{self.es_host}:{self.es_port}"

    @classmethod
    def env_overridden_fields(cls) -> set:
        """Field names whose environment alias is set in the process or the .env file."""
        env_keys = {key.upper() for key in os.environ}
        env_file = cls.model_config.get("env_file")
        if env_file and Path(env_file).exists():
            env_keys.update(key.upper() for key in dotenv_values(env_file))
        return {
            name
            for name, field in cls.model_fields.items()
            if field.alias and field.alias.upper() in env_keys
        }

    @classmethod
    def load_from_yaml(cls, yaml_path: str = "config/config.yaml") -> "Settings":
        """Load settings from YAML config file, with env overrides."""
        config_data = {}

        yaml_file = Path(yaml_path)
        if yaml_file.exists():
            with open(yaml_file, "r") as f:
                yaml_config = yaml.safe_load(f) or {}

            # Flatten nested YAML structure
            if "elasticsearch" in yaml_config:
                es_config = yaml_config["elasticsearch"]
                config_data["es_host"] = es_config.get("host", "localhost")
                config_data["es_port"] = es_config.get("port", 9200)
                config_data["es_scheme"] = es_config.get("scheme", "http")
                config_data["es_username"] = es_config.get("username")
                config_data["es_password"] = es_config.get("password")
                config_data["es_api_key"] = es_config.get("api_key")
                config_data["es_cloud_id"] = es_config.get("cloud_id")
                config_data["es_verify_certs"] = es_config.get("verify_certs", True)
                config_data["es_request_timeout"] = es_config.get("request_timeout")

            if "indices" in yaml_config:
                indices = yaml_config["indices"]
                config_data["businesses_index"] = indices.get("businesses", "businesses")

            if "app" in yaml_config:
                app_config = yaml_config["app"]
                config_data["app_name"] = app_config.get("name", "Business Discovery Engine")
                config_data["debug"] = app_config.get("debug", False)
                config_data["log_level"] = app_config.get("log_level")

            if "discovery" in yaml_config:
                discovery = yaml_config["discovery"]
                config_data["store_backend"] = discovery.get("store_backend")
                config_data["reporting_timezone"] = discovery.get("timezone")
                config_data["candidate_pool_size"] = discovery.get("candidate_pool_size")
                config_data["memory_store_path"] = discovery.get("memory_store_path")

        # Filter out None values; environment variables win over the file
        overridden = cls.env_overridden_fields()
        config_data = {
            k: v for k, v in config_data.items() if v is not None and k not in overridden
        }

        return cls(**config_data)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.load_from_yaml()
