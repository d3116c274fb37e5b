"""
Configuration management for the itinerary pipeline.

This module handles loading and managing configuration for the request
pipeline, including environment variables, API keys, and default settings
for the pipeline stages and the guaranteed JSON generation engine.
"""

import os
from dataclasses import dataclass, field
from enum import Enum

from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()

DEFAULT_TRAFFIC_LOCATIONS = [
    "Burnham Park",
    "Baguio Public Market",
    "Mines View Park",
]


class LogLevel(str, Enum):
    """Log levels supported by the system."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class APIConfig(BaseModel):
    """Configuration for external APIs."""

    gemini_api_key: str = Field(default="", description="Gemini API key")
    tomtom_api_key: str | None = Field(default=None, description="TomTom API key")
    tomtom_base_url: str = Field(
        default="https://api.tomtom.com", description="TomTom API base URL"
    )

    class ValidationError(Exception):
        """Exception raised for API configuration validation errors."""

        def __init__(
            self, missing_keys: list[str], optional_missing: list[str] | None = None
        ):
            self.missing_keys = missing_keys
            self.optional_missing = optional_missing or []
            message = f"Missing required API keys: {', '.join(missing_keys)}"
            if optional_missing:
                message += f". Optional keys missing: {', '.join(optional_missing)}"
            super().__init__(message)

    @classmethod
    def from_env(cls) -> "APIConfig":
        """Create an APIConfig from environment variables."""
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            tomtom_api_key=os.getenv("TOMTOM_API_KEY"),
            tomtom_base_url=os.getenv("TOMTOM_BASE_URL", "https://api.tomtom.com"),
        )

    def validate(self, raise_error: bool = False) -> bool:
        """
        Validate that required API keys are present.

        Args:
            raise_error: If True, raise ValidationError instead of returning False

        Returns:
            True if all required keys are present, False otherwise

        Raises:
            ValidationError: If raise_error is True and validation fails
        """
        missing_keys = []
        optional_missing = []

        if not self.gemini_api_key:
            missing_keys.append("GEMINI_API_KEY")
        if not self.tomtom_api_key:
            optional_missing.append("TOMTOM_API_KEY")

        if optional_missing:
            logger.warning(
                f"Optional API keys missing: {', '.join(optional_missing)}. "
                f"Traffic lookups will report UNKNOWN levels."
            )

        if missing_keys:
            logger.error(f"Missing required API keys: {', '.join(missing_keys)}")
            if raise_error:
                raise self.ValidationError(missing_keys, optional_missing)
            return False

        return True


class SystemConfig(BaseModel):
    """System-wide configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    environment: str = Field(
        default="development",
        description="Environment (development, staging, production)",
    )

    @classmethod
    def from_env(cls) -> "SystemConfig":
        """Create a SystemConfig from environment variables."""
        return cls(
            log_level=LogLevel(os.getenv("LOG_LEVEL", "INFO")),
            environment=os.getenv("ENVIRONMENT", "development"),
        )


class PipelineSettings(BaseModel):
    """Settings for the request pipeline stages."""

    max_traffic_locations: int = Field(
        default=3, description="Maximum number of monitored traffic locations"
    )
    traffic_locations: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TRAFFIC_LOCATIONS),
        description="Locations queried for traffic snapshots",
    )
    request_timeout_seconds: float | None = Field(
        default=120.0, description="Deadline for one pipeline run (None disables)"
    )
    credit_service_tag: str = Field(
        default="itinerary_generation", description="Service tag for credit checks"
    )
    daily_credit_limit: int = Field(
        default=5, description="Daily request allowance for the local credit ledger"
    )
    max_duration_days: int = Field(
        default=30, description="Upper bound on the days laid out for one itinerary"
    )

    @field_validator("max_traffic_locations")
    @classmethod
    def validate_max_traffic_locations(cls, value: int) -> int:
        """Validate the traffic fan-out is not negative."""
        if value < 0:
            raise ValueError(f"max_traffic_locations must be >= 0, got {value}")
        return value

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        """Create PipelineSettings from environment variables."""
        timeout = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "120"))
        locations = os.getenv("TRAFFIC_LOCATIONS")
        return cls(
            max_traffic_locations=int(os.getenv("MAX_TRAFFIC_LOCATIONS", "3")),
            traffic_locations=(
                [loc.strip() for loc in locations.split(",") if loc.strip()]
                if locations
                else list(DEFAULT_TRAFFIC_LOCATIONS)
            ),
            request_timeout_seconds=timeout if timeout > 0 else None,
            credit_service_tag=os.getenv("CREDIT_SERVICE_TAG", "itinerary_generation"),
            daily_credit_limit=int(os.getenv("DAILY_CREDIT_LIMIT", "5")),
            max_duration_days=int(os.getenv("MAX_DURATION_DAYS", "30")),
        )


class EngineConfig(BaseModel):
    """Configuration for the guaranteed JSON generation engine."""

    model: str = Field(default="gemini-2.5-flash", description="Model name to use")
    max_attempts: int = Field(default=3, description="Generate/repair attempts")
    timeout_seconds: float = Field(default=45.0, description="Per-call timeout")
    model_retries: int = Field(
        default=2, description="Transport-level retries for one model call"
    )
    retry_base_delay_ms: int = Field(
        default=1000, description="Base delay for retry back-off"
    )
    cache_ttl: int = Field(default=3600, description="Result cache TTL in seconds")
    max_output_tokens: int = Field(default=3072, description="Max tokens to generate")
    degraded_fallback_rate: float = Field(
        default=0.5, description="Fallback rate above which health is degraded"
    )

    @field_validator("max_attempts")
    @classmethod
    def validate_max_attempts(cls, value: int) -> int:
        """Validate at least one attempt is made."""
        if value < 1:
            raise ValueError(f"max_attempts must be >= 1, got {value}")
        return value

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Create an EngineConfig from environment variables."""
        return cls(
            model=os.getenv("ENGINE_MODEL", "gemini-2.5-flash"),
            max_attempts=int(os.getenv("ENGINE_MAX_ATTEMPTS", "3")),
            timeout_seconds=float(os.getenv("ENGINE_TIMEOUT_SECONDS", "45")),
            model_retries=int(os.getenv("ENGINE_MODEL_RETRIES", "2")),
            retry_base_delay_ms=int(os.getenv("ENGINE_RETRY_BASE_DELAY_MS", "1000")),
            cache_ttl=int(os.getenv("ENGINE_CACHE_TTL", "3600")),
            max_output_tokens=int(os.getenv("ENGINE_MAX_OUTPUT_TOKENS", "3072")),
            degraded_fallback_rate=float(
                os.getenv("ENGINE_DEGRADED_FALLBACK_RATE", "0.5")
            ),
        )


@dataclass
class PipelineConfig:
    """Main configuration class for the itinerary pipeline."""

    api: APIConfig = field(default_factory=APIConfig.from_env)
    system: SystemConfig = field(default_factory=SystemConfig.from_env)
    pipeline: PipelineSettings = field(default_factory=PipelineSettings.from_env)
    engine: EngineConfig = field(default_factory=EngineConfig.from_env)

    class ConfigurationError(Exception):
        """Exception raised for configuration validation errors."""

        pass

    def validate(self, raise_error: bool = False) -> bool:
        """
        Validate the entire configuration.

        Args:
            raise_error: If True, raise ConfigurationError instead of returning False

        Returns:
            True if configuration is valid, False otherwise

        Raises:
            ConfigurationError: If raise_error is True and validation fails
        """
        try:
            self.api.validate(raise_error=True)

            if self.engine.timeout_seconds <= 0:
                raise ValueError("Engine timeout must be positive")

            return True

        except Exception as e:
            if not isinstance(e, self.api.ValidationError):
                logger.error(f"Configuration validation failed: {e!s}")

            if raise_error:
                raise self.ConfigurationError(
                    f"Configuration validation failed: {e!s}"
                ) from e

            return False


# Global configuration instance
config = PipelineConfig()


def initialize_config(
    custom_config_path: str | None = None,
    validate: bool = True,
    raise_on_error: bool = False,
) -> PipelineConfig:
    """
    Initialize and validate the configuration.

    Args:
        custom_config_path: Path to a custom .env file to load
        validate: Whether to validate the configuration
        raise_on_error: Whether to raise an exception on validation failure

    Returns:
        Initialized and validated configuration object

    Raises:
        PipelineConfig.ConfigurationError: If validation fails and
            raise_on_error is True
        FileNotFoundError: If custom_config_path is provided but does not exist
    """
    if custom_config_path:
        if not os.path.exists(custom_config_path):
            error_msg = f"Custom configuration file not found: {custom_config_path}"
            logger.error(error_msg)
            raise FileNotFoundError(error_msg)

        logger.info(f"Loading custom configuration from {custom_config_path}")
        load_dotenv(custom_config_path, override=True)

        # Reload into the existing global object so importers see the update
        config.api = APIConfig.from_env()
        config.system = SystemConfig.from_env()
        config.pipeline = PipelineSettings.from_env()
        config.engine = EngineConfig.from_env()

    if validate:
        is_valid = config.validate(raise_error=raise_on_error)
        if not is_valid:
            logger.warning(
                "Configuration validation failed. Itinerary generation will fall "
                "back to sample-based output until GEMINI_API_KEY is set."
            )
            logger.info("Required environment variables: GEMINI_API_KEY")
            logger.info("Optional environment variables: TOMTOM_API_KEY")

    return config
