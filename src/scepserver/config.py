"""
Application configuration and environment variables.

This module unifies configuration using pydantic-settings.
Variables can come from:
1. .env file
2. System environment variables (have priority)
3. Default values

Naming convention:
- In Python code: snake_case (ca_pass_file)
- In .env or ENV vars: SCEP_ prefix + UPPER_CASE (SCEP_CA_PASS_FILE)
- Pydantic automatically converts between both
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Unified server configuration.

    All variables can be defined in:
    - .env file: SCEP_VARIABLE_NAME=value
    - Environment variables: export SCEP_VARIABLE_NAME=value

    Example:
        # In .env or as environment variable:
        SCEP_FILE_DEPOT=/var/lib/scep/depot
        SCEP_CHALLENGE_PASSWORD_FILE=/run/secrets/scep_challenge
        SCEP_LOG_JSON=true
    """

    model_config = SettingsConfigDict(
        env_prefix="SCEP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # Allows using uppercase or lowercase
        extra="ignore",  # Ignores extra variables in .env
    )

    # ============================================================================
    # SERVER SETTINGS
    # ============================================================================
    http_listen_host: str = Field(default="127.0.0.1", description="Address to listen on")
    http_listen_port: int = Field(default=8080, description="Port to listen on")

    # ============================================================================
    # DEPOT SETTINGS
    # ============================================================================
    file_depot: str = Field(default="depot", description="Path to the CA folder")
    ca_pass: str = Field(default="", description="Password for the ca.key")
    ca_pass_file: str = Field(
        default="", description="File holding the password for the ca.key"
    )

    # ============================================================================
    # SIGNING POLICY SETTINGS
    # ============================================================================
    cert_valid: int = Field(
        default=365,
        ge=1,
        description="Validity for new client certificates in days",
    )
    cert_renew: int = Field(
        default=14,
        ge=0,
        description=(
            "Do not allow renewal until n days before expiry, "
            "set to 0 to always allow"
        ),
    )
    challenge_password: str = Field(
        default="", description="Enforce a challenge password"
    )
    challenge_password_file: str = Field(
        default="", description="Enforce a challenge password (from file)"
    )
    csr_verifier_exec: str = Field(
        default="", description="Executable that will be passed the CSRs for verification"
    )
    csr_verifier_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Seconds before a running CSR verifier is killed (unset: no limit)",
    )

    # ============================================================================
    # LOGGING SETTINGS
    # ============================================================================
    log_debug: bool = Field(default=False, description="Enable debug logging")
    log_json: bool = Field(default=False, description="Output JSON logs")
    log_format: str = Field(
        default="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | trace_id={extra[trace_id]} | {name}:{function}:{line} - {message}",  # noqa: E501
        description="Log format for human-readable output",
    )
    logger_enqueue: bool = Field(
        default=False, description="Enqueue logs using multiprocessing"
    )

    # ============================================================================
    # HELPER METHODS
    # ============================================================================

    def get_log_level(self) -> str:
        """
        Get the loguru level matching the debug flag.

        Returns:
            str: "DEBUG" when debug logging is enabled, "INFO" otherwise.
        """
        return "DEBUG" if self.log_debug else "INFO"


# ============================================================================
# SINGLETON PATTERN - Global settings instance
# ============================================================================


@lru_cache
def get_settings() -> Settings:
    """
    Get server settings (LRU cached).

    This function is cached, so the .env file is only read once.
    To refresh the configuration, clear the cache:
        get_settings.cache_clear()

    Returns:
        Settings: Server configuration instance.
    """
    return Settings()
