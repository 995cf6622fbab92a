"""Runtime configuration for the RCON bridge."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_prefix="MC_RCON_", env_file=".env", extra="ignore")

    app_name: str = "mc-rcon"
    log_level: str = "INFO"
    rcon_host: str = Field(default="localhost", description="Game server host running RCON.")
    rcon_port: int = Field(default=25575, description="RCON TCP port (rcon.port in server.properties).")
    rcon_password: str = Field(default="", description="RCON password (rcon.password).")
    rcon_timeout_seconds: float = Field(default=10.0, description="Connect and read timeout per operation.")
    rcon_drain_timeout_seconds: float = Field(
        default=1.0,
        description="How long to wait for the stray packet some servers send after login.",
    )
    whitelist_cooldown_minutes: int = 60
    refresh_interval_minutes: float = 5.0
    max_username_length: int = 16
    runtime_workers: int = 4

    @property
    def whitelist_cooldown(self) -> timedelta:
        return timedelta(minutes=self.whitelist_cooldown_minutes)

    @property
    def refresh_interval_seconds(self) -> float:
        return self.refresh_interval_minutes * 60


@dataclass(slots=True)
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def add_error(self, error: str) -> None:
        self.errors.append(error)

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)

    def error_summary(self) -> str:
        return ", ".join(self.errors) if self.errors else "No errors"


def validate_settings(settings: Settings) -> ValidationResult:
    result = ValidationResult()

    if not settings.rcon_host.strip():
        result.add_error("RCON host is required")
    if not 1 <= settings.rcon_port <= 65535:
        result.add_error(f"RCON port must be between 1 and 65535 (got {settings.rcon_port})")
    if not settings.rcon_password:
        result.add_error("RCON password is required")
    elif len(settings.rcon_password) < 8:
        result.add_warning("RCON password is shorter than 8 characters")
    if settings.rcon_timeout_seconds <= 0:
        result.add_error("RCON timeout must be positive")
    if settings.rcon_drain_timeout_seconds < 0:
        result.add_error("RCON drain timeout must not be negative")
    if settings.refresh_interval_minutes <= 0:
        result.add_error("Refresh interval must be positive")
    if settings.whitelist_cooldown_minutes < 0:
        result.add_error("Whitelist cooldown must not be negative")
    elif settings.whitelist_cooldown_minutes < 5:
        result.add_warning("Whitelist cooldown under 5 minutes allows frequent requests")
    if not 1 <= settings.max_username_length <= 16:
        result.add_error("Max username length must be between 1 and 16")
    if settings.runtime_workers < 1:
        result.add_error("Runtime needs at least one worker")

    return result


settings = Settings()
