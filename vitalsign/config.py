"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Clinical thresholds stay in the reference tables; only tunable heuristics live here
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables from .env file
load_dotenv()


class TrendConfig(BaseModel):
    """Window sizes and thresholds for both trend strategies."""

    # Baseline-shift strategy (interactive analysis)
    baseline_window: int = Field(default=5, gt=0, description="Readings averaged as baseline")
    baseline_min_samples: int = Field(
        default=2, gt=0, description="Minimum readings before a direction is reported"
    )
    stable_band_percent: float = Field(
        default=5.0, gt=0.0, description="Changes below this are reported as stable"
    )

    # Split-window strategy (full-sweep screening)
    split_window: int = Field(default=10, gt=0, description="Readings considered in total")
    split_min_samples: int = Field(default=3, gt=0, description="Minimum readings required")
    split_recent_count: int = Field(
        default=3, gt=0, description="Newest readings forming the recent average"
    )
    alert_change_percent: float = Field(
        default=15.0, gt=0.0, description="Shift that raises a trend alert"
    )
    high_change_percent: float = Field(
        default=25.0, gt=0.0, description="Shift that makes a trend alert high priority"
    )

    @model_validator(mode="after")
    def high_above_alert(self) -> "TrendConfig":
        if self.high_change_percent < self.alert_change_percent:
            raise ValueError("high_change_percent must not be below alert_change_percent")
        return self


class BatchConfig(BaseModel):
    """Limits for the agent's batch analysis."""

    recent_window_hours: float = Field(
        default=24.0, gt=0.0, description="Only readings this recent are analyzed"
    )
    max_measurements: int = Field(
        default=20, gt=0, description="Maximum readings analyzed per batch"
    )


class ReminderConfig(BaseModel):
    """Follow-up reminder settings."""

    overdue_after_hours: float = Field(
        default=8.0, gt=0.0, description="Hours without a reading before a reminder is raised"
    )
    task_due_hours: float = Field(
        default=24.0, gt=0.0, description="Default due time for tasks created from alerts"
    )


class HistoryConfig(BaseModel):
    """Analysis history retention (status reporting only)."""

    max_recent_results: int = Field(
        default=100, gt=0, description="Recent results kept for inspection"
    )


class AgentProfileConfig(BaseModel):
    """Persona presented by the monitoring agent."""

    name: str = Field(default="Vita", min_length=1)
    role: str = Field(default="intelligent ward care assistant")
    personality: str = Field(
        default="attentive, professional and friendly; good at reading vital signs"
    )
    capabilities: list[str] = Field(
        default_factory=lambda: [
            "Real-time detection of abnormal vital signs",
            "Analysis of health trend changes",
            "Professional nursing suggestions",
            "Priority assessment and triage",
            "Follow-up reminder generation",
        ]
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    trend: TrendConfig = Field(default_factory=TrendConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    reminder: ReminderConfig = Field(default_factory=ReminderConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    agent: AgentProfileConfig = Field(default_factory=AgentProfileConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, v: str) -> str:
        return v.strip().lower() if isinstance(v, str) else v

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    trend_config = TrendConfig(
        stable_band_percent=float(os.getenv("TREND_STABLE_BAND_PERCENT", "5.0")),
        alert_change_percent=float(os.getenv("TREND_ALERT_CHANGE_PERCENT", "15.0")),
        high_change_percent=float(os.getenv("TREND_HIGH_CHANGE_PERCENT", "25.0")),
    )

    batch_config = BatchConfig(
        recent_window_hours=float(os.getenv("BATCH_WINDOW_HOURS", "24")),
        max_measurements=int(os.getenv("BATCH_MAX_MEASUREMENTS", "20")),
    )

    reminder_config = ReminderConfig(
        overdue_after_hours=float(os.getenv("REMINDER_OVERDUE_HOURS", "8")),
    )

    agent_config = AgentProfileConfig(name=os.getenv("AGENT_NAME", "Vita"))

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        trend=trend_config,
        batch=batch_config,
        reminder=reminder_config,
        agent=agent_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\n🔧 CONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\n📈 TREND ANALYSIS")
    print(f"Baseline Window: {config.trend.baseline_window} readings")
    print(f"Stable Band: ±{config.trend.stable_band_percent}%")
    print(f"Trend Alert Threshold: {config.trend.alert_change_percent}%")

    print("\n🩺 BATCH & REMINDERS")
    print(f"Batch Window: {config.batch.recent_window_hours}h")
    print(f"Batch Limit: {config.batch.max_measurements} readings")
    print(f"Reminder After: {config.reminder.overdue_after_hours}h")


if __name__ == "__main__":
    print_config_summary()
