"""
Configuration for the Workload Governance Engine.

This file contains the policy thresholds supplied to each engine call and
the runtime settings (logging, verbosity) read from the environment.

Policy settings are plain values passed per evaluation; no engine keeps
its own copy between calls.
"""

import os
import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional


# =============================================================================
# ALERT SETTINGS
# =============================================================================

@dataclass
class AlertSettings:
    """Settings for alerting and validation scoring."""

    # Minimum shift rule score for transitions that require validation
    score_threshold: float = 50.0

    def __post_init__(self):
        if not 0 <= self.score_threshold <= 100:
            raise ValueError(f"score_threshold must be within 0-100, got {self.score_threshold}")


# =============================================================================
# POLICY SETTINGS
# =============================================================================

@dataclass
class ValidationAdminSettings:
    """
    Policy thresholds for workload evaluation and shift validation.

    Attributes:
        max_hours_variation: Weekly hours cap used for overload detection
        target_hours_per_week: Ideal weekly hours when no contract is set
        equity_threshold: Equity score below which balance is poor
        min_rest_hours: Minimum rest between consecutive shifts
        max_daily_hours: Longest single shift before a contract conflict
        min_shift_hours: Shortest valid shift
        max_shift_hours: Longest valid shift
        max_weekly_hours: Weekly hours that make a shift invalid
        max_consecutive_days: Working days allowed in a row
        alert_settings: Alerting and scoring settings
    """

    max_hours_variation: float = 40.0
    target_hours_per_week: float = 32.0
    equity_threshold: float = 60.0

    # Rest and compliance limits
    min_rest_hours: float = 11.0
    max_daily_hours: float = 10.0
    min_shift_hours: float = 1.0
    max_shift_hours: float = 12.0
    max_weekly_hours: float = 48.0
    max_consecutive_days: int = 6

    alert_settings: AlertSettings = field(default_factory=AlertSettings)

    def __post_init__(self):
        for name in ("max_hours_variation", "target_hours_per_week", "max_shift_hours",
                     "max_weekly_hours", "max_daily_hours"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.min_shift_hours > self.max_shift_hours:
            raise ValueError("min_shift_hours cannot exceed max_shift_hours")
        if isinstance(self.alert_settings, dict):
            self.alert_settings = AlertSettings(**self.alert_settings)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ValidationAdminSettings":
        """
        Build settings from a plain mapping, ignoring unknown keys.

        Missing or falsy thresholds fall back to the defaults.

        Args:
            data: Mapping of setting name -> value

        Returns:
            ValidationAdminSettings instance
        """
        if not data:
            return cls()

        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known and v}
        return cls(**values)


# =============================================================================
# ENGINE CONFIGURATION
# =============================================================================

def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EngineConfig:
    """Runtime configuration for the engines."""

    # Output settings
    log_dir: str = "output"
    verbose: bool = False
    file_logging: bool = False

    # Defaults used when a caller supplies no settings
    settings: ValidationAdminSettings = field(default_factory=ValidationAdminSettings)

    @classmethod
    def load(cls) -> "EngineConfig":
        """Load configuration from environment and defaults."""
        config = cls(
            log_dir=os.environ.get("WORKLOAD_LOG_DIR", "output"),
            verbose=_env_flag("WORKLOAD_VERBOSE", False),
            file_logging=_env_flag("WORKLOAD_FILE_LOGGING", False),
        )
        if config.verbose:
            logging.debug(f"Engine configuration loaded: log_dir={config.log_dir}")
        return config


# Global configuration instance
config = EngineConfig.load()


# =============================================================================
# USAGE INSTRUCTIONS
# =============================================================================
#
# 1. Enable colored console output for every engine:
#
#    export WORKLOAD_VERBOSE=1
#
# 2. Write a session log file under WORKLOAD_LOG_DIR (default: output/):
#
#    export WORKLOAD_FILE_LOGGING=1
#    export WORKLOAD_LOG_DIR=/var/log/workload
#
# =============================================================================
