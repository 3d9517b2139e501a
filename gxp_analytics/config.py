"""
Configuration module for GxP Validation Analytics.

Provides centralized configuration for filtering, aggregation and
reporting of validation records.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Union, get_args, get_origin

import pytz
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_PALETTE = [
    "#0088FE",
    "#00C49F",
    "#FFBB28",
    "#FF8042",
    "#8884D8",
    "#82CA9D",
]


class MonthLabelLocale(str, Enum):
    """Locales with built-in short month names."""

    EN = "en"
    ES = "es"


class AnalyticsConfig(BaseModel):
    """Central configuration for validation analytics.

    Configuration can be set programmatically or loaded from environment
    variables using the ``GXP_ANALYTICS_`` prefix.

    Example:
        >>> config = AnalyticsConfig(
        ...     timezone="Europe/Madrid",
        ...     month_label_locale="es",
        ... )

        Loading from environment:

        >>> import os
        >>> os.environ['GXP_ANALYTICS_TIMEZONE'] = 'America/Bogota'
        >>> config = AnalyticsConfig.from_env()

    Environment Variables:
        - GXP_ANALYTICS_TIMEZONE
        - GXP_ANALYTICS_MONTH_LABEL_LOCALE
        - GXP_ANALYTICS_DASHBOARD_TOP_EQUIPMENT
        - GXP_ANALYTICS_ANALYTICS_TOP_EQUIPMENT
        - GXP_ANALYTICS_TREND_WINDOW_MONTHS
        - GXP_ANALYTICS_EXPIRY_WARNING_DAYS
        - GXP_ANALYTICS_PALETTE (comma separated)

    Note:
        The timezone is only applied to timezone-aware ``created_at``
        values. Naive timestamps are read in their own calendar.
    """

    # Calendar settings
    timezone: str = Field("UTC", description="Reporting timezone for aware timestamps")
    month_label_locale: MonthLabelLocale = Field(
        MonthLabelLocale.EN, description="Locale of short month labels"
    )

    # Aggregation settings
    dashboard_top_equipment: int = Field(
        5, description="Equipment groups shown on the dashboard", gt=0, le=50
    )
    analytics_top_equipment: int = Field(
        6, description="Equipment groups shown on the analytics panel", gt=0, le=50
    )
    trend_window_months: int = Field(
        6, description="Months in the recent trend series", gt=0, le=120
    )
    unspecified_label: str = Field(
        "unspecified", description="Bucket key for records missing a group key"
    )

    # Expiry settings
    expiry_warning_days: int = Field(
        30, description="Days before expiry a record enters the watch-list", ge=0
    )

    # Presentation settings
    palette: List[str] = Field(
        default_factory=lambda: list(DEFAULT_PALETTE),
        description="Colours assigned to free-form groups",
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Ensure timezone is known to the tz database."""
        if v not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @field_validator("palette")
    @classmethod
    def validate_palette(cls, v: List[str]) -> List[str]:
        """Ensure the palette has at least one colour."""
        colours = [c.strip() for c in v if c and c.strip()]
        if not colours:
            raise ValueError("Palette must contain at least one colour")
        return colours

    @field_validator("unspecified_label")
    @classmethod
    def validate_unspecified_label(cls, v: str) -> str:
        """Ensure the bucket label is not blank."""
        if not v.strip():
            raise ValueError("Unspecified label must not be blank")
        return v.strip()

    @property
    def tzinfo(self) -> Any:
        """Reporting timezone as a tzinfo object."""
        return pytz.timezone(self.timezone)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump(mode="json")

    @classmethod
    def from_env(cls, prefix: str = "GXP_ANALYTICS_") -> "AnalyticsConfig":
        """
        Load configuration from environment variables.

        Args:
            prefix: Prefix for environment variables

        Returns:
            Configuration instance
        """
        import os

        config_dict: Dict[str, Any] = {}

        for field_name, field_info in cls.model_fields.items():
            env_var = f"{prefix}{field_name.upper()}"
            if env_var not in os.environ:
                continue
            value = os.environ[env_var]

            field_type = field_info.annotation
            if get_origin(field_type) is Union:
                args = get_args(field_type)
                field_type = next((arg for arg in args if arg is not type(None)), str)

            try:
                if field_type == int:
                    config_dict[field_name] = int(value)
                elif get_origin(field_type) is list:
                    config_dict[field_name] = [
                        item.strip() for item in value.split(",")
                    ]
                elif isinstance(field_type, type) and issubclass(field_type, Enum):
                    config_dict[field_name] = field_type(value.lower())
                else:
                    config_dict[field_name] = value
            except (ValueError, TypeError):
                # Let pydantic report the bad value
                config_dict[field_name] = value

        return cls.model_validate(config_dict)


# Global configuration instance
_config: Optional[AnalyticsConfig] = None


def get_config() -> AnalyticsConfig:
    """
    Get the global configuration instance.

    Returns:
        Global configuration
    """
    global _config

    if _config is None:
        try:
            _config = AnalyticsConfig.from_env()
        except ValueError as e:
            logger.warning(f"Ignoring invalid analytics environment settings: {e}")
            _config = AnalyticsConfig.model_validate({})

    return _config


def set_config(config: Optional[AnalyticsConfig]) -> None:
    """
    Set the global configuration instance.

    Passing ``None`` resets to environment/defaults on next access.

    Args:
        config: Configuration to set
    """
    global _config
    _config = config


def configure(**kwargs: Any) -> AnalyticsConfig:
    """
    Configure validation analytics with keyword arguments.

    Args:
        **kwargs: Configuration parameters

    Returns:
        Updated configuration
    """
    global _config

    if _config is None:
        _config = AnalyticsConfig(**kwargs)
    else:
        config_dict = _config.to_dict()
        config_dict.update(kwargs)
        _config = AnalyticsConfig(**config_dict)

    return _config
