"""
Storecast Analytics
Configuration Module
"""
from .settings import AnalyticsPolicy, Settings, StoreSettings, get_settings
from .logging import configure_logging

__all__ = ["AnalyticsPolicy", "Settings", "StoreSettings", "configure_logging", "get_settings"]
