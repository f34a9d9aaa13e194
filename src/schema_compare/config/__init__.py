"""Configuration management: profiles, comparison options, TOML loading.

Usage:
    >>> from schema_compare.config import load_config, CompareConfig, DatabaseProfile
"""

from schema_compare.config.loader import load_config
from schema_compare.config.models import CompareConfig, DatabaseProfile, ToolConfig

__all__ = ["load_config", "CompareConfig", "DatabaseProfile", "ToolConfig"]
