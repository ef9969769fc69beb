"""
Configuration System

Configuration Priority (highest to lowest):
    1. Programmatic (passed to SKGConfig())
    2. Environment variables (SYSTEMS_KG_* prefix)
    3. Built-in defaults

Config files are loaded explicitly with SKGConfig.from_file().
"""

from systems_kg.config.settings import DEFAULT_EXPECTED_KEYWORDS, SKGConfig

__all__ = ["SKGConfig", "DEFAULT_EXPECTED_KEYWORDS"]
