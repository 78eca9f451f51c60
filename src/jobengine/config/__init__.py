"""Configuration module for Job Engine."""

from jobengine.config.schema import Config
from jobengine.config.validator import ConfigValidator

__all__ = ["Config", "ConfigValidator"]
