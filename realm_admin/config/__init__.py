"""Configuration module for the realm admin client."""
from .settings import AdminConfig, load_settings

__all__ = ["AdminConfig", "load_settings"]
