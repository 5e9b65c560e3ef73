"""Configuration helpers for the proxy service."""

from .settings import ProxyApiSettings, ProxySettings, get_api_settings, get_settings

__all__ = ["ProxyApiSettings", "ProxySettings", "get_api_settings", "get_settings"]
