"""
Config Module - Black Box Interface

Purpose: Application configuration management
Interface: EnvConfigProvider.get_oidc_config(), get_session_config()
Hidden: Config sources, environment parsing

Can be replaced with any provider implementing ConfigProvider.
"""

from .provider import ConfigProvider, EnvConfigProvider, OIDCConfig, SessionConfig

__all__ = ["ConfigProvider", "EnvConfigProvider", "OIDCConfig", "SessionConfig"]
