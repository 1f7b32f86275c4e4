"""
Authentication Factory following Black Box Design principles.

This factory:
- Constructs the session stack based on configuration
- Wires dependencies together
- Returns only the AuthApi facade
"""

import logging
from typing import Any, Optional

from ...config.provider import ConfigProvider
from ..events import EventBus
from ..session.service import AuthSessionService
from ..storage import MemorySessionStore, RedisSessionStore
from .api import AuthApi
from .interfaces import NullEndpointAdapter

logger = logging.getLogger(__name__)


class AuthFactory:
    """
    Factory for building the authentication stack.

    This is the composition root that:
    - Creates the session store, service and orchestrator
    - Wires them together via dependency injection
    - Returns only the public interface
    """

    @staticmethod
    def build_store(config_provider: ConfigProvider, redis_client: Optional[Any] = None):
        """Build the configured session store."""
        session_config = config_provider.get_session_config()
        if session_config.uses_redis:
            logger.info("Using Redis session store")
            return RedisSessionStore(
                redis_client=redis_client,
                connection_url=session_config.redis_url,
                key_prefix=session_config.key_prefix,
            )
        logger.info("Using in-memory session store")
        return MemorySessionStore()

    @staticmethod
    def build(
        config_provider: ConfigProvider,
        endpoint_adapter: Optional[Any] = None,
        event_bus: Optional[EventBus] = None,
        store: Optional[Any] = None,
    ) -> AuthApi:
        """
        Build the complete authentication stack.

        Args:
            config_provider: Configuration provider
            endpoint_adapter: Adapter receiving credential providers
                (a recording NullEndpointAdapter if None)
            event_bus: Event bus for session events (a new one if None)
            store: Session store (built from configuration if None)

        Returns:
            AuthApi facade
        """
        session_config = config_provider.get_session_config()
        oidc_config = config_provider.get_oidc_config()

        if store is None:
            store = AuthFactory.build_store(config_provider)

        service = AuthSessionService(
            store,
            event_bus=event_bus if event_bus is not None else EventBus(),
            default_ttl=session_config.default_ttl,
        )

        return AuthApi(
            service,
            endpoint_adapter if endpoint_adapter is not None else NullEndpointAdapter(),
            oidc_config=oidc_config,
        )
