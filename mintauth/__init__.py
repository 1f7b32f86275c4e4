"""
mintauth - Authenticated sessions against token-issuing endpoints

Keeps one authenticated session per remote endpoint (mint) and wires a
live credential provider into every outbound request to that endpoint.

Architecture:
- Each module is self-contained with clear interfaces
- Storage, event delivery and the endpoint adapter are replaceable
- No module knows the internals of another

Modules:
- session: Session records, expiration policy, lifecycle events
- storage: Session persistence abstraction
- events: Process-wide event bus
- oidc: Discovery, device-code and refresh grants
- auth: Credential providers and the session orchestrator
- adapter: Attaches credentials to outbound requests
"""

__version__ = "0.1.0"
