"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from tandoor_gateway.adapters.tandoor_client import HttpxTandoorClient
from tandoor_gateway.config import Settings, normalize_token
from tandoor_gateway.services.backend import TandoorBackend
from tandoor_gateway.services.gateway import Gateway
from tandoor_gateway.services.tokens import TokenManager


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    client: HttpxTandoorClient
    tokens: TokenManager
    backend: TandoorBackend
    gateway: Gateway
    close_resources: Callable[[], Awaitable[None]]


def build_container(
    settings: Settings | None = None,
    client: HttpxTandoorClient | None = None,
) -> AppContainer:
    """Create the default dependency container.

    The token manager built here is the only credential holder in the
    process; every backend call goes through it.
    """
    resolved_settings = settings or Settings()
    tandoor_client = client or HttpxTandoorClient.create(
        resolved_settings.tandoor_base_url,
        timeout_seconds=resolved_settings.request_timeout_seconds,
        auth_timeout_seconds=resolved_settings.auth_timeout_seconds,
    )
    tokens = TokenManager(
        authenticator=tandoor_client,
        username=resolved_settings.tandoor_username,
        password=resolved_settings.tandoor_password,
        preset_token=normalize_token(resolved_settings.tandoor_auth_token),
    )
    backend = TandoorBackend(
        client=tandoor_client,
        tokens=tokens,
        read_retry_attempts=resolved_settings.read_retry_attempts,
        read_retry_delay_seconds=resolved_settings.read_retry_delay_seconds,
        max_pages=resolved_settings.max_pages,
    )
    gateway = Gateway.create(backend, recent_days=resolved_settings.recent_days)

    async def close_resources() -> None:
        await tandoor_client.close()

    return AppContainer(
        settings=resolved_settings,
        client=tandoor_client,
        tokens=tokens,
        backend=backend,
        gateway=gateway,
        close_resources=close_resources,
    )
