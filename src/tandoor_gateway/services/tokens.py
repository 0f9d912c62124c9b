"""Token lifecycle management.

The backend allows at most 10 logins per day, so the manager owns the single
process-wide credential and serialises every login attempt behind one lock.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Protocol

from tandoor_gateway.domain.errors import AuthError, GatewayError
from tandoor_gateway.domain.models import Credential, CredentialSource

_logger = logging.getLogger(__name__)


class Authenticator(Protocol):
    """Anything that can exchange a username and password for a token."""

    async def authenticate(self, username: str, password: str) -> str:
        """Return a fresh access token."""


class TokenState(StrEnum):
    """Lifecycle states of the credential."""

    UNSET = "unset"
    AUTHENTICATING = "authenticating"
    VALID = "valid"
    INVALID = "invalid"


@dataclass
class TokenManager:
    """Owns the single credential used for every outbound call."""

    authenticator: Authenticator
    username: str | None = None
    password: str | None = None
    preset_token: str | None = None

    def __post_init__(self) -> None:
        self._lock = asyncio.Lock()
        self._credential: Credential | None = None
        self._state = TokenState.UNSET
        self._attempts = 0
        self._last_error: GatewayError | None = None
        self._fatal_error: AuthError | None = None
        self._relogin_used = False
        self.login_count = 0
        if self.preset_token:
            self._credential = Credential(
                value=self.preset_token,
                obtained_at=datetime.now(tz=UTC),
                source=CredentialSource.PRESET_ENVIRONMENT,
            )
            self._state = TokenState.VALID
            _logger.info("Using preset credential %s", self._credential.preview)

    @property
    def state(self) -> TokenState:
        return self._state

    @property
    def credential(self) -> Credential | None:
        return self._credential

    async def acquire(self) -> Credential:
        """Return a valid credential, logging in at most once at a time."""
        current = self._credential
        if current is not None and self._state is TokenState.VALID:
            return current
        if self._fatal_error is not None:
            raise self._fatal_error
        attempts_seen = self._attempts
        async with self._lock:
            current = self._credential
            if current is not None and self._state is TokenState.VALID:
                return current
            if self._fatal_error is not None:
                raise self._fatal_error
            if self._attempts != attempts_seen and self._last_error is not None:
                # queued behind an attempt that failed; share its outcome
                raise self._last_error
            return await self._login()

    async def invalidate(self, credential: Credential) -> None:
        """Handle a backend rejection of ``credential``.

        Raises ``AuthError`` when no automatic re-login is allowed.
        """
        async with self._lock:
            if credential is not self._credential:
                return
            if credential.source is CredentialSource.PRESET_ENVIRONMENT:
                self._state = TokenState.INVALID
                self._fatal_error = AuthError(
                    "The preset token was rejected; issue a new token and "
                    "restart, no login will be attempted",
                    reason="preset_token_rejected",
                )
                _logger.error("Preset credential %s rejected", credential.preview)
                raise self._fatal_error
            if self._relogin_used:
                self._state = TokenState.INVALID
                self._fatal_error = AuthError(
                    "A freshly issued token was rejected again; check the "
                    "account's space and permissions",
                    reason="token_rejected",
                )
                _logger.error(
                    "Re-issued credential %s rejected, giving up",
                    credential.preview,
                )
                raise self._fatal_error
            _logger.warning(
                "Credential %s rejected, one re-login allowed", credential.preview
            )
            self._relogin_used = True
            self._state = TokenState.INVALID

    def confirm(self, credential: Credential) -> None:
        """Record that a call with ``credential`` succeeded."""
        if credential is self._credential:
            self._relogin_used = False

    def describe(self) -> dict[str, object]:
        """Return a redacted view of the credential state."""
        credential = self._credential
        return {
            "state": str(self._state),
            "source": str(credential.source) if credential else None,
            "token_preview": credential.preview if credential else None,
            "obtained_at": credential.obtained_at.isoformat() if credential else None,
            "login_count": self.login_count,
        }

    async def _login(self) -> Credential:
        if not self.username or not self.password:
            self._fatal_error = AuthError(
                "No username/password or preset token configured",
                reason="missing_credentials",
            )
            self._state = TokenState.INVALID
            raise self._fatal_error

        previous_state = self._state
        self._state = TokenState.AUTHENTICATING
        finished = False
        try:
            self.login_count += 1
            token = await self.authenticator.authenticate(self.username, self.password)
            finished = True
        except AuthError as exc:
            finished = True
            self._record_failure(exc, TokenState.INVALID)
            self._fatal_error = exc
            raise
        except GatewayError as exc:
            finished = True
            self._record_failure(exc, TokenState.UNSET)
            raise
        finally:
            if not finished:
                # cancelled mid-login: leave the lock free for a later attempt
                self._state = previous_state
        self._credential = Credential(
            value=token,
            obtained_at=datetime.now(tz=UTC),
            source=CredentialSource.LOGIN,
        )
        self._attempts += 1
        self._last_error = None
        self._state = TokenState.VALID
        _logger.info("Obtained credential %s", self._credential.preview)
        return self._credential

    def _record_failure(self, exc: GatewayError, state: TokenState) -> None:
        self._attempts += 1
        self._last_error = exc
        self._state = state
        _logger.error("Login failed: %s", exc.message)
