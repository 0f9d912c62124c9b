"""Tandoor REST API client."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from tandoor_gateway.domain.errors import (
    AuthError,
    NotFoundError,
    ScopeError,
    TokenRejectedError,
    UpstreamError,
    ValidationError,
)

_logger = logging.getLogger(__name__)

JsonValue = dict[str, object] | list[object] | None


@dataclass(frozen=True)
class Listing:
    """Rows of a paginated collection.

    ``truncated`` is set when paging stopped at the page cap while the server
    still advertised a next page.
    """

    rows: list[object]
    truncated: bool = False


class TandoorClient(Protocol):
    """Interface for raw Tandoor API interactions."""

    async def authenticate(self, username: str, password: str) -> str:
        """Exchange username and password for an access token."""

    async def request(
        self,
        method: str,
        path: str,
        *,
        token: str,
        params: dict[str, object] | None = None,
        json: object | None = None,
    ) -> JsonValue:
        """Send an authorized request and return the decoded JSON body."""

    async def list_all(
        self,
        path: str,
        *,
        token: str,
        params: dict[str, object] | None = None,
        max_pages: int = 20,
    ) -> Listing:
        """Fetch every page of a paginated collection."""


@dataclass
class HttpxTandoorClient(TandoorClient):
    """HTTPX-backed Tandoor client."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15
    auth_timeout_seconds: float = 10

    @classmethod
    def create(
        cls,
        base_url: str,
        timeout_seconds: float = 15,
        auth_timeout_seconds: float = 10,
    ) -> "HttpxTandoorClient":
        """Create a Tandoor client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
            auth_timeout_seconds=auth_timeout_seconds,
        )

    async def authenticate(self, username: str, password: str) -> str:
        """Obtain a token from ``/api-token-auth/``."""
        url = f"{self.base_url}/api-token-auth/"
        _logger.info("Authenticating against Tandoor as %s", username)
        try:
            response = await self.http_client.post(
                url,
                json={"username": username, "password": password},
                timeout=self.auth_timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            raise UpstreamError(
                f"Authentication request to {self.base_url} timed out",
                transient=True,
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(
                f"Failed to connect to Tandoor server at {self.base_url}: {exc}",
                transient=True,
            ) from exc

        status_code = response.status_code
        if status_code in {400, 401}:
            raise AuthError(
                "Invalid username or password", reason="invalid_credentials"
            )
        if status_code == 403:
            raise AuthError(
                "Access denied: the account may be disabled",
                reason="account_disabled",
            )
        if status_code == 429:
            raise AuthError(
                "Authentication is rate limited (10 logins per day)",
                reason="rate_limited",
            )
        if status_code == 404:
            raise UpstreamError(
                f"Token endpoint not found, check the base URL {self.base_url}",
                status_code=status_code,
            )
        if status_code >= 400:
            raise UpstreamError(
                f"Authentication failed with status {status_code}",
                transient=status_code >= 500,
                status_code=status_code,
            )
        payload = _decode(response)
        token = payload.get("token") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token:
            raise UpstreamError("Authentication response did not include a token")
        _logger.info("Authentication succeeded for %s", username)
        return token

    async def request(
        self,
        method: str,
        path: str,
        *,
        token: str,
        params: dict[str, object] | None = None,
        json: object | None = None,
    ) -> JsonValue:
        """Send an authorized request and return the decoded JSON body."""
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        _logger.debug("Tandoor %s %s params=%s", method, url, params)
        try:
            response = await self.http_client.request(
                method,
                url,
                params=_clean_params(params),
                json=json,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            raise UpstreamError(
                f"Tandoor {method} {path} timed out", transient=True
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(
                f"Failed to connect to Tandoor API: {exc}", transient=True
            ) from exc
        _raise_for_status(response, method, path)
        if response.status_code == 204 or not response.content:
            return None
        return _decode(response)

    async def list_all(
        self,
        path: str,
        *,
        token: str,
        params: dict[str, object] | None = None,
        max_pages: int = 20,
    ) -> Listing:
        """Follow ``next`` links of a paginated collection."""
        results: list[object] = []
        next_path: str | None = path
        next_params = params
        pages = 0
        while next_path and pages < max_pages:
            payload = await self.request(
                "GET", next_path, token=token, params=next_params
            )
            pages += 1
            if isinstance(payload, list):
                results.extend(payload)
                next_path = None
                break
            if not isinstance(payload, dict) or not isinstance(
                payload.get("results"), list
            ):
                raise UpstreamError(f"Unexpected list response from {path}")
            results.extend(payload["results"])
            following = payload.get("next")
            next_path = following if isinstance(following, str) else None
            # the next link already carries the query string
            next_params = None
        truncated = bool(next_path) and pages >= max_pages
        if truncated:
            _logger.warning("Stopped paging %s after %s pages", path, max_pages)
        return Listing(rows=results, truncated=truncated)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _clean_params(params: dict[str, object] | None) -> dict[str, object] | None:
    if params is None:
        return None
    return {key: value for key, value in params.items() if value is not None}


def _decode(response: httpx.Response) -> JsonValue:
    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamError(
            "Invalid JSON in Tandoor response", status_code=response.status_code
        ) from exc


def _raise_for_status(response: httpx.Response, method: str, path: str) -> None:
    status_code = response.status_code
    if status_code < 400:
        return
    body = response.text[:500]
    _logger.warning(
        "Tandoor %s %s failed with status %s: %s", method, path, status_code, body
    )
    if status_code == 401:
        raise TokenRejectedError()
    if status_code == 403:
        if "space" in body.lower():
            raise ScopeError(
                "The account is not a member of an active space",
                reason="no_active_space",
                details={"body": body},
            )
        raise ScopeError(
            f"Access denied for {method} {path}",
            reason="missing_permission",
            details={"body": body},
        )
    if status_code == 404:
        raise NotFoundError(f"{path} was not found")
    if status_code == 400:
        raise ValidationError(
            f"Tandoor rejected {method} {path}", details={"body": body}
        )
    raise UpstreamError(
        f"Tandoor {method} {path} failed with status {status_code}",
        transient=status_code == 429 or status_code >= 500,
        status_code=status_code,
        details={"body": body},
    )
