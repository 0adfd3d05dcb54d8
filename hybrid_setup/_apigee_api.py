"""Minimal client for the Apigee management API.

Only the calls the setup flow needs are implemented: listing environment
groups and reading/updating the organization's sync authorization. Bearer
tokens are obtained lazily from a caller-supplied provider (normally
``gcloud auth print-access-token``) and are never logged.
"""

from __future__ import annotations

import logging
from collections import abc as cabc
from dataclasses import dataclass, field
from typing import Any

import httpx

from hybrid_setup._setup_errors import ApigeeApiError

logger = logging.getLogger(__name__)

TokenProvider = cabc.Callable[[], str]


@dataclass(frozen=True, slots=True)
class EnvironmentGroup:
    """An environment group and the hostnames it serves."""

    name: str
    hostnames: tuple[str, ...] = ()

    @property
    def primary_hostname(self) -> str:
        return self.hostnames[0] if self.hostnames else ""


@dataclass(frozen=True, slots=True)
class SyncAuthorization:
    """Identities allowed to pull organization configuration.

    ``etag`` is echoed back on update so the API rejects a write based on a
    stale read.
    """

    identities: tuple[str, ...] = field(default_factory=tuple)
    etag: str | None = None

    def with_identity(self, identity: str) -> SyncAuthorization:
        """Return a copy that includes ``identity``.

        Examples
        --------
        >>> SyncAuthorization(("serviceAccount:a",), "e1").with_identity("serviceAccount:b").identities
        ('serviceAccount:a', 'serviceAccount:b')
        """
        if identity in self.identities:
            return self
        return SyncAuthorization(identities=(*self.identities, identity), etag=self.etag)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"identities": list(self.identities)}
        if self.etag:
            payload["etag"] = self.etag
        return payload


def _parse_sync_authorization(payload: cabc.Mapping[str, Any]) -> SyncAuthorization:
    identities = payload.get("identities") or []
    if not isinstance(identities, list):
        msg = "Sync authorization 'identities' must be a list"
        raise ApigeeApiError(msg)
    return SyncAuthorization(
        identities=tuple(str(identity) for identity in identities),
        etag=payload.get("etag"),
    )


class ApigeeClient:
    """Synchronous wrapper around the organization-scoped Apigee API."""

    def __init__(
        self,
        endpoint: str,
        organization: str,
        token_provider: TokenProvider,
        *,
        transport: httpx.BaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.organization = organization
        self._organization_url = f"{endpoint.rstrip('/')}/v1/organizations/{organization}"
        self._token_provider = token_provider
        self._token: str | None = None
        self._client = httpx.Client(transport=transport, timeout=timeout)

    def __enter__(self) -> ApigeeClient:
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _auth_headers(self) -> dict[str, str]:
        if self._token is None:
            self._token = self._token_provider().strip()
        return {"Authorization": f"Bearer {self._token}"}

    def _request(
        self,
        method: str,
        url: str,
        *,
        json: cabc.Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        logger.debug("%s %s", method, url)
        try:
            response = self._client.request(
                method,
                url,
                headers=self._auth_headers(),
                json=json,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            body = exc.response.text.strip()
            msg = f"{method} {url} failed with HTTP {exc.response.status_code}"
            if body:
                msg = f"{msg}: {body}"
            raise ApigeeApiError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"{method} {url} failed: {exc}"
            raise ApigeeApiError(msg) from exc

        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            msg = f"{method} {url} returned invalid JSON: {exc}"
            raise ApigeeApiError(msg) from exc
        if not isinstance(payload, dict):
            msg = f"{method} {url} returned a non-object JSON payload"
            raise ApigeeApiError(msg)
        return payload

    def list_environment_groups(self) -> list[EnvironmentGroup]:
        """Return the organization's environment groups (empty when none)."""

        payload = self._request("GET", f"{self._organization_url}/envgroups/")
        groups = payload.get("environmentGroups") or []
        return [
            EnvironmentGroup(
                name=str(group["name"]),
                hostnames=tuple(str(host) for host in group.get("hostnames") or ()),
            )
            for group in groups
            if group.get("name")
        ]

    def get_sync_authorization(self) -> SyncAuthorization:
        payload = self._request(
            "POST", f"{self._organization_url}:getSyncAuthorization", json={}
        )
        return _parse_sync_authorization(payload)

    def set_sync_authorization(self, authorization: SyncAuthorization) -> SyncAuthorization:
        """Replace the sync authorization list.

        The API answers ``409``/``412`` when ``authorization.etag`` no longer
        matches, which surfaces as :class:`ApigeeApiError`.
        """

        payload = self._request(
            "POST",
            f"{self._organization_url}:setSyncAuthorization",
            json=authorization.to_payload(),
        )
        return _parse_sync_authorization(payload)
