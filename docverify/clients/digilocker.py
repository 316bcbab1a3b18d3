"""
DigiLocker OAuth2 (PKCE) client.

Builds consent URLs, exchanges authorization codes and reads the profile and
issued-document endpoints on behalf of an authenticated user.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from docverify.core.config import DigiLockerSettings
from docverify.core.errors import UpstreamError

logger = logging.getLogger(__name__)

_TOKEN_BYTES = 32


def _base64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def generate_state_token() -> str:
    """Return a random, URL-safe, single-use correlation token."""
    return _base64url(secrets.token_bytes(_TOKEN_BYTES))


def generate_code_verifier() -> str:
    return _base64url(secrets.token_bytes(_TOKEN_BYTES))


def derive_code_challenge(code_verifier: str) -> str:
    """S256 challenge: base64url(sha256(verifier)) without padding."""
    return _base64url(hashlib.sha256(code_verifier.encode("ascii")).digest())


class DigiLockerClient:
    """Thin async wrapper over the DigiLocker public OAuth2 endpoints."""

    def __init__(
        self,
        settings: DigiLockerSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def redirect_uri(self) -> str:
        return str(self._settings.redirect_uri)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._settings.timeout_seconds, transport=self._transport
        )

    def build_authorization_url(self, *, state: str, code_challenge: str) -> str:
        """Construct the DigiLocker consent URL for a PKCE authorization request."""
        params = {
            "response_type": "code",
            "client_id": self._settings.client_id,
            "redirect_uri": self.redirect_uri,
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        return f"{self._settings.authorize_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, *, code: str, code_verifier: str) -> str:
        """Exchange an authorization code for an access token."""
        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self._settings.client_id,
            "redirect_uri": self.redirect_uri,
            "code_verifier": code_verifier,
        }
        auth = httpx.BasicAuth(self._settings.client_id, self._settings.client_secret)
        try:
            async with self._client() as client:
                response = await client.post(
                    self._settings.token_url, data=payload, auth=auth
                )
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Token endpoint unreachable: {exc}") from exc

        if not response.is_success:
            raise UpstreamError(
                f"Token exchange rejected: {response.text}",
                status_code=response.status_code,
            )

        token_payload = self._json(response)
        access_token = token_payload.get("access_token") if isinstance(token_payload, dict) else None
        if not access_token:
            raise UpstreamError("No access token received from DigiLocker.")
        return access_token

    async def fetch_profile(self, access_token: str) -> Dict[str, Any]:
        payload = self._json(await self._get(self._settings.profile_url, access_token))
        if not isinstance(payload, dict):
            raise UpstreamError("Unexpected profile payload from DigiLocker.")
        return payload

    async def fetch_issued_documents(self, access_token: str) -> List[Dict[str, Any]]:
        """Return the ``items`` list of the issued-documents endpoint."""
        payload = self._json(await self._get(self._settings.issued_files_url, access_token))
        if not isinstance(payload, dict):
            raise UpstreamError("Unexpected issued-documents payload from DigiLocker.")
        items = payload.get("items") or []
        if not isinstance(items, list):
            raise UpstreamError("Issued-documents 'items' is not a list.")
        if not all(isinstance(item, dict) for item in items):
            raise UpstreamError("Issued-documents 'items' contains non-object entries.")
        return items

    async def fetch_issued_files_raw(self, access_token: str) -> Any:
        return self._json(await self._get(self._settings.issued_files_url, access_token))

    async def fetch_eaadhaar(self, access_token: str) -> str:
        """Return the e-Aadhaar XML document."""
        response = await self._get(self._settings.eaadhaar_url, access_token)
        return response.text

    async def _get(self, url: str, access_token: str) -> httpx.Response:
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            async with self._client() as client:
                response = await client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"DigiLocker unreachable: {exc}") from exc
        if not response.is_success:
            raise UpstreamError(
                f"DigiLocker responded with {response.status_code} for {url}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError("DigiLocker returned a malformed JSON body.") from exc


__all__ = [
    "DigiLockerClient",
    "derive_code_challenge",
    "generate_code_verifier",
    "generate_state_token",
]
