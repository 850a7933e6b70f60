"""auth.py — Caller identity resolution.

The six task operations only ever see a resolved ``userId`` string. Where it
comes from is decided here, behind a small provider interface:

    header   (default) The ``Authorization`` header value is used verbatim as
             the user id. Nothing is verified; this is a placeholder for real
             authentication and must not be exposed as-is.
    cognito  The ``Authorization`` header carries a Cognito ID token
             (optionally ``Bearer``-prefixed). The RS256 signature is verified
             against the user pool JWKS and the ``sub`` claim becomes the
             user id.
"""
from __future__ import annotations

import json
import ssl
import time
import urllib.request
from typing import Any, Dict, Optional, Tuple

import certifi
import jwt
from jwt.algorithms import RSAAlgorithm

from task_api import config
from task_api.config import logger
from task_api.http_utils import _error, _header

__all__ = [
    "CognitoIdentityProvider",
    "HeaderIdentityProvider",
    "IdentityProvider",
    "_JWKS_TTL",
    "_get_identity_provider",
    "_resolve_identity",
]

_JWKS_TTL = 3600.0


class IdentityProvider:
    """Resolve the caller identity for an API Gateway event."""

    name = "base"

    def resolve(self, event: Dict[str, Any]) -> Tuple[Optional[str], Optional[Dict[str, Any]]]:
        """Return (user_id, None) on success or (None, error_response)."""
        raise NotImplementedError


class HeaderIdentityProvider(IdentityProvider):
    name = "header"

    def __init__(self, default_user_id: str = "demo-user", header_name: str = "Authorization"):
        self.default_user_id = default_user_id
        self.header_name = header_name

    def resolve(self, event: Dict[str, Any]) -> Tuple[Optional[str], Optional[Dict[str, Any]]]:
        value = _header(event, self.header_name)
        return (value or self.default_user_id), None


class CognitoIdentityProvider(IdentityProvider):
    name = "cognito"

    def __init__(self, user_pool_id: str, client_id: str, header_name: str = "Authorization"):
        self.user_pool_id = user_pool_id
        self.client_id = client_id
        self.header_name = header_name
        self._jwks_cache: Dict[str, Any] = {}
        self._jwks_fetched_at = 0.0

    def _extract_token(self, event: Dict[str, Any]) -> Optional[str]:
        value = (_header(event, self.header_name) or "").strip()
        if value.lower().startswith("bearer "):
            value = value[len("bearer "):].strip()
        return value or None

    def _get_jwks(self) -> Dict[str, Any]:
        now = time.time()
        if self._jwks_cache and (now - self._jwks_fetched_at) < _JWKS_TTL:
            return self._jwks_cache

        if not self.user_pool_id:
            raise ValueError("COGNITO_USER_POOL_ID not set")

        region = self.user_pool_id.split("_")[0]
        url = (
            f"https://cognito-idp.{region}.amazonaws.com/"
            f"{self.user_pool_id}/.well-known/jwks.json"
        )
        ctx = ssl.create_default_context(cafile=certifi.where())
        with urllib.request.urlopen(url, timeout=5, context=ctx) as resp:
            data = json.loads(resp.read())

        self._jwks_cache = {
            key_data["kid"]: RSAAlgorithm.from_jwk(json.dumps(key_data))
            for key_data in data.get("keys", [])
        }
        self._jwks_fetched_at = now
        return self._jwks_cache

    def _verify_token(self, token: str) -> Dict[str, Any]:
        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as exc:
            raise ValueError(f"Invalid token header: {exc}") from exc

        alg = header.get("alg", "RS256")
        if alg != "RS256":
            raise ValueError(f"Unexpected token algorithm: {alg}")

        key = self._get_jwks().get(header.get("kid"))
        if key is None:
            raise ValueError("Token key ID not found in JWKS")

        try:
            return jwt.decode(
                token,
                key,
                algorithms=["RS256"],
                audience=self.client_id,
                options={"verify_exp": True},
            )
        except jwt.ExpiredSignatureError:
            raise ValueError("Token has expired. Please sign in again.")
        except jwt.InvalidAudienceError:
            raise ValueError("Token audience mismatch.")
        except jwt.PyJWTError as exc:
            raise ValueError(f"Token validation failed: {exc}") from exc

    def resolve(self, event: Dict[str, Any]) -> Tuple[Optional[str], Optional[Dict[str, Any]]]:
        token = self._extract_token(event)
        if not token:
            return None, _error(401, "Authentication required. Please sign in.")
        try:
            claims = self._verify_token(token)
        except ValueError as exc:
            logger.warning("auth failed: %s", exc)
            return None, _error(401, str(exc))
        sub = str(claims.get("sub") or "").strip()
        if not sub:
            return None, _error(401, "Token has no subject.")
        return sub, None


_provider: Optional[IdentityProvider] = None


def _get_identity_provider() -> IdentityProvider:
    global _provider
    if _provider is None:
        if config.IDENTITY_PROVIDER == "cognito":
            _provider = CognitoIdentityProvider(config.COGNITO_USER_POOL_ID, config.COGNITO_CLIENT_ID)
        else:
            if config.IDENTITY_PROVIDER != "header":
                logger.warning("unknown IDENTITY_PROVIDER=%s; using header", config.IDENTITY_PROVIDER)
            _provider = HeaderIdentityProvider(config.DEFAULT_USER_ID)
    return _provider


def _resolve_identity(
    event: Dict[str, Any],
    provider: Optional[IdentityProvider] = None,
) -> Tuple[Optional[str], Optional[Dict[str, Any]]]:
    return (provider or _get_identity_provider()).resolve(event)
