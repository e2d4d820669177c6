"""
Authentication provider: request credentials -> Principal.

Supports HTTP Basic (username/password checked against the user table) and
Bearer tokens issued by ``POST /auth/token``. Any failure resolves to
``None``; deciding what an anonymous request may do is the gate's job.
"""
from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Iterable, Protocol

from fastapi import Request
from fastapi.security.utils import get_authorization_scheme_param

from ..config import Settings
from ..domain.ports.user import UserPort
from .passwords import verify_password_async
from .token_inspection import ExpiredTokenError, InvalidTokenError, validate_access_token

logger = logging.getLogger("anime_api.auth")

ROLE_PREFIX = "ROLE_"


def normalize_roles(authorities: str | Iterable[str]) -> frozenset[str]:
    """Turn ``"ROLE_ADMIN,ROLE_USER"`` (or an iterable of names) into ``{"ADMIN", "USER"}``."""
    if isinstance(authorities, str):
        authorities = authorities.split(",")
    roles = set()
    for authority in authorities:
        role = authority.strip().upper()
        if role.startswith(ROLE_PREFIX):
            role = role[len(ROLE_PREFIX):]
        if role:
            roles.add(role)
    return frozenset(roles)


@dataclass(frozen=True)
class Principal:
    username: str
    roles: frozenset[str] = field(default_factory=frozenset)


class AuthenticationProvider(Protocol):
    async def authenticate(self, request: Request) -> Principal | None:
        ...


class CredentialsAuthenticationProvider:
    def __init__(self, user_port: UserPort, settings: Settings) -> None:
        self._user_port = user_port
        self._settings = settings

    async def authenticate(self, request: Request) -> Principal | None:
        authorization = request.headers.get("authorization")
        scheme, credentials = get_authorization_scheme_param(authorization)
        if not credentials:
            return None

        scheme = scheme.lower()
        if scheme == "basic":
            return await self._authenticate_basic(credentials)
        if scheme == "bearer":
            return self._authenticate_bearer(credentials)
        return None

    async def _authenticate_basic(self, credentials: str) -> Principal | None:
        try:
            decoded = base64.b64decode(credentials, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            logger.info("Rejected malformed basic credentials")
            return None

        username, separator, password = decoded.partition(":")
        if not separator or not username:
            return None

        user = await self._user_port.get_by_username(username)
        password_ok = await verify_password_async(
            password, user.password_hash if user is not None else None
        )
        if user is None or not password_ok:
            logger.info("Rejected basic credentials username=%s", username)
            return None
        return Principal(username=user.username, roles=normalize_roles(user.authorities))

    def _authenticate_bearer(self, token: str) -> Principal | None:
        try:
            payload = validate_access_token(self._settings, token)
        except ExpiredTokenError:
            logger.info("Rejected expired bearer token")
            return None
        except InvalidTokenError:
            logger.info("Rejected invalid bearer token")
            return None
        return Principal(username=payload["sub"], roles=normalize_roles(payload.get("roles", [])))
