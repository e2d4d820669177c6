"""Declarative access policy for the HTTP surface.

Rules are evaluated top-down and the first match wins. A rule with no
required role only demands an authenticated identity.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final

from ..security.authentication import Principal

RESOURCE_PATH: Final[str] = "/anime"


class Role(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class AuthorizationDecision(str, Enum):
    DENY_UNAUTHENTICATED = "deny_unauthenticated"
    DENY_FORBIDDEN = "deny_forbidden"
    ALLOW = "allow"


@dataclass(frozen=True)
class AccessRule:
    methods: frozenset[str] | None
    path_prefix: str | None
    required_role: Role | None

    def matches(self, method: str, path: str) -> bool:
        if self.methods is not None and method.upper() not in self.methods:
            return False
        if self.path_prefix is None:
            return True
        return path == self.path_prefix or path.startswith(self.path_prefix + "/")


ACCESS_POLICY: Final[tuple[AccessRule, ...]] = (
    AccessRule(frozenset({"POST", "PUT", "DELETE"}), RESOURCE_PATH, Role.ADMIN),
    AccessRule(frozenset({"GET"}), RESOURCE_PATH, Role.USER),
    AccessRule(None, None, None),
)

# Served without any authentication
PUBLIC_ENDPOINTS: Final[frozenset[tuple[str, str]]] = frozenset({("GET", "/health")})


def rule_for(method: str, path: str) -> AccessRule:
    for rule in ACCESS_POLICY:
        if rule.matches(method, path):
            return rule
    # The last rule matches everything.
    raise LookupError(f"No access rule for {method} {path}")


def is_public(method: str, path: str) -> bool:
    return (method.upper(), path) in PUBLIC_ENDPOINTS


def has_role(roles: frozenset[str], required: Role) -> bool:
    # ADMIN implies USER, and any recognised identity with at least one role
    # counts as a USER.
    if required is Role.USER:
        return bool(roles)
    return required.value in roles


def evaluate(method: str, path: str, principal: Principal | None) -> AuthorizationDecision:
    if is_public(method, path):
        return AuthorizationDecision.ALLOW
    if principal is None:
        return AuthorizationDecision.DENY_UNAUTHENTICATED

    rule = rule_for(method, path)
    if rule.required_role is None or has_role(principal.roles, rule.required_role):
        return AuthorizationDecision.ALLOW
    return AuthorizationDecision.DENY_FORBIDDEN
