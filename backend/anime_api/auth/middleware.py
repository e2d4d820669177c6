import logging

from fastapi import HTTPException, Request, status
from starlette.middleware.base import BaseHTTPMiddleware

from ..errors import AuthError, PermissionError, error_response
from ..security.authentication import AuthenticationProvider, Principal
from .policy import AuthorizationDecision, evaluate, is_public, rule_for

logger = logging.getLogger("anime_api.auth")


class AuthorizationMiddleware(BaseHTTPMiddleware):
    """
    Resolve the caller and apply the access policy before routing.

    Denied requests never reach an endpoint: the error response is written
    here, so no body parsing and no store call happens for them.
    """

    async def dispatch(self, request: Request, call_next):
        method = request.method
        path = request.url.path

        if is_public(method, path):
            return await call_next(request)

        try:
            provider: AuthenticationProvider = request.app.state.auth_provider
            principal = await provider.authenticate(request)
        except Exception as exc:  # noqa: BLE001
            return error_response(request, exc)

        decision = evaluate(method, path, principal)
        if decision is AuthorizationDecision.DENY_UNAUTHENTICATED:
            logger.warning("[RBAC] deny reason=unauthenticated method=%s path=%s", method, path)
            return error_response(request, AuthError(), log=False)
        if decision is AuthorizationDecision.DENY_FORBIDDEN:
            required = rule_for(method, path).required_role
            logger.warning(
                "[RBAC] deny reason=forbidden method=%s path=%s username=%s required=%s",
                method,
                path,
                principal.username if principal else None,
                required.value if required else None,
            )
            return error_response(request, PermissionError(), log=False)

        request.state.principal = principal
        return await call_next(request)


def get_current_principal(request: Request) -> Principal:
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return principal
