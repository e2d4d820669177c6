from fastapi import APIRouter, Depends

from ..auth.middleware import get_current_principal
from ..config import Settings
from ..dependencies import get_app_settings
from ..schemas.auth import TokenResponse
from ..security.authentication import Principal
from ..security.token_inspection import create_access_token

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/token", response_model=TokenResponse)
async def issue_token(
    principal: Principal = Depends(get_current_principal),
    settings: Settings = Depends(get_app_settings),
) -> TokenResponse:
    token = create_access_token(settings, principal.username, principal.roles)
    return TokenResponse(
        access_token=token,
        expires_in=settings.access_token_expire_minutes * 60,
    )
