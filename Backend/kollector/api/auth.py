from typing import Optional

from fastapi import APIRouter, Depends, Header

from kollector.repositories.unit_of_work import UnitOfWork, get_unit_of_work
from kollector.schemas.user import AuthResponse, BootstrapRequest, BootstrapResponse, GoogleLoginRequest
from kollector.services.auth_service import AuthService
from kollector.services.google_auth import GoogleTokenValidator, get_google_token_validator

router = APIRouter()


def get_auth_service(
    uow: UnitOfWork = Depends(get_unit_of_work),
    validator: GoogleTokenValidator = Depends(get_google_token_validator)
) -> AuthService:
    return AuthService(uow, validator)


@router.post("/auth/google/login", response_model=AuthResponse)
@router.post("/auth/google", response_model=AuthResponse)
async def google_login(request: GoogleLoginRequest, service: AuthService = Depends(get_auth_service)):
    """Exchange a Google ID token for an API access token."""
    return await service.login_with_google(request.id_token)

@router.post("/auth/bootstrap", response_model=BootstrapResponse)
async def bootstrap(
    request: BootstrapRequest,
    bootstrap_secret: Optional[str] = Header(None, alias="X-Bootstrap-Secret"),
    service: AuthService = Depends(get_auth_service)
):
    return await service.bootstrap(request.id_token, bootstrap_secret)
