from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from src.user.auth.dependencies import AuthenticatedPrincipal, require_access_token
from src.user.auth.schemas import (
    LoginUserModel,
    LogoutModel,
    RefreshTokenModel,
    RegisterUserModel,
    TokenPairModel,
)
from src.user.auth.services.auth_service import AuthService, get_auth_service
from src.user.services import NewUser

router = APIRouter()


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=TokenPairModel,
)
async def register_user(
    data: RegisterUserModel,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> TokenPairModel:
    """
    Create an account and sign it in on the given device.
    """
    pair = await auth_service.register(
        NewUser(email=data.email, name=data.name, password=data.password),
        data.device_id,
    )
    return TokenPairModel.model_validate(pair)


@router.post("/login", response_model=TokenPairModel)
async def login_user(
    data: LoginUserModel,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> TokenPairModel:
    """
    Authenticate with e-mail and password. Replaces any session the device had.
    """
    pair = await auth_service.login(data.email, data.password, data.device_id)
    return TokenPairModel.model_validate(pair)


@router.post("/refresh", response_model=TokenPairModel)
async def refresh_tokens(
    data: RefreshTokenModel,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> TokenPairModel:
    """
    Exchange a refresh token for a new pair. Each refresh token works once.
    """
    pair = await auth_service.refresh(data.refresh_token, data.device_id)
    return TokenPairModel.model_validate(pair)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout_user(
    data: LogoutModel,
    principal: Annotated[AuthenticatedPrincipal, Depends(require_access_token)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> Response:
    await auth_service.logout(principal.id, principal.token, data.device_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
