from typing import Annotated

from fastapi import APIRouter, Depends

from src.user.auth.dependencies import AuthenticatedPrincipal, require_active_user
from src.user.schemas import UserProfileViewModel

router = APIRouter()


@router.get("/me", response_model=UserProfileViewModel)
async def get_user_profile(
    principal: Annotated[AuthenticatedPrincipal, Depends(require_active_user)],
) -> UserProfileViewModel:
    """
    Returns the current user's information.
    """
    return UserProfileViewModel.model_validate(principal.user)
