from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.api.schemas import ApiResponse, AuthorInfo, UserIdData, UserInfo
from app.core.deps import get_repositories
from app.core.security import get_current_user
from app.core.validation import require, validate_nickname
from app.models import User
from app.repositories import Repositories
from app.services import user as user_service
from app.services.images import read_image

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=ApiResponse[UserInfo])
async def get_me(current_user: User = Depends(get_current_user)) -> ApiResponse[UserInfo]:
    """Return the currently authenticated user."""
    return ApiResponse(
        code=2000, message="User info", data=user_service.get_user_info(current_user)
    )


@router.put("/me", response_model=ApiResponse[AuthorInfo])
async def update_me(
    nickname: str | None = Form(None),
    is_profile_image_removed: bool = Form(False, alias="isProfileImageRemoved"),
    profile_image: UploadFile | None = File(None, alias="profileImage"),
    current_user: User = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
) -> ApiResponse[AuthorInfo]:
    if nickname is not None and nickname.strip():
        nickname = validate_nickname(nickname)
    else:
        nickname = None
    image = await read_image(profile_image)

    data = await user_service.update_user(
        repos,
        current_user,
        nickname=nickname,
        remove_profile_image=is_profile_image_removed,
        profile_image=image,
    )
    return ApiResponse(code=2000, message="User updated", data=data)


@router.patch("/me/password", response_model=ApiResponse[UserIdData])
async def change_password(
    current_password: str = Form(..., alias="currentPassword"),
    new_password: str = Form(..., alias="newPassword"),
    password_check: str = Form(..., alias="passwordCheck"),
    current_user: User = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
) -> ApiResponse[UserIdData]:
    """Change the password; all three fields are base64-encoded."""
    require(current_password, new_password, password_check)
    data = await user_service.change_password(
        repos,
        current_user,
        current_password=current_password,
        new_password=new_password,
        password_check=password_check,
    )
    return ApiResponse(code=2000, message="Password changed", data=data)
