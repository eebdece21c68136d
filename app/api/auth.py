from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile, status

from app.api.schemas import ApiResponse, AvailabilityData, SessionStatusData, UserIdData
from app.core.config import settings
from app.core.deps import get_repositories
from app.core.rate_limit import limiter
from app.core.security import get_current_user, get_session_id
from app.core.validation import require, validate_email, validate_new_password, validate_nickname
from app.models import User
from app.repositories import Repositories
from app.services import auth as auth_service
from app.services.images import read_image

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        samesite="strict",
        secure=settings.session_cookie_secure,
    )


def _clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        samesite="strict",
        secure=settings.session_cookie_secure,
    )


@router.post("/signup", response_model=ApiResponse[UserIdData])
@limiter.limit(settings.rate_limit_auth)
async def signup(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    password_checker: str = Form(..., alias="passwordChecker"),
    nickname: str = Form(...),
    profile_image: UploadFile | None = File(None, alias="profileImage"),
    repos: Repositories = Depends(get_repositories),
) -> ApiResponse[UserIdData]:
    """Register a new user.

    The password and its checker are sent base64-encoded; the profile image
    is optional.
    """
    require(email, password, password_checker, nickname)
    email = validate_email(email)
    nickname = validate_nickname(nickname)
    plain_password = validate_new_password(password, password_checker)
    image = await read_image(profile_image)

    data = await auth_service.signup(
        repos,
        email=email,
        password=plain_password,
        nickname=nickname,
        profile_image=image,
    )
    return ApiResponse(code=2001, message="Signed up", data=data)


@router.get("/check-nickname", response_model=ApiResponse[AvailabilityData])
async def check_nickname(
    nickname: str = Query(...),
    repos: Repositories = Depends(get_repositories),
) -> ApiResponse[AvailabilityData]:
    data = await auth_service.check_nickname(repos, nickname)
    return ApiResponse(code=2000, message="Nickname is available", data=data)


@router.get("/check-email", response_model=ApiResponse[AvailabilityData])
async def check_email(
    email: str = Query(...),
    repos: Repositories = Depends(get_repositories),
) -> ApiResponse[AvailabilityData]:
    data = await auth_service.check_email(repos, email)
    return ApiResponse(code=2000, message="Email is available", data=data)


@router.post("/signin", response_model=ApiResponse[UserIdData])
@limiter.limit(settings.rate_limit_auth)
async def signin(
    request: Request,
    response: Response,
    email: str = Form(...),
    password: str = Form(...),
    session_id: str | None = Depends(get_session_id),
    repos: Repositories = Depends(get_repositories),
) -> ApiResponse[UserIdData]:
    """Log in with email and base64 password; sets the session cookie."""
    require(email, password)
    user, new_session_id = await auth_service.signin(
        repos,
        email=email,
        encoded_password=password,
        presented_session_id=session_id,
    )
    _set_session_cookie(response, new_session_id)
    return ApiResponse(code=2000, message="Signed in", data=UserIdData(user_id=user.id))


@router.get("/status", response_model=ApiResponse[SessionStatusData])
async def session_status(
    session_id: str | None = Depends(get_session_id),
    repos: Repositories = Depends(get_repositories),
) -> ApiResponse[SessionStatusData]:
    data = await auth_service.status(repos, session_id)
    return ApiResponse(code=2000, message="Logged in", data=data)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def logout(
    session_id: str | None = Depends(get_session_id),
    repos: Repositories = Depends(get_repositories),
) -> Response:
    await auth_service.logout(repos, session_id)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    _clear_session_cookie(response)
    return response


@router.delete("/withdrawal", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def withdrawal(
    current_user: User = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
) -> Response:
    """Delete the current user and everything they created."""
    await auth_service.withdraw(repos, current_user)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    _clear_session_cookie(response)
    return response
