from fastapi import APIRouter, Depends, Response, status

from app.api.schemas import ApiResponse, LikeIdData, LikeRequest
from app.core.deps import get_repositories
from app.core.security import get_current_user
from app.models import User
from app.repositories import Repositories
from app.services import post as post_service

router = APIRouter(prefix="/posts/likes", tags=["likes"])


@router.post("", response_model=ApiResponse[LikeIdData])
async def like_post(
    body: LikeRequest,
    current_user: User = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
) -> ApiResponse[LikeIdData]:
    """Like a post; liking it twice is a conflict."""
    data = await post_service.like_post(repos, current_user, body.post_id)
    return ApiResponse(code=2001, message="Post liked", data=data)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def unlike_post(
    body: LikeRequest,
    current_user: User = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
) -> Response:
    await post_service.unlike_post(repos, current_user, body.post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
