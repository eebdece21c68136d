from fastapi import APIRouter, Depends, Response, status

from app.api.schemas import (
    ApiResponse,
    CommentCreate,
    CommentCreated,
    CommentDelete,
    CommentIdData,
    CommentUpdate,
)
from app.core.deps import get_repositories
from app.core.security import get_current_user
from app.core.validation import require
from app.models import User
from app.repositories import Repositories
from app.services import post as post_service

router = APIRouter(prefix="/posts/comments", tags=["comments"])


@router.post("", response_model=ApiResponse[CommentCreated])
async def create_comment(
    body: CommentCreate,
    current_user: User = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
) -> ApiResponse[CommentCreated]:
    require(body.content)
    comment = await post_service.create_comment(repos, current_user, body.post_id, body.content)
    return ApiResponse(code=2001, message="Comment created", data=CommentCreated(comment=comment))


@router.put("", response_model=ApiResponse[CommentIdData])
async def update_comment(
    body: CommentUpdate,
    current_user: User = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
) -> ApiResponse[CommentIdData]:
    require(body.content)
    data = await post_service.update_comment(repos, current_user, body.comment_id, body.content)
    return ApiResponse(code=2000, message="Comment updated", data=data)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_comment(
    body: CommentDelete,
    current_user: User = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
) -> Response:
    await post_service.delete_comment(repos, current_user, body.comment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
