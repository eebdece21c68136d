from fastapi import APIRouter, Depends, File, Form, Path, Query, Response, UploadFile, status

from app.api.schemas import ApiResponse, PostDetail, PostIdData, PostPage
from app.core.deps import get_repositories
from app.core.security import get_current_user
from app.core.validation import require
from app.models import User
from app.repositories import Repositories
from app.services import post as post_service
from app.services.images import read_image

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("", response_model=ApiResponse[PostPage])
async def list_posts(
    size: int = Query(5, ge=1, le=100),
    last_id: int | None = Query(None, alias="lastId", ge=1),
    current_user: User = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
) -> ApiResponse[PostPage]:
    """Newest posts first, ``size`` at a time; pass the returned ``lastId`` for the next page."""
    page = await post_service.list_posts(repos, size, last_id)
    if not page.content:
        return ApiResponse(code=4004, message="No posts found", data=page)
    return ApiResponse(code=2000, message="Posts", data=page)


@router.get(
    "/{post_id}",
    response_model=ApiResponse[PostDetail],
    response_model_exclude_unset=True,
)
async def get_post(
    post_id: int = Path(..., ge=1),
    comment: str = Query("y", pattern="^[yn]$"),
    current_user: User = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
) -> ApiResponse[PostDetail]:
    """Post detail; records a view for the caller. ``comment=n`` leaves out the comment list."""
    data = await post_service.get_post_detail(
        repos, post_id, current_user, include_comments=comment == "y"
    )
    return ApiResponse(code=2000, message="Post detail", data=data)


@router.post("", response_model=ApiResponse[PostIdData])
async def create_post(
    title: str = Form(...),
    content: str = Form(...),
    post_image: UploadFile | None = File(None, alias="postImage"),
    current_user: User = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
) -> ApiResponse[PostIdData]:
    require(title, content)
    image = await read_image(post_image)
    data = await post_service.create_post(
        repos, current_user, title=title, content=content, image=image
    )
    return ApiResponse(code=2001, message="Post created", data=data)


@router.put("/{post_id}", response_model=ApiResponse[PostIdData])
async def update_post(
    post_id: int = Path(..., ge=1),
    title: str = Form(...),
    content: str = Form(...),
    remove_image_flag: bool = Form(False, alias="removeImageFlag"),
    post_image: UploadFile | None = File(None, alias="postImage"),
    current_user: User = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
) -> ApiResponse[PostIdData]:
    require(title, content)
    image = await read_image(post_image)
    data = await post_service.update_post(
        repos,
        post_id,
        current_user,
        title=title,
        content=content,
        remove_image=remove_image_flag,
        image=image,
    )
    return ApiResponse(code=2000, message="Post updated", data=data)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_post(
    post_id: int = Path(..., ge=1),
    current_user: User = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
) -> Response:
    await post_service.delete_post(repos, post_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
