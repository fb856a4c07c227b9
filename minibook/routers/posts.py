# minibook/routers/posts.py
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy.orm import Session

from minibook.core.database import get_db
from minibook.core.dependencies import get_current_user
from minibook.schemas.post import (
    CommentCreate,
    CommentEnvelope,
    LikeResponse,
    MessageResponse,
    PostEnvelope,
    PostListResponse,
    PostUpdate,
)
from minibook.services.post import CommentService, PostService

router = APIRouter(
    prefix="/posts",
    tags=["Posts"],
    responses={404: {"description": "Not found"}},
)


def _post_service(request: Request, db: Session) -> PostService:
    state = request.app.state
    return PostService(
        db,
        state.media_storage,
        feed_limit=state.settings.feed_limit,
        max_media_per_post=state.settings.max_media_per_post,
    )


@router.post("", response_model=PostEnvelope)
async def create_post(
    request: Request,
    content: Optional[str] = Form(None),
    media: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """
    Create a post from multipart form data.
    Needs non-blank content or at least one image/video file.
    """
    service = _post_service(request, db)
    post = await service.create_post(current_user["id"], content, media)
    return {"success": True, "message": "Post created successfully", "post": post}


@router.get("", response_model=PostListResponse)
def list_posts(
    request: Request,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """Feed of the newest posts, each with its media, comments and like state"""
    service = _post_service(request, db)
    return {"success": True, "posts": service.list_posts(current_user["id"])}


@router.get("/{post_id}", response_model=PostEnvelope)
def get_post(
    post_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    service = _post_service(request, db)
    return {"success": True, "post": service.get_post(post_id, current_user["id"])}


@router.put("/{post_id}", response_model=PostEnvelope)
def update_post(
    post_id: int,
    payload: PostUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """
    Edit the text of a post.
    Author only.
    """
    service = _post_service(request, db)
    post = service.update_post(post_id, current_user["id"], payload.content)
    return {"success": True, "message": "Post updated successfully", "post": post}


@router.delete("/{post_id}", response_model=MessageResponse)
def delete_post(
    post_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """
    Delete a post with its media, likes and comments.
    Author only.
    """
    service = _post_service(request, db)
    service.delete_post(post_id, current_user["id"])
    return {"success": True, "message": "Post deleted successfully"}


@router.post("/{post_id}/like", response_model=LikeResponse)
def toggle_like(
    post_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """Like a post, or unlike it if already liked"""
    service = _post_service(request, db)
    liked = service.toggle_like(post_id, current_user["id"])
    return {
        "success": True,
        "liked": liked,
        "message": "Post liked" if liked else "Post unliked",
    }


@router.post("/{post_id}/comments", response_model=CommentEnvelope)
def create_comment(
    post_id: int,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    service = CommentService(db)
    comment = service.create_comment(post_id, current_user["id"], payload.content)
    return {
        "success": True,
        "message": "Comment added successfully",
        "comment": comment,
    }
