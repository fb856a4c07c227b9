# minibook/schemas/post.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# ==================== Shared ====================


class AuthorInfo(BaseModel):
    """Public author fields embedded in posts and comments"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    full_name: str
    avatar: Optional[str] = None


# ==================== Comment Schemas ====================


class CommentCreate(BaseModel):
    content: str = Field(default="", max_length=5000)


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    post_id: int
    user_id: int
    content: str
    created_at: datetime
    author: AuthorInfo


class CommentEnvelope(BaseModel):
    success: bool = True
    message: str
    comment: CommentResponse


# ==================== Post Schemas ====================


class PostUpdate(BaseModel):
    content: str = Field(default="", max_length=10000)


class PostResponse(BaseModel):
    """A post with its author, media, comments and like state for the viewer"""

    id: int
    user_id: int
    content: Optional[str] = None
    likes_count: int = 0
    comments_count: int = 0
    is_liked: bool = False
    created_at: datetime
    updated_at: datetime
    author: AuthorInfo
    images: List[str] = []
    videos: List[str] = []
    comments: List[CommentResponse] = []


class PostEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    post: PostResponse


class PostListResponse(BaseModel):
    success: bool = True
    posts: List[PostResponse]


class LikeResponse(BaseModel):
    success: bool = True
    liked: bool
    message: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str
