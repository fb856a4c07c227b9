"""
Models package initialization
Import all models and setup relationships
"""

from .comment import Comment
from .post import Post
from .post_like import PostLike
from .post_media import PostMedia
from .relations import setup_relationships
from .user import User

# Setup all relationships after models are imported
setup_relationships()

__all__ = [
    "Comment",
    "Post",
    "PostLike",
    "PostMedia",
    "User",
]
