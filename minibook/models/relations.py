# minibook/models/relations.py

from sqlalchemy.orm import relationship

from .comment import Comment
from .post import Post
from .post_like import PostLike
from .post_media import PostMedia
from .user import User


def setup_relationships():
    """
    Configure all SQLAlchemy relationships between models.
    """

    # 1. User to Posts (One-to-Many)
    User.posts = relationship(
        "Post",
        back_populates="author",
        cascade="all, delete-orphan",
    )
    Post.author = relationship("User", back_populates="posts")

    # 2. Post to Media (One-to-Many)
    Post.media = relationship(
        "PostMedia",
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="PostMedia.position",
    )
    PostMedia.post = relationship("Post", back_populates="media")

    # 3. Post to Likes (One-to-Many)
    Post.likes = relationship(
        "PostLike",
        back_populates="post",
        cascade="all, delete-orphan",
    )
    PostLike.post = relationship("Post", back_populates="likes")

    # 4. User to Likes (One-to-Many)
    User.likes = relationship(
        "PostLike",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    PostLike.user = relationship("User", back_populates="likes")

    # 5. Post to Comments (One-to-Many), oldest first
    Post.comments = relationship(
        "Comment",
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="Comment.id",
    )
    Comment.post = relationship("Post", back_populates="comments")

    # 6. User to Comments (One-to-Many)
    User.comments = relationship(
        "Comment",
        back_populates="author",
        cascade="all, delete-orphan",
    )
    Comment.author = relationship("User", back_populates="comments")
