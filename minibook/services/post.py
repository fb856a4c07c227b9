# minibook/services/post.py
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from fastapi import UploadFile
from sqlalchemy import and_, exists, func, select
from sqlalchemy.orm import Session, selectinload

from minibook.core.decorator import db_exception
from minibook.core.exceptions import (
    EmptyContentError,
    EmptyPostError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from minibook.models.comment import Comment
from minibook.models.post import Post
from minibook.models.post_like import PostLike
from minibook.models.post_media import MEDIA_IMAGE, MEDIA_VIDEO, PostMedia
from minibook.schemas.post import AuthorInfo, CommentResponse, PostResponse
from minibook.utils.file_upload import MediaStorage, StoredMedia

logger = logging.getLogger(__name__)


def _author_info(user) -> AuthorInfo:
    return AuthorInfo(
        id=user.id,
        username=user.username,
        full_name=user.full_name,
        avatar=user.avatar,
    )


def _comment_to_response(comment: Comment) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        user_id=comment.user_id,
        content=comment.content,
        created_at=comment.created_at,
        author=_author_info(comment.author),
    )


class PostService:
    def __init__(
        self,
        db: Session,
        media_storage: MediaStorage,
        feed_limit: int = 50,
        max_media_per_post: int = 10,
    ):
        self.db = db
        self.media_storage = media_storage
        self.feed_limit = feed_limit
        self.max_media_per_post = max_media_per_post

    # ==================== Reads ====================

    def _feed_query(self, viewer_id: int):
        """Posts with like/comment counts and the viewer's like flag, one row each."""
        likes_count = (
            select(func.count(PostLike.id))
            .where(PostLike.post_id == Post.id)
            .correlate(Post)
            .scalar_subquery()
        )
        comments_count = (
            select(func.count(Comment.id))
            .where(Comment.post_id == Post.id)
            .correlate(Post)
            .scalar_subquery()
        )
        is_liked = (
            exists()
            .where(and_(PostLike.post_id == Post.id, PostLike.user_id == viewer_id))
            .correlate(Post)
        )

        return self.db.query(
            Post,
            likes_count.label("likes_count"),
            comments_count.label("comments_count"),
            is_liked.label("is_liked"),
        ).options(selectinload(Post.author))

    def _hydrate(self, row) -> PostResponse:
        post, likes_count, comments_count, is_liked = row

        # One media query and one comment query per post.
        media = (
            self.db.query(PostMedia)
            .filter(PostMedia.post_id == post.id)
            .order_by(PostMedia.position, PostMedia.id)
            .all()
        )
        comments = (
            self.db.query(Comment)
            .options(selectinload(Comment.author))
            .filter(Comment.post_id == post.id)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
            .all()
        )

        return PostResponse(
            id=post.id,
            user_id=post.user_id,
            content=post.content,
            likes_count=likes_count or 0,
            comments_count=comments_count or 0,
            is_liked=bool(is_liked),
            created_at=post.created_at,
            updated_at=post.updated_at,
            author=_author_info(post.author),
            images=[m.media_url for m in media if m.media_type == MEDIA_IMAGE],
            videos=[m.media_url for m in media if m.media_type == MEDIA_VIDEO],
            comments=[_comment_to_response(c) for c in comments],
        )

    def list_posts(self, viewer_id: int) -> List[PostResponse]:
        """Newest posts first, capped at the feed limit"""
        rows = (
            self._feed_query(viewer_id)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .limit(self.feed_limit)
            .all()
        )
        return [self._hydrate(row) for row in rows]

    def get_post(self, post_id: int, viewer_id: int) -> PostResponse:
        row = self._feed_query(viewer_id).filter(Post.id == post_id).first()
        if not row:
            raise NotFoundError("Post not found")
        return self._hydrate(row)

    # ==================== Writes ====================

    async def create_post(
        self,
        author_id: int,
        content: Optional[str],
        uploads: Optional[Sequence[UploadFile]] = None,
    ) -> PostResponse:
        """
        Create a post with optional media.

        Every upload is type-checked before anything is written. If any step
        fails the transaction is rolled back and files saved so far are removed.
        """
        text = (content or "").strip()
        uploads = [upload for upload in (uploads or []) if upload and upload.filename]

        if not text and not uploads:
            raise EmptyPostError()

        if len(uploads) > self.max_media_per_post:
            raise ValidationError(
                "Too many files",
                f"A post can carry at most {self.max_media_per_post} files",
            )

        for upload in uploads:
            self.media_storage.classify(upload.content_type)

        saved: List[StoredMedia] = []
        try:
            for upload in uploads:
                saved.append(await self.media_storage.save(upload))

            post = Post(user_id=author_id, content=text or None, likes_count=0)
            self.db.add(post)
            self.db.flush()  # Get the ID

            for position, item in enumerate(saved):
                self.db.add(
                    PostMedia(
                        post_id=post.id,
                        media_type=item.kind,
                        media_url=item.url,
                        file_size=item.size,
                        position=position,
                    )
                )

            self.db.commit()
        except Exception:
            self.db.rollback()
            self.media_storage.discard(saved)
            raise

        logger.info(
            f"Post created: id={post.id} user_id={author_id} media={len(saved)}"
        )
        return self.get_post(post.id, author_id)

    def _get_owned_post(self, post_id: int, user_id: int, action: str) -> Post:
        post = self.db.query(Post).filter(Post.id == post_id).first()
        if not post:
            raise NotFoundError("Post not found")

        if post.user_id != user_id:
            raise ForbiddenError(f"You can only {action} your own posts")

        return post

    def update_post(self, post_id: int, user_id: int, content: str) -> PostResponse:
        """Replace the text of a post"""
        post = self._get_owned_post(post_id, user_id, "edit")

        text = (content or "").strip()
        if not text:
            raise EmptyContentError()

        post.content = text
        post.updated_at = datetime.now(timezone.utc)
        self.db.commit()

        logger.info(f"Post updated: id={post_id}")
        return self.get_post(post_id, user_id)

    def delete_post(self, post_id: int, user_id: int) -> bool:
        """Delete a post together with its media, likes and comments"""
        post = self._get_owned_post(post_id, user_id, "delete")

        media_urls = [m.media_url for m in post.media]

        self.db.delete(post)
        self.db.commit()

        removed = sum(1 for url in media_urls if self.media_storage.delete(url))
        logger.info(f"Post deleted: id={post_id} files_removed={removed}")
        return True

    @db_exception
    def toggle_like(self, post_id: int, user_id: int) -> bool:
        """Like the post, or remove the like if there already is one. Returns the new state."""
        post = self.db.query(Post).filter(Post.id == post_id).first()
        if not post:
            raise NotFoundError("Post not found")

        existing = (
            self.db.query(PostLike)
            .filter(
                and_(
                    PostLike.post_id == post_id,
                    PostLike.user_id == user_id,
                )
            )
            .first()
        )

        if existing:
            self.db.delete(existing)
            post.likes_count = max(0, (post.likes_count or 0) - 1)
            liked = False
        else:
            self.db.add(PostLike(post_id=post_id, user_id=user_id))
            post.likes_count = (post.likes_count or 0) + 1
            liked = True

        self.db.commit()

        logger.info(f"Like toggled: post_id={post_id} user_id={user_id} liked={liked}")
        return liked


class CommentService:
    def __init__(self, db: Session):
        self.db = db

    def create_comment(
        self, post_id: int, user_id: int, content: str
    ) -> CommentResponse:
        text = (content or "").strip()
        if not text:
            raise EmptyContentError("Comment content is required")

        post = self.db.query(Post).filter(Post.id == post_id).first()
        if not post:
            raise NotFoundError("Post not found")

        comment = Comment(post_id=post_id, user_id=user_id, content=text)
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)

        logger.info(f"Comment added: id={comment.id} post_id={post_id}")
        return _comment_to_response(comment)

    def delete_comment(self, comment_id: int, user_id: int) -> bool:
        comment = self.db.query(Comment).filter(Comment.id == comment_id).first()
        if not comment:
            raise NotFoundError("Comment not found")

        if comment.user_id != user_id:
            raise ForbiddenError("You can only delete your own comments")

        self.db.delete(comment)
        self.db.commit()

        logger.info(f"Comment deleted: id={comment_id}")
        return True
