# minibook/models/post_media.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from minibook.core.database import Base

MEDIA_IMAGE = "image"
MEDIA_VIDEO = "video"


class PostMedia(Base):
    __tablename__ = "post_media"

    id = Column(Integer, primary_key=True, index=True)

    post_id = Column(
        Integer,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    media_type = Column(String(20), nullable=False)  # 'image' or 'video'
    media_url = Column(Text, nullable=False)  # e.g. '/uploads/images/post-...jpg'
    file_size = Column(Integer, nullable=True)

    # Upload order within the post
    position = Column(Integer, default=0, nullable=False)

    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self):
        return f"<PostMedia(id={self.id}, post_id={self.post_id}, media_type='{self.media_type}')>"
