from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from minibook.core.database import get_db
from minibook.core.dependencies import get_current_user
from minibook.schemas.post import MessageResponse
from minibook.services.post import CommentService

router = APIRouter(prefix="/comments", tags=["Comments"])


@router.delete("/{comment_id}", response_model=MessageResponse)
def delete_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """
    Delete a comment.
    Author only.
    """
    service = CommentService(db)
    service.delete_comment(comment_id, current_user["id"])
    return {"success": True, "message": "Comment deleted successfully"}
