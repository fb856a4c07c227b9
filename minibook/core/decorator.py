import logging
from functools import wraps

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from minibook.core.exceptions import ConflictError, ServerError

logger = logging.getLogger(__name__)


def _rollback(args):
    # Service methods carry their session on ``self.db``.
    db = getattr(args[0], "db", None) if args else None
    if db is not None:
        db.rollback()


def db_exception(func):
    """Translate SQLAlchemy failures raised by a service method into AppExceptions."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except IntegrityError as e:
            _rollback(args)
            logger.warning(f"Integrity error in {func.__name__}: {e.orig}")
            raise ConflictError("Duplicate entry: already exists") from e
        except SQLAlchemyError as e:
            _rollback(args)
            logger.error(f"Database error in {func.__name__}", exc_info=True)
            raise ServerError("Database error occurred") from e

    return wrapper
