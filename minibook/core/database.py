import logging
from typing import Generator, Optional

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """Owns the engine and session factory for one application instance."""

    def __init__(
        self,
        url: str,
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
    ):
        self.url = make_url(url)
        self.echo = echo
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None

    @property
    def is_sqlite(self) -> bool:
        return self.url.get_backend_name() == "sqlite"

    def connect(self) -> Engine:
        if self.engine is not None:
            return self.engine

        logger.info(
            f"Connecting to database: {self.url.render_as_string(hide_password=True)}"
        )

        if self.is_sqlite:
            engine = create_engine(
                self.url,
                echo=self.echo,
                connect_args={"check_same_thread": False},
            )

            # SQLite leaves foreign keys off unless asked on every connection.
            @event.listens_for(engine, "connect")
            def enable_foreign_keys(dbapi_conn, connection_record):
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        else:
            engine = create_engine(
                self.url,
                echo=self.echo,
                poolclass=QueuePool,
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
                pool_timeout=30,
                pool_recycle=1800,
                pool_pre_ping=True,
            )

        self.engine = engine
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        return engine

    def create_all(self) -> None:
        # Import for side effects: registers every table on Base.metadata.
        import minibook.models  # noqa: F401

        Base.metadata.create_all(bind=self.connect())

    def session(self) -> Session:
        if self.SessionLocal is None:
            self.connect()
        return self.SessionLocal()

    def ping(self) -> bool:
        try:
            with self.connect().connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database ping failed: {e}")
            return False

    def dispose(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            logger.info("Database connections closed")
        self.engine = None
        self.SessionLocal = None


# -----------------------
# Dependency for FastAPI
# -----------------------
def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.database.session()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database error occurred: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()
