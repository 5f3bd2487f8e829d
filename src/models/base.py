"""
Database connection and session management for the impact factor pipeline
"""

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError
from contextlib import contextmanager
from typing import Generator, Optional, Union
import logging

from src.config import DATABASE_URL

logger = logging.getLogger(__name__)

Base = declarative_base()


class DatabaseManager:
    """Owns the engine and session factory for one database URL"""

    def __init__(self, url: Optional[Union[str, object]] = None, engine: Optional[Engine] = None):
        self.url = url or DATABASE_URL
        self.engine = engine or create_engine(self.url, echo=False, pool_pre_ping=True)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        logger.info(f"DatabaseManager initialized for {self.engine.url.render_as_string(hide_password=True)}")

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Context manager for database sessions with automatic cleanup

        Usage:
            with db_manager.get_session() as session:
                # Use session here
                pass
        """

        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database error: {str(e)}")
            raise
        finally:
            session.close()

    def create_tables(self):
        """Create the impact factor tables if they do not exist"""
        # Import here to register models on Base
        from . import models  # noqa: F401
        Base.metadata.create_all(bind=self.engine)
        logger.info("Impact factor tables created")

    def drop_tables(self):
        """Drop all tables (use with caution!)"""
        from . import models  # noqa: F401
        Base.metadata.drop_all(bind=self.engine)
        logger.info("Impact factor tables dropped")

    def test_connection(self) -> bool:
        """Test database connectivity without exposing credentials"""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("✅ Database connection test successful")
            return True
        except SQLAlchemyError as e:
            logger.error(f"❌ Database connection test failed: {str(e)}")
            return False
