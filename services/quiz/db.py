import os

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from services.quiz import models


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./ctq_quiz.db")

# SQLite connections are shared across the threadpool FastAPI runs sync routes in.
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def init_db(bind=None) -> None:
    """Create the quiz store tables (dev-only; production schemas are managed upstream)."""
    models.Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
