from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from gradedesk.core.config import DATABASE_URL

BASE_DIR = Path(__file__).resolve().parent.parent.parent

engine = create_engine(
    DATABASE_URL or f"sqlite:///{BASE_DIR}/gradedesk.db",
    connect_args={"check_same_thread": False},
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)
