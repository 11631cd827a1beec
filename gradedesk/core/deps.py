from collections.abc import Iterator

from sqlalchemy.orm import Session

from gradedesk.db.session import SessionLocal


# every request that needs DB gets a fresh session, and it always closes.
def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
