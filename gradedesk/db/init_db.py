from gradedesk.db.base import Base
from gradedesk.db.session import engine


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
