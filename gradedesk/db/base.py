# import every model so Base.metadata knows all tables
from gradedesk.db.base_class import Base  # noqa: F401
from gradedesk.models import course, enrollment, gradable_item, submission, user  # noqa: F401
