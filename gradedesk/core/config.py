import os
from datetime import timedelta

# DEV defaults; every value can be overridden from the environment.
SECRET_KEY = os.getenv("GRADEDESK_SECRET_KEY", "change-me-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE = timedelta(minutes=60)

DATABASE_URL = os.getenv("GRADEDESK_DATABASE_URL")  # None -> sqlite file next to the repo

# Client side (grading core)
BACKEND_URL = os.getenv("GRADEDESK_BACKEND_URL", "http://localhost:8000")
REQUEST_TIMEOUT_SECONDS = float(os.getenv("GRADEDESK_REQUEST_TIMEOUT", "10"))

# Grading policy
DEFAULT_MAX_POINTS = 100
