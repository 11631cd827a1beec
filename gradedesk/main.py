import logging

from fastapi import FastAPI

from gradedesk.core.logging_middleware import LoggingMiddleware
from gradedesk.db.init_db import init_db
from gradedesk.routers.auth import router as auth_router
from gradedesk.routers.grading import router as grading_router
from gradedesk.routers.submissions import router as submissions_router

logging.basicConfig(level=logging.INFO)

app = FastAPI(title="Gradedesk")

# Middleware
app.add_middleware(LoggingMiddleware)


# Health check
@app.get("/health")
def health():
    return {"status": "ok"}


# Startup event
@app.on_event("startup")
def on_startup():
    init_db()


# Include routers
app.include_router(auth_router, prefix="/auth", tags=["auth"])
# grading + submission routes define their full paths
app.include_router(grading_router, tags=["grading"])
app.include_router(submissions_router, tags=["submissions"])
