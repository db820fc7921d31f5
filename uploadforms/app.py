"""FastAPI application for upload forms."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .database import create_tables, is_sqlite
from .errors import SubmissionError

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if is_sqlite(settings.database_url):
        await create_tables()
    log.info("%s started (environment=%s)", settings.app_title, settings.environment)
    yield


app = FastAPI(title=settings.app_title, lifespan=lifespan)


@app.exception_handler(SubmissionError)
async def submission_error_handler(request: Request, exc: SubmissionError):
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


# Import and register routers
from .routers import auth, export, forms, health, public, submissions, submit  # noqa: E402

app.include_router(forms.router)
app.include_router(submit.router)
app.include_router(submissions.router)
app.include_router(export.router)
app.include_router(public.router)
app.include_router(auth.router)
app.include_router(health.router)
