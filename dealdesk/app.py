"""FastAPI application factory for DealDesk."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .bootstrap import bootstrap
from .config import settings
from .database import async_session_factory, engine
from .errors import DomainError
from .logging_setup import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    async with async_session_factory() as db:
        await bootstrap(engine, db)
    yield
    await engine.dispose()


app = FastAPI(title=settings.app_title, lifespan=lifespan)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.kind},
    )


# Import and register routers
from .routers import (  # noqa: E402
    activities, auth, custom_fields, deals, health, leads, members, organizations,
    pipelines, products,
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(organizations.router)
app.include_router(members.router)
app.include_router(pipelines.router)
app.include_router(deals.router)
app.include_router(products.router)
app.include_router(leads.router)
app.include_router(activities.router)
app.include_router(custom_fields.router)
