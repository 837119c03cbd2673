"""
Tamedachi - FastAPI Backend
Main application entry point with health check and API routing.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from config import settings, validate_security_settings
from database import engine, Base
import models  # noqa: F401
from routers import (
    health,
    pet,
    submissions,
    analysis,
)
from services.content_analysis import CredibilityScorer


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    print("🥚 Starting Tamedachi API...")
    validate_security_settings()
    if settings.AUTO_CREATE_DB_SCHEMA:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            print("🗄️ Database schema verified.")
        except Exception as e:
            print(f"⚠️ Database bootstrap skipped: {e}")
    try:
        app.state.scorer = CredibilityScorer.from_settings()
        print(f"🔎 Credibility scorer ready (model={app.state.scorer.model}).")
    except ValueError as exc:
        app.state.scorer = None
        print(f"⚠️ Credibility scorer disabled: {exc}")
    yield
    # Shutdown
    if app.state.scorer is not None:
        await app.state.scorer.close()
    await engine.dispose()
    print("👋 Shutting down API...")


app = FastAPI(
    title="Tamedachi API",
    description="Feed your Tamedachi credible sources and watch it grow",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(pet.router, prefix="/pet", tags=["Pet"])
app.include_router(submissions.router, prefix="/submissions", tags=["Submissions"])
app.include_router(analysis.router, tags=["Analysis"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Tamedachi API",
        "version": "0.1.0",
        "status": "running"
    }
