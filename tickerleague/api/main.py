"""
Main FastAPI application for the weekly stock league.

The API exposes read endpoints (standings, analytics, current matchup), the
lineup submission endpoint and two settlement triggers. Every request is its
own unit of work with one database session.

Run with:
    uvicorn tickerleague.api.main:app --host 127.0.0.1 --port 8000
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config.settings import settings
from .routers import analytics, lineup, matchup, scoring, standings

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(
    title="Ticker League API",
    description="Weekly head-to-head fantasy stock league",
    version=__version__,
)

# SECURITY NOTE: In production, replace "*" with specific allowed origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    """Basic API information and a link to the interactive docs."""
    return {
        "message": "Ticker League API",
        "version": __version__,
        "docs": f"http://{settings.api_host}:{settings.api_port}/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers and monitoring."""
    return {
        "status": "healthy",
        "service": "Ticker League",
        "benchmark_ticker": settings.benchmark_ticker,
        "cache_backend": settings.cache_backend,
    }


app.include_router(standings.router, prefix="/api/league", tags=["standings"])
app.include_router(analytics.router, prefix="/api/analytics", tags=["analytics"])
app.include_router(scoring.router, prefix="/api/scoring", tags=["scoring"])
app.include_router(matchup.router, prefix="/api/matchup", tags=["matchups"])
app.include_router(lineup.router, prefix="/api/lineup", tags=["lineups"])
