"""Club Exchange — FastAPI Application Entry Point."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.database import engine, Base, SessionLocal
from app.middleware.rate_limit import limiter
from app.routers import stocks, markets, trades, portfolio
from app.scheduler import SimulationScheduler
from app.seed import seed_all

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# ── CORS origins from env (supports dev localhost + production domain) ──────
_cors_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app = FastAPI(
    title="Club Exchange",
    description="Play-money club stocks and campus prediction markets.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(stocks.router)
app.include_router(markets.router)
app.include_router(trades.router)
app.include_router(portfolio.router)

scheduler = SimulationScheduler()


@app.on_event("startup")
def on_startup():
    """Create tables, seed the catalog and start the price simulation."""
    Base.metadata.create_all(bind=engine)

    if settings.SEED_ON_STARTUP:
        db = SessionLocal()
        try:
            seed_all(db)
        finally:
            db.close()

    if settings.SIM_ENABLED:
        scheduler.start()
    else:
        logger.info("Stock price simulation disabled")


@app.on_event("shutdown")
def on_shutdown():
    scheduler.stop()


@app.get("/")
def root():
    return {
        "name": "Club Exchange API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health")
def health():
    return {"status": "ok", "simulation_running": scheduler.is_running}
