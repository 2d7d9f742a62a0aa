"""
Trainer Agent Backend - FastAPI Application
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trainer_agent.core.config import settings
from trainer_agent.core.logging import setup_logging, get_logger
from trainer_agent.core.database import init_db
from trainer_agent.api import artifacts, goals

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    logger.info("Starting Trainer Agent Backend", version="1.0.0")
    await init_db()
    logger.info("Database initialized")
    
    yield
    
    # Shutdown
    logger.info("Shutting down Trainer Agent Backend")


app = FastAPI(
    title="Trainer Agent API",
    description="Workout artifact validation and goal tools for the AI trainer agent",
    version="1.0.0",
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
app.include_router(artifacts.router, prefix="/api/artifacts", tags=["artifacts"])
app.include_router(goals.router, prefix="/api/goals", tags=["goals"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "trainer-agent-backend"}
