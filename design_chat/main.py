"""FastAPI application entry point"""

import os
import sys
import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env
_env_path = Path(__file__).resolve().parent.parent / '.env'
load_dotenv(_env_path)

from design_chat.core.config import settings  # noqa: E402
from design_chat.api import chat, progress  # noqa: E402

# Configure logging early with force=True to override any existing config
logging.basicConfig(
    level=logging.DEBUG if settings.environment == "development" else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    force=True,
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    logger.info("=" * 60)
    logger.info("DESIGN CHAT SERVICE STARTING")
    logger.info("=" * 60)
    logger.info(f"PID: {os.getpid()}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"State dir: {settings.state_dir}")
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set - generation will fail")
    if not settings.screenshot_api_key:
        logger.warning("SCREENSHOT_API_KEY is not set - screenshots will fail")
    if not settings.webhook_url:
        logger.info("WEBHOOK_URL is not set - session records will not be sent")
    logger.info("=" * 60)


@app.get("/")
async def root():
    """Health check endpoint"""
    return {"status": "healthy", "version": settings.api_version}


@app.get("/health")
async def health():
    """Health check for monitoring"""
    return {"status": "healthy"}


# Register API routes
app.include_router(chat.router, prefix="/api", tags=["chat"])
app.include_router(progress.router, prefix="/sse", tags=["progress"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.backend_host, port=settings.backend_port)
