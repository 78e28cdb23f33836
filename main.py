"""
Application entry point - hip abduction pose analysis
FastAPI service around the landmark smoothing and angle pipeline
"""

import sys
import logging
from datetime import datetime

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import routes
from api.routes import router
from config.settings import settings
from models import release_detectors
from utils.file_manager import FileManager

# Logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler('abduction_analysis.log', encoding='utf-8')
    ]
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Hip Abduction Analysis",
    description="Smoothed landmark tracking and hip abduction angle recording API",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")

file_manager = FileManager()

@app.on_event("startup")
async def startup_event():
    logger.info("Starting hip abduction analysis service...")
    logger.info(f"API docs: http://localhost:{settings.PORT}/docs")
    logger.info(f"Export directory: {settings.JSON_OUTPUT_DIR}")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down...")
    session = routes._session
    if session is not None:
        await session.close()
        routes.set_session(None)
    await release_detectors()
    file_manager.cleanup_temp_files(max_age_hours=1)
    logger.info("Shutdown complete")

@app.get("/")
async def root():
    """Service information"""
    return {
        "system": "Hip Abduction Analysis",
        "version": "1.0.0",
        "timestamp": datetime.now().isoformat(),
        "docs": "/docs",
        "endpoints": {
            "session": "/api/session",
            "state": "/api/state",
            "recording": "/api/recording",
            "export": "/api/recording/export"
        }
    }

@app.get("/health")
async def health_check():
    """Health check"""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "session_active": routes._session is not None
    }

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
