"""
Drive Case Folder API Server
Core functionality: Google Drive case folder trees, file transfer, debtor portal
tokens and the case registry
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import ALLOWED_ORIGINS, ALLOWED_ORIGIN_REGEX
from database.connection import init_database, close_database
from services.drive_gateway import init_drive_gateway
from api.routes import health, case_folders, drive_files, portal, preview, cases
from utils.error_handling import setup_error_handling

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager: clients are created once, before serving"""
    init_drive_gateway()
    await init_database()
    yield
    await close_database()


# FastAPI app initialization
app = FastAPI(
    title="Drive Case Folder API",
    description="Google Drive case folder provisioning, file transfer, debtor portal and case registry",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_origin_regex=ALLOWED_ORIGIN_REGEX,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "ETag", "X-Trace-ID"],
)

# Setup centralized error handling
setup_error_handling(app)

# Include API routes
app.include_router(health.router, tags=["Health"])
app.include_router(case_folders.router, tags=["Case Folders"])
app.include_router(drive_files.router, tags=["Drive Files"])
app.include_router(portal.router, tags=["Portal"])
app.include_router(preview.router, tags=["Preview"])
app.include_router(cases.router, prefix="/api", tags=["Cases"])
