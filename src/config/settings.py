"""
Configuration settings for the Drive Case Folder API
"""

import os
import re
import logging
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Environment configuration
ENV = os.getenv("ENV", "PROD")  # PROD or QA
PORT = int(os.getenv("PORT", 3000))
DATABASE_URL = os.getenv("DATABASE_URL")

# Google Drive credentials (OAuth2 refresh token, or a service account file)
CLIENT_ID = os.getenv("CLIENT_ID")
CLIENT_SECRET = os.getenv("CLIENT_SECRET")
REDIRECT_URI = os.getenv("REDIRECT_URI")
REFRESH_TOKEN = os.getenv("REFRESH_TOKEN")
GOOGLE_SERVICE_ACCOUNT_FILE = os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE")
GOOGLE_TOKEN_URI = os.getenv("GOOGLE_TOKEN_URI", "https://oauth2.googleapis.com/token")
GOOGLE_DRIVE_PARENT_ID = os.getenv("GOOGLE_DRIVE_PARENT_ID")  # optional default parent folder
DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]
DRIVE_LIST_PAGE_SIZE = int(os.getenv("DRIVE_LIST_PAGE_SIZE", 1000))

# Case folder layout: labels for the pending / approved / rejected status folders
DEFAULT_STATUS_FOLDER_NAMES = ["01_submitted", "02_approved", "03_rejected"]
MANIFEST_FILE_NAME = "manifest.csv"
MANIFEST_HEADER = "fileId,fileName,docType,status,reason,uploader,reviewer,createdAt,decidedAt,version\n"

# Portal / token configuration
PORTAL_BASE_URL = os.getenv("PORTAL_BASE_URL", "http://localhost:5173/portal")
PORTAL_TOKEN_SECRET = os.getenv("PORTAL_TOKEN_SECRET", "portal-default-secret-change-in-production")
REVIEWER_TOKEN_SECRET = os.getenv("REVIEWER_TOKEN_SECRET", "reviewer-default-secret-change-in-production")
PORTAL_TOKEN_TTL = int(os.getenv("PORTAL_TOKEN_TTL", 7 * 24 * 3600))  # seconds
PORTAL_UPLOADS_PUBLIC = os.getenv("PORTAL_UPLOADS_PUBLIC", "false").lower() in ("1", "true", "yes")


class TokenConfig:
    """JWT settings shared by portal (debtor) and reviewer tokens"""

    ALGORITHM = "HS256"
    ISSUER = f"drive-case-api-{ENV.lower()}"
    AUDIENCE = "drive-case-portal"
    PORTAL_SECRET = PORTAL_TOKEN_SECRET
    REVIEWER_SECRET = REVIEWER_TOKEN_SECRET
    DEFAULT_TTL = PORTAL_TOKEN_TTL


# Transfer limits
PREVIEW_MAX_BYTES = int(os.getenv("PREVIEW_MAX_BYTES", 25 * 1024 * 1024))
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", 50 * 1024 * 1024))
PREVIEW_CHUNK_SIZE = int(os.getenv("PREVIEW_CHUNK_SIZE", 1024 * 1024))
PREVIEW_CACHE_SECONDS = int(os.getenv("PREVIEW_CACHE_SECONDS", 60))
CONTAINMENT_MAX_DEPTH = 10
FOLDER_LIST_LIMIT = 50


def parse_status_folder_names(raw: Optional[str]) -> List[str]:
    """Parse STATUS_FOLDER_NAMES; anything but exactly three labels falls back to the defaults"""
    if not raw:
        return list(DEFAULT_STATUS_FOLDER_NAMES)
    names = [name.strip() for name in raw.split(",") if name.strip()]
    if len(names) != 3:
        logger.warning(f"STATUS_FOLDER_NAMES must list exactly 3 labels, got {len(names)} - using defaults")
        return list(DEFAULT_STATUS_FOLDER_NAMES)
    return names


STATUS_FOLDER_NAMES = parse_status_folder_names(os.getenv("STATUS_FOLDER_NAMES"))


def parse_cors_origins(raw: Optional[str]):
    """
    Split CORS_ORIGINS into exact origins and a regex for wildcard entries.

    Args:
        raw: Comma-separated origins, e.g. "https://app.example.com,https://*.onrender.com"

    Returns:
        (origins, origin_regex). With nothing configured every origin is allowed.
    """
    entries = [entry.strip().rstrip("/") for entry in (raw or "").split(",") if entry.strip()]
    if not entries:
        return ["*"], None

    exact = []
    patterns = []
    for entry in entries:
        if entry == "*":
            return ["*"], None
        if "*" in entry:
            patterns.append(".*".join(re.escape(part) for part in entry.split("*")))
        else:
            exact.append(entry)

    origin_regex = f"^({'|'.join(patterns)})$" if patterns else None
    return exact, origin_regex


ALLOWED_ORIGINS, ALLOWED_ORIGIN_REGEX = parse_cors_origins(os.getenv("CORS_ORIGINS"))


def warn_default_token_secrets() -> List[str]:
    """Warn for each token secret left on its built-in default; returns the missing names"""
    missing = [key for key in ("PORTAL_TOKEN_SECRET", "REVIEWER_TOKEN_SECRET") if not os.getenv(key)]
    for key in missing:
        logger.warning(f"Missing env: {key} - using the built-in default secret, tokens are forgeable")
    return missing


logger.info(f"Environment: {ENV}")

# Validate credentials the same way the service always has: warn, don't refuse to start
if not GOOGLE_SERVICE_ACCOUNT_FILE:
    for key in ("CLIENT_ID", "CLIENT_SECRET", "REDIRECT_URI", "REFRESH_TOKEN"):
        if not os.getenv(key):
            logger.warning(f"Missing env: {key}")
if not DATABASE_URL:
    logger.warning("DATABASE_URL not set - case registry endpoints will be unavailable")
warn_default_token_secrets()
