"""
Configuration management for Coursework Portal.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Base paths
BASE_DIR = Path(__file__).parent.parent
PACKAGE_DIR = Path(__file__).parent

# Local storage (stands in for the browser's localStorage)
HOME_DIR = Path.home()
DATA_DIR = Path(os.getenv("COURSEWORK_DATA_DIR", str(HOME_DIR / ".coursework_data")))
STORAGE_FILE = os.getenv("COURSEWORK_STORAGE_FILE", str(DATA_DIR / "storage.json"))

# LMS API configuration
LMS_API_URL = os.getenv("LMS_API_URL", "http://localhost:5000")
LMS_JWT_SECRET = os.getenv("LMS_JWT_SECRET", "")


def _parse_timeout(raw):
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


# Unset means requests wait indefinitely
LMS_REQUEST_TIMEOUT = _parse_timeout(os.getenv("LMS_REQUEST_TIMEOUT", ""))

# Server configuration
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
DEBUG = os.getenv("DEBUG", "").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("COURSEWORK_LOG_LEVEL", "INFO")


class Config:
    """Application configuration class."""

    def __init__(self):
        self.lms_api_url = LMS_API_URL
        self.lms_jwt_secret = LMS_JWT_SECRET
        self.request_timeout = LMS_REQUEST_TIMEOUT
        self.storage_file = STORAGE_FILE
        self.log_level = LOG_LEVEL
        self.host = HOST
        self.port = PORT
        self.debug = DEBUG

    def to_dict(self):
        return {
            "lms_api_url": self.lms_api_url,
            "request_timeout": self.request_timeout,
            "storage_file": self.storage_file,
            "log_level": self.log_level,
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
        }

    def update(self, data: dict):
        for key, value in data.items():
            if hasattr(self, key):
                setattr(self, key, value)


# Global config instance
config = Config()
