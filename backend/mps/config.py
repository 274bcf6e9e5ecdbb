"""Configuration settings for the proctoring session service."""

import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

# CORS settings
CORS_ORIGINS: List[str] = os.getenv("CORS_ORIGINS", "*").split(",")
CORS_METHODS: List[str] = ["*"]
CORS_HEADERS: List[str] = ["*"]

# API settings
API_TITLE = "Mathematics Proctoring System"
API_VERSION = "1.0.0"
HOST = os.getenv("MPS_HOST", "0.0.0.0")
PORT = int(os.getenv("MPS_PORT", "8000"))

# Logging Configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Proctoring sessions
SESSION_TIMEOUT_SECONDS = float(os.getenv("MPS_SESSION_TIMEOUT_SECONDS", str(60 * 180)))
SWEEP_INTERVAL_SECONDS = float(os.getenv("MPS_SWEEP_INTERVAL_SECONDS", "10"))

# Login session IDs are this long; proctoring session IDs are one longer
SESSION_ID_LEN = int(os.getenv("MPS_SESSION_ID_LEN", "32"))
PSID_LENGTH = SESSION_ID_LEN + 1

# Student, exam and login-session records
DATA_FILE: Optional[str] = os.getenv(
    "MPS_DATA_FILE",
    os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "mps_data.json"),
)

# External login-session service (in-memory validation from DATA_FILE when unset)
AUTH_URL: Optional[str] = os.getenv("MPS_AUTH_URL")
AUTH_TIMEOUT_SECONDS = float(os.getenv("MPS_AUTH_TIMEOUT_SECONDS", "5.0"))
