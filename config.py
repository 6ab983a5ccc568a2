# config.py
# Simple centralized configuration values.
import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_FILE = os.getenv("DATABASE_FILE", "devmatch.db")

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Messaging limits
MAX_MESSAGE_LENGTH = 2000  # characters, inclusive
DEFAULT_PAGE_SIZE = 50  # messages per page when no limit is given
MAX_PAGE_SIZE = 100

# Discovery feed paging
DISCOVER_PAGE_SIZE = 10
MAX_DISCOVER_PAGE_SIZE = 50
