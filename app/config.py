# Runtime settings of the calendar service, read from the environment
import os

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Which events the occurrence id resolution scans: "all" or "user"
OCCURRENCE_SCAN_SCOPE = os.getenv("OCCURRENCE_SCAN_SCOPE", "all").lower()

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
