import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./practice.db")
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
# Seconds; statements slower than this are logged, 0 turns logging off
DB_SLOW_QUERY_SECONDS = float(os.getenv("DB_SLOW_QUERY_SECONDS", "1.0"))

# Scheduling Service base URL used by the operator-side client
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:5001/api")
API_TIMEOUT_SECONDS = float(os.getenv("API_TIMEOUT_SECONDS", "30"))

# Recurrence limits
MAX_RECURRING_OCCURRENCES = int(os.getenv("MAX_RECURRING_OCCURRENCES", "100"))
MAX_FREQUENCY_VALUE = int(os.getenv("MAX_FREQUENCY_VALUE", "52"))
DEFAULT_APPOINTMENT_DURATION = int(os.getenv("DEFAULT_APPOINTMENT_DURATION", "30"))

# Appointment statuses that occupy a provider's calendar
BLOCKING_APPOINTMENT_STATUSES = [
    s.strip()
    for s in os.getenv(
        "BLOCKING_APPOINTMENT_STATUSES", "scheduled,confirmed,checked_in,in_progress"
    ).split(",")
    if s.strip()
]

# Frontend origins allowed to call the API
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000",
).split(",")
