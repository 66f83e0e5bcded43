import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./dormduty.db")

# Firebase Authentication (ID tokens are verified in-process, see auth.py)
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")

# Gemini schedule optimizer - without a key the optimizer always uses its fallback
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
GEMINI_TIMEOUT_SECONDS = float(os.getenv("GEMINI_TIMEOUT_SECONDS", "30"))

# Frontend base URL, always allowed by CORS
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "ALLOWED_ORIGINS",
        "http://localhost:3000,http://localhost:3001,http://localhost:8000",
    ).split(",")
    if origin.strip()
]
if FRONTEND_URL and FRONTEND_URL not in ALLOWED_ORIGINS:
    ALLOWED_ORIGINS.append(FRONTEND_URL)

# Vercel preview and production deployments of the web client
ALLOWED_ORIGIN_REGEX = os.getenv("ALLOWED_ORIGIN_REGEX", r"https://.*\.vercel\.app")

# Rate limiting (optimizer endpoints call a paid API)
REDIS_URL = os.getenv("REDIS_URL")
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
OPTIMIZER_RATE_LIMIT = int(os.getenv("OPTIMIZER_RATE_LIMIT", "20"))
OPTIMIZER_RATE_WINDOW_SECONDS = int(os.getenv("OPTIMIZER_RATE_WINDOW_SECONDS", "3600"))

# Aura points given for a completed task created without an explicit value
DEFAULT_TASK_AURA = int(os.getenv("DEFAULT_TASK_AURA", "10"))
