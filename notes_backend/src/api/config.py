"""
Runtime settings, read once from the environment (and a local .env file).
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default="false"):
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "y"}


# Sessions
SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", str(7 * 24 * 60 * 60)))  # one week, sliding
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "notes_session")
SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE")

# Password hashing cost (bcrypt log2 rounds, 4..31)
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Process
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
