import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./todos.db")
SQL_ECHO = _env_bool("SQL_ECHO")

# bcrypt cost factor, tests lower this to the minimum of 4
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 12))
HASH_WORKERS = int(os.getenv("HASH_WORKERS", 2))

SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "SESSION_ID")
SESSION_TTL_MINUTES = int(os.getenv("SESSION_TTL_MINUTES", 60 * 24 * 7))
SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE")

# CORS runs with credentials, so origins are listed explicitly. Empty means same origin only.
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()]
