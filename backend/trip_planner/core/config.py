import os
import re

from dotenv import find_dotenv, load_dotenv


# Load environment variables with .env, .env.dev/.env.prod support
def _load_env_files() -> None:
    """
    Load .env files with this precedence:
    1) Base .env (if present)
    2) Explicit file via ENV_FILE (e.g., .env.dev or ./config/.env.prod)
    3) Environment-specific file inferred from ENVIRONMENT/ENV/PYTHON_ENV
        - Supports aliases like dev/development, prod/production, stage/staging
    Note: Existing OS environment variables are never overridden.
    """
    # 1) Base .env
    base_path = find_dotenv(".env", usecwd=True)
    if base_path:
        load_dotenv(base_path, override=False)

    # 2) Explicit file via ENV_FILE
    explicit = os.environ.get("ENV_FILE")
    if explicit:
        explicit_path = explicit if os.path.isabs(explicit) else find_dotenv(explicit, usecwd=True)
        if explicit_path:
            load_dotenv(explicit_path, override=False)
            return

    # 3) Environment-specific file inferred from ENVIRONMENT/ENV/PYTHON_ENV
    env_name = (
        os.environ.get("ENVIRONMENT") or os.environ.get("ENV") or os.environ.get("PYTHON_ENV")
    )
    if env_name:
        slug = str(env_name).strip().lower()
        alias = {
            "dev": "development",
            "prod": "production",
            "stg": "staging",
            "test": "test",
        }
        resolved = alias.get(slug, slug)
        for candidate in (f".env.{resolved}", f".env.{slug}"):
            path = find_dotenv(candidate, usecwd=True)
            if path:
                load_dotenv(path, override=False)
                break


_load_env_files()

# === Environment Configuration ===
ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")  # development, staging, production

# === Server Configuration ===
SERVER_HOST = os.environ.get("SERVER_HOST", "0.0.0.0")


def _get_int_env(var_name: str, default_value: int) -> int:
    """
    Parse an integer environment variable robustly.
    - Trims whitespace and trailing semicolons.
    - Falls back to the first integer found in the string.
    - Returns the provided default if parsing fails.
    """
    raw = os.environ.get(var_name, str(default_value))
    text = str(raw).strip().rstrip(";")
    try:
        return int(text)
    except ValueError:
        match = re.search(r"[-+]?\d+", text or "")
        if match:
            return int(match.group(0))
    return int(default_value)


def _get_float_env(var_name: str, default_value: float) -> float:
    """Same contract as _get_int_env, for decimal values."""
    raw = os.environ.get(var_name, str(default_value))
    text = str(raw).strip().rstrip(";")
    try:
        return float(text)
    except ValueError:
        match = re.search(r"[-+]?\d+(?:\.\d+)?", text or "")
        if match:
            return float(match.group(0))
    return float(default_value)


def _get_optional_env(*names: str) -> str | None:
    """Return the first non-empty value among the given variable names."""
    for name in names:
        value = (os.environ.get(name) or "").strip()
        if value:
            return value
    return None


SERVER_PORT = _get_int_env("SERVER_PORT", 8060)
DEBUG = os.environ.get("DEBUG", "true").lower() == "true"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG" if DEBUG else "INFO").upper()


# === CORS Configuration ===
def _get_cors_origins() -> list[str]:
    """
    Return CORS origins from env or a safe default.
    Example env format:
      CORS_ORIGINS="http://localhost:5173,http://127.0.0.1:5173,https://yourdomain.com"
    """
    raw = os.environ.get("CORS_ORIGINS", "").strip()
    if not raw:
        # Default to permissive wildcard for local/dev if not provided
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]


CORS_ORIGINS = _get_cors_origins()

# === Database Configuration ===
# Without MONGODB_URI plans are kept in process memory.
MONGODB_URI = os.environ.get("MONGODB_URI")
DATABASE_NAME = os.environ.get("DATABASE_NAME", "trip_planner")

# === Generative backend (OpenAI-compatible chat completions) ===
# No key means itineraries always come from the deterministic generator.
LLM_API_KEY = _get_optional_env("LLM_API_KEY", "DEEPSEEK_API_KEY", "OPENAI_API_KEY")
LLM_BASE_URL = os.environ.get("LLM_BASE_URL", "https://api.deepseek.com/v1")
LLM_MODEL = os.environ.get("LLM_MODEL", "deepseek-chat")
LLM_TEMPERATURE = _get_float_env("LLM_TEMPERATURE", 0.7)
LLM_TIMEOUT_SECONDS = _get_float_env("LLM_TIMEOUT_SECONDS", 60.0)

# === Geocoding backend (AMap web service) ===
AMAP_WEB_SERVICE_KEY = _get_optional_env("AMAP_WEB_SERVICE_KEY")
AMAP_GEOCODE_URL = os.environ.get("AMAP_GEOCODE_URL", "https://restapi.amap.com/v3/geocode/geo")
GEOCODE_TIMEOUT_SECONDS = _get_float_env("GEOCODE_TIMEOUT_SECONDS", 10.0)

# AMap allows 3 queries per second per key
GEOCODE_MAX_QPS = _get_int_env("GEOCODE_MAX_QPS", 3)
GEOCODE_WINDOW_MS = _get_int_env("GEOCODE_WINDOW_MS", 1000)
GEOCODE_MIN_GAP_MS = _get_int_env("GEOCODE_MIN_GAP_MS", 100)
GEOCODE_SAFETY_MARGIN_MS = _get_int_env("GEOCODE_SAFETY_MARGIN_MS", 50)
GEOCODE_RATE_LIMIT_BACKOFF_MS = _get_int_env("GEOCODE_RATE_LIMIT_BACKOFF_MS", 3000)

# === Itinerary generation ===
# Simulated latency for the deterministic generator (0 disables it)
FALLBACK_LATENCY_MS = _get_int_env("FALLBACK_LATENCY_MS", 0)

# === Application Settings ===
APP_NAME = "Trip Planner API"
APP_VERSION = "1.0.0"
