import os
from dotenv import load_dotenv

# Load .env file
load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    # --- Environment ---
    ENV = os.getenv("ENV", "development") # "development", "testing" or "production"
    LOG_LEVEL = os.getenv("LOG_LEVEL")
    LOG_TO_FILE = _env_flag("LOG_TO_FILE")
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:8081")

    # --- Security Settings ---
    # In production, ALWAYS set this in .env. Never use the fallback.
    SECRET_KEY = os.getenv("SECRET_KEY")
    if ENV == "production" and not SECRET_KEY:
        raise ValueError("SECRET_KEY environment variable is mandatory in production!")
    elif not SECRET_KEY:
        SECRET_KEY = "dev_secret_key_change_in_prod"
    ALGORITHM = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7 # 7 Days

    # --- Mock Phone Verification ---
    VERIFICATION_CODE = os.getenv("VERIFICATION_CODE", "123456")
    # Pending sign-ins older than this are dropped
    VERIFICATION_TTL_MINUTES = int(os.getenv("VERIFICATION_TTL_MINUTES", "10"))

    # --- Workspace Rules ---
    # Permission checks are advisory unless this is switched on
    ENFORCE_PERMISSIONS = _env_flag("ENFORCE_PERMISSIONS")

config = Config()
