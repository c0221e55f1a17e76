from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # -------------------------------------------------
    # General
    # -------------------------------------------------
    PROJECT_NAME: str = "Requirement Hub Permission API"
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # -------------------------------------------------
    # Frontend Domains
    # -------------------------------------------------
    FRONTEND_DOMAIN: Optional[str] = None

    EXTRA_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
    ]

    # -------------------------------------------------
    # CORS (auto-built below)
    # -------------------------------------------------
    BACKEND_CORS_ORIGINS: List[str] = []

    # -------------------------------------------------
    # Supabase (Primary DB & Auth)
    # -------------------------------------------------
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None
    SUPABASE_JWT_SECRET: Optional[str] = None

    # -------------------------------------------------
    # Permission engine
    # -------------------------------------------------
    # Event raised after any permission-affecting mutation
    PERMISSION_EVENT_NAME: str = "permission:updated"

    # Transactional procedure exposed by the database
    REPLACE_ROLE_PERMISSIONS_RPC: str = "update_role_permissions_tx"

    # Unused session contexts are signed out after this many seconds (0 = never)
    SESSION_IDLE_TIMEOUT_SECONDS: int = 1800

    # -------------------------------------------------
    # Model Config
    # -------------------------------------------------
    model_config = SettingsConfigDict(case_sensitive=True)


# Instantiate settings
settings = Settings()

# -------------------------------------------------
# Build CORS list dynamically after loading settings
# -------------------------------------------------
cors_origins = []

# 1) add the deployed frontend domain
if settings.FRONTEND_DOMAIN:
    domain = settings.FRONTEND_DOMAIN
    if not domain.startswith("http"):
        domain = f"https://{domain}"
    cors_origins.append(domain.rstrip("/"))

# 2) add local/dev origins
cors_origins.extend([d.rstrip("/") for d in settings.EXTRA_CORS_ORIGINS])

# 3) remove duplicates
settings.BACKEND_CORS_ORIGINS = sorted(list(set(cors_origins)))
