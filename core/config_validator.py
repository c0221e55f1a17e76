# core/config_validator.py

from typing import List, Optional
from core.config import settings
from core.logging_config import logger


def validate_required_config() -> List[str]:
    """
    Validate that all required environment variables are set.
    Returns list of missing required variables.
    """
    missing = []

    # Required for auth + every permission table
    if not settings.SUPABASE_URL:
        missing.append("SUPABASE_URL")
    if not settings.SUPABASE_SERVICE_ROLE_KEY:
        missing.append("SUPABASE_SERVICE_ROLE_KEY")

    # Blank names would silently disable propagation / atomic replace
    if not settings.PERMISSION_EVENT_NAME.strip():
        missing.append("PERMISSION_EVENT_NAME")
    if not settings.REPLACE_ROLE_PERMISSIONS_RPC.strip():
        missing.append("REPLACE_ROLE_PERMISSIONS_RPC")

    return missing


def validate_optional_config() -> List[str]:
    """
    Validate optional but recommended configuration.
    Returns list of missing optional variables (warnings only).
    """
    warnings = []

    if not settings.SUPABASE_ANON_KEY:
        warnings.append("SUPABASE_ANON_KEY (optional but recommended)")
    if settings.ENV == "production" and not settings.FRONTEND_DOMAIN:
        warnings.append("FRONTEND_DOMAIN (CORS falls back to local origins)")

    return warnings


def validate_config_on_startup(strict: Optional[bool] = None):
    """
    Validate configuration on application startup.
    In strict mode (production by default) missing required config
    raises RuntimeError; otherwise it is only logged.
    """
    if strict is None:
        strict = settings.ENV == "production"

    missing_required = validate_required_config()
    missing_optional = validate_optional_config()

    if missing_required:
        error_msg = f"Missing required environment variables: {', '.join(missing_required)}"
        logger.error(error_msg)
        if strict:
            raise RuntimeError(error_msg)

    for warning in missing_optional:
        logger.warning(f"Optional configuration missing: {warning}")

    if not missing_required:
        logger.info("Configuration validation passed")
