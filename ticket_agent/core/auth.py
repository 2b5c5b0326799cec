"""API key authentication."""

import secrets

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from ticket_agent.core.config import settings

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=True)


def verify_api_key(api_key: str = Security(api_key_header)) -> str:
    """Reject requests whose X-API-Key does not match API_SECRET_KEY."""
    if not secrets.compare_digest(api_key, settings.api_secret_key):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )
    return api_key
