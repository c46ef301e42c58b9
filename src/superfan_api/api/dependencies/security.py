import secrets

from fastapi import Header, HTTPException, status

from superfan_api.core.settings import settings


async def require_ledger_api_key(x_api_key: str = Header("", alias="X-API-Key")) -> None:
    """Gate trusted-caller endpoints; an empty configured key disables the check."""

    if not settings.ledger_api_key:
        return

    if not secrets.compare_digest(x_api_key, settings.ledger_api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
