import secrets
from fastapi import Header, HTTPException
from .config import settings

async def require_token(x_api_token: str | None = Header(default=None)):
    # constant-time compare
    if not x_api_token or not secrets.compare_digest(x_api_token.encode(), settings.api_token.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")
