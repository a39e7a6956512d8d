"""
Bearer-token check against the server-held DATAFACT_API_KEY secret.
"""

import hmac
from typing import Optional

from fastapi import Depends, Header, HTTPException

from datafact.config import AppConfig
from .services import get_config

BEARER_PREFIX = "Bearer "

def require_api_key(
    authorization: Optional[str] = Header(None),
    config: AppConfig = Depends(get_config),
) -> None:
    expected = config.auth.api_key
    if not expected:
        raise HTTPException(status_code=500, detail="server misconfigured: missing DATAFACT_API_KEY")
    if not authorization:
        raise HTTPException(status_code=401, detail="unauthorized: missing Authorization header")
    if not authorization.startswith(BEARER_PREFIX):
        raise HTTPException(status_code=401, detail="unauthorized: invalid Authorization format")

    token = authorization[len(BEARER_PREFIX):].strip()
    if not hmac.compare_digest(token.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="unauthorized: invalid API key")
