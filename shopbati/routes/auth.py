from __future__ import annotations
import hmac
from typing import Optional
from fastapi import Header, HTTPException

from ..settings import settings

# Tokens are issued by the hosting platform; we only compare the shared admin token.
def require_admin(x_admin_token: Optional[str] = Header(default=None)) -> None:
    expected = settings.admin_token
    if not expected or not x_admin_token or not hmac.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=401, detail="invalid admin token")
