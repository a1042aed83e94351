"""HTTP Basic guard for the admin console."""

import logging
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from .config import get_settings

log = logging.getLogger("jersey_orders.security")

security = HTTPBasic()
# for endpoints that answer auth failures in their own response format
optional_security = HTTPBasic(auto_error=False)


def credentials_valid(credentials: Optional[HTTPBasicCredentials]) -> bool:
    if credentials is None:
        return False
    settings = get_settings()
    user_ok = secrets.compare_digest(credentials.username.encode(), settings.admin_username.encode())
    password_ok = secrets.compare_digest(credentials.password.encode(), settings.admin_password.encode())
    if not (user_ok and password_ok):
        log.warning("Admin login refused for %r", credentials.username)
        return False
    return True


def require_admin(credentials: HTTPBasicCredentials = Depends(security)) -> str:
    if not credentials_valid(credentials):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return credentials.username
