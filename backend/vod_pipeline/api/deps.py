"""
Shared API dependencies: bearer-token identity and error mapping

Token issuance belongs to the surrounding application; this module only
verifies the HS256 signature and reads the subject and role claims.
"""
import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from vod_pipeline.config import get_settings
from vod_pipeline.exceptions import AccessDenied, InvalidParameter, NotFound, VideoPipelineError

logger = logging.getLogger(__name__)

PRIVILEGED_ROLES = {"admin", "teacher"}

bearer_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: UUID
    role: Optional[str] = None


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> CurrentUser:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    settings = get_settings()
    try:
        payload = jwt.decode(credentials.credentials, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return CurrentUser(id=UUID(str(payload["sub"])), role=payload.get("role"))
    except (JWTError, KeyError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def require_privileged(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role not in PRIVILEGED_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Privileged role required")
    return user


def http_error(error: Exception) -> HTTPException:
    """Map a pipeline error to the HTTP status callers see"""
    if isinstance(error, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error) or "Not found")
    if isinstance(error, AccessDenied):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(error) or "Access denied")
    if isinstance(error, InvalidParameter):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(error))
    if isinstance(error, VideoPipelineError):
        logger.error(f"Pipeline error: {error}")
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))
    logger.exception("Unexpected error")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
