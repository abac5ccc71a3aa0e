# sfa_portal/core/security.py
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from sfa_portal.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES, BCRYPT_ROUNDS
from sfa_portal.models.enum import Capability
from sfa_portal.models.member import Member

logger = logging.getLogger(__name__)

# Konteks password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> str:
    """Returns the uid ('sub') from a valid token, raises JWTError otherwise."""
    payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    uid: Optional[str] = payload.get("sub")
    if uid is None:
        raise JWTError("Subject ('sub') missing in token payload.")
    return uid


async def get_caller_uid(request: Request, token: Optional[str] = Depends(oauth2_scheme)) -> Optional[str]:
    """
    Caller identity attached by the transport: the uid set by AuthMiddleware,
    or decoded here when the middleware did not run. None when anonymous.
    """
    uid: Optional[str] = getattr(request.state, "uid", None)
    if uid:
        return uid
    if not token:
        return None
    try:
        return decode_access_token(token)
    except JWTError:
        logger.warning("Token decode failed in get_caller_uid dependency.")
        return None


async def get_current_member(uid: Optional[str] = Depends(get_caller_uid)) -> Member:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not uid:
        raise credentials_exception
    member = await Member.find_one(Member.uid == uid)
    if member is None:
        logger.warning(f"No member profile for uid '{uid}'.")
        raise credentials_exception
    return member


async def get_current_active_member(current_member: Member = Depends(get_current_member)) -> Member:
    if current_member.disabled:
        logger.warning(f"Access denied for disabled member '{current_member.id}'.")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is disabled")
    return current_member


def require_capability(capability: Capability):
    """
    Factory for a dependency that checks the current member's role grants the capability.
    """
    async def capability_checker(current_member: Member = Depends(get_current_active_member)) -> Member:
        if not current_member.can(capability):
            logger.warning(
                f"Forbidden: Member '{current_member.id}' with role '{current_member.role.value}' "
                f"attempted action requiring '{capability.value}'."
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Operation not permitted. Required capability: {capability.value}",
            )
        return current_member
    return capability_checker


# Convenience dependencies
require_reviewer = require_capability(Capability.REVIEW_BENEFICIARY)
require_portal_manager = require_capability(Capability.MANAGE_PORTAL)
require_account_manager = require_capability(Capability.MANAGE_ACCOUNTS)
