# sfa_portal/api/v1/endpoints/auth.py
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from loguru import logger

from sfa_portal.core.auth_provider import AuthProvider, get_auth_provider
from sfa_portal.core.config import ACCESS_TOKEN_EXPIRE_MINUTES
from sfa_portal.core.rate_limiter import limiter
from sfa_portal.core.registration import register
from sfa_portal.core.security import create_access_token, get_current_active_member
from sfa_portal.models.credential import Token
from sfa_portal.models.member import Member

router = APIRouter(tags=["Authentication"])


# --- Endpoint /token ---
@router.post("/token", response_model=Token)
@limiter.limit("10/minute")
async def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    provider: AuthProvider = Depends(get_auth_provider),
):
    # username pada form = email
    credential = await provider.authenticate(form_data.username, form_data.password)
    if credential is None:
        logger.warning(f"Failed login attempt for '{form_data.username}'.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if credential.disabled:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")

    access_token = create_access_token(
        data={"sub": credential.id},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return {"access_token": access_token, "token_type": "bearer"}


# --- Endpoint /register ---
@router.post("/register", response_model=Member.Response, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
async def register_member(
    request: Request,
    member_in: Member.Register,
    provider: AuthProvider = Depends(get_auth_provider),
):
    member = await register(member_in, provider)
    logger.info(f"New member registered: {member.id}")
    return member.to_response()


# --- Endpoint /users/me ---
@router.get("/users/me", response_model=Member.Response)
async def read_users_me(current_member: Member = Depends(get_current_active_member)):
    return current_member.to_response()
