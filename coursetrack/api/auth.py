"""JSON auth endpoints (/auth/login, /auth/me).

Login returns { accessToken, user } so the client can keep the token in
memory and route to the page for the user's role straight away.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from coursetrack.api.dependencies import require_user
from coursetrack.api.errors import service_errors
from coursetrack.api.schemas import UserOut
from coursetrack.db.store import get_store
from coursetrack.models.principal import Principal
from coursetrack.repos.document_store import DocumentStore
from coursetrack.repos.user_repo import UserRepo
from coursetrack.services import token_service
from coursetrack.services.identity import IdentityProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginIn(BaseModel):
    email: str
    password: str


class AuthResponse(BaseModel):
    accessToken: str
    user: UserOut


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginIn,
    store: Annotated[DocumentStore, Depends(get_store)],
) -> AuthResponse:
    with service_errors():
        identity = await IdentityProvider(store).sign_in(
            payload.email, payload.password
        )
        user = await UserRepo(store).get_by_id(identity.id) if identity else None

    if identity is None:
        logger.warning("Login failed email=%s", payload.email.strip().lower())
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if user is None:
        logger.warning("Login for identity=%s without a user profile", identity.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has no role assigned.",
        )

    logger.info(
        "Login succeeded user_id=%s role=%s",
        user.id,
        user.role,
        extra={"user_id": user.id},
    )
    access_token = token_service.create_access_token(
        sub=user.id, roles=[user.role], email=user.email
    )
    return AuthResponse(accessToken=access_token, user=UserOut.from_user(user))


@router.get("/me", response_model=UserOut)
async def me(
    principal: Annotated[Principal, Depends(require_user)],
    store: Annotated[DocumentStore, Depends(get_store)],
) -> UserOut:
    with service_errors():
        user = await UserRepo(store).get_by_id(principal.user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="user not found"
        )
    return UserOut.from_user(user)
