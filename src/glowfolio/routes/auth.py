from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..auth import authenticate_user, create_access_token
from ..context import AppContext, get_db
from ..errors import invalid_credentials, missing_credentials
from ..schemas import LoginData, LoginRequest, LoginResponse, UserInfo


def build_router(ctx: AppContext) -> APIRouter:
    router = APIRouter()

    @router.post("/login", response_model=LoginResponse)
    @ctx.api_limit()
    @ctx.login_limit()
    def login(
        request: Request,
        payload: LoginRequest | None = None,
        db: Session = Depends(get_db),
    ):
        """Exchange admin credentials for a bearer token."""
        if payload is None or not payload.username or not payload.password:
            raise missing_credentials()

        user = authenticate_user(db, payload.username, payload.password)
        if user is None:
            raise invalid_credentials()

        return LoginResponse(
            data=LoginData(
                token=create_access_token(user, ctx.settings),
                user=UserInfo.model_validate(user),
            )
        )

    return router
