"""
Auth Routes
Email/password registration and login issuing session tokens.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id, get_db
from app.core.security import create_access_token
from app.schemas.model import ApiResult
from app.schemas.user import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from app.services.users import UserService

router = APIRouter()


def _token_for(user) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user.id),
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=ApiResult, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, db: Session = Depends(get_db)):
    """Create an account and sign it in."""
    user = UserService(db).register(request.email, request.password, name=request.name)
    return ApiResult(data=_token_for(user))


@router.post("/login", response_model=ApiResult)
async def login(request: LoginRequest, db: Session = Depends(get_db)):
    user = UserService(db).authenticate(request.email, request.password)
    return ApiResult(data=_token_for(user))


@router.get("/me", response_model=ApiResult)
async def me(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    user = UserService(db).require(user_id)
    return ApiResult(data=UserResponse.model_validate(user))
