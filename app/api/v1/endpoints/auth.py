import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import status, Response, Depends, APIRouter, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_active_user, get_current_admin_user
from app.core.config import settings
from app.core.db import get_db
from app.core.security import create_access_token, get_password_hash, verify_password
from app.models.user import User

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    username: str
    password: str


class UserCreate(BaseModel):
    username: str
    password: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    is_admin: bool = False
    can_edit: bool = False


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "full_name": user.full_name,
        "is_active": user.is_active,
        "is_admin": user.is_admin,
        "can_edit": user.can_edit,
    }


@router.post("/login")
def login(credentials: LoginRequest, response: Response, db: Session = Depends(get_db)):
    """Authenticate and issue an access token, also set as a cookie"""
    user = db.query(User).filter(User.username == credentials.username).first()

    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.warning(f"Failed login for user: {credentials.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is inactive")

    user.last_login = datetime.now(timezone.utc).replace(tzinfo=None)
    db.commit()

    access_token = create_access_token(
        subject=user.username,
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    response.set_cookie(
        key="access_token",
        value=f"Bearer {access_token}",
        httponly=True,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
        samesite="lax",
        secure=settings.COOKIE_SECURE
    )

    logger.info(f"User {user.username} logged in successfully")
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(key="access_token", path="/")
    return {"detail": "Logged out"}


@router.get("/me")
def read_current_user(current_user: User = Depends(get_current_active_user)):
    return user_to_dict(current_user)


@router.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(
        user_in: UserCreate,
        db: Session = Depends(get_db),
        admin: User = Depends(get_current_admin_user)
):
    """Create a new user (admin only)"""
    if db.query(User).filter(User.username == user_in.username).first():
        logger.warning(f"Attempted to create user with existing username: {user_in.username}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already exists")

    new_user = User(
        username=user_in.username,
        hashed_password=get_password_hash(user_in.password),
        email=user_in.email,
        full_name=user_in.full_name,
        is_admin=user_in.is_admin,
        can_edit=user_in.can_edit,
    )
    db.add(new_user)
    db.commit()
    logger.info(f"User {admin.username} created user {new_user.username}")
    return user_to_dict(new_user)
