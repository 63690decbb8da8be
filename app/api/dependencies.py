# app/api/dependencies.py
from fastapi import Depends, HTTPException, status, Request, Header
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from typing import Optional

from app.core.db import get_db
from app.core.events import EventDispatcher, SyncContext
from app.core.security import extract_token_from_request, verify_token
from app.models.campaign import Campaign
from app.models.contact import Contact
from app.models.user import User
from app.services.company_service import CompanyModel
from app.services.contact_service import ContactModel
from app.services.event_log_service import EventLogModel
from app.sync.subscriber import build_dispatcher

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


async def get_token_from_request(
        request: Request,
        token: Optional[str] = Depends(oauth2_scheme)
) -> str:
    """Extract token from request in various formats"""
    if not token:
        token = extract_token_from_request(request)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token


def get_current_user(
        token: str = Depends(get_token_from_request),
        db: Session = Depends(get_db)
) -> User:
    """Get current user from token"""
    payload = verify_token(token)
    username: str = payload.get("sub")

    if not username:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).filter(User.username == username).first()

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


def get_current_active_user(
        current_user: User = Depends(get_current_user),
) -> User:
    """Check if user is active"""
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    return current_user


def get_current_admin_user(
        current_user: User = Depends(get_current_active_user),
) -> User:
    """Check if user is an admin"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )

    return current_user


def get_sync_context(x_sync_in_progress: Optional[str] = Header(None)) -> SyncContext:
    """Writes made by a sync driver carry X-Sync-In-Progress: 1"""
    if x_sync_in_progress and x_sync_in_progress.lower() in ("1", "true", "yes"):
        return SyncContext.for_sync()
    return SyncContext()


def get_dispatcher(db: Session = Depends(get_db)) -> EventDispatcher:
    return build_dispatcher(db)


def get_contact_model(
        db: Session = Depends(get_db),
        dispatcher: EventDispatcher = Depends(get_dispatcher)
) -> ContactModel:
    return ContactModel(db, dispatcher)


def get_company_model(
        db: Session = Depends(get_db),
        dispatcher: EventDispatcher = Depends(get_dispatcher)
) -> CompanyModel:
    return CompanyModel(db, dispatcher)


def get_event_log_model(db: Session = Depends(get_db)) -> EventLogModel:
    return EventLogModel(db)


def can_access_contact(user: User, contact: Contact, action: str = "view") -> bool:
    if user.is_admin:
        return True
    if action == "edit" and not user.can_edit:
        return False
    return user.owns(contact.owner_id)


def can_access_campaign(user: User, campaign: Campaign, action: str = "view") -> bool:
    if user.is_admin:
        return True
    if action == "view":
        return True
    return bool(user.can_edit) and user.owns(campaign.created_by)


def check_contact_access(user: User, contact: Contact, action: str = "view") -> Contact:
    if not can_access_contact(user, contact, action):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to the requested area/action."
        )
    return contact
