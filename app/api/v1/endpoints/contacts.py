# app/api/v1/endpoints/contacts.py
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError

from app.api.dependencies import (
    get_current_active_user, get_contact_model, get_company_model, get_sync_context, check_contact_access
)
from app.core.events import SyncContext
from app.core.exceptions import IntegrationNotFoundError, ObjectNotFoundError
from app.models.contact import Contact
from app.models.user import User
from app.services.company_service import CompanyModel
from app.services.contact_service import ContactModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contacts", tags=["contacts"])


def _load_contact(model: ContactModel, contact_id: int, user: User, action: str) -> Contact:
    try:
        contact = model.get_entity(contact_id)
    except ObjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return check_contact_access(user, contact, action)


def run_write(action, *args, **kwargs):
    """Run a model write, turning domain failures into HTTP errors"""
    try:
        return action(*args, **kwargs)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except IntegrationNotFoundError as e:
        # Raised by post-save listeners, after the write was committed
        logger.error(f"Sync configuration error after a committed write: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"The changes were saved, but recording them for sync failed: {e}"
        )
    except SQLAlchemyError as e:
        logger.error(f"Database error: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")


@router.get("/{contact_id}")
def get_contact(
        contact_id: int,
        model: ContactModel = Depends(get_contact_model),
        current_user: User = Depends(get_current_active_user)
):
    contact = _load_contact(model, contact_id, current_user, "view")
    return {"contact": contact.to_dict()}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_contact(
        payload: Dict[str, Any] = Body(...),
        model: ContactModel = Depends(get_contact_model),
        context: SyncContext = Depends(get_sync_context),
        current_user: User = Depends(get_current_active_user)
):
    if not (current_user.can_edit or current_user.is_admin):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not have permission to edit data")

    contact = Contact(owner_id=None if current_user.is_admin else current_user.id)
    run_write(model.set_field_values, contact, payload)
    run_write(model.save_entity, contact, context)
    return {"contact": contact.to_dict()}


@router.patch("/{contact_id}")
def edit_contact(
        contact_id: int,
        payload: Dict[str, Any] = Body(...),
        model: ContactModel = Depends(get_contact_model),
        context: SyncContext = Depends(get_sync_context),
        current_user: User = Depends(get_current_active_user)
):
    contact = _load_contact(model, contact_id, current_user, "edit")
    run_write(model.set_field_values, contact, payload)
    run_write(model.save_entity, contact, context)
    return {"contact": contact.to_dict()}


@router.delete("/{contact_id}")
def delete_contact(
        contact_id: int,
        model: ContactModel = Depends(get_contact_model),
        context: SyncContext = Depends(get_sync_context),
        current_user: User = Depends(get_current_active_user)
):
    contact = _load_contact(model, contact_id, current_user, "edit")
    deleted_id = run_write(model.delete_entity, contact, context)
    return {"contact": {"id": deleted_id}, "deleted": True}


@router.post("/{contact_id}/dnc/{channel}")
def add_do_not_contact(
        contact_id: int,
        channel: str,
        reason: str = Query("manual"),
        comments: Optional[str] = Query(None),
        model: ContactModel = Depends(get_contact_model),
        context: SyncContext = Depends(get_sync_context),
        current_user: User = Depends(get_current_active_user)
):
    contact = _load_contact(model, contact_id, current_user, "edit")
    changed = run_write(model.add_dnc, contact, channel, reason, comments, context)
    return {"contact": contact.to_dict(), "changed": changed}


@router.delete("/{contact_id}/dnc/{channel}")
def remove_do_not_contact(
        contact_id: int,
        channel: str,
        model: ContactModel = Depends(get_contact_model),
        context: SyncContext = Depends(get_sync_context),
        current_user: User = Depends(get_current_active_user)
):
    contact = _load_contact(model, contact_id, current_user, "edit")
    changed = run_write(model.remove_dnc, contact, channel, context)
    return {"contact": contact.to_dict(), "changed": changed}


@router.put("/{contact_id}/company/{company_id}")
def add_contact_to_company(
        contact_id: int,
        company_id: int,
        model: ContactModel = Depends(get_contact_model),
        company_model: CompanyModel = Depends(get_company_model),
        context: SyncContext = Depends(get_sync_context),
        current_user: User = Depends(get_current_active_user)
):
    contact = _load_contact(model, contact_id, current_user, "edit")
    try:
        company = company_model.get_entity(company_id)
    except ObjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    changed = run_write(model.add_to_company, contact, company, context)
    return {"contact": contact.to_dict(), "changed": changed}


@router.delete("/{contact_id}/company/{company_id}")
def remove_contact_from_company(
        contact_id: int,
        company_id: int,
        model: ContactModel = Depends(get_contact_model),
        company_model: CompanyModel = Depends(get_company_model),
        context: SyncContext = Depends(get_sync_context),
        current_user: User = Depends(get_current_active_user)
):
    contact = _load_contact(model, contact_id, current_user, "edit")
    try:
        company = company_model.get_entity(company_id)
    except ObjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    changed = run_write(model.remove_from_company, contact, company, context)
    return {"contact": contact.to_dict(), "changed": changed}
