# app/api/v1/endpoints/companies.py
import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, status

from app.api.dependencies import get_current_active_user, get_company_model, get_sync_context
from app.api.v1.endpoints.contacts import run_write
from app.core.events import SyncContext
from app.core.exceptions import ObjectNotFoundError
from app.models.company import Company
from app.models.user import User
from app.services.company_service import CompanyModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/companies", tags=["companies"])


def _load_company(model: CompanyModel, company_id: int, user: User, action: str) -> Company:
    try:
        company = model.get_entity(company_id)
    except ObjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    if user.is_admin:
        return company
    if (action == "edit" and not user.can_edit) or not user.owns(company.owner_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to the requested area/action."
        )
    return company


@router.get("/{company_id}")
def get_company(
        company_id: int,
        model: CompanyModel = Depends(get_company_model),
        current_user: User = Depends(get_current_active_user)
):
    return {"company": _load_company(model, company_id, current_user, "view").to_dict()}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_company(
        payload: Dict[str, Any] = Body(...),
        model: CompanyModel = Depends(get_company_model),
        context: SyncContext = Depends(get_sync_context),
        current_user: User = Depends(get_current_active_user)
):
    if not (current_user.can_edit or current_user.is_admin):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not have permission to edit data")

    company = Company(owner_id=None if current_user.is_admin else current_user.id)
    run_write(model.set_field_values, company, payload)
    run_write(model.save_entity, company, context)
    return {"company": company.to_dict()}


@router.patch("/{company_id}")
def edit_company(
        company_id: int,
        payload: Dict[str, Any] = Body(...),
        model: CompanyModel = Depends(get_company_model),
        context: SyncContext = Depends(get_sync_context),
        current_user: User = Depends(get_current_active_user)
):
    company = _load_company(model, company_id, current_user, "edit")
    run_write(model.set_field_values, company, payload)
    run_write(model.save_entity, company, context)
    return {"company": company.to_dict()}


@router.delete("/{company_id}")
def delete_company(
        company_id: int,
        model: CompanyModel = Depends(get_company_model),
        context: SyncContext = Depends(get_sync_context),
        current_user: User = Depends(get_current_active_user)
):
    company = _load_company(model, company_id, current_user, "edit")
    deleted_id = run_write(model.delete_entity, company, context)
    return {"company": {"id": deleted_id}, "deleted": True}
