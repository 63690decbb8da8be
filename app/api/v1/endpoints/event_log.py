# app/api/v1/endpoints/event_log.py
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.dependencies import (
    can_access_campaign, can_access_contact, get_current_active_user, get_event_log_model
)
from app.core.config import settings
from app.core.db import get_db
from app.core.exceptions import ObjectNotFoundError
from app.models.contact import Contact
from app.models.user import User
from app.services.event_log_service import BatchItemError, EventLogModel, fold_batch

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/campaigns", tags=["campaign events"])

ACCESS_DENIED = "You do not have access to the requested area/action."


def _get_contact(db: Session, contact_id: int) -> Contact:
    contact = db.query(Contact).filter(Contact.id == contact_id).first()
    if contact is None:
        raise ObjectNotFoundError("Contact", contact_id)
    return contact


@router.get("/events")
def get_events(
        start: int = Query(0, ge=0),
        limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
        model: EventLogModel = Depends(get_event_log_model),
        current_user: User = Depends(get_current_active_user)
):
    total, logs = model.get_logs(start, limit)
    return {"total": total, "events": [log.to_dict() for log in logs]}


@router.get("/events/contact/{contact_id}")
def get_contact_events(
        contact_id: int,
        campaign_id: Optional[int] = Query(None),
        db: Session = Depends(get_db),
        model: EventLogModel = Depends(get_event_log_model),
        current_user: User = Depends(get_current_active_user)
):
    try:
        contact = _get_contact(db, contact_id)
    except ObjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if not can_access_contact(current_user, contact, "view"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=ACCESS_DENIED)

    campaign = None
    membership: List[Any] = []
    if campaign_id is not None:
        try:
            campaign = model.get_campaign(campaign_id)
        except ObjectNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        if not can_access_campaign(current_user, campaign, "view"):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=ACCESS_DENIED)

        membership = campaign.get_contact_membership(contact)
        if not membership:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Contact {contact.id} is not part of campaign {campaign.id}"
            )

    events = model.get_contact_logs(contact, campaign)
    payload: Dict[str, Any] = {
        "total": len(events),
        "events": [event.to_dict(logs) for event, logs in events],
    }
    if campaign is not None:
        payload["campaign"] = campaign.to_dict()
        payload["membership"] = [item.to_dict() for item in membership]

    return payload


def _edit_contact_event(
        db: Session,
        model: EventLogModel,
        user: User,
        event_id: int,
        contact_id: int,
        parameters: Dict[str, Any]
):
    """Shared by the single and batch edit endpoints; failures carry an HTTP code"""
    try:
        event = model.get_event(event_id)
        contact = _get_contact(db, contact_id)
    except ObjectNotFoundError as e:
        raise BatchItemError(status.HTTP_404_NOT_FOUND, str(e))

    if not can_access_campaign(user, event.campaign, "edit") or not can_access_contact(user, contact, "edit"):
        raise BatchItemError(status.HTTP_403_FORBIDDEN, ACCESS_DENIED)

    result = model.update_contact_event(event, contact, parameters)
    if isinstance(result, str):
        raise BatchItemError(status.HTTP_409_CONFLICT, result)

    return result


@router.put("/events/batch/edit")
def batch_edit_contact_events(
        items: List[Dict[str, Any]] = Body(...),
        db: Session = Depends(get_db),
        model: EventLogModel = Depends(get_event_log_model),
        current_user: User = Depends(get_current_active_user)
):
    if len(items) > settings.API_BATCH_MAX_LIMIT:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"A maximum of {settings.API_BATCH_MAX_LIMIT} entities are supported for a single batch request."
        )

    def handle(item: Dict[str, Any]):
        parameters = dict(item)
        event_id = parameters.pop("eventId", None)
        contact_id = parameters.pop("contactId", None)
        if event_id is None or contact_id is None:
            raise BatchItemError(status.HTTP_400_BAD_REQUEST, "eventId and contactId are required")

        try:
            event_id, contact_id = int(event_id), int(contact_id)
        except (TypeError, ValueError):
            raise BatchItemError(status.HTTP_400_BAD_REQUEST, "eventId and contactId must be integers")

        log, _ = _edit_contact_event(db, model, current_user, event_id, contact_id, parameters)
        return log.to_dict()

    results, errors = fold_batch(enumerate(items), handle)
    logger.info(f"Batch edited {len(results)} event logs, {len(errors)} failed")

    payload: Dict[str, Any] = {"events": results}
    if errors:
        payload["errors"] = {index: error.to_dict() for index, error in errors.items()}
    return payload


@router.put("/events/{event_id}/contact/{contact_id}")
def edit_contact_event(
        event_id: int,
        contact_id: int,
        parameters: Dict[str, Any] = Body(...),
        db: Session = Depends(get_db),
        model: EventLogModel = Depends(get_event_log_model),
        current_user: User = Depends(get_current_active_user)
):
    try:
        log, created = _edit_contact_event(db, model, current_user, event_id, contact_id, parameters)
    except BatchItemError as e:
        raise HTTPException(status_code=e.code, detail=e.message)

    return JSONResponse(
        status_code=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        content={"event": log.to_dict()}
    )
