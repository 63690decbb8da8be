# app/services/event_log_service.py
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ObjectNotFoundError
from app.models.campaign import Campaign, CampaignEvent, LeadEventLog
from app.models.contact import Contact

logger = logging.getLogger(__name__)

T = TypeVar("T")

DATE_PARAMETERS = {"dateTriggered": "date_triggered", "triggerDate": "trigger_date"}
FLAG_PARAMETERS = {
    "isScheduled": "is_scheduled",
    "systemTriggered": "system_triggered",
    "nonActionPathTaken": "non_action_path_taken",
}


class BatchItemError(Exception):
    """Failure of one item in a batch request"""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


def fold_batch(
        items: Iterable[Tuple[Any, T]],
        handler: Callable[[T], Any]
) -> Tuple[Dict[Any, Any], Dict[Any, BatchItemError]]:
    """Apply handler to every item; a BatchItemError only fails its own item"""
    results: Dict[Any, Any] = {}
    errors: Dict[Any, BatchItemError] = {}
    for key, item in items:
        try:
            results[key] = handler(item)
        except BatchItemError as e:
            errors[key] = e
    return results, errors


def parse_datetime(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)


class EventLogModel:
    def __init__(self, db: Session):
        self.db = db

    def get_event(self, event_id: int) -> CampaignEvent:
        event = self.db.query(CampaignEvent).filter(CampaignEvent.id == event_id).first()
        if event is None:
            raise ObjectNotFoundError("Event", event_id)
        return event

    def get_campaign(self, campaign_id: int) -> Campaign:
        campaign = self.db.query(Campaign).filter(Campaign.id == campaign_id).first()
        if campaign is None:
            raise ObjectNotFoundError("Campaign", campaign_id)
        return campaign

    def get_logs(self, start: int = 0, limit: int = 30) -> Tuple[int, List[LeadEventLog]]:
        query = self.db.query(LeadEventLog)
        total = query.count()
        logs = query.order_by(LeadEventLog.id).offset(start).limit(limit).all()
        return total, logs

    def get_contact_logs(
            self,
            contact: Contact,
            campaign: Optional[Campaign] = None
    ) -> List[Tuple[CampaignEvent, List[LeadEventLog]]]:
        """Events the contact has logs for, each with its logs, in campaign event order"""
        query = self.db.query(LeadEventLog).filter(LeadEventLog.lead_id == contact.id)
        if campaign is not None:
            query = query.filter(LeadEventLog.campaign_id == campaign.id)

        grouped: Dict[int, Tuple[CampaignEvent, List[LeadEventLog]]] = {}
        for log in query.order_by(LeadEventLog.event_id, LeadEventLog.rotation).all():
            grouped.setdefault(log.event_id, (log.event, []))[1].append(log)

        return sorted(grouped.values(), key=lambda item: (item[0].campaign_id, item[0].order, item[0].id))

    def update_contact_event(
            self,
            event: CampaignEvent,
            contact: Contact,
            parameters: Dict[str, Any]
    ) -> Union[str, Tuple[LeadEventLog, bool]]:
        """Create or update the contact's log for the event; returns an error message on invalid input"""
        campaign = event.campaign

        membership = campaign.get_contact_membership(contact)
        if not membership:
            return f"Contact {contact.id} is not part of campaign {campaign.id}"
        rotation = membership[0].rotation

        # Only one log per rotation per contact per event
        log = self.db.query(LeadEventLog).filter(
            LeadEventLog.event_id == event.id,
            LeadEventLog.lead_id == contact.id,
            LeadEventLog.rotation == rotation
        ).first()

        created = False
        if log is None:
            log = LeadEventLog(
                event_id=event.id,
                lead_id=contact.id,
                campaign_id=campaign.id,
                rotation=rotation,
                metadata_={},
            )
            created = True

        error = self._set_log_values(log, parameters)
        if error:
            if not created:
                self.db.refresh(log)
            return error

        self.db.add(log)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error saving event log for event {event.id}, contact {contact.id}: {str(e)}")
            raise

        logger.info(f"{'Created' if created else 'Updated'} event log {log.id} for event {event.id}, contact {contact.id}")
        return log, created

    def _set_log_values(self, log: LeadEventLog, parameters: Dict[str, Any]) -> Optional[str]:
        for parameter, attribute in DATE_PARAMETERS.items():
            if parameter not in parameters:
                continue
            try:
                setattr(log, attribute, parse_datetime(parameters[parameter]))
            except ValueError:
                return f"{parameter} is not a valid date: {parameters[parameter]}"

        for parameter, attribute in FLAG_PARAMETERS.items():
            if parameter in parameters:
                setattr(log, attribute, bool(parameters[parameter]))

        if "triggerDate" in parameters and "isScheduled" not in parameters:
            # A future trigger date schedules the event
            log.is_scheduled = bool(log.trigger_date and log.trigger_date > datetime.now(timezone.utc).replace(tzinfo=None))

        if "metadata" in parameters:
            if not isinstance(parameters["metadata"], dict):
                return "metadata must be an object"
            log.metadata_ = {**(log.metadata_ or {}), **parameters["metadata"]}

        return None
