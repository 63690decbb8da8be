# app/services/contact_service.py
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core import events
from app.core.events import DEFAULT_CONTEXT, EventDispatcher, SyncContext
from app.core.exceptions import ObjectNotFoundError
from app.models.company import Company, CompanyContact
from app.models.contact import Contact, DoNotContact, DNC_CHANNELS, DNC_REASONS

# Set up logging
logger = logging.getLogger(__name__)

EDITABLE_FIELDS = Contact.__tracked_fields__ + ("points", "owner_id")


class ContactModel:
    """Saves and deletes contacts and announces it on the event dispatcher"""

    def __init__(self, db: Session, dispatcher: EventDispatcher):
        self.db = db
        self.dispatcher = dispatcher

    def get_entity(self, contact_id: int) -> Contact:
        contact = self.db.query(Contact).filter(Contact.id == contact_id).first()
        if contact is None:
            raise ObjectNotFoundError("Contact", contact_id)
        return contact

    def set_field_values(self, contact: Contact, data: Dict[str, Any]) -> Contact:
        unknown = set(data) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown contact fields: {', '.join(sorted(unknown))}")

        for name, value in data.items():
            if name == "points":
                value = int(value or 0)
            setattr(contact, name, value)
        return contact

    def save_entity(self, contact: Contact, context: SyncContext = DEFAULT_CONTEXT) -> Contact:
        is_new = contact.id is None
        contact.snapshot_changes()

        self.db.add(contact)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error saving contact: {str(e)}")
            raise

        logger.debug(f"Saved contact {contact.id} (new={is_new})")
        self.dispatcher.dispatch(events.CONTACT_POST_SAVE, events.ContactEvent(contact, context, is_new=is_new))
        return contact

    def delete_entity(self, contact: Contact, context: SyncContext = DEFAULT_CONTEXT) -> int:
        deleted_id = contact.id

        self.db.delete(contact)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting contact {deleted_id}: {str(e)}")
            raise

        logger.info(f"Deleted contact {deleted_id}")
        self.dispatcher.dispatch(
            events.CONTACT_POST_DELETE, events.ContactEvent(contact, context, deleted_id=deleted_id)
        )
        return deleted_id

    def add_dnc(
            self,
            contact: Contact,
            channel: str,
            reason: str = "manual",
            comments: Optional[str] = None,
            context: SyncContext = DEFAULT_CONTEXT
    ) -> bool:
        """Mark a contact do-not-contact on a channel; False when nothing changed"""
        if channel not in DNC_CHANNELS:
            raise ValueError(f"Unknown channel: {channel}")
        if reason not in DNC_REASONS:
            raise ValueError(f"Unknown do not contact reason: {reason}")

        old_reason = contact.get_dnc_reason(channel)
        if old_reason == reason:
            return False

        entry = next((e for e in contact.do_not_contact if e.channel == channel), None)
        if entry is None:
            entry = DoNotContact(channel=channel)
            contact.do_not_contact.append(entry)
        entry.reason = reason
        entry.comments = comments

        contact.record_dnc_change(channel, old_reason, reason)
        self.save_entity(contact, context)
        return True

    def remove_dnc(self, contact: Contact, channel: str, context: SyncContext = DEFAULT_CONTEXT) -> bool:
        entry = next((e for e in contact.do_not_contact if e.channel == channel), None)
        if entry is None:
            return False

        contact.do_not_contact.remove(entry)
        contact.record_dnc_change(channel, entry.reason, "")
        self.save_entity(contact, context)
        return True

    def add_to_company(self, contact: Contact, company: Company, context: SyncContext = DEFAULT_CONTEXT) -> bool:
        """Make company the contact's primary company"""
        memberships = self.db.query(CompanyContact).filter(CompanyContact.lead_id == contact.id).all()
        current = next((m for m in memberships if m.company_id == company.id), None)
        if current is not None and current.is_primary and contact.company == company.companyname:
            return False

        for membership in memberships:
            membership.is_primary = False
        if current is None:
            current = CompanyContact(company_id=company.id, lead_id=contact.id)
            self.db.add(current)
        current.is_primary = True

        contact.company = company.companyname
        self.save_entity(contact, context)

        self.dispatcher.dispatch(
            events.CONTACT_COMPANY_CHANGE,
            events.ContactCompanyChangeEvent(contact, company, added=True, context=context)
        )
        return True

    def remove_from_company(self, contact: Contact, company: Company, context: SyncContext = DEFAULT_CONTEXT) -> bool:
        membership = self.db.query(CompanyContact).filter(
            CompanyContact.lead_id == contact.id,
            CompanyContact.company_id == company.id
        ).first()
        if membership is None:
            return False

        self.db.delete(membership)
        if contact.company == company.companyname:
            contact.company = None
        self.save_entity(contact, context)

        self.dispatcher.dispatch(
            events.CONTACT_COMPANY_CHANGE,
            events.ContactCompanyChangeEvent(contact, company, added=False, context=context)
        )
        return True
