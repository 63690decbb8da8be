# app/services/company_service.py
import logging
from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core import events
from app.core.events import DEFAULT_CONTEXT, EventDispatcher, SyncContext
from app.core.exceptions import ObjectNotFoundError
from app.models.company import Company

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = Company.__tracked_fields__ + ("owner_id",)


class CompanyModel:
    def __init__(self, db: Session, dispatcher: EventDispatcher):
        self.db = db
        self.dispatcher = dispatcher

    def get_entity(self, company_id: int) -> Company:
        company = self.db.query(Company).filter(Company.id == company_id).first()
        if company is None:
            raise ObjectNotFoundError("Company", company_id)
        return company

    def set_field_values(self, company: Company, data: Dict[str, Any]) -> Company:
        unknown = set(data) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown company fields: {', '.join(sorted(unknown))}")

        for name, value in data.items():
            setattr(company, name, value)
        return company

    def save_entity(self, company: Company, context: SyncContext = DEFAULT_CONTEXT) -> Company:
        if not company.companyname:
            raise ValueError("companyname is required")

        is_new = company.id is None
        company.snapshot_changes()

        self.db.add(company)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error saving company: {str(e)}")
            raise

        self.dispatcher.dispatch(events.COMPANY_POST_SAVE, events.CompanyEvent(company, context, is_new=is_new))
        return company

    def delete_entity(self, company: Company, context: SyncContext = DEFAULT_CONTEXT) -> int:
        deleted_id = company.id

        self.db.delete(company)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting company {deleted_id}: {str(e)}")
            raise

        logger.info(f"Deleted company {deleted_id}")
        self.dispatcher.dispatch(
            events.COMPANY_POST_DELETE, events.CompanyEvent(company, context, deleted_id=deleted_id)
        )
        return deleted_id
