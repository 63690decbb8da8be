# app/sync/field_change_repository.py
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.models.field_change import FieldChange

logger = logging.getLogger(__name__)


class FieldChangeRepository:
    """Persistence of the field change ledger on a SQLAlchemy session"""

    def __init__(self, db: Session):
        self.db = db

    def delete_for_object(self, object_id: int, object_type: str) -> int:
        result = self.db.execute(
            delete(FieldChange)
            .where(FieldChange.object_type == object_type, FieldChange.object_id == object_id)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        logger.debug(f"Deleted {result.rowcount} field changes for {object_type}:{object_id}")
        return result.rowcount

    def delete_for_object_and_columns(self, object_id: int, object_type: str, columns: Iterable[str]) -> int:
        """Delete changes of the given columns for every integration; commits with save_batch"""
        columns = list(columns)
        if not columns:
            return 0

        result = self.db.execute(
            delete(FieldChange)
            .where(
                FieldChange.object_type == object_type,
                FieldChange.object_id == object_id,
                FieldChange.column_name.in_(columns),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def save_batch(self, rows: List[FieldChange]) -> None:
        self.db.add_all(rows)
        self.db.commit()
        logger.debug(f"Saved {len(rows)} field changes")

    def clear(self) -> None:
        """Detach ledger rows from the session so they are not held in memory"""
        for instance in list(self.db):
            if isinstance(instance, FieldChange):
                self.db.expunge(instance)

    def find_changes_for_object(self, integration: str, object_type: str, object_id: int) -> List[FieldChange]:
        return list(self.db.scalars(
            select(FieldChange)
            .where(
                FieldChange.integration == integration,
                FieldChange.object_type == object_type,
                FieldChange.object_id == object_id,
            )
            .order_by(FieldChange.column_name)
        ))

    def find_changes_before(
            self,
            integration: str,
            object_type: str,
            to_date: datetime,
            after_object_id: Optional[int] = None,
            object_limit: Optional[int] = None
    ) -> List[FieldChange]:
        """Changes modified up to to_date, for at most object_limit objects in object id order"""
        conditions = [
            FieldChange.integration == integration,
            FieldChange.object_type == object_type,
            FieldChange.modified_at <= to_date,
        ]
        if after_object_id is not None:
            conditions.append(FieldChange.object_id > after_object_id)

        object_ids = (
            select(FieldChange.object_id)
            .where(*conditions)
            .group_by(FieldChange.object_id)
            .order_by(FieldChange.object_id)
        )
        if object_limit:
            object_ids = object_ids.limit(object_limit)

        ids = list(self.db.scalars(object_ids))
        if not ids:
            return []

        return list(self.db.scalars(
            select(FieldChange)
            .where(*conditions, FieldChange.object_id.in_(ids))
            .order_by(FieldChange.object_id, FieldChange.modified_at, FieldChange.column_name)
        ))
