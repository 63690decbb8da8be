# app/sync/object_mapping_repository.py
import logging

from sqlalchemy import delete
from sqlalchemy.orm import Session

from app.models.object_mapping import ObjectMapping

logger = logging.getLogger(__name__)


class ObjectMappingRepository:
    def __init__(self, db: Session):
        self.db = db

    def delete_for_object(self, internal_object_id: int, internal_object_name: str) -> int:
        result = self.db.execute(
            delete(ObjectMapping)
            .where(
                ObjectMapping.internal_object_name == internal_object_name,
                ObjectMapping.internal_object_id == internal_object_id,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        logger.debug(f"Deleted {result.rowcount} object mappings for {internal_object_name}:{internal_object_id}")
        return result.rowcount

