# app/models/integration.py
from sqlalchemy import Column, Integer, String, Boolean, JSON

from app.core.db_base import Base


class IntegrationConfig(Base):
    """Runtime configuration of one integration"""
    __tablename__ = "integrations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True, index=True)
    is_published = Column(Boolean, default=False)
    sync_enabled = Column(Boolean, default=False)
    sync_objects = Column(JSON, default=list)  # Internal object types to sync, e.g. ["contact"]

    def syncs_object(self, object_type: str) -> bool:
        return bool(self.is_published and self.sync_enabled and object_type in (self.sync_objects or []))
