# app/models/object_mapping.py
from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON, Index, func

from app.core.db_base import Base


class ObjectMapping(Base):
    """Correlates an internal object with its counterpart in an integration"""
    __tablename__ = "sync_object_mapping"
    __table_args__ = (
        Index("integration_object", "integration", "integration_object_name", "integration_object_id"),
        Index("internal_object", "internal_object_name", "internal_object_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    date_created = Column(DateTime, default=func.now())
    integration = Column(String, nullable=False)
    internal_object_name = Column(String, nullable=False)
    internal_object_id = Column(Integer, nullable=False)
    integration_object_name = Column(String, nullable=False)
    integration_object_id = Column(String, nullable=False)
    integration_reference_id = Column(String, nullable=True)
    last_sync_date = Column(DateTime, default=func.now())
    internal_storage = Column(JSON, default=dict)
    is_deleted = Column(Boolean, default=False)
