# app/models/field_change.py
from sqlalchemy import Column, Integer, String, Text, DateTime, Index, func

from app.core.db_base import Base


class FieldChange(Base):
    """Pending value of one object column, queued for one integration to sync"""
    __tablename__ = "sync_object_field_change_report"
    __table_args__ = (
        Index("object_composite_key", "object_type", "object_id", "column_name"),
        Index("integration_object_type_modification_composite_key", "integration", "object_type", "modified_at"),
        Index("integration_object_composite_key", "integration", "object_type", "object_id", "column_name"),
    )

    id = Column(Integer, primary_key=True, index=True)
    integration = Column(String, nullable=False)
    object_type = Column(String, nullable=False)
    object_id = Column(Integer, nullable=False)
    column_name = Column(String, nullable=False)
    column_type = Column(String, nullable=False)  # Variable encoder type tag
    column_value = Column(Text, nullable=False)  # Variable encoder serialized value
    modified_at = Column(DateTime, nullable=False, default=func.now())

    def to_dict(self):
        return {column.name: getattr(self, column.name)
                for column in self.__table__.columns}

    def __repr__(self):
        return (f"<FieldChange({self.integration} {self.object_type}:{self.object_id} "
                f"{self.column_name})>")
