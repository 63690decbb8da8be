# app/models/user.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, func

from app.core.db_base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, index=True, nullable=True)
    full_name = Column(String, nullable=True)
    hashed_password = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)
    is_admin = Column(Boolean, default=False)
    can_edit = Column(Boolean, default=False)
    created_at = Column(DateTime, default=func.now())
    last_login = Column(DateTime, nullable=True)

    def owns(self, owner_id) -> bool:
        """Unowned records are shared; owned ones belong to their owner"""
        return owner_id is None or owner_id == self.id

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"
