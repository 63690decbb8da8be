# app/models/contact.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, func
from sqlalchemy.orm import relationship

from app.core.db_base import Base
from app.models.tracking import ChangeTrackingMixin

OBJECT_CONTACT = "contact"

# Channels a contact can be marked do-not-contact on
DNC_CHANNELS = ("email", "sms", "phone")

# Reasons stored on lead_donotcontact; an empty string means contactable
DNC_REASONS = ("unsubscribed", "bounced", "manual")


class Contact(ChangeTrackingMixin, Base):
    __tablename__ = "leads"

    object_type = OBJECT_CONTACT

    __tracked_fields__ = (
        "firstname", "lastname", "email", "phone", "company", "city", "country",
    )
    __tracked_attributes__ = {"owner_id": "owner", "points": "points"}

    id = Column(Integer, primary_key=True, index=True)
    firstname = Column(String, nullable=True)
    lastname = Column(String, nullable=True)
    email = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True)
    company = Column(String, nullable=True)  # Name of the primary company
    city = Column(String, nullable=True)
    country = Column(String, nullable=True)
    points = Column(Integer, default=0, nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    date_added = Column(DateTime, default=func.now())
    date_modified = Column(DateTime, default=func.now(), onupdate=func.now())

    do_not_contact = relationship(
        "DoNotContact", back_populates="contact", cascade="all, delete-orphan"
    )

    @property
    def is_anonymous(self) -> bool:
        """A visitor placeholder with nothing that identifies a person"""
        return not (self.firstname or self.lastname or self.email or self.company)

    def get_dnc_reason(self, channel: str) -> str:
        for entry in self.do_not_contact:
            if entry.channel == channel:
                return entry.reason
        return ""

    def record_dnc_change(self, channel: str, old_reason: str, new_reason: str) -> None:
        self.add_extra_change(
            "dnc_channel_status", channel, {"old_reason": old_reason, "reason": new_reason}
        )

    def to_dict(self):
        result = {column.name: getattr(self, column.name)
                  for column in self.__table__.columns}
        result["do_not_contact"] = {entry.channel: entry.reason for entry in self.do_not_contact}
        return result

    def __repr__(self):
        return f"<Contact(id={self.id}, email={self.email})>"


class DoNotContact(Base):
    __tablename__ = "lead_donotcontact"

    id = Column(Integer, primary_key=True, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True)
    channel = Column(String, nullable=False)
    reason = Column(String, nullable=False)
    comments = Column(Text, nullable=True)
    date_added = Column(DateTime, default=func.now())

    contact = relationship("Contact", back_populates="do_not_contact")
