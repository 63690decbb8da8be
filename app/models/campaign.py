# app/models/campaign.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON, Index, func
from sqlalchemy.orm import relationship

from app.core.db_base import Base


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    is_published = Column(Boolean, default=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    date_added = Column(DateTime, default=func.now())

    events = relationship("CampaignEvent", back_populates="campaign", order_by="CampaignEvent.order")
    memberships = relationship("CampaignLead", back_populates="campaign")

    def get_contact_membership(self, contact) -> list:
        """Membership rows of a contact that has not been manually removed"""
        return [
            membership for membership in self.memberships
            if membership.lead_id == contact.id and not membership.manually_removed
        ]

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "isPublished": self.is_published,
        }


class CampaignEvent(Base):
    __tablename__ = "campaign_events"

    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)  # e.g. email.send
    event_type = Column(String, nullable=False)  # action, decision or condition
    order = Column(Integer, default=0)

    campaign = relationship("Campaign", back_populates="events")
    logs = relationship("LeadEventLog", back_populates="event")

    def to_dict(self, logs=None):
        result = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "eventType": self.event_type,
            "campaign": {"id": self.campaign_id},
        }
        if logs is not None:
            result["contactLog"] = [log.to_dict() for log in logs]
        return result


class CampaignLead(Base):
    __tablename__ = "campaign_leads"

    id = Column(Integer, primary_key=True, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True)
    rotation = Column(Integer, default=1, nullable=False)
    manually_removed = Column(Boolean, default=False)
    manually_added = Column(Boolean, default=False)
    date_added = Column(DateTime, default=func.now())

    campaign = relationship("Campaign", back_populates="memberships")

    def to_dict(self):
        return {
            "campaign": {"id": self.campaign_id},
            "contact": {"id": self.lead_id},
            "rotation": self.rotation,
            "manuallyRemoved": self.manually_removed,
            "manuallyAdded": self.manually_added,
            "dateAdded": self.date_added.isoformat() if self.date_added else None,
        }


class LeadEventLog(Base):
    __tablename__ = "campaign_lead_event_log"
    __table_args__ = (
        Index("campaign_lead_event_log_contact_rotation", "lead_id", "campaign_id", "rotation"),
    )

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("campaign_events.id", ondelete="CASCADE"), nullable=False, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=True)
    rotation = Column(Integer, default=1, nullable=False)
    is_scheduled = Column(Boolean, default=False)
    trigger_date = Column(DateTime, nullable=True)
    date_triggered = Column(DateTime, nullable=True)
    system_triggered = Column(Boolean, default=False)
    non_action_path_taken = Column(Boolean, default=False)
    metadata_ = Column("metadata", JSON, default=dict)

    event = relationship("CampaignEvent", back_populates="logs")

    def to_dict(self):
        return {
            "id": self.id,
            "event": {"id": self.event_id},
            "contact": {"id": self.lead_id},
            "campaign": {"id": self.campaign_id},
            "rotation": self.rotation,
            "isScheduled": self.is_scheduled,
            "triggerDate": self.trigger_date.isoformat() if self.trigger_date else None,
            "dateTriggered": self.date_triggered.isoformat() if self.date_triggered else None,
            "systemTriggered": self.system_triggered,
            "nonActionPathTaken": self.non_action_path_taken,
            "metadata": self.metadata_ or {},
        }
