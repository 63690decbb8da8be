# app/models/company.py
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, func
from sqlalchemy.orm import relationship

from app.core.db_base import Base
from app.models.tracking import ChangeTrackingMixin

OBJECT_COMPANY = "company"


class Company(ChangeTrackingMixin, Base):
    __tablename__ = "companies"

    object_type = OBJECT_COMPANY

    __tracked_fields__ = (
        "companyname", "companyemail", "companyphone", "companycity",
        "companycountry", "companywebsite",
    )
    __tracked_attributes__ = {"owner_id": "owner"}

    id = Column(Integer, primary_key=True, index=True)
    companyname = Column(String, nullable=False, index=True)
    companyemail = Column(String, nullable=True)
    companyphone = Column(String, nullable=True)
    companycity = Column(String, nullable=True)
    companycountry = Column(String, nullable=True)
    companywebsite = Column(String, nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    date_added = Column(DateTime, default=func.now())

    memberships = relationship(
        "CompanyContact", back_populates="company", cascade="all, delete-orphan"
    )

    def to_dict(self):
        return {column.name: getattr(self, column.name)
                for column in self.__table__.columns}

    def __repr__(self):
        return f"<Company(id={self.id}, name={self.companyname})>"


class CompanyContact(Base):
    __tablename__ = "companies_leads"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True)
    is_primary = Column(Boolean, default=False)
    date_added = Column(DateTime, default=func.now())

    company = relationship("Company", back_populates="memberships")
    contact = relationship("Contact")
