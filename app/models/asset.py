# app/models/asset.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, func

from app.core.db_base import Base


class Asset(Base):
    __tablename__ = "assets"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    alias = Column(String, nullable=False, index=True)
    path = Column(String, nullable=False)  # Relative to ASSET_UPLOAD_DIR
    original_file_name = Column(String, nullable=False)
    mime = Column(String, nullable=False, default="application/octet-stream")
    is_published = Column(Boolean, default=True)
    download_count = Column(Integer, default=0)
    unique_download_count = Column(Integer, default=0)
    date_added = Column(DateTime, default=func.now())

    @property
    def slug(self) -> str:
        return f"{self.id}:{self.alias}"


class Download(Base):
    __tablename__ = "asset_downloads"

    id = Column(Integer, primary_key=True, index=True)
    asset_id = Column(Integer, ForeignKey("assets.id", ondelete="CASCADE"), nullable=False, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id", ondelete="SET NULL"), nullable=True)
    tracking_id = Column(String, nullable=False, index=True)
    code = Column(Integer, nullable=False)
    referer = Column(String, nullable=True)
    utm_source = Column(String, nullable=True)
    utm_medium = Column(String, nullable=True)
    utm_campaign = Column(String, nullable=True)
    utm_term = Column(String, nullable=True)
    utm_content = Column(String, nullable=True)
    date_download = Column(DateTime, default=func.now())
