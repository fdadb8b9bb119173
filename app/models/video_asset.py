from enum import Enum as PyEnum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db import Base

class AssetStatus(str, PyEnum):
    pending = "pending"
    processing = "processing"
    ready = "ready"
    error = "error"

class VideoAsset(Base):
    __tablename__ = "video_assets"

    id = Column(Integer, primary_key=True)
    content_id = Column(Integer, ForeignKey("contents.id", ondelete="CASCADE"), unique=True, nullable=False)

    youtube_url = Column(String(512), nullable=True)
    youtube_video_id = Column(String(64), nullable=True)
    youtube_status = Column(String(16), nullable=False, default=AssetStatus.pending.value)

    mux_asset_id = Column(String(128), unique=True, nullable=True)
    mux_playback_id = Column(String(128), nullable=True)
    mux_url = Column(String(512), nullable=True)
    mux_status = Column(String(16), nullable=False, default=AssetStatus.pending.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    content = relationship("Content", back_populates="video_asset")
