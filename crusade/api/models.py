"""
SQLAlchemy models for saved campaigns.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text

from .database import Base


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(String(36), primary_key=True)  # uuid
    name = Column(String(128), nullable=False)
    setup_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    campaign_state = Column(Text, nullable=False)  # JSON string of CampaignState.to_dict()
    config = Column(Text, nullable=True)  # JSON: {"definitions": snapshot, "campaign_config": {...}}
