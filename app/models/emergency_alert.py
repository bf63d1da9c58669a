# app/models/emergency_alert.py
"""
Emergency alerts table, one row per portal submission (danger / contact).
Rows are written by the public ingestion endpoint and only ever mutated by
operators flipping `acknowledged` to true.
"""

import uuid

from sqlalchemy import Column, String, DateTime, Float, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base


class EmergencyAlert(Base):
    __tablename__ = "emergency_alerts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    site_id = Column(String(36), ForeignKey("sites.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False, index=True)   # danger | contact
    latitude = Column(Float)
    longitude = Column(Float)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    acknowledged = Column(Boolean, default=False, nullable=False)

    site = relationship("Site", back_populates="alerts")

    def __repr__(self):
        return f"<EmergencyAlert {self.id} type={self.type} acknowledged={self.acknowledged}>"
