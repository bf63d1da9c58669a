# app/models/site.py
"""
Sites table: the subset of the client-site record the alert pipeline reads.
Site management lives elsewhere; alerts only reference a site and resolve its
display fields (site_name, contact_name) at read time.
"""

import secrets
import uuid

from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from app.database import Base


def new_emergency_link_id() -> str:
    return secrets.token_urlsafe(16)


class Site(Base):
    __tablename__ = "sites"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    site_name = Column(String(200))
    contact_name = Column(String(200))
    contact_phone = Column(String(50))
    emergency_link_id = Column(String(64), unique=True, nullable=False, index=True, default=new_emergency_link_id)
    status = Column(String(20), default="active", nullable=False)   # active | inactive

    alerts = relationship("EmergencyAlert", back_populates="site")

    def __repr__(self):
        return f"<Site {self.id} name={self.site_name} status={self.status}>"
