# app/schemas/emergency_alert.py
from pydantic import BaseModel, Field, computed_field
from datetime import datetime
from enum import Enum
from typing import Annotated, Optional

# NaN slips through ge/le comparisons, so it is refused explicitly
Latitude = Annotated[float, Field(ge=-90, le=90, allow_inf_nan=False)]
Longitude = Annotated[float, Field(ge=-180, le=180, allow_inf_nan=False)]


class AlertType(str, Enum):
    DANGER = "danger"      # life-safety emergency, rings the dashboard
    CONTACT = "contact"    # "please call me back"


class SiteSummary(BaseModel):
    site_name: Optional[str] = None
    contact_name: Optional[str] = None

    class Config:
        from_attributes = True


class EmergencyAlertOut(BaseModel):
    id: str
    site_id: str
    type: AlertType
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timestamp: datetime
    acknowledged: bool = False
    site: Optional[SiteSummary] = None

    @computed_field
    @property
    def map_url(self) -> Optional[str]:
        if self.latitude is None or self.longitude is None:
            return None
        return f"https://www.google.com/maps?q={self.latitude},{self.longitude}"

    class Config:
        from_attributes = True


class AlertSubmission(BaseModel):
    """A portal submission after the query string has been checked."""
    site_id: str = Field(min_length=1)
    type: AlertType
    latitude: Optional[Latitude] = None
    longitude: Optional[Longitude] = None


class AcknowledgeOut(BaseModel):
    id: str
    acknowledged: bool


class AlertSummary(BaseModel):
    total: int
    open: int
    open_danger: int


class EmergencyNumber(BaseModel):
    name: str
    number: str


class SitePortalInfo(BaseModel):
    site_name: Optional[str] = None
    contact_name: Optional[str] = None
    emergency_numbers: list[EmergencyNumber] = []
