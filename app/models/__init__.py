# Emergency alert pipeline: database models
# Import all models here for SQLAlchemy discovery

from app.models.site import Site                        # noqa
from app.models.emergency_alert import EmergencyAlert  # noqa
