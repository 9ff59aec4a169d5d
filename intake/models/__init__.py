# Vehicle Intake - Database Models
# Import all models here for SQLAlchemy discovery

from intake.models.client import Client                # noqa
from intake.models.vehicle import Vehicle              # noqa
from intake.models.vehicle_photo import VehiclePhoto   # noqa
from intake.models.profile import Profile              # noqa
from intake.models.user_role import UserRole           # noqa
from intake.models.auth import AuthUser, AuthSession   # noqa
