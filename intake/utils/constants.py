# intake/utils/constants.py

"""
Global constants for roles, statuses, and photo phases.
These constants are imported by models, schemas, and services.
"""

import enum


class AppRole(str, enum.Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    VIEWER = "viewer"


class VehicleStatus(str, enum.Enum):
    AWAITING_DROPOFF = "awaiting_dropoff"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"


class PhotoType(str, enum.Enum):
    CHECKIN = "checkin"
    CHECKOUT = "checkout"


class PersonType(str, enum.Enum):
    COMPANY = "juridica"
    INDIVIDUAL = "fisica"


TERMINAL_STATUSES = frozenset({VehicleStatus.CHECKED_OUT, VehicleStatus.CANCELLED})

# Display labels used by reports and dashboard views
STATUS_LABELS = {
    VehicleStatus.AWAITING_DROPOFF: "Aguardando Entrada",
    VehicleStatus.CHECKED_IN: "Veículo em Atendimento",
    VehicleStatus.CHECKED_OUT: "Atendimento Finalizado",
    VehicleStatus.CANCELLED: "Cancelado",
}

PLATE_LENGTH = 7
