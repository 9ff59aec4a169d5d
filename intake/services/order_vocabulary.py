# intake/services/order_vocabulary.py
"""
Status vocabulary mapping for the external service-order system.

Inside the application every order speaks VehicleStatus. Deployments of the
external system use one of two vocabularies; the mapping lives only here.

  four_state : aguardando_entrada / check_in / check_out / cancelado
  three_state: aberta / finalizada / cancelado
               (an open order with a check-in timestamp reads as checked_in)
"""

from typing import Optional

from intake.exceptions import ExternalServiceError, ValidationError
from intake.utils.constants import VehicleStatus


class StatusVocabulary:
    def __init__(self, name: str, outbound: dict, inbound: dict, checked_in_marker: Optional[str] = None):
        self.name = name
        self.outbound = outbound
        self.inbound = inbound
        self.checked_in_marker = checked_in_marker

    def to_foreign(self, status) -> str:
        return self.outbound[VehicleStatus(status)]

    def to_canonical(self, raw: Optional[str], record: Optional[dict] = None) -> Optional[VehicleStatus]:
        """None for a value this vocabulary does not know."""
        if raw is None:
            return None
        status = self.inbound.get(raw)
        if (status == VehicleStatus.AWAITING_DROPOFF and self.checked_in_marker
                and record and record.get(self.checked_in_marker)):
            return VehicleStatus.CHECKED_IN
        return status

    def parse_requested(self, value: str) -> VehicleStatus:
        """Accept a canonical value or this vocabulary's own spelling of it."""
        try:
            return VehicleStatus(value)
        except ValueError:
            pass
        status = self.inbound.get(value)
        if status is None:
            raise ValidationError(f"Error: unknown status '{value}'")
        return status


FOUR_STATE = StatusVocabulary(
    "four_state",
    outbound={
        VehicleStatus.AWAITING_DROPOFF: "aguardando_entrada",
        VehicleStatus.CHECKED_IN: "check_in",
        VehicleStatus.CHECKED_OUT: "check_out",
        VehicleStatus.CANCELLED: "cancelado",
    },
    inbound={
        "aguardando_entrada": VehicleStatus.AWAITING_DROPOFF,
        "check_in": VehicleStatus.CHECKED_IN,
        "check_out": VehicleStatus.CHECKED_OUT,
        "cancelado": VehicleStatus.CANCELLED,
    },
)

THREE_STATE = StatusVocabulary(
    "three_state",
    outbound={
        VehicleStatus.AWAITING_DROPOFF: "aberta",
        VehicleStatus.CHECKED_IN: "aberta",
        VehicleStatus.CHECKED_OUT: "finalizada",
        VehicleStatus.CANCELLED: "cancelado",
    },
    inbound={
        "aberta": VehicleStatus.AWAITING_DROPOFF,
        "finalizada": VehicleStatus.CHECKED_OUT,
        "cancelado": VehicleStatus.CANCELLED,
    },
    checked_in_marker="data_checkin",
)

VOCABULARIES = {v.name: v for v in (FOUR_STATE, THREE_STATE)}


def get_vocabulary(name: str) -> StatusVocabulary:
    try:
        return VOCABULARIES[name]
    except KeyError:
        raise ExternalServiceError(f"Error: unknown service-order status variant '{name}'")
