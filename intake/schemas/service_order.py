# intake/schemas/service_order.py
"""
Mirrored service orders from the external system.

The foreign schema is only partly known. Known columns are mapped to typed
fields by name (FOREIGN_FIELDS); every other column is kept verbatim in
`extra` so nothing the external system sends is lost.
"""

from pydantic import BaseModel, Field
from typing import Any, Optional

from intake.utils.constants import VehicleStatus

# typed field -> foreign column
FOREIGN_FIELDS = {
    "id": "id",
    "number": "numero",
    "raw_status": "status",
    "plate": "veiculo_placa",
    "client_name": "cliente_nome",
    "service_type": "tipo_servico",
    "odometer": "km",
    "fuel_level": "combustivel",
    "entry_date": "data_entrada",
    "completion_date": "data_conclusao",
    "checkin_at": "data_checkin",
    "checkout_at": "data_checkout",
    "checkin_photo_url": "foto_checkin_url",
    "checkout_photo_url": "foto_checkout_url",
    "defect_description": "descricao_defeito",
    "notes": "observacoes",
}
EMBEDDED_VEHICLE = "vehicle"
EMBEDDED_CLIENT = "client"

VEHICLE_FIELDS = {"plate": "placa", "model": "modelo", "brand": "marca", "year": "ano",
                  "color": "cor", "chassis": "chassi"}
CLIENT_FIELDS = {"name": "nome", "tax_id": "cpf_cnpj", "phone": "telefone", "email": "email"}

# photo phase -> (photo url column, timestamp column)
PHASE_COLUMNS = {
    "checkin": ("foto_checkin_url", "data_checkin"),
    "checkout": ("foto_checkout_url", "data_checkout"),
}
COMPLETION_COLUMN = "data_conclusao"


class OrderVehicle(BaseModel):
    plate: Optional[str] = None
    model: Optional[str] = None
    brand: Optional[str] = None
    year: Optional[Any] = None
    color: Optional[str] = None
    chassis: Optional[str] = None


class OrderClient(BaseModel):
    name: Optional[str] = None
    tax_id: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


def _pick(source: dict, mapping: dict) -> dict:
    return {field: source.get(column) for field, column in mapping.items() if source.get(column) is not None}


class ServiceOrder(BaseModel):
    id: str
    number: Optional[str] = None
    status: Optional[VehicleStatus] = None       # canonical; None when the raw value is unknown
    raw_status: Optional[str] = None
    plate: Optional[str] = None
    client_name: Optional[str] = None
    vehicle: Optional[OrderVehicle] = None
    client: Optional[OrderClient] = None
    service_type: Optional[str] = None
    odometer: Optional[Any] = None
    fuel_level: Optional[str] = None
    entry_date: Optional[str] = None
    completion_date: Optional[str] = None
    checkin_at: Optional[str] = None
    checkout_at: Optional[str] = None
    checkin_photo_url: Optional[str] = None
    checkout_photo_url: Optional[str] = None
    defect_description: Optional[str] = None
    notes: Optional[str] = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, record: dict, vocabulary) -> "ServiceOrder":
        known = set(FOREIGN_FIELDS.values()) | {EMBEDDED_VEHICLE, EMBEDDED_CLIENT}
        values = _pick(record, FOREIGN_FIELDS)
        values["id"] = str(record.get("id"))
        for key in ("number", "checkin_at", "checkout_at", "entry_date", "completion_date"):
            if key in values:
                values[key] = str(values[key])

        vehicle = record.get(EMBEDDED_VEHICLE)
        if isinstance(vehicle, dict):
            values["vehicle"] = OrderVehicle(**_pick(vehicle, VEHICLE_FIELDS))
        client = record.get(EMBEDDED_CLIENT)
        if isinstance(client, dict):
            values["client"] = OrderClient(**_pick(client, CLIENT_FIELDS))

        if not values.get("plate") and values.get("vehicle") and values["vehicle"].plate:
            values["plate"] = values["vehicle"].plate
        if values.get("plate"):
            values["plate"] = str(values["plate"]).upper()

        values["status"] = vocabulary.to_canonical(record.get("status"), record)
        values["extra"] = {k: v for k, v in record.items() if k not in known}
        return cls(**values)


class ServiceOrderRequest(BaseModel):
    plates: Optional[list[str]] = None
    status: Optional[str] = None
    os_id: Optional[str] = None
    action: Optional[str] = None           # update_status | checkin_photo | checkout_photo | list_statuses
    new_status: Optional[str] = None
    photo_base64: Optional[str] = None
    content_type: Optional[str] = None
