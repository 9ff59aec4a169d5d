# tests/test_order_vocabulary.py
"""Status mapping between the app and the two service-order vocabularies."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from intake.exceptions import ExternalServiceError, ValidationError
from intake.schemas.service_order import ServiceOrder
from intake.services.order_vocabulary import FOUR_STATE, THREE_STATE, get_vocabulary
from intake.utils.constants import VehicleStatus


class TestFourState:
    @pytest.mark.parametrize("status", list(VehicleStatus))
    def test_round_trip(self, status):
        assert FOUR_STATE.to_canonical(FOUR_STATE.to_foreign(status)) == status

    def test_unknown_value(self):
        assert FOUR_STATE.to_canonical("em_andamento") is None
        assert FOUR_STATE.to_canonical(None) is None

    def test_parse_requested_accepts_both_spellings(self):
        assert FOUR_STATE.parse_requested("check_in") == VehicleStatus.CHECKED_IN
        assert FOUR_STATE.parse_requested("checked_in") == VehicleStatus.CHECKED_IN
        with pytest.raises(ValidationError):
            FOUR_STATE.parse_requested("open")


class TestThreeState:
    def test_outbound(self):
        assert THREE_STATE.to_foreign(VehicleStatus.AWAITING_DROPOFF) == "aberta"
        assert THREE_STATE.to_foreign(VehicleStatus.CHECKED_IN) == "aberta"
        assert THREE_STATE.to_foreign(VehicleStatus.CHECKED_OUT) == "finalizada"
        assert THREE_STATE.to_foreign(VehicleStatus.CANCELLED) == "cancelado"

    def test_open_with_checkin_timestamp_reads_checked_in(self):
        assert THREE_STATE.to_canonical("aberta", {"data_checkin": None}) == VehicleStatus.AWAITING_DROPOFF
        assert THREE_STATE.to_canonical("aberta", {"data_checkin": "2024-05-01T10:00:00"}) == VehicleStatus.CHECKED_IN
        assert THREE_STATE.to_canonical("finalizada", {"data_checkin": "x"}) == VehicleStatus.CHECKED_OUT


def test_unknown_variant():
    assert get_vocabulary("three_state") is THREE_STATE
    with pytest.raises(ExternalServiceError):
        get_vocabulary("five_state")


class TestServiceOrderRecord:
    def test_known_fields_typed_and_rest_kept(self):
        record = {
            "id": 42, "numero": 1001, "status": "check_in", "veiculo_placa": "abc1d23",
            "km": 54000, "data_checkin": "2024-05-01T10:00:00",
            "vehicle": {"placa": "ABC1D23", "modelo": "Onix", "ano": 2020},
            "client": {"nome": "Alfa", "cpf_cnpj": "12.345.678/0001-90"},
            "prioridade": "alta", "mecanico_id": 7,
        }
        order = ServiceOrder.from_record(record, FOUR_STATE)
        assert order.id == "42" and order.number == "1001"
        assert order.status == VehicleStatus.CHECKED_IN and order.raw_status == "check_in"
        assert order.plate == "ABC1D23"
        assert order.vehicle.model == "Onix" and order.client.tax_id == "12.345.678/0001-90"
        assert order.extra == {"prioridade": "alta", "mecanico_id": 7}

    def test_plate_from_embedded_vehicle(self):
        order = ServiceOrder.from_record({"id": 1, "status": "aberta", "vehicle": {"placa": "xyz9a87"}}, THREE_STATE)
        assert order.plate == "XYZ9A87"
        assert order.status == VehicleStatus.AWAITING_DROPOFF
