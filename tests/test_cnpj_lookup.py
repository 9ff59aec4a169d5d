# tests/test_cnpj_lookup.py
"""Company-registry prefill and service-request intake."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from unittest.mock import MagicMock, patch
import pytest
import requests
from intake.exceptions import ExternalServiceError, NotFoundError, PermissionDeniedError, ValidationError
from intake.schemas.vehicle import ServiceRequestIn
from intake.services import vehicle_service
from intake.services.cnpj_lookup import lookup_cnpj
from intake.services.service_request_service import process_service_request
from intake.utils.constants import VehicleStatus

REGISTRY_RECORD = {
    "cnpj": "12345678000190",
    "razao_social": "TRANSPORTES ALFA LTDA",
    "nome_fantasia": "ALFA",
    "logradouro": "RUA DAS FLORES",
    "numero": "100",
    "bairro": "CENTRO",
    "municipio": "SAO PAULO",
    "uf": "SP",
    "cep": "01001000",
    "ddd_telefone_1": "11987654321",
    "email": "CONTATO@ALFA.COM.BR",
}


def response(status_code, body=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body
    return resp


class TestCnpjLookup:
    def test_prefill_fields(self):
        with patch("intake.services.cnpj_lookup.requests.get", return_value=response(200, dict(REGISTRY_RECORD))) as get:
            out = lookup_cnpj("12.345.678/0001-90")
        assert get.call_args[0][0].endswith("/12345678000190")
        assert out.cnpj == "12.345.678/0001-90"
        assert out.name == "TRANSPORTES ALFA LTDA" and out.trade_name == "ALFA"
        assert out.address == "RUA DAS FLORES, 100, CENTRO, SAO PAULO, SP, 01001000"
        assert out.phone == "(11) 98765-4321"
        assert out.email == "contato@alfa.com.br"

    def test_not_found(self):
        with patch("intake.services.cnpj_lookup.requests.get", return_value=response(404)):
            with pytest.raises(NotFoundError) as exc:
                lookup_cnpj("12345678000190")
        assert exc.value.details == {"cnpj": "12345678000190"}

    def test_registry_down(self):
        with patch("intake.services.cnpj_lookup.requests.get",
                   side_effect=requests.exceptions.ConnectionError("refused")):
            with pytest.raises(ExternalServiceError):
                lookup_cnpj("12345678000190")

    def test_short_cnpj_rejected_without_request(self):
        with patch("intake.services.cnpj_lookup.requests.get") as get:
            with pytest.raises(ValidationError):
                lookup_cnpj("1234")
        get.assert_not_called()


class TestServiceRequest:
    def body(self, cnpj="12345678000190"):
        return ServiceRequestIn(plate="abc-1234", model="Onix", odometer=54000, cnpj=cnpj,
                                defect_description="Barulho no freio")

    def test_opens_vehicle_for_known_client(self, db, manager, client_row):
        out = process_service_request(db, manager, self.body("12.345.678/0001-90"))
        assert out.success and out.client_name == "Transportes Alfa Ltda"
        vehicle = vehicle_service.get_vehicle(db, out.vehicle_id)
        assert vehicle.plate == "ABC1234" and vehicle.status == VehicleStatus.AWAITING_DROPOFF
        assert vehicle.client_id == client_row.id and vehicle.needs_tow is False

    def test_unknown_client(self, db, manager, client_row):
        with pytest.raises(NotFoundError) as exc:
            process_service_request(db, manager, self.body("98765432000110"))
        assert exc.value.message == "Cliente não encontrado"
        assert exc.value.details == {"cnpj": "98765432000110"}

    def test_requires_edit(self, db, viewer, client_row):
        with pytest.raises(PermissionDeniedError):
            process_service_request(db, viewer, self.body())
