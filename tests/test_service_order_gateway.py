# tests/test_service_order_gateway.py
"""
Gateway tests against an in-memory PostgREST stand-in (httpx.MockTransport).
No network; every request the gateway sends is recorded for inspection.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
import httpx
import pytest
from intake.exceptions import (
    ExternalServiceError,
    InvalidTransitionError,
    PartialUpdateError,
    PermissionDeniedError,
    RecordLockedError,
    StatusRejectedError,
    StorageError,
    ValidationError,
)
from intake.schemas.service_order import ServiceOrderRequest
from intake.services.order_vocabulary import FOUR_STATE, THREE_STATE
from intake.services.service_order_gateway import ServiceOrderGateway, get_gateway, handle_request
from intake.utils.constants import PhotoType, VehicleStatus

BASE_URL = "https://orders.test"
PHOTO = "aGVsbG8="


class FakeOrders:
    """Just enough of a PostgREST table plus storage bucket for the gateway."""

    def __init__(self, rows, patch_error=None, upload_status=200, down=False):
        self.rows = {str(r["id"]): dict(r) for r in rows}
        self.patch_error = patch_error
        self.upload_status = upload_status
        self.down = down
        self.requests = []

    def sent(self, method):
        return [r for r in self.requests if r.method == method]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)

        if request.url.path.startswith("/storage/"):
            return httpx.Response(self.upload_status, json={"Key": request.url.path})

        params = request.url.params
        if request.method == "GET":
            rows = list(self.rows.values())
            if "id" in params:
                rows = [r for r in rows if f"eq.{r['id']}" == params["id"]]
            if "status" in params:
                rows = [r for r in rows if f"eq.{r['status']}" == params["status"]]
            if params.get("select") == "status":
                rows = [{"status": r["status"]} for r in rows]
            return httpx.Response(200, json=rows)

        if request.method == "PATCH":
            if self.patch_error:
                return httpx.Response(self.patch_error[0], json=self.patch_error[1])
            row = self.rows.get(params["id"][3:])
            if row is None:
                return httpx.Response(200, json=[])
            row.update(json.loads(request.content))
            return httpx.Response(200, json=[row])

        return httpx.Response(405)


def gateway(fake, vocabulary=FOUR_STATE):
    return ServiceOrderGateway(BASE_URL, "key-123", "os-photos", vocabulary,
                               transport=httpx.MockTransport(fake))


def order(id=1, status="aguardando_entrada", plate="ABC1234", **extra):
    return {"id": id, "numero": 1000 + id, "status": status, "veiculo_placa": plate, **extra}


class TestQuery:
    @pytest.mark.asyncio
    async def test_plates_filter_and_auth_headers(self):
        fake = FakeOrders([order(1), order(2, plate="DDD1D11"), order(3, plate="ZZZ9Z99")])
        orders = await gateway(fake).query(["abc-1234", "ddd1d11"])

        request = fake.requests[0]
        assert request.url.path == "/rest/v1/service_orders"
        assert request.url.params["veiculo_placa"] == "in.(ABC1234,DDD1D11)"
        assert request.url.params["select"] == "*"
        assert request.headers["apikey"] == "key-123"
        assert request.headers["authorization"] == "Bearer key-123"
        assert len(orders) == 3
        assert orders[0].status == VehicleStatus.AWAITING_DROPOFF

    @pytest.mark.asyncio
    async def test_filter_required(self):
        fake = FakeOrders([])
        with pytest.raises(ValidationError):
            await gateway(fake).query([], None)
        with pytest.raises(ValidationError):
            await gateway(fake).query(["--"])
        assert fake.requests == []

    @pytest.mark.asyncio
    async def test_three_state_status_filter(self):
        fake = FakeOrders([
            order(1, status="aberta"),
            order(2, status="aberta", data_checkin="2024-05-01T10:00:00"),
            order(3, status="finalizada"),
        ])
        orders = await gateway(fake, THREE_STATE).query(status="checked_in")
        assert fake.requests[0].url.params["status"] == "eq.aberta"
        assert [o.id for o in orders] == ["2"]

    @pytest.mark.asyncio
    async def test_unreachable(self):
        with pytest.raises(ExternalServiceError):
            await gateway(FakeOrders([], down=True)).query(["ABC1234"])

    @pytest.mark.asyncio
    async def test_list_statuses_falls_back_to_vocabulary(self):
        assert await gateway(FakeOrders([])).list_statuses() == sorted(FOUR_STATE.outbound.values())
        fake = FakeOrders([order(1), order(2, status="em_servico")])
        assert await gateway(fake).list_statuses() == ["aguardando_entrada", "em_servico"]


class TestUpdateStatus:
    @pytest.mark.asyncio
    async def test_check_in_maps_status_and_stamps(self, db, manager):
        fake = FakeOrders([order(1)])
        updated = await gateway(fake).update_status(manager, "1", "checked_in")

        body = json.loads(fake.sent("PATCH")[0].content)
        assert body["status"] == "check_in"
        assert "data_checkin" in body
        assert fake.sent("PATCH")[0].headers["prefer"] == "return=representation"
        assert updated.status == VehicleStatus.CHECKED_IN

    @pytest.mark.asyncio
    async def test_check_out_sets_completion_date(self, db, manager):
        fake = FakeOrders([order(1, status="check_in")])
        await gateway(fake).update_status(manager, "1", "check_out")
        body = json.loads(fake.sent("PATCH")[0].content)
        assert body["status"] == "check_out" and "data_checkout" in body and "data_conclusao" in body

    @pytest.mark.asyncio
    async def test_three_state_check_in_reads_back_checked_in(self, db, manager):
        fake = FakeOrders([order(1, status="aberta")])
        updated = await gateway(fake, THREE_STATE).update_status(manager, "1", "checked_in")
        assert json.loads(fake.sent("PATCH")[0].content)["status"] == "aberta"
        assert updated.status == VehicleStatus.CHECKED_IN

    @pytest.mark.asyncio
    async def test_capability_required(self, db, viewer):
        fake = FakeOrders([order(1)])
        with pytest.raises(PermissionDeniedError):
            await gateway(fake).update_status(viewer, "1", "check_in")
        assert fake.sent("PATCH") == []

    @pytest.mark.asyncio
    async def test_locked_order(self, db, admin):
        fake = FakeOrders([order(1, status="cancelado")])
        with pytest.raises(RecordLockedError):
            await gateway(fake).update_status(admin, "1", "check_in")

    @pytest.mark.asyncio
    async def test_wrong_source_and_backwards(self, db, manager):
        fake = FakeOrders([order(1)])
        with pytest.raises(InvalidTransitionError):
            await gateway(fake).update_status(manager, "1", "check_out")
        with pytest.raises(InvalidTransitionError):
            await gateway(fake).update_status(manager, "1", "aguardando_entrada")
        assert fake.sent("PATCH") == []

    @pytest.mark.asyncio
    async def test_enum_rejection_lists_valid_values(self, db, manager):
        fake = FakeOrders([order(1), order(2, status="em_servico")],
                          patch_error=(400, {"code": "22P02",
                                             "message": 'invalid input value for enum os_status: "check_in"'}))
        with pytest.raises(StatusRejectedError) as exc:
            await gateway(fake).update_status(manager, "1", "check_in")
        assert exc.value.attempted == "check_in"
        assert exc.value.valid_statuses == ["aguardando_entrada", "em_servico"]

    @pytest.mark.asyncio
    async def test_other_failure(self, db, manager):
        fake = FakeOrders([order(1)], patch_error=(500, {"message": "boom"}))
        with pytest.raises(ExternalServiceError) as exc:
            await gateway(fake).update_status(manager, "1", "check_in")
        assert not isinstance(exc.value, StatusRejectedError)


class TestPhaseUpload:
    @pytest.mark.asyncio
    async def test_upload_then_single_update(self, db, manager):
        fake = FakeOrders([order(1)])
        updated, url = await gateway(fake).upload_phase_photo(manager, "1", PhotoType.CHECKIN, PHOTO, "image/png")

        upload = fake.sent("POST")[0]
        assert upload.url.path.startswith("/storage/v1/object/os-photos/1/checkin_")
        assert upload.url.path.endswith(".png")
        assert upload.content == b"hello"
        patches = fake.sent("PATCH")
        assert len(patches) == 1
        body = json.loads(patches[0].content)
        assert body["status"] == "check_in"
        assert body["foto_checkin_url"].startswith(f"{BASE_URL}/storage/v1/object/public/os-photos/1/checkin_")
        assert updated.checkin_photo_url == body["foto_checkin_url"] == url

    @pytest.mark.asyncio
    async def test_upload_failure_leaves_order_alone(self, db, manager):
        fake = FakeOrders([order(1)], upload_status=400)
        with pytest.raises(StorageError):
            await gateway(fake).upload_phase_photo(manager, "1", PhotoType.CHECKIN, PHOTO, "image/png")
        assert fake.sent("PATCH") == []

    @pytest.mark.asyncio
    async def test_partial_update_reports_uploaded_object(self, db, manager):
        fake = FakeOrders([order(1, status="check_in")], patch_error=(500, {"message": "timeout"}))
        with pytest.raises(PartialUpdateError) as exc:
            await gateway(fake).upload_phase_photo(manager, "1", PhotoType.CHECKOUT, PHOTO, "image/jpeg")
        assert exc.value.details["path"].startswith("1/checkout_")
        assert exc.value.details["url"].endswith(exc.value.details["path"])

    @pytest.mark.asyncio
    async def test_enum_rejection_after_upload_keeps_object(self, db, manager):
        fake = FakeOrders([order(1), order(2, status="em_servico")],
                          patch_error=(400, {"code": "22P02",
                                             "message": 'invalid input value for enum os_status: "check_in"'}))
        with pytest.raises(PartialUpdateError) as exc:
            await gateway(fake).upload_phase_photo(manager, "1", PhotoType.CHECKIN, PHOTO, "image/png")
        details = exc.value.details
        assert len(fake.sent("POST")) == 1
        assert details["path"].startswith("1/checkin_")
        assert details["url"] == f"{BASE_URL}/storage/v1/object/public/os-photos/{details['path']}"
        assert details["attempted"] == "check_in"
        assert details["valid_statuses"] == ["aguardando_entrada", "em_servico"]

    @pytest.mark.asyncio
    async def test_bad_photo_rejected_before_network(self, db, manager):
        fake = FakeOrders([order(1)])
        with pytest.raises(ValidationError):
            await gateway(fake).upload_phase_photo(manager, "1", PhotoType.CHECKIN, PHOTO, "text/plain")
        assert fake.requests == []


class TestHandleRequest:
    @pytest.mark.asyncio
    async def test_dispatch(self, db, manager):
        gw = gateway(FakeOrders([order(1)]))
        result = await handle_request(gw, manager, ServiceOrderRequest(plates=["abc1234"]))
        assert result["orders"][0]["status"] == "awaiting_dropoff"

        result = await handle_request(gw, manager, ServiceOrderRequest(os_id="1"))
        assert result["order"]["plate"] == "ABC1234"

        result = await handle_request(gw, manager, ServiceOrderRequest(action="list_statuses"))
        assert result == {"statuses": ["aguardando_entrada"]}

        result = await handle_request(gw, manager, ServiceOrderRequest(
            action="update_status", os_id="1", new_status="check_in"))
        assert result["success"] is True and result["order"]["status"] == "checked_in"

        result = await handle_request(gw, manager, ServiceOrderRequest(
            action="checkout_photo", os_id="1", photo_base64=PHOTO, content_type="image/jpeg"))
        assert result["success"] is True and result["order"]["status"] == "checked_out"
        assert result["photo_url"].startswith(f"{BASE_URL}/storage/v1/object/public/os-photos/1/checkout_")
        assert result["order"]["checkout_photo_url"] == result["photo_url"]

    @pytest.mark.asyncio
    async def test_missing_fields(self, db, manager):
        gw = gateway(FakeOrders([order(1)]))
        with pytest.raises(ValidationError):
            await handle_request(gw, manager, ServiceOrderRequest(action="update_status", os_id="1"))
        with pytest.raises(ValidationError):
            await handle_request(gw, manager, ServiceOrderRequest(action="checkin_photo", os_id="1"))
        with pytest.raises(ValidationError):
            await handle_request(gw, manager, ServiceOrderRequest(action="reopen"))


def test_gateway_requires_credentials():
    with pytest.raises(ExternalServiceError):
        get_gateway()
