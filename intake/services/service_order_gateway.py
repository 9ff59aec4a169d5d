# intake/services/service_order_gateway.py
"""
Adapter for the external service-order system (PostgREST-style REST + object storage).

Endpoints used:
    GET   {url}/rest/v1/service_orders?veiculo_placa=in.(A,B)&status=eq.X&id=eq.N
    PATCH {url}/rest/v1/service_orders?id=eq.N          (Prefer: return=representation)
    POST  {url}/storage/v1/object/{bucket}/{order_id}/{phase}_{ms}.{ext}

Every request carries `apikey` and `Authorization: Bearer <key>`.
Statuses cross this boundary only through the configured StatusVocabulary;
the same capability and source-state rules as local vehicles apply,
evaluated on the canonical status.
"""

from datetime import datetime, timezone
from typing import Optional

import httpx

from intake.config import settings
from intake.exceptions import (
    ExternalServiceError,
    InvalidTransitionError,
    NotFoundError,
    PartialUpdateError,
    StatusRejectedError,
    StorageError,
    ValidationError,
)
from intake.schemas.service_order import (
    COMPLETION_COLUMN,
    PHASE_COLUMNS,
    ServiceOrder,
    ServiceOrderRequest,
)
from intake.services.auth_service import SessionContext
from intake.services.inflight import inflight
from intake.services.order_vocabulary import StatusVocabulary, get_vocabulary
from intake.services.photo_storage import decode_photo, photo_timestamp
from intake.services.status_machine import TRANSITIONS, Transition, check_transition
from intake.utils.constants import PhotoType, VehicleStatus
from intake.utils.logger import get_logger
from intake.utils.normalize import normalize_plate

logger = get_logger(__name__)

TABLE_PATH = "/rest/v1/service_orders"
ENUM_ERROR_CODE = "22P02"
ENUM_ERROR_TEXT = "invalid input value for enum"

# canonical target status -> transition that reaches it
TRANSITION_TO = {rule.target: transition for transition, rule in TRANSITIONS.items()}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _is_enum_rejection(response: httpx.Response) -> bool:
    if response.status_code < 400:
        return False
    try:
        body = response.json()
    except ValueError:
        return ENUM_ERROR_TEXT in response.text
    if not isinstance(body, dict):
        return False
    return body.get("code") == ENUM_ERROR_CODE or ENUM_ERROR_TEXT in str(body.get("message", ""))


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
        if isinstance(body, dict):
            return str(body.get("message") or body.get("error") or body)
    except ValueError:
        pass
    return response.text[:200]


class ServiceOrderGateway:
    def __init__(self, base_url: str, api_key: str, bucket: str, vocabulary: StatusVocabulary,
                 timeout: float = 15.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.bucket = bucket
        self.vocabulary = vocabulary
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"apikey": self.api_key, "Authorization": f"Bearer {self.api_key}"}
        return httpx.AsyncClient(base_url=self.base_url, headers=headers,
                                 timeout=self.timeout, transport=self.transport)

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            async with self._client() as client:
                return await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"[ORDERS] {method} {path} failed: {e}")
            raise ExternalServiceError("Error: service-order system unreachable", reason=str(e))

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    # ── Reads ────────────────────────────────────────────────────────────────

    async def _select(self, params: dict) -> list[dict]:
        response = await self._send("GET", TABLE_PATH, params={"select": "*", **params})
        if response.status_code >= 400:
            logger.error(f"[ORDERS] Query failed HTTP {response.status_code}: {_error_text(response)}")
            raise ExternalServiceError("Error: failed to fetch service orders", reason=_error_text(response))
        return response.json() or []

    async def query(self, plates: Optional[list[str]] = None, status: Optional[str] = None) -> list[ServiceOrder]:
        """Orders for a set of plates and/or one status. At least one filter is required."""
        plates = [normalize_plate(p) for p in (plates or []) if normalize_plate(p)]
        if not plates and not status:
            raise ValidationError("Error: plates or status required")

        params = {}
        if plates:
            params["veiculo_placa"] = f"in.({','.join(plates)})"
        if status:
            wanted = self.vocabulary.parse_requested(status)
            params["status"] = f"eq.{self.vocabulary.to_foreign(wanted)}"
        rows = await self._select(params)
        orders = [ServiceOrder.from_record(r, self.vocabulary) for r in rows]
        if status:
            # three_state stores checked_in and awaiting_dropoff under the same value
            orders = [o for o in orders if o.status == wanted]
        logger.debug(f"[ORDERS] {len(orders)} orders for plates={plates} status={status}")
        return orders

    async def get(self, order_id: str) -> ServiceOrder:
        rows = await self._select({"id": f"eq.{order_id}"})
        if not rows:
            raise NotFoundError("Error: service order not found")
        return ServiceOrder.from_record(rows[0], self.vocabulary)

    async def list_statuses(self) -> list[str]:
        """Status values the foreign store currently holds; the vocabulary's own set if it holds none."""
        rows = await self._select({"select": "status"})
        found = sorted({str(r["status"]) for r in rows if r.get("status") is not None})
        return found or sorted(set(self.vocabulary.outbound.values()))

    # ── Writes ───────────────────────────────────────────────────────────────

    async def _patch(self, order_id: str, values: dict) -> ServiceOrder:
        response = await self._send(
            "PATCH", TABLE_PATH,
            params={"id": f"eq.{order_id}"},
            json=values,
            headers={"Prefer": "return=representation"},
        )
        if _is_enum_rejection(response):
            attempted = values.get("status")
            try:
                valid = await self.list_statuses()
            except ExternalServiceError:
                valid = []
            logger.error(f"[ORDERS] Status '{attempted}' rejected for {order_id}; valid: {valid}")
            raise StatusRejectedError(attempted, valid)
        if response.status_code >= 400:
            logger.error(f"[ORDERS] Update of {order_id} failed HTTP {response.status_code}: {_error_text(response)}")
            raise ExternalServiceError("Error: failed to update service order", reason=_error_text(response))

        rows = response.json() or []
        if not rows:
            raise NotFoundError("Error: service order not found")
        return ServiceOrder.from_record(rows[0], self.vocabulary)

    def _transition_values(self, transition: Transition, now: datetime) -> dict:
        rule = TRANSITIONS[transition]
        values = {"status": self.vocabulary.to_foreign(rule.target)}
        if rule.photo_type is not None:
            _, stamp_column = PHASE_COLUMNS[rule.photo_type.value]
            values[stamp_column] = now.isoformat()
        if rule.target == VehicleStatus.CHECKED_OUT:
            values[COMPLETION_COLUMN] = now.date().isoformat()
        return values

    async def _validated(self, ctx: SessionContext, order_id: str, transition: Transition) -> ServiceOrder:
        order = await self.get(order_id)
        if order.status is None:
            raise InvalidTransitionError(f"Error: service order has unknown status '{order.raw_status}'")
        check_transition(order.status, transition, ctx.permissions)
        return order

    async def update_status(self, ctx: SessionContext, order_id: str, new_status: str) -> ServiceOrder:
        target = self.vocabulary.parse_requested(new_status)
        transition = TRANSITION_TO.get(target)
        if transition is None:
            raise InvalidTransitionError(f"Error: an order cannot be moved back to {target.value}")

        with inflight.claim("service_order", order_id):
            order = await self._validated(ctx, order_id, transition)
            updated = await self._patch(order_id, self._transition_values(transition, _now()))

        logger.info(f"[ORDERS] {order_id} {order.status.value} -> {target.value} by {ctx.profile.username}")
        return updated

    async def upload_phase_photo(self, ctx: SessionContext, order_id: str, phase: PhotoType,
                                 photo_base64: Optional[str], content_type: Optional[str]) -> tuple[ServiceOrder, str]:
        """
        Upload the photo, then one row update with photo url, phase timestamp,
        mapped status and (check-out) completion date. Returns (order, photo url).
        An upload that succeeded before a failed row update is reported as
        PartialUpdateError naming the uploaded object, not removed.
        """
        phase = PhotoType(phase)
        transition = {PhotoType.CHECKIN: Transition.CHECK_IN, PhotoType.CHECKOUT: Transition.CHECK_OUT}[phase]
        data, ext = decode_photo(photo_base64, content_type)

        with inflight.claim("service_order", order_id):
            order = await self._validated(ctx, order_id, transition)
            now = _now()
            path = f"{order_id}/{phase.value}_{photo_timestamp(now)}.{ext}"
            response = await self._send(
                "POST", f"/storage/v1/object/{self.bucket}/{path}",
                content=data,
                headers={"Content-Type": content_type or "image/jpeg", "x-upsert": "false"},
            )
            if response.status_code >= 400:
                logger.error(f"[ORDERS] Upload of {path} failed HTTP {response.status_code}: {_error_text(response)}")
                raise StorageError("Error: photo upload failed", reason=_error_text(response))

            url = self.public_url(path)
            photo_column, _ = PHASE_COLUMNS[phase.value]
            values = self._transition_values(transition, now)
            values[photo_column] = url
            try:
                updated = await self._patch(order_id, values)
            except StatusRejectedError as e:
                logger.error(f"[ORDERS] Photo {path} uploaded but status '{e.attempted}' rejected for {order_id}")
                raise PartialUpdateError(path=path, url=url, reason=e.message, **e.details)
            except (ExternalServiceError, NotFoundError) as e:
                logger.error(f"[ORDERS] Photo {path} uploaded but order {order_id} not updated: {e}")
                raise PartialUpdateError(path=path, url=url, reason=str(e))

        logger.info(f"[ORDERS] {order_id} {phase.value} photo {path}; {order.status.value} -> "
                    f"{TRANSITIONS[transition].target.value} by {ctx.profile.username}")
        return updated, url


def get_gateway(transport: Optional[httpx.AsyncBaseTransport] = None) -> ServiceOrderGateway:
    if not settings.service_orders_enabled:
        raise ExternalServiceError("Error: service-order system credentials not configured")
    return ServiceOrderGateway(
        settings.SERVICE_ORDER_URL,
        settings.SERVICE_ORDER_API_KEY,
        settings.SERVICE_ORDER_BUCKET,
        get_vocabulary(settings.SERVICE_ORDER_STATUS_VARIANT),
        timeout=settings.SERVICE_ORDER_TIMEOUT_SECONDS,
        transport=transport,
    )


async def handle_request(gateway: ServiceOrderGateway, ctx: SessionContext, body: ServiceOrderRequest) -> dict:
    """One POST body -> one gateway call. Returns the JSON payload for the endpoint."""
    action = body.action
    if action == "list_statuses":
        return {"statuses": await gateway.list_statuses()}

    if action == "update_status":
        if not body.os_id or not body.new_status:
            raise ValidationError("Error: os_id and new_status required")
        order = await gateway.update_status(ctx, body.os_id, body.new_status)
        return {"success": True, "order": order.model_dump(mode="json")}

    if action in ("checkin_photo", "checkout_photo"):
        if not body.os_id or not body.photo_base64 or not body.content_type:
            raise ValidationError("Error: os_id, photo_base64 and content_type required")
        phase = PhotoType.CHECKIN if action == "checkin_photo" else PhotoType.CHECKOUT
        order, photo_url = await gateway.upload_phase_photo(ctx, body.os_id, phase, body.photo_base64,
                                                            body.content_type)
        return {"success": True, "order": order.model_dump(mode="json"), "photo_url": photo_url}

    if action:
        raise ValidationError(f"Error: unknown action '{action}'")

    if body.os_id:
        return {"order": (await gateway.get(body.os_id)).model_dump(mode="json")}

    orders = await gateway.query(body.plates, body.status)
    return {"orders": [o.model_dump(mode="json") for o in orders]}
