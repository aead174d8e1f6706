import asyncio
from contextlib import suppress
from typing import Optional
from fastapi import APIRouter, HTTPException, Request, WebSocket, status
from starlette.websockets import WebSocketState
from utils.deps import db_dependency, user_dependency, broker_dependency
from schemas.location_schemas import RiderLocationRequest, OrderLocationsResponse
from schemas.order_schemas import LocationSample
from services.location_service import LocationService
from services.token_service import TokenService
from core.broker import order_channel
from middleware.rate_limiter import limiter
from utils.logger import get_logger

logger = get_logger(__name__)


router = APIRouter(
    prefix="/location",
    tags=["location"]
)


@router.post("/rider", status_code=status.HTTP_200_OK)
@limiter.limit("120/minute")
async def update_rider_location(request: Request, body: RiderLocationRequest, user: user_dependency,
    db: db_dependency, broker: broker_dependency):
    """Position report from the rider assigned to the order."""
    sample = LocationService.record_rider_location(db, user, body, broker)

    return {
        "message": "Location updated successfully",
        "location": LocationSample.model_validate(sample).model_dump(mode="json")
    }


@router.get("/order/{order_id}", status_code=status.HTTP_200_OK)
@limiter.limit("120/minute")
async def get_order_locations(request: Request, order_id: int, user: user_dependency, db: db_dependency):
    locations = LocationService.get_order_locations(db, user, order_id)

    return {
        "locations": OrderLocationsResponse.model_validate(locations, from_attributes=True).model_dump(mode="json")
    }
async def _wait_for_disconnect(websocket: WebSocket) -> None:
    # Clients only listen; reading just waits for the disconnect
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws/orders/{order_id}")
async def order_updates(websocket: WebSocket, order_id: int, broker: broker_dependency,
    token: Optional[str] = None):
    """
    Live order events (status changes, assignment, rider positions).

    Authenticate with ``?token=<access token>``. The first message is
    ``{"type": "subscribed", "channel": ...}``; every event published for the
    order afterwards is forwarded as JSON until the client disconnects.

    The access check uses its own short-lived session: no database
    connection is held while the subscription is open.
    """
    try:
        if not token:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
        user = TokenService.decode_access_token(token)
        with websocket.app.state.database.session() as db:
            LocationService.check_subscription_access(db, user, order_id)
    except HTTPException as e:
        logger.warning(
            "Order subscription refused",
            extra={"order_id": order_id, "status_code": e.status_code, "reason": e.detail}
        )
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    channel = order_channel(order_id)
    subscription = broker.subscribe(channel)

    logger.info("Order subscription opened", extra={"order_id": order_id, "user_id": user.get("user_id")})

    async def forward():
        async for payload in subscription:
            await websocket.send_json(payload)

    try:
        await websocket.send_json({"type": "subscribed", "channel": channel})

        forward_task = asyncio.create_task(forward())
        receive_task = asyncio.create_task(_wait_for_disconnect(websocket))
        done, pending = await asyncio.wait({forward_task, receive_task}, return_when=asyncio.FIRST_COMPLETED)

        for task in pending:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

        if forward_task in done and forward_task.exception() is not None:
            error = forward_task.exception()
            logger.error(
                f"Order subscription failed: {str(error)}",
                extra={"order_id": order_id, "error_type": type(error).__name__}
            )
            if (websocket.client_state == WebSocketState.CONNECTED
                    and websocket.application_state == WebSocketState.CONNECTED):
                await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        elif receive_task in done:
            receive_task.result()
    finally:
        subscription.close()
        logger.info("Order subscription closed", extra={"order_id": order_id})
