import asyncio
import pytest
from conftest import principal
from core.broker import InMemoryBroker, order_channel
from core.exceptions import AuthorizationError, NotFoundError
from models.orders import OrderStatus
from models.rider_locations import RiderLocation
from schemas.location_schemas import RiderLocationRequest, OrderLocationsResponse
from services.location_service import LocationService


def report(session, rider, order_id, lat, lng, **kwargs):
    return LocationService.record_rider_location(
        session, principal(rider), RiderLocationRequest(order_id=order_id, latitude=lat, longitude=lng), **kwargs
    )


def test_assigned_rider_records_location(session, rider, make_order):
    order = make_order(status=OrderStatus.PICKED_UP, rider=rider)

    sample = report(session, rider, order.id, 30.03, 31.23)

    assert sample.id is not None
    assert sample.rider_id == rider.id
    assert sample.recorded_at is not None
    assert session.query(RiderLocation).filter(RiderLocation.order_id == order.id).count() == 1


def test_unassigned_rider_cannot_record(session, rider, other_rider, make_order):
    order = make_order(status=OrderStatus.PICKED_UP, rider=rider)

    with pytest.raises(AuthorizationError):
        report(session, other_rider, order.id, 30.0, 31.0)


def test_record_on_order_without_rider(session, rider, make_order):
    order = make_order(status=OrderStatus.READY)

    with pytest.raises(AuthorizationError):
        report(session, rider, order.id, 30.0, 31.0)


def test_record_unknown_order(session, rider):
    with pytest.raises(NotFoundError):
        report(session, rider, 999, 30.0, 31.0)


def test_history_limit_keeps_newest(session, rider, make_order):
    order = make_order(status=OrderStatus.OUT_FOR_DELIVERY, rider=rider)

    for n in range(5):
        report(session, rider, order.id, 30.0 + n / 100, 31.0, history_limit=3)

    kept = session.query(RiderLocation).filter(
        RiderLocation.order_id == order.id
    ).order_by(RiderLocation.id).all()

    assert [round(s.latitude, 2) for s in kept] == [30.02, 30.03, 30.04]


def test_history_unbounded_by_default(session, rider, make_order):
    order = make_order(status=OrderStatus.OUT_FOR_DELIVERY, rider=rider)

    for n in range(5):
        report(session, rider, order.id, 30.0, 31.0)

    assert session.query(RiderLocation).filter(RiderLocation.order_id == order.id).count() == 5


async def test_location_is_relayed(session, rider, make_order):
    broker = InMemoryBroker()
    order = make_order(status=OrderStatus.PICKED_UP, rider=rider)
    subscription = broker.subscribe(order_channel(order.id))

    report(session, rider, order.id, 30.05, 31.25, broker=broker)

    event = await asyncio.wait_for(subscription.get(), timeout=1)
    assert event["type"] == "rider_location"
    assert event["order_id"] == order.id
    assert event["latitude"] == 30.05
    assert event["longitude"] == 31.25
    assert event["timestamp"]


def test_broken_broker_does_not_fail_the_write(session, rider, make_order):
    class BrokenBroker:
        def publish(self, channel, payload):
            raise RuntimeError("no transport")

        def subscribe(self, channel):
            raise NotImplementedError

    order = make_order(status=OrderStatus.PICKED_UP, rider=rider)

    report(session, rider, order.id, 30.0, 31.0, broker=BrokenBroker())

    assert session.query(RiderLocation).count() == 1


def test_order_locations_view(session, customer, restaurant, rider, make_order):
    order = make_order(status=OrderStatus.PICKED_UP, rider=rider)
    report(session, rider, order.id, 30.1, 31.1)
    report(session, rider, order.id, 30.2, 31.2)

    view = OrderLocationsResponse.model_validate(
        LocationService.get_order_locations(session, principal(customer), order.id), from_attributes=True
    )

    assert view.customer.name == customer.name
    assert view.customer.latitude == customer.latitude
    assert view.restaurant.name == restaurant.name
    assert view.restaurant.address == restaurant.address
    assert view.rider.name == rider.name
    assert view.rider.vehicle_type == "motorcycle"
    assert view.rider.current_location.latitude == 30.2
    assert view.rider.current_location.longitude == 31.2


def test_order_locations_without_rider(session, owner, make_order):
    order = make_order()

    view = LocationService.get_order_locations(session, principal(owner), order.id)

    assert view["rider"] is None


def test_order_locations_before_first_sample(session, rider, make_order):
    order = make_order(status=OrderStatus.READY, rider=rider)

    view = LocationService.get_order_locations(session, principal(rider), order.id)

    assert view["rider"]["current_location"] is None


def test_unrelated_customer_cannot_see_locations(session, other_customer, make_order):
    order = make_order()

    with pytest.raises(AuthorizationError):
        LocationService.get_order_locations(session, principal(other_customer), order.id)


def test_admin_sees_locations(session, admin, make_order):
    order = make_order()

    assert LocationService.get_order_locations(session, principal(admin), order.id)["customer"]
