from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import JSON, Text

from app.models.mixins import SYSTEM_ACTOR, TRACKING_ACTOR
from app.models.shipment import Shipment, ShipmentTrackingRecord
from app.schemas.tracking import TRACKING_RECORD_FIELDS
from app.services.shipment_tracking_repository import (
    ShipmentTrackingRepository,
    is_sentinel_status,
)
from app.services.tracking_errors import StoreError
from tests.factories import create_order, make_record, shipment_for


def test_locator_returns_every_match_with_nested_positions(db_session):
    first = create_order(
        db_session,
        "VB-1001",
        [[("AAAU0000001", "IN_TRANSIT")], [("OTHER000001", None), ("ABC123", "IN_TRANSIT")]],
    )
    second = create_order(db_session, "VB-1002", [[("ABC123", "IN_TRANSIT")]])
    repository = ShipmentTrackingRepository(db_session)

    matches = repository.find_shipments_by_container("ABC123")

    assert [(m.order_id, m.sub_order_index, m.shipment_index) for m in matches] == [
        (first.id, 1, 1),
        (second.id, 0, 0),
    ]
    assert [m.po_number for m in matches] == ["VB-1001", "VB-1002"]


@pytest.mark.parametrize("container_no", ["", "   ", "TBD", "tbd", None])
def test_locator_ignores_untracked_container_numbers(db_session, container_no):
    create_order(db_session, "VB-1001", [[("", None), ("TBD", None)]])
    repository = ShipmentTrackingRepository(db_session)

    assert repository.find_shipments_by_container(container_no) == []


def test_locator_returns_empty_list_when_nothing_matches(db_session):
    create_order(db_session, "VB-1001", [[("ABC123", None)]])

    assert ShipmentTrackingRepository(db_session).find_shipments_by_container("ZZZ999") == []


def test_apply_update_appends_and_sets_status(db_session):
    order = create_order(db_session, "VB-1001", [[("ABC123", "BOOKED")]])
    repository = ShipmentTrackingRepository(db_session)

    result = repository.apply_update(order.id, "ABC123", make_record(status="IN_TRANSIT"))
    db_session.commit()

    shipment = shipment_for(db_session, "VB-1001", "ABC123")
    assert result.matched == 1
    assert result.modified == 1
    assert result.status_updated == 1
    assert shipment.status == "IN_TRANSIT"
    assert shipment.last_changed_by == TRACKING_ACTOR
    assert len(shipment.tracking_records) == 1
    assert shipment.tracking_records[0].latlong == "10, 20"
    assert shipment.tracking_records[0].pol_actual is True
    assert shipment.tracking_records[0].timestamp is not None


@pytest.mark.parametrize("sentinel", ["UNKNOWN", "error", ""])
def test_apply_update_never_regresses_status_to_sentinel(db_session, sentinel):
    order = create_order(db_session, "VB-1001", [[("ABC123", "IN_TRANSIT")]])
    repository = ShipmentTrackingRepository(db_session)

    result = repository.apply_update(order.id, "ABC123", make_record(status=sentinel))
    db_session.commit()

    shipment = shipment_for(db_session, "VB-1001", "ABC123")
    assert result.modified == 1
    assert result.status_updated == 0
    assert shipment.status == "IN_TRANSIT"
    assert shipment.last_changed_by == SYSTEM_ACTOR
    assert [r.status for r in shipment.tracking_records] == [sentinel]


def test_apply_update_targets_by_container_not_by_captured_index(db_session):
    order = create_order(db_session, "VB-1001", [[("ABC123", "BOOKED"), ("XYZ789", "BOOKED")]])
    repository = ShipmentTrackingRepository(db_session)
    [location] = repository.find_shipments_by_container("ABC123")
    assert location.shipment_index == 0

    # A concurrent edit inserts a shipment at the head of the list, shifting positions.
    customer_order = order.customer_orders[0]
    for shipment in customer_order.shipments:
        shipment.position += 1
    customer_order.shipments.insert(0, Shipment(position=0, container_no="NEW0000001", status="BOOKED"))
    db_session.commit()

    repository.apply_update(location.order_id, "ABC123", make_record(status="IN_TRANSIT"))
    db_session.commit()

    assert shipment_for(db_session, "VB-1001", "ABC123").status == "IN_TRANSIT"
    assert shipment_for(db_session, "VB-1001", "NEW0000001").status == "BOOKED"
    assert shipment_for(db_session, "VB-1001", "NEW0000001").tracking_records == []


def test_apply_update_leaves_other_orders_alone(db_session):
    first = create_order(db_session, "VB-1001", [[("ABC123", "BOOKED")]])
    create_order(db_session, "VB-1002", [[("ABC123", "BOOKED")]])
    repository = ShipmentTrackingRepository(db_session)

    repository.apply_update(first.id, "ABC123", make_record(status="IN_TRANSIT"))
    db_session.commit()

    assert shipment_for(db_session, "VB-1001", "ABC123").status == "IN_TRANSIT"
    assert shipment_for(db_session, "VB-1002", "ABC123").status == "BOOKED"
    assert shipment_for(db_session, "VB-1002", "ABC123").tracking_records == []


def test_latest_tracking_record_is_last_appended(db_session):
    order = create_order(db_session, "VB-1001", [[("ABC123", None)]])
    repository = ShipmentTrackingRepository(db_session)
    shipment_id = shipment_for(db_session, "VB-1001", "ABC123").id
    assert repository.latest_tracking_record(shipment_id) is None

    repository.apply_update(order.id, "ABC123", make_record(latlong="1, 1"), captured_at=datetime(2024, 1, 1))
    repository.apply_update(order.id, "ABC123", make_record(latlong="2, 2"), captured_at=datetime(2024, 1, 2))
    db_session.commit()

    latest = repository.latest_tracking_record(shipment_id)
    assert latest.latlong == "2, 2"
    assert latest.timestamp == datetime(2024, 1, 2)
    assert [r.latlong for r in repository.tracking_history(shipment_id)] == ["1, 1", "2, 2"]


def test_tracking_records_reject_updates(db_session):
    order = create_order(db_session, "VB-1001", [[("ABC123", None)]])
    ShipmentTrackingRepository(db_session).apply_update(order.id, "ABC123", make_record())
    db_session.commit()

    row = db_session.query(ShipmentTrackingRecord).one()
    row.latlong = "0, 0"
    with pytest.raises(ValueError):
        db_session.flush()
    db_session.rollback()


def test_live_container_views_skip_untracked_and_dedupe(db_session):
    create_order(
        db_session,
        "VB-1001",
        [[("ABC123", "IN_TRANSIT"), ("TBD", "IN_TRANSIT"), ("", "IN_TRANSIT"), ("DEL0000001", "Delivered")]],
    )
    create_order(db_session, "VB-1002", [[("ABC123", "IN_TRANSIT"), ("XYZ789", "IN_TRANSIT")]])
    repository = ShipmentTrackingRepository(db_session)

    assert repository.live_container_numbers("IN_TRANSIT") == ["ABC123", "XYZ789"]
    assert repository.count_live_containers("IN_TRANSIT") == 2


def test_sentinel_status_detection():
    assert is_sentinel_status(None)
    assert is_sentinel_status(" unknown ")
    assert is_sentinel_status("ERROR")
    assert not is_sentinel_status("IN_TRANSIT")
    assert not is_sentinel_status("Delivered")


def test_provider_strings_are_stored_unbounded(db_session):
    order = create_order(db_session, "VB-1001", [[("ABC123", None)]])
    passthrough = "2024-01-05T10:00:00.000000+00:00 (provider local time)"
    repository = ShipmentTrackingRepository(db_session)

    repository.apply_update(order.id, "ABC123", make_record(updated_at=passthrough, last_event_code="X" * 64))
    db_session.commit()

    shipment_id = shipment_for(db_session, "VB-1001", "ABC123").id
    latest = repository.latest_tracking_record(shipment_id)
    assert latest.updated_at == passthrough
    assert latest.last_event_code == "X" * 64
    columns = ShipmentTrackingRecord.__table__.c
    for name in TRACKING_RECORD_FIELDS:
        if name not in ("pol_actual", "pod_actual"):
            assert isinstance(columns[name].type, Text), name


def test_unreadable_stored_record_is_a_store_error(db_session):
    create_order(db_session, "VB-1001", [[("ABC123", None)]])
    shipment = shipment_for(db_session, "VB-1001", "ABC123")
    db_session.add(
        ShipmentTrackingRecord(shipment_id=shipment.id, pol_actual=JSON.NULL, timestamp=datetime(2024, 1, 1))
    )
    db_session.commit()

    with pytest.raises(StoreError):
        ShipmentTrackingRepository(db_session).latest_tracking_record(shipment.id)


def test_shipment_table_keeps_only_tracked_columns():
    assert set(Shipment.__table__.c.keys()) == {
        "id",
        "customer_order_id",
        "position",
        "container_no",
        "status",
        "carrier",
        "bol_number",
        "eta",
        "created_at",
        "updated_at",
        "created_by",
        "last_changed_by",
    }
