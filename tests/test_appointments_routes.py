"""HTTP tests for the appointments router."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from barber_booking.models import Appointment

from conftest import auth_headers


def _parse(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _book(client, setup, who, when, service=None):
    service = service or setup["haircut"]
    return client.post(
        "/appointments",
        json={
            "date": when,
            "clientId": who.id,
            "barberId": setup["barber"].id,
            "shopId": setup["shop"].id,
            "serviceId": service.id,
        },
        headers=auth_headers(who),
    )


def test_booking_day_scenario(client, shop_setup) -> None:
    ana, bruno, barber = shop_setup["client_a"], shop_setup["client_b"], shop_setup["barber"]

    r = _book(client, shop_setup, ana, "2024-06-10T09:00-04:00")
    assert r.status_code == 201
    body = r.json()
    assert body["status"] == "confirmed"
    assert _parse(body["date"]) == datetime(2024, 6, 10, 13, 0, tzinfo=timezone.utc)

    r = _book(client, shop_setup, bruno, "2024-06-10T09:00-04:00")
    assert r.status_code == 409
    assert r.json()["error"] == "slot_taken"

    r = client.post(
        "/appointments/leave-early",
        json={"startTime": "2024-06-10T15:00-04:00", "barberId": barber.id, "shopId": shop_setup["shop"].id},
        headers=auth_headers(barber),
    )
    assert r.status_code == 201
    assert r.json()["status"] == "leave_early"

    r = _book(client, shop_setup, bruno, "2024-06-10T16:00-04:00")
    assert r.status_code == 409
    assert r.json()["error"] == "leave_early_conflict"

    r = _book(client, shop_setup, bruno, "2024-06-10T14:00-04:00")
    assert r.status_code == 201


def test_booking_incomplete_data_400(client, shop_setup) -> None:
    ana = shop_setup["client_a"]
    r = client.post("/appointments", json={"date": "2024-06-10T09:00"}, headers=auth_headers(ana))
    assert r.status_code == 400
    assert r.json() == {"detail": "Incomplete data to create the appointment", "error": "validation_error"}


def test_requires_token_401(client, shop_setup) -> None:
    r = client.get(f"/appointments/client/{shop_setup['client_a'].id}")
    assert r.status_code == 401


def test_day_off_blocks_booking(client, shop_setup) -> None:
    owner = shop_setup["owner"]
    r = client.post(
        "/appointments/day-off",
        json={"date": "2024-06-12", "barberId": shop_setup["barber"].id, "shopId": shop_setup["shop"].id},
        headers=auth_headers(owner),
    )
    assert r.status_code == 201
    marker_id = r.json()["id"]

    r = _book(client, shop_setup, shop_setup["client_a"], "2024-06-12T11:00")
    assert r.status_code == 409
    assert r.json()["error"] == "day_off_conflict"

    r = client.put(f"/appointments/{marker_id}/cancel", headers=auth_headers(owner))
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"


def test_complete_and_no_show(client, shop_setup) -> None:
    barber = shop_setup["barber"]
    appt_id = _book(client, shop_setup, shop_setup["client_a"], "2024-06-10T09:00").json()["id"]

    r = client.put(f"/appointments/{appt_id}/complete", headers=auth_headers(barber))
    assert r.status_code == 200
    first_end = r.json()["actual_end_time"]
    assert first_end is not None

    r = client.put(f"/appointments/{appt_id}/complete", headers=auth_headers(barber))
    assert r.json()["actual_end_time"] == first_end

    r = client.put(f"/appointments/{appt_id}/no-show", headers=auth_headers(barber))
    assert r.status_code == 400

    r = client.put("/appointments/9999/complete", headers=auth_headers(barber))
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"


def test_client_cannot_complete_403(client, shop_setup) -> None:
    ana = shop_setup["client_a"]
    appt_id = _book(client, shop_setup, ana, "2024-06-10T09:00").json()["id"]
    r = client.put(f"/appointments/{appt_id}/complete", headers=auth_headers(ana))
    assert r.status_code == 403
    assert r.json()["error"] == "forbidden"


def test_read_endpoints(client, shop_setup) -> None:
    ana, owner = shop_setup["client_a"], shop_setup["owner"]
    created = _book(client, shop_setup, ana, "2024-06-10T09:00").json()

    r = client.get(f"/appointments/{created['uuid']}", headers=auth_headers(ana))
    assert r.status_code == 200
    assert r.json()["id"] == created["id"]

    r = client.get(f"/appointments/client/{ana.id}", headers=auth_headers(ana))
    assert [a["id"] for a in r.json()] == [created["id"]]

    r = client.get(f"/appointments/barber/{shop_setup['barber'].id}", headers=auth_headers(owner))
    assert [a["id"] for a in r.json()] == [created["id"]]

    r = client.get(f"/appointments/shop/{shop_setup['shop'].id}", headers=auth_headers(owner))
    assert [a["id"] for a in r.json()] == [created["id"]]

    r = client.get(f"/appointments/shop/{shop_setup['shop'].id}", headers=auth_headers(ana))
    assert r.status_code == 403


def test_notes_and_payment_routes(client, shop_setup) -> None:
    barber = shop_setup["barber"]
    appt_id = _book(client, shop_setup, shop_setup["client_a"], "2024-06-10T09:00").json()["id"]

    r = client.put(f"/appointments/{appt_id}/notes", json={"notes": "use scissors"}, headers=auth_headers(barber))
    assert r.status_code == 200
    assert r.json()["notes_barber"] == "use scissors"

    r = client.put(
        f"/appointments/{appt_id}/payment",
        json={"paymentMethod": "card", "paymentStatus": "paid"},
        headers=auth_headers(barber),
    )
    assert r.status_code == 200
    assert r.json()["payment_status"] == "paid"

    r = client.put(f"/appointments/{appt_id}/payment", json={"paymentStatus": "maybe"}, headers=auth_headers(barber))
    assert r.status_code == 400


def test_propose_advance_route(client, shop_setup) -> None:
    appt_id = _book(client, shop_setup, shop_setup["client_a"], "2024-06-10T11:00").json()["id"]

    r = client.post(
        f"/appointments/{appt_id}/propose-advance",
        json={"newTime": "2024-06-10T10:00"},
        headers=auth_headers(shop_setup["barber"]),
    )
    assert r.status_code == 201
    body = r.json()
    assert body["notification"]["status"] == "PENDING"
    assert body["notification"]["payload"]["appointmentId"] == appt_id
    assert body["conversationId"] is not None

    r = client.post(
        f"/appointments/{appt_id}/propose-advance",
        json={},
        headers=auth_headers(shop_setup["barber"]),
    )
    assert r.status_code == 400


def test_hide_client_history_route(client, session, shop_setup) -> None:
    ana = shop_setup["client_a"]
    done_id = _book(client, shop_setup, ana, "2024-06-10T09:00").json()["id"]
    client.put(f"/appointments/{done_id}/complete", headers=auth_headers(shop_setup["barber"]))

    future_day = (datetime.now(timezone.utc) + timedelta(days=7)).date().isoformat()
    upcoming_id = _book(client, shop_setup, ana, f"{future_day}T10:00").json()["id"]

    r = client.delete(f"/appointments/history/{ana.id}?keepActive=true", headers=auth_headers(ana))
    assert r.status_code == 204

    assert session.get(Appointment, done_id).hidden_for_client is True
    assert session.get(Appointment, upcoming_id).hidden_for_client is False

    r = client.get(f"/appointments/client/{ana.id}", headers=auth_headers(ana))
    assert [a["id"] for a in r.json()] == [upcoming_id]
    r = client.get(f"/appointments/client/{ana.id}?include_hidden=true", headers=auth_headers(ana))
    assert len(r.json()) == 2


def test_delete_routes(client, shop_setup) -> None:
    ana, owner = shop_setup["client_a"], shop_setup["owner"]
    appt_id = _book(client, shop_setup, ana, "2024-06-10T09:00").json()["id"]
    client.put(f"/appointments/{appt_id}/complete", headers=auth_headers(owner))

    r = client.delete(f"/appointments/{appt_id}", headers=auth_headers(ana))
    assert r.status_code == 403

    r = client.delete(
        f"/appointments/history/barber/{shop_setup['barber'].id}?mode=bogus", headers=auth_headers(owner)
    )
    assert r.status_code == 400

    r = client.delete(
        f"/appointments/history/barber/{shop_setup['barber'].id}?mode=completed", headers=auth_headers(owner)
    )
    assert r.status_code == 200
    assert r.json()["deleted"] == 1

    r = client.delete(f"/appointments/{appt_id}", headers=auth_headers(owner))
    assert r.status_code == 404

    r = client.delete("/appointments/999999", headers=auth_headers(ana))
    assert r.status_code == 403
