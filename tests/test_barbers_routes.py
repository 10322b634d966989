"""HTTP tests for weekly barber breaks."""
from __future__ import annotations

from conftest import auth_headers


def test_replace_and_read_breaks(client, shop_setup) -> None:
    barber = shop_setup["barber"]
    r = client.put(
        f"/barbers/{barber.id}/breaks",
        json={
            "breaks": [
                {"day": "L", "startTime": "22:00", "endTime": "02:00"},
                {"day": "M", "type": "lunch", "start_time": "12:00", "end_time": "13:00", "enabled": False},
            ]
        },
        headers=auth_headers(barber),
    )
    assert r.status_code == 200
    assert [(b["day"], b["break_type"], b["enabled"]) for b in r.json()["breaks"]] == [
        ("L", "break", True),
        ("M", "lunch", False),
    ]

    # Replacing drops the previous set
    client.put(
        f"/barbers/{barber.id}/breaks",
        json={"breaks": [{"day": "V", "startTime": "15:00", "endTime": "15:30"}]},
        headers=auth_headers(shop_setup["owner"]),
    )
    r = client.get(f"/barbers/{barber.id}/breaks", headers=auth_headers(shop_setup["client_a"]))
    assert [b["day"] for b in r.json()["breaks"]] == ["V"]


def test_break_blocks_booking_across_midnight(client, shop_setup) -> None:
    barber, ana = shop_setup["barber"], shop_setup["client_a"]
    client.put(
        f"/barbers/{barber.id}/breaks",
        json={"breaks": [{"day": "L", "startTime": "22:00", "endTime": "02:00"}]},
        headers=auth_headers(barber),
    )

    def book(when):
        return client.post(
            "/appointments",
            json={
                "date": when,
                "clientId": ana.id,
                "barberId": barber.id,
                "shopId": shop_setup["shop"].id,
                "serviceId": shop_setup["beard"].id,
            },
            headers=auth_headers(ana),
        )

    r = book("2024-06-10T23:30")
    assert r.status_code == 409
    assert r.json()["error"] == "break_conflict"

    r = book("2024-06-11T01:00")
    assert r.json()["error"] == "break_conflict"

    assert book("2024-06-11T10:00").status_code == 201


def test_invalid_break_400(client, shop_setup) -> None:
    barber = shop_setup["barber"]
    r = client.put(
        f"/barbers/{barber.id}/breaks",
        json={"breaks": [{"day": "Z", "startTime": "22:00", "endTime": "02:00"}]},
        headers=auth_headers(barber),
    )
    assert r.status_code == 400

    r = client.put(
        f"/barbers/{barber.id}/breaks",
        json={"breaks": [{"day": "L", "startTime": "noon", "endTime": "13:00"}]},
        headers=auth_headers(barber),
    )
    assert r.status_code == 400


def test_client_cannot_edit_breaks_403(client, shop_setup) -> None:
    r = client.put(
        f"/barbers/{shop_setup['barber'].id}/breaks",
        json={"breaks": []},
        headers=auth_headers(shop_setup["client_a"]),
    )
    assert r.status_code == 403
