"""HTTP tests for notification listing, clearing and proposal responses."""
from __future__ import annotations

from datetime import datetime, timezone

from conftest import auth_headers


def _propose(client, setup, when="2024-06-10T09:30"):
    ana = setup["client_a"]
    appt = client.post(
        "/appointments",
        json={
            "date": "2024-06-10T11:00",
            "clientId": ana.id,
            "barberId": setup["barber"].id,
            "shopId": setup["shop"].id,
            "serviceId": setup["haircut"].id,
        },
        headers=auth_headers(ana),
    ).json()
    proposal = client.post(
        f"/appointments/{appt['id']}/propose-advance",
        json={"newTime": when},
        headers=auth_headers(setup["barber"]),
    ).json()
    return appt, proposal["notification"]


def test_accept_proposal(client, shop_setup) -> None:
    ana = shop_setup["client_a"]
    appt, notification = _propose(client, shop_setup)

    r = client.post(f"/notifications/{notification['id']}/respond", json={"accepted": True}, headers=auth_headers(ana))
    assert r.status_code == 200
    body = r.json()
    assert body["notification"]["status"] == "ACCEPTED"
    assert body["appointment"]["id"] == appt["id"]
    moved = datetime.fromisoformat(body["appointment"]["date"].replace("Z", "+00:00"))
    assert moved == datetime(2024, 6, 10, 13, 30, tzinfo=timezone.utc)


def test_reject_proposal(client, shop_setup) -> None:
    ana = shop_setup["client_a"]
    appt, notification = _propose(client, shop_setup)

    r = client.post(f"/notifications/{notification['id']}/respond", json={"accepted": False}, headers=auth_headers(ana))
    assert r.status_code == 200
    assert r.json()["notification"]["status"] == "REJECTED"
    assert r.json()["appointment"] is None

    r = client.get(f"/appointments/{appt['id']}", headers=auth_headers(ana))
    assert r.json()["date"] == appt["date"]


def test_respond_by_barber_403(client, shop_setup) -> None:
    _, notification = _propose(client, shop_setup)
    r = client.post(
        f"/notifications/{notification['id']}/respond",
        json={"accepted": True},
        headers=auth_headers(shop_setup["barber"]),
    )
    assert r.status_code == 403


def test_respond_unknown_notification_404(client, shop_setup) -> None:
    r = client.post("/notifications/4242/respond", json={"accepted": True}, headers=auth_headers(shop_setup["client_a"]))
    assert r.status_code == 404


def test_list_and_clear_history(client, shop_setup) -> None:
    ana = shop_setup["client_a"]
    _propose(client, shop_setup)

    r = client.get(f"/notifications/user/{ana.id}", headers=auth_headers(ana))
    assert r.status_code == 200
    assert len(r.json()) == 1

    r = client.post(f"/notifications/user/{ana.id}/clear-history", headers=auth_headers(ana))
    assert r.json() == {"success": True, "affected": 1}

    r = client.get(f"/notifications/user/{ana.id}", headers=auth_headers(ana))
    assert r.json() == []

    r = client.get(f"/notifications/user/{ana.id}?include_deleted=true", headers=auth_headers(ana))
    assert r.json()[0]["client_deleted"] is True
    assert r.json()[0]["deleted_at"] is not None


def test_cannot_read_other_users_notifications(client, shop_setup) -> None:
    r = client.get(
        f"/notifications/user/{shop_setup['client_a'].id}",
        headers=auth_headers(shop_setup["client_b"]),
    )
    assert r.status_code == 403
