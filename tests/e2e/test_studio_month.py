"""
E2E test of one month in the studio through the HTTP API.

Personas:
- Bea: twice a week (Monday and Wednesday), misses classes and makes them up on Friday
- Caio: once a week on Monday, paused for the whole of March
- Dani: once a week on Friday, never misses

Every request reloads the projection from the database, so each step also
checks that the previous one was persisted.
"""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def studio_setup(client: TestClient) -> dict:
    classes = {}
    for key, name, day in (("mon", "Ceramics", 1), ("wed", "Painting", 3), ("fri", "Drawing", 5)):
        classes[key] = client.post("/v1/classes", json={"name": name, "day_of_week": day, "time": "15:00"}).json()["id"]

    def enroll(**body):
        response = client.post("/v1/students", json=body)
        assert response.status_code == 200
        return response.json()["student"]["id"]

    return {
        "classes": classes,
        "bea": enroll(name="Bea", plan="2x", class_id=classes["mon"], class_id_2=classes["wed"]),
        "caio": enroll(
            name="Caio",
            class_id=classes["mon"],
            pause_period={"start_date": "2025-03-01", "end_date": "2025-03-31"},
        ),
        "dani": enroll(name="Dani", class_id=classes["fri"]),
    }


def _mark(client, on_date, student_id, class_id, status):
    response = client.post(
        "/v1/attendance",
        json={"date": on_date, "student_id": student_id, "class_id": class_id, "status": status},
    )
    assert response.status_code == 200, response.text
    return response.json()


def _balance(client, student_id):
    return client.get(f"/v1/students/{student_id}/credits").json()["balance"]


@pytest.mark.integration
def test_march_in_the_studio(client: TestClient, studio_setup: dict):
    classes = studio_setup["classes"]
    bea, caio, dani = studio_setup["bea"], studio_setup["caio"], studio_setup["dani"]

    # Caio is paused, so Monday's roster only has Bea
    roster = client.get(f"/v1/classes/{classes['mon']}/roster", params={"date": "2025-03-03"}).json()
    assert [s["id"] for s in roster["regular"]] == [bea]

    # Bea misses Monday and Wednesday; marking the same absence twice earns one credit
    _mark(client, "2025-03-03", bea, classes["mon"], "absent")
    _mark(client, "2025-03-03", bea, classes["mon"], "absent")
    _mark(client, "2025-03-05", bea, classes["wed"], "absent")
    assert _balance(client, bea) == 2

    # Wednesday's absence was a mistake: the unused credit goes away
    _mark(client, "2025-03-05", bea, classes["wed"], "present")
    credits = client.get(f"/v1/students/{bea}/credits").json()
    assert credits["balance"] == 1
    assert credits["credits"][0]["generated_from_date"] == "2025-03-03"

    # Bea makes up Monday's class on Friday, alongside Dani
    client.post("/v1/attendance/makeup", json={"date": "2025-03-07", "student_id": bea, "class_id": classes["fri"]})
    roster = client.get(f"/v1/classes/{classes['fri']}/roster", params={"date": "2025-03-07"}).json()
    assert [s["id"] for s in roster["regular"]] == [dani]
    assert [s["id"] for s in roster["makeup"]] == [bea]

    _mark(client, "2025-03-07", dani, classes["fri"], "present")
    _mark(client, "2025-03-07", bea, classes["fri"], "present")
    assert _balance(client, bea) == 0

    # Correcting the consumed makeup does not refund the credit
    _mark(client, "2025-03-07", bea, classes["fri"], "absent")
    assert _balance(client, bea) == 0

    # A presence in a home class never spends credits
    _mark(client, "2025-03-10", bea, classes["mon"], "absent")
    _mark(client, "2025-03-12", bea, classes["wed"], "present")
    assert _balance(client, bea) == 1
    assert _balance(client, caio) == 0

    dashboard = client.get("/v1/dashboard").json()
    assert dashboard["active_students"] == 3
    assert dashboard["pending_makeups"] == 1


@pytest.mark.integration
def test_every_enrollment_has_a_year_of_dues(client: TestClient, studio_setup: dict):
    next_due = client.get("/v1/payments/next").json()

    assert {p["student_id"] for p in next_due} == {studio_setup["bea"], studio_setup["caio"], studio_setup["dani"]}
    assert all(p["due_date"].endswith("-10") for p in next_due)
