"""HTTP surface of /api/v1/attendance."""

import io
import uuid
from datetime import datetime, timezone

import pytest
from openpyxl import load_workbook

from classroll.auth.security import create_access_token

BASE = "/api/v1/attendance"


def roster(school, *lines):
    return {
        "records": [
            {
                "class_id": str(school_class.id),
                "student_id": str(student.id),
                "date": day,
                "status": status,
            }
            for school_class, student, day, status in lines
        ]
    }


# ----- Auth -----
@pytest.mark.asyncio
async def test_requires_token(client, school) -> None:
    response = await client.get(f"{BASE}/class/{school.class_a.id}/date/2026-10-19")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_rejects_bad_token(client, school) -> None:
    response = await client.get(
        f"{BASE}/class/{school.class_a.id}/date/2026-10-19",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_rejects_expired_token_and_inactive_user(client, db_session, school, headers_for) -> None:
    url = f"{BASE}/class/{school.class_a.id}/date/2026-10-19"
    expired = create_access_token(school.teacher.id, expires_minutes=-1)
    response = await client.get(url, headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401

    headers = headers_for(school.teacher)
    assert (await client.get(url, headers=headers)).status_code == 200
    school.teacher.status = "INACTIVE"
    await db_session.commit()
    assert (await client.get(url, headers=headers)).status_code == 401


# ----- Bulk -----
@pytest.mark.asyncio
async def test_bulk_roundtrip(client, school, headers_for) -> None:
    payload = roster(
        school,
        (school.class_a, school.alice, "2026-10-19", "present"),
        (school.class_a, school.bob, "2026-10-19", "absent"),
    )
    response = await client.post(f"{BASE}/bulk", json=payload, headers=headers_for(school.teacher))
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Attendance records processed successfully"
    assert body["total"] == 2
    assert [item["action"] for item in body["results"]] == ["created", "created"]
    assert body["results"][0]["record"]["date"] == "2026-10-19"

    response = await client.post(f"{BASE}/bulk", json=payload, headers=headers_for(school.teacher))
    assert [item["action"] for item in response.json()["results"]] == ["updated", "updated"]


@pytest.mark.asyncio
async def test_bulk_partial_failure_reports_progress(client, school, headers_for) -> None:
    payload = roster(
        school,
        (school.class_a, school.alice, "2026-10-19", "present"),
        (school.class_a, school.dave, "2026-10-19", "present"),
        (school.class_a, school.carol, "2026-10-19", "present"),
    )
    response = await client.post(f"{BASE}/bulk", json=payload, headers=headers_for(school.teacher))
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["kind"] == "validation_error"
    assert detail["failed_index"] == 1
    assert detail["committed"] == 1
    assert detail["partial"] is True
    assert detail["results"][0]["record"]["student_id"] == str(school.alice.id)

    day = await client.get(
        f"{BASE}/class/{school.class_a.id}/date/2026-10-19", headers=headers_for(school.teacher)
    )
    assert [r["student_id"] for r in day.json()] == [str(school.alice.id)]


@pytest.mark.asyncio
async def test_bulk_empty_and_forbidden(client, school, headers_for) -> None:
    response = await client.post(f"{BASE}/bulk", json={"records": []}, headers=headers_for(school.teacher))
    assert response.status_code == 400
    assert response.json()["detail"] == {"kind": "validation_error", "message": "Invalid records data"}

    payload = roster(school, (school.class_a, school.alice, "2026-10-19", "present"))
    response = await client.post(f"{BASE}/bulk", json=payload, headers=headers_for(school.other_teacher))
    assert response.status_code == 403
    detail = response.json()["detail"]
    assert (detail["kind"], detail["committed"], detail["partial"]) == ("forbidden", 0, False)


# ----- Class views -----
@pytest.mark.asyncio
async def test_day_view(client, school, mark, headers_for) -> None:
    await mark(school.alice, "2026-10-19", "late", notes="bus")
    url = f"{BASE}/class/{school.class_a.id}/date/2026-10-19"

    response = await client.get(url, headers=headers_for(school.teacher))
    assert response.status_code == 200
    [record] = response.json()
    assert record["status"] == "late"
    assert record["display_date"] == "Oct 19, 2026"
    assert record["student"]["email"] == "alice@school.test"

    assert (await client.get(url, headers=headers_for(school.other_teacher))).status_code == 403
    assert (await client.get(url, headers=headers_for(school.admin))).status_code == 200

    bad_day = await client.get(f"{BASE}/class/{school.class_a.id}/date/19-10-2026", headers=headers_for(school.teacher))
    assert bad_day.status_code == 400

    unknown = await client.get(f"{BASE}/class/{uuid.uuid4()}/date/2026-10-19", headers=headers_for(school.admin))
    assert unknown.status_code == 404
    assert unknown.json()["detail"]["kind"] == "not_found"


@pytest.mark.asyncio
async def test_range_view(client, school, mark, headers_for) -> None:
    for day in ("2026-10-11", "2026-10-12", "2026-10-18", "2026-10-19"):
        await mark(school.bob, day, "present")
    response = await client.get(
        f"{BASE}/class/{school.class_a.id}/range",
        params={"start_date": "2026-10-12", "end_date": "2026-10-18"},
        headers=headers_for(school.teacher),
    )
    assert response.status_code == 200
    assert [r["date"] for r in response.json()] == ["2026-10-12", "2026-10-18"]

    reversed_range = await client.get(
        f"{BASE}/class/{school.class_a.id}/range",
        params={"start_date": "2026-10-18", "end_date": "2026-10-12"},
        headers=headers_for(school.teacher),
    )
    assert reversed_range.status_code == 400


# ----- Single records -----
@pytest.mark.asyncio
async def test_record_get_update_delete(client, school, mark, headers_for) -> None:
    created = await mark(school.carol, "2026-10-19", "absent")
    url = f"{BASE}/{created.record.id}"

    response = await client.get(url, headers=headers_for(school.teacher))
    assert response.status_code == 200
    assert response.json()["status"] == "absent"

    response = await client.put(url, json={"status": "excused", "notes": "note from home"}, headers=headers_for(school.teacher))
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Attendance updated successfully"
    assert (body["attendance"]["status"], body["attendance"]["notes"]) == ("excused", "note from home")

    response = await client.put(url, json={"status": "vanished"}, headers=headers_for(school.teacher))
    assert response.status_code == 400

    response = await client.put(url, json={"status": None}, headers=headers_for(school.teacher))
    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "validation_error"
    assert (await client.get(url, headers=headers_for(school.teacher))).json()["status"] == "excused"

    assert (await client.delete(url, headers=headers_for(school.other_teacher))).status_code == 403

    response = await client.delete(url, headers=headers_for(school.teacher))
    assert response.status_code == 200
    assert response.json() == {"message": "Attendance record deleted successfully"}

    response = await client.get(url, headers=headers_for(school.teacher))
    assert response.status_code == 404
    assert response.json()["detail"]["message"] == "Attendance record not found"


# ----- Summary / report -----
@pytest.mark.asyncio
async def test_summary_endpoint(client, school, mark, headers_for) -> None:
    await mark(school.alice, "2026-10-12", "present")
    await mark(school.alice, "2026-10-13", "absent")
    await mark(school.bob, "2026-10-13", "present")

    response = await client.get(
        f"{BASE}/class/{school.class_a.id}/summary",
        params={"start_date": "2026-10-12", "end_date": "2026-10-13"},
        headers=headers_for(school.teacher),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["total_records"] == 3
    assert body["totals"] == {"present": 2, "absent": 1, "late": 0, "excused": 0}
    rows = {row["student"]["id"]: row for row in body["summary"]}
    assert rows[str(school.alice.id)]["total"] == 2

    lone = await client.get(
        f"{BASE}/class/{school.class_a.id}/summary",
        params={"start_date": "2026-10-12"},
        headers=headers_for(school.teacher),
    )
    assert lone.status_code == 400


@pytest.mark.asyncio
async def test_report_json_csv_and_xlsx(client, school, mark, headers_for) -> None:
    for day in ("2026-10-12", "2026-10-13", "2026-10-14"):
        await mark(school.alice, day, "present")
        await mark(school.bob, day, "absent")
    await mark(school.bob, "2026-10-15", "present")

    url = f"{BASE}/class/{school.class_a.id}/report"
    params = {"status": "present", "start_date": "2026-10-12", "end_date": "2026-10-18"}

    response = await client.get(url, params=params, headers=headers_for(school.teacher))
    assert response.status_code == 200
    report = response.json()
    assert [(r["student_name"], r["percentage_label"]) for r in report["rows"]] == [
        ("Alice Adams", "100.0%"),
        ("Bob Brown", "25.0%"),
    ]

    response = await client.get(url, params={**params, "format": "csv"}, headers=headers_for(school.teacher))
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == (
        "attachment; filename=attendance_report_present_2026-10-12_2026-10-18.csv"
    )
    assert response.text.splitlines()[1] == '"Alice Adams","alice@school.test","3","3","100.0%"'

    response = await client.get(url, params={**params, "format": "xlsx"}, headers=headers_for(school.teacher))
    assert response.status_code == 200
    ws = load_workbook(io.BytesIO(response.content)).active
    assert ws["A3"].value == "Alice Adams"

    bad = await client.get(url, params={**params, "status": "tardy"}, headers=headers_for(school.teacher))
    assert bad.status_code == 400

    bad_format = await client.get(url, params={**params, "format": "pdf"}, headers=headers_for(school.teacher))
    assert bad_format.status_code == 422


@pytest.mark.asyncio
async def test_report_timeframe_reads_reference_clock(client, school, mark, headers_for, monkeypatch) -> None:
    from classroll.api.v1.attendance import service

    await mark(school.carol, "2026-10-18", "late")
    await mark(school.carol, "2026-10-11", "late")
    monkeypatch.setattr(service, "reference_now", lambda: datetime(2026, 10, 18, 20, 0, tzinfo=timezone.utc))

    response = await client.get(
        f"{BASE}/class/{school.class_a.id}/report",
        params={"status": "late", "timeframe": "week", "format": "csv"},
        headers=headers_for(school.teacher),
    )
    assert response.status_code == 200
    assert "filename=attendance_report_late_week.csv" in response.headers["content-disposition"]
    assert response.text.splitlines()[1] == '"Carol Clark","carol@school.test","1","1","100.0%"'


# ----- Date range -----
@pytest.mark.asyncio
async def test_date_range_endpoint(client, school, headers_for, monkeypatch) -> None:
    from classroll.api.v1.attendance import router

    monkeypatch.setattr(router, "reference_now", lambda: datetime(2026, 10, 18, 21, 0, tzinfo=timezone.utc))

    response = await client.get(f"{BASE}/date-range", params={"timeframe": "week"}, headers=headers_for(school.teacher))
    assert response.status_code == 200
    assert response.json() == {
        "start_date": "2026-10-12",
        "end_date": "2026-10-18",
        "timeframe": "week",
        "label": "Oct 12, 2026 - Oct 18, 2026",
        "timeframe_label": "This Week",
    }

    response = await client.get(f"{BASE}/date-range", params={"timeframe": "decade"}, headers=headers_for(school.teacher))
    assert response.json()["timeframe"] == "today"
    assert response.json()["start_date"] == "2026-10-18"
