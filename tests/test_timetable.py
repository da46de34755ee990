import pytest

from school_portal.core.semester_scope import MISSING_SEMESTER_MESSAGE
from school_portal.schemas.enums import UserRoleEnum
from tests.conftest import auth_headers


def _scope(school) -> dict:
    return {"x-active-semester-id": str(school["semester"].id)}


class TestConflictLookups:
    @pytest.mark.asyncio
    async def test_teacher_conflicts_require_semester_scope(self, client, school):
        response = await client.get(
            "/api/timetable/conflicts/teacher",
            params={"teacherId": school["teacher"].id, "dayOfWeek": 0, "timeSlotId": school["slot"].id},
            headers=auth_headers(school["teacher_user"]),
        )
        assert response.status_code == 400
        assert response.json()["error"] == MISSING_SEMESTER_MESSAGE

    @pytest.mark.asyncio
    async def test_semester_scope_must_be_numeric(self, client, school):
        response = await client.get(
            "/api/timetable/conflicts/room",
            params={"roomId": school["lab"].id, "dayOfWeek": 0, "timeSlotId": school["slot"].id},
            headers={**auth_headers(school["teacher_user"]), "x-active-semester-id": "first"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid active semester id"

    @pytest.mark.asyncio
    async def test_teacher_conflict_found(self, client, school):
        response = await client.get(
            "/api/timetable/conflicts/teacher",
            params={"teacherId": school["teacher"].id, "dayOfWeek": 0, "timeSlotId": school["slot"].id},
            headers={**auth_headers(school["teacher_user"]), **_scope(school)},
        )
        body = response.json()
        assert response.status_code == 200
        assert body["hasConflicts"] is True
        assert [c["id"] for c in body["conflicts"]] == [school["lesson"].id]
        assert body["conflicts"][0]["classRoom"]["id"] == school["class_a"].id

    @pytest.mark.asyncio
    async def test_semester_scope_from_query_parameter(self, client, school):
        response = await client.get(
            "/api/timetable/conflicts/teacher",
            params={
                "teacherId": school["teacher"].id,
                "dayOfWeek": 0,
                "timeSlotId": school["slot"].id,
                "active_semester_id": school["semester"].id,
            },
            headers=auth_headers(school["teacher_user"]),
        )
        assert response.json()["hasConflicts"] is True

    @pytest.mark.asyncio
    async def test_teacher_conflicts_missing_parameters(self, client, school):
        response = await client.get(
            "/api/timetable/conflicts/teacher",
            params={"dayOfWeek": 0, "timeSlotId": school["slot"].id},
            headers={**auth_headers(school["teacher_user"]), **_scope(school)},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Missing required parameters"

    @pytest.mark.asyncio
    async def test_other_day_is_free(self, client, school):
        response = await client.get(
            "/api/timetable/conflicts/teacher",
            params={"teacherId": school["teacher"].id, "dayOfWeek": 3, "timeSlotId": school["slot"].id},
            headers={**auth_headers(school["teacher_user"]), **_scope(school)},
        )
        assert response.json() == {"success": True, "conflicts": [], "hasConflicts": False}

    @pytest.mark.asyncio
    async def test_room_conflict_and_exclusion(self, client, school):
        params = {"roomId": school["lab"].id, "dayOfWeek": 0, "timeSlotId": school["slot"].id}
        headers = {**auth_headers(school["teacher_user"]), **_scope(school)}

        found = await client.get("/api/timetable/conflicts/room", params=params, headers=headers)
        assert found.json()["hasConflicts"] is True

        excluded = await client.get(
            "/api/timetable/conflicts/room",
            params={**params, "excludeClassId": school["class_a"].id},
            headers=headers,
        )
        assert excluded.json()["hasConflicts"] is False
        assert all(c["classRoomId"] != school["class_a"].id for c in excluded.json()["conflicts"])

    @pytest.mark.asyncio
    async def test_room_conflicts_missing_slot(self, client, school):
        response = await client.get(
            "/api/timetable/conflicts/room",
            params={"roomId": school["lab"].id, "dayOfWeek": 0},
            headers={**auth_headers(school["teacher_user"]), **_scope(school)},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Missing required parameters: dayOfWeek or timeSlotId"

    @pytest.mark.asyncio
    async def test_parameters_are_checked_before_semester_scope(self, client, school):
        room = await client.get(
            "/api/timetable/conflicts/room",
            params={"roomId": school["lab"].id},
            headers=auth_headers(school["teacher_user"]),
        )
        assert room.status_code == 400
        assert room.json()["error"] == "Missing required parameters: dayOfWeek or timeSlotId"

        teacher = await client.get(
            "/api/timetable/conflicts/teacher",
            params={"teacherId": school["teacher"].id, "dayOfWeek": 0},
            headers=auth_headers(school["teacher_user"]),
        )
        assert teacher.status_code == 400
        assert teacher.json()["error"] == "Missing required parameters"

    @pytest.mark.asyncio
    async def test_empty_room_id_has_no_conflicts(self, client, school):
        response = await client.get(
            "/api/timetable/conflicts/room",
            params={"roomId": "", "dayOfWeek": 0, "timeSlotId": school["slot"].id},
            headers={**auth_headers(school["teacher_user"]), **_scope(school)},
        )
        assert response.status_code == 200
        assert response.json()["hasConflicts"] is False

    @pytest.mark.asyncio
    async def test_conflicts_require_credentials(self, client, school):
        response = await client.get(
            "/api/timetable/conflicts/room",
            params={"roomId": school["lab"].id, "dayOfWeek": 0, "timeSlotId": school["slot"].id},
            headers=_scope(school),
        )
        assert response.status_code == 401


class TestClassTimetable:
    @pytest.mark.asyncio
    async def test_student_reads_own_week(self, client, school):
        response = await client.get("/api/timetable", headers=auth_headers(school["student_user"]))
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["class"]["id"] == school["class_a"].id
        assert len(data["timetable"]) == 7

        sunday = data["timetable"][0]
        assert sunday["dayName"] == "Sunday"
        entry = sunday["slots"][0]["entry"]
        assert entry["subject"]["code"] == "MATH1"
        assert entry["room"]["name"] == "Science Lab"
        assert data["timetable"][1]["slots"][0]["entry"] is None

    @pytest.mark.asyncio
    async def test_student_cannot_read_other_class(self, client, school):
        response = await client.get(
            "/api/timetable",
            params={"classId": school["class_b"].id},
            headers=auth_headers(school["student_user"]),
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_teacher_needs_a_lesson_in_the_class(self, client, school):
        headers = {**auth_headers(school["teacher_user"]), **_scope(school)}
        allowed = await client.get("/api/timetable", params={"classId": school["class_a"].id}, headers=headers)
        assert allowed.status_code == 200

        denied = await client.get("/api/timetable", params={"classId": school["class_b"].id}, headers=headers)
        assert denied.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_must_name_class(self, client, admin, school):
        response = await client.get("/api/timetable", headers={**auth_headers(admin), **_scope(school)})
        assert response.status_code == 400
        assert response.json()["error"] == "classId parameter is required"


class TestTimetableWrites:
    @pytest.mark.asyncio
    async def test_time_slot_validation(self, client, admin):
        response = await client.post(
            "/api/timetable/time-slots",
            headers=auth_headers(admin),
            json={"name": "Backwards", "startTime": "10:00", "endTime": "09:00", "slotOrder": 1},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_entry_rejected_on_teacher_clash(self, client, admin, school):
        response = await client.post(
            "/api/timetable",
            headers=auth_headers(admin),
            json={
                "classRoomId": school["class_b"].id,
                "subjectId": school["math"].id,
                "teacherId": school["teacher"].id,
                "timeSlotId": school["slot"].id,
                "semesterId": school["semester"].id,
                "dayOfWeek": 0,
            },
        )
        assert response.status_code == 409
        body = response.json()
        assert body["details"] == {"teacher": [school["lesson"].id]}

    @pytest.mark.asyncio
    async def test_entry_created_in_free_slot(self, client, admin, school, seed):
        _, other_teacher = await seed.user(UserRoleEnum.TEACHER)
        response = await client.post(
            "/api/timetable",
            headers=auth_headers(admin),
            json={
                "classRoomId": school["class_b"].id,
                "subjectId": school["math"].id,
                "teacherId": other_teacher.id,
                "timeSlotId": school["slot"].id,
                "semesterId": school["semester"].id,
                "dayOfWeek": 0,
            },
        )
        assert response.status_code == 201
        assert response.json()["data"]["teacher"]["id"] == other_teacher.id
