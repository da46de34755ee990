from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from school_portal.models import ExamResult
from school_portal.schemas.enums import UserRoleEnum
from tests.conftest import auth_headers


def _exam_date(days: int = 14) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


async def _create(client, school, user=None, **overrides):
    body = {
        "title": "Midterm",
        "subjectId": school["math"].id,
        "classRoomId": school["class_a"].id,
        "examDate": _exam_date(),
        "totalMarks": 50,
    }
    body.update(overrides)
    return await client.post("/api/exams", headers=auth_headers(user or school["teacher_user"]), json=body)


async def _exam_id(client, school, **overrides) -> int:
    response = await _create(client, school, **overrides)
    assert response.status_code == 201
    return response.json()["exam"]["id"]


class TestExamCreation:
    @pytest.mark.asyncio
    async def test_teacher_creates_exam(self, client, school):
        response = await _create(client, school, semesterId=school["semester"].id, duration=90)
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Exam created successfully"
        assert body["exam"]["teacherId"] == school["teacher"].id
        assert body["exam"]["duration"] == 90
        assert body["exam"]["subject"]["code"] == "MATH1"
        assert body["exam"]["classRoom"]["gradeLevel"]["level"] == 1
        assert body["exam"]["results"] == []

    @pytest.mark.asyncio
    async def test_teacher_outside_subject_is_refused(self, client, school, seed):
        history = await seed.subject(code="HIST1", name="History")
        response = await _create(client, school, subjectId=history.id)
        assert response.status_code == 403
        assert response.json()["error"] == "You are not authorized to create exams for this subject"

    @pytest.mark.asyncio
    async def test_admin_names_the_teacher(self, client, admin, school):
        missing = await _create(client, school, user=admin)
        assert missing.status_code == 400
        assert missing.json()["error"] == "Teacher ID is required for admin"

        response = await _create(client, school, user=admin, teacherId=school["teacher"].id)
        assert response.status_code == 201
        assert response.json()["exam"]["teacher"]["userId"] == school["teacher_user"].id

    @pytest.mark.asyncio
    async def test_unknown_references(self, client, school):
        classroom = await _create(client, school, classRoomId=999)
        assert classroom.status_code == 400
        assert classroom.json()["error"] == "Invalid classroom"

        semester = await _create(client, school, semesterId=999)
        assert semester.status_code == 400
        assert semester.json()["error"] == "Invalid semester"

    @pytest.mark.asyncio
    async def test_total_marks_must_be_positive(self, client, school):
        response = await _create(client, school, totalMarks=0)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_students_cannot_create(self, client, school):
        response = await _create(client, school, user=school["student_user"])
        assert response.status_code == 403


class TestExamVisibility:
    @pytest.mark.asyncio
    async def test_listing_per_role(self, client, admin, school, seed):
        class_a_exam = await _exam_id(client, school, title="Class A midterm")
        await _exam_id(client, school, title="Class B midterm", classRoomId=school["class_b"].id)
        _, other_teacher = await seed.user(UserRoleEnum.TEACHER)
        await _exam_id(client, school, user=admin, title="Cover exam", teacherId=other_teacher.id)

        teacher_view = await client.get("/api/exams", headers=auth_headers(school["teacher_user"]))
        assert sorted(e["title"] for e in teacher_view.json()["exams"]) == ["Class A midterm", "Class B midterm"]

        student_view = await client.get("/api/exams", headers=auth_headers(school["student_user"]))
        assert [e["id"] for e in student_view.json()["exams"]] == [class_a_exam]

        everything = await client.get("/api/exams", headers=auth_headers(admin))
        assert len(everything.json()["exams"]) == 3

        filtered = await client.get(
            "/api/exams",
            params={"teacherId": other_teacher.id},
            headers=auth_headers(admin),
        )
        assert [e["title"] for e in filtered.json()["exams"]] == ["Cover exam"]

        parent_view = await client.get("/api/exams", headers=auth_headers(school["parent_user"]))
        assert parent_view.status_code == 403

    @pytest.mark.asyncio
    async def test_inactive_exams_are_hidden_from_students(self, client, school):
        exam_id = await _exam_id(client, school)
        await client.put(
            f"/api/exams/{exam_id}",
            headers=auth_headers(school["teacher_user"]),
            json={"isActive": False},
        )
        response = await client.get("/api/exams", headers=auth_headers(school["student_user"]))
        assert response.json()["exams"] == []

    @pytest.mark.asyncio
    async def test_detail_rules(self, client, school, seed):
        exam_id = await _exam_id(client, school)
        _, classmate = await seed.user(UserRoleEnum.STUDENT, class_room=school["class_a"])
        await client.post(
            f"/api/exams/{exam_id}/results",
            headers=auth_headers(school["teacher_user"]),
            json={"results": [
                {"studentId": school["student"].id, "marksObtained": 40},
                {"studentId": classmate.id, "marksObtained": 30},
            ]},
        )

        own = await client.get(f"/api/exams/{exam_id}", headers=auth_headers(school["student_user"]))
        assert own.status_code == 200
        assert [r["studentId"] for r in own.json()["exam"]["results"]] == [school["student"].id]

        staff = await client.get(f"/api/exams/{exam_id}", headers=auth_headers(school["teacher_user"]))
        assert staff.json()["exam"]["resultCount"] == 2

        other_class = await client.get(f"/api/exams/{exam_id}", headers=auth_headers(school["other_user"]))
        assert other_class.status_code == 403

        stranger_user, _ = await seed.user(UserRoleEnum.TEACHER)
        stranger = await client.get(f"/api/exams/{exam_id}", headers=auth_headers(stranger_user))
        assert stranger.status_code == 403

        missing = await client.get("/api/exams/999", headers=auth_headers(school["teacher_user"]))
        assert missing.status_code == 404
        assert missing.json()["error"] == "Exam not found"


class TestExamChanges:
    @pytest.mark.asyncio
    async def test_owner_updates(self, client, school):
        exam_id = await _exam_id(client, school)
        response = await client.put(
            f"/api/exams/{exam_id}",
            headers=auth_headers(school["teacher_user"]),
            json={"title": "Final", "totalMarks": 80},
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Exam updated successfully"
        assert response.json()["exam"]["title"] == "Final"
        assert response.json()["exam"]["totalMarks"] == 80

    @pytest.mark.asyncio
    async def test_update_rules(self, client, school, seed):
        exam_id = await _exam_id(client, school)
        headers = auth_headers(school["teacher_user"])

        empty = await client.put(f"/api/exams/{exam_id}", headers=headers, json={})
        assert empty.status_code == 400
        assert empty.json()["error"] == "No valid fields to update"

        await client.post(
            f"/api/exams/{exam_id}/results",
            headers=headers,
            json={"results": [{"studentId": school["student"].id, "marksObtained": 45}]},
        )
        shrink = await client.put(f"/api/exams/{exam_id}", headers=headers, json={"totalMarks": 40})
        assert shrink.status_code == 400

        stranger_user, _ = await seed.user(UserRoleEnum.TEACHER)
        stranger = await client.put(
            f"/api/exams/{exam_id}",
            headers=auth_headers(stranger_user),
            json={"title": "Taken over"},
        )
        assert stranger.status_code == 403

    @pytest.mark.asyncio
    async def test_delete_removes_results(self, client, db_session, admin, school):
        exam_id = await _exam_id(client, school)
        await client.post(
            f"/api/exams/{exam_id}/results",
            headers=auth_headers(school["teacher_user"]),
            json={"results": [{"studentId": school["student"].id, "marksObtained": 25}]},
        )

        student = await client.delete(f"/api/exams/{exam_id}", headers=auth_headers(school["student_user"]))
        assert student.status_code == 403

        response = await client.delete(f"/api/exams/{exam_id}", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["message"] == "Exam deleted successfully"

        gone = await client.get(f"/api/exams/{exam_id}", headers=auth_headers(admin))
        assert gone.status_code == 404
        remaining = await db_session.scalar(select(func.count()).select_from(ExamResult))
        assert remaining == 0


class TestExamResults:
    @pytest.mark.asyncio
    async def test_results_are_graded_and_summarised(self, client, school, seed):
        exam_id = await _exam_id(client, school)
        _, classmate = await seed.user(UserRoleEnum.STUDENT, class_room=school["class_a"])
        headers = auth_headers(school["teacher_user"])

        saved = await client.post(
            f"/api/exams/{exam_id}/results",
            headers=headers,
            json={"results": [
                {"studentId": school["student"].id, "marksObtained": 45, "remarks": "Strong work"},
                {"studentId": classmate.id, "marksObtained": 20},
            ]},
        )
        assert saved.status_code == 200
        assert saved.json()["message"] == "Results saved successfully"
        grades = {r["studentId"]: r["grade"] for r in saved.json()["results"]}
        assert grades == {school["student"].id: "A-", classmate.id: "F"}

        staff = (await client.get(f"/api/exams/{exam_id}/results", headers=headers)).json()
        assert staff["exam"]["resultCount"] == 2
        statistics = staff["statistics"]
        assert statistics["totalStudents"] == 2
        assert statistics["averageMarks"] == 32.5
        assert statistics["averagePercentage"] == 65.0
        assert statistics["highestMarks"] == 45
        assert statistics["lowestMarks"] == 20
        assert statistics["passedStudents"] == 1
        assert statistics["failedStudents"] == 1
        assert statistics["gradeDistribution"]["A-"] == 1
        assert statistics["gradeDistribution"]["F"] == 1

        own = (await client.get(
            f"/api/exams/{exam_id}/results",
            headers=auth_headers(school["student_user"]),
        )).json()
        assert [r["remarks"] for r in own["results"]] == ["Strong work"]
        assert own["statistics"] is None

    @pytest.mark.asyncio
    async def test_no_statistics_before_marking(self, client, school):
        exam_id = await _exam_id(client, school)
        response = await client.get(f"/api/exams/{exam_id}/results", headers=auth_headers(school["teacher_user"]))
        assert response.json()["results"] == []
        assert response.json()["statistics"] is None

    @pytest.mark.asyncio
    async def test_saving_again_overwrites(self, client, db_session, school):
        exam_id = await _exam_id(client, school)
        headers = auth_headers(school["teacher_user"])
        for marks in (30, 48):
            response = await client.post(
                f"/api/exams/{exam_id}/results",
                headers=headers,
                json={"results": [{"studentId": school["student"].id, "marksObtained": marks}]},
            )
            assert response.status_code == 200

        rows = (await db_session.execute(select(ExamResult))).scalars().all()
        assert [(r.marks_obtained, r.grade) for r in rows] == [(48, "A")]

    @pytest.mark.asyncio
    async def test_invalid_entries_save_nothing(self, client, db_session, school):
        exam_id = await _exam_id(client, school)
        headers = auth_headers(school["teacher_user"])

        too_high = await client.post(
            f"/api/exams/{exam_id}/results",
            headers=headers,
            json={"results": [
                {"studentId": school["student"].id, "marksObtained": 20},
                {"studentId": school["student"].id + 100, "marksObtained": 60},
            ]},
        )
        assert too_high.status_code == 400
        assert too_high.json()["error"] == (
            f"Invalid marks for student {school['student'].id + 100}. Must be between 0 and 50"
        )

        wrong_class = await client.post(
            f"/api/exams/{exam_id}/results",
            headers=headers,
            json={"results": [
                {"studentId": school["student"].id, "marksObtained": 20},
                {"studentId": school["other_student"].id, "marksObtained": 20},
            ]},
        )
        assert wrong_class.status_code == 400

        assert await db_session.scalar(select(func.count()).select_from(ExamResult)) == 0

    @pytest.mark.asyncio
    async def test_only_the_owner_marks(self, client, school, seed):
        exam_id = await _exam_id(client, school)
        stranger_user, _ = await seed.user(UserRoleEnum.TEACHER)
        body = {"results": [{"studentId": school["student"].id, "marksObtained": 20}]}

        stranger = await client.post(f"/api/exams/{exam_id}/results", headers=auth_headers(stranger_user), json=body)
        assert stranger.status_code == 403

        student = await client.post(
            f"/api/exams/{exam_id}/results",
            headers=auth_headers(school["student_user"]),
            json=body,
        )
        assert student.status_code == 403


class TestExamReferences:
    @pytest.mark.asyncio
    async def test_classroom_with_exams_cannot_be_deleted(self, client, admin, school, seed):
        spare = await seed.class_room(school["grade"], school["year"], "C", "103")
        await _exam_id(client, school, classRoomId=spare.id)

        response = await client.delete(f"/api/academic/classrooms/{spare.id}", headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.json()["error"] == "Cannot delete classroom with exams"

    @pytest.mark.asyncio
    async def test_subject_with_exams_cannot_be_deleted(self, client, admin, school, seed):
        physics = await seed.subject(code="PHYS1", name="Physics", teacher=school["teacher"])
        await _exam_id(client, school, subjectId=physics.id)

        response = await client.delete(f"/api/academic/subjects/{physics.id}", headers=auth_headers(admin))
        assert response.status_code == 400
        assert "exams" in response.json()["error"]
