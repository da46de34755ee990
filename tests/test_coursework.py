from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from school_portal.models import Assignment, AssignmentSubmission, Attendance
from school_portal.schemas.enums import AttendanceStatus, UserRoleEnum
from school_portal.services.grade_service import letter_grade, percentage_of
from tests.conftest import auth_headers


def _due(days: int = 7) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


class TestAssignmentCreation:
    @pytest.mark.asyncio
    async def test_teacher_creates_for_each_classroom(self, client, school):
        response = await client.post(
            "/api/assignments",
            headers=auth_headers(school["teacher_user"]),
            json={
                "title": "Fractions worksheet",
                "subjectId": school["math"].id,
                "dueDate": _due(),
                "totalMarks": 20,
                "classRoomIds": [school["class_a"].id, school["class_b"].id],
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "2 assignment(s) created successfully"
        assert [a["classRoomId"] for a in body["assignments"]] == [school["class_a"].id, school["class_b"].id]
        assert all(a["teacherId"] == school["teacher"].id for a in body["assignments"])

    @pytest.mark.asyncio
    async def test_single_classroom_id_is_accepted(self, client, school):
        response = await client.post(
            "/api/assignments",
            headers=auth_headers(school["teacher_user"]),
            json={
                "title": "Reading",
                "subjectId": school["math"].id,
                "dueDate": _due(),
                "totalMarks": 10,
                "classRoomIds": school["class_b"].id,
            },
        )
        assert len(response.json()["assignments"]) == 1

    @pytest.mark.asyncio
    async def test_teacher_outside_subject_is_refused(self, client, school, seed):
        history = await seed.subject(code="HIST1", name="History")
        response = await client.post(
            "/api/assignments",
            headers=auth_headers(school["teacher_user"]),
            json={
                "title": "Essay",
                "subjectId": history.id,
                "dueDate": _due(),
                "totalMarks": 10,
                "classRoomIds": [school["class_a"].id],
            },
        )
        assert response.status_code == 403
        assert response.json()["error"] == "You are not authorized to create assignments for this subject"

    @pytest.mark.asyncio
    async def test_admin_must_name_teacher(self, client, admin, school):
        payload = {
            "title": "Quiz prep",
            "subjectId": school["math"].id,
            "dueDate": _due(),
            "totalMarks": 10,
            "classRoomIds": [school["class_a"].id],
        }
        missing = await client.post("/api/assignments", headers=auth_headers(admin), json=payload)
        assert missing.status_code == 400
        assert missing.json()["error"] == "Teacher ID is required for admin"

        created = await client.post(
            "/api/assignments",
            headers=auth_headers(admin),
            json={**payload, "teacherId": school["teacher"].id},
        )
        assert created.status_code == 200

    @pytest.mark.asyncio
    async def test_no_classrooms(self, client, school):
        response = await client.post(
            "/api/assignments",
            headers=auth_headers(school["teacher_user"]),
            json={
                "title": "Nowhere",
                "subjectId": school["math"].id,
                "dueDate": _due(),
                "totalMarks": 10,
                "classRoomIds": [],
            },
        )
        assert response.status_code == 400
        assert response.json()["error"] == "At least one classroom must be selected"

    @pytest.mark.asyncio
    async def test_unknown_classroom_creates_nothing(self, client, school, db_session):
        response = await client.post(
            "/api/assignments",
            headers=auth_headers(school["teacher_user"]),
            json={
                "title": "Partial",
                "subjectId": school["math"].id,
                "dueDate": _due(),
                "totalMarks": 10,
                "classRoomIds": [school["class_a"].id, 999],
            },
        )
        assert response.status_code == 400
        assert (await db_session.execute(select(Assignment))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_students_cannot_create(self, client, school):
        response = await client.post(
            "/api/assignments",
            headers=auth_headers(school["student_user"]),
            json={
                "title": "Homework",
                "subjectId": school["math"].id,
                "dueDate": _due(),
                "totalMarks": 10,
                "classRoomIds": [school["class_a"].id],
            },
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_semester(self, client, school, db_session):
        payload = {
            "title": "Term project",
            "subjectId": school["math"].id,
            "dueDate": _due(),
            "totalMarks": 10,
            "classRoomIds": [school["class_a"].id],
        }
        response = await client.post(
            "/api/assignments",
            headers=auth_headers(school["teacher_user"]),
            json={**payload, "semesterId": 999},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid semester"
        assert (await db_session.execute(select(Assignment))).scalars().all() == []

        scoped = await client.post(
            "/api/assignments",
            headers=auth_headers(school["teacher_user"]),
            json={**payload, "semesterId": school["semester"].id},
        )
        assert scoped.json()["assignments"][0]["semesterId"] == school["semester"].id


class TestAssignmentListing:
    async def _create(self, client, school, class_ids):
        await client.post(
            "/api/assignments",
            headers=auth_headers(school["teacher_user"]),
            json={
                "title": "Shared task",
                "subjectId": school["math"].id,
                "dueDate": _due(),
                "totalMarks": 10,
                "classRoomIds": class_ids,
            },
        )

    @pytest.mark.asyncio
    async def test_student_sees_own_class_only(self, client, school):
        await self._create(client, school, [school["class_b"].id])
        response = await client.get("/api/assignments", headers=auth_headers(school["student_user"]))
        assert response.json()["assignments"] == []

        other = await client.get("/api/assignments", headers=auth_headers(school["other_user"]))
        assert len(other.json()["assignments"]) == 1

    @pytest.mark.asyncio
    async def test_student_without_class(self, client, seed):
        user, _ = await seed.user(UserRoleEnum.STUDENT)
        response = await client.get("/api/assignments", headers=auth_headers(user))
        assert response.status_code == 404
        assert response.json()["error"] == "Student not found or not assigned to class"

    @pytest.mark.asyncio
    async def test_teacher_sees_own_and_admin_filters(self, client, admin, school, seed):
        await self._create(client, school, [school["class_a"].id, school["class_b"].id])
        other_user, _ = await seed.user(UserRoleEnum.TEACHER)

        own = await client.get("/api/assignments", headers=auth_headers(school["teacher_user"]))
        assert len(own.json()["assignments"]) == 2

        stranger = await client.get("/api/assignments", headers=auth_headers(other_user))
        assert stranger.json()["assignments"] == []

        filtered = await client.get(
            "/api/assignments",
            params={"classRoomId": school["class_b"].id},
            headers=auth_headers(admin),
        )
        assert [a["classRoomId"] for a in filtered.json()["assignments"]] == [school["class_b"].id]

    @pytest.mark.asyncio
    async def test_parent_role_is_refused(self, client, school):
        response = await client.get("/api/assignments", headers=auth_headers(school["parent_user"]))
        assert response.status_code == 403


class TestAttendance:
    @pytest.mark.asyncio
    async def test_grade_levels_per_role(self, client, admin, school, seed):
        second = await seed.grade_level(2)

        everything = await client.get("/api/attendance", headers=auth_headers(admin))
        assert [g["id"] for g in everything.json()["gradeLevels"]] == [school["grade"].id, second.id]

        taught = await client.get("/api/attendance", headers=auth_headers(school["teacher_user"]))
        assert [g["id"] for g in taught.json()["gradeLevels"]] == [school["grade"].id]

        children = await client.get("/api/attendance", headers=auth_headers(school["parent_user"]))
        assert [g["id"] for g in children.json()["gradeLevels"]] == [school["grade"].id]

        student = await client.get("/api/attendance", headers=auth_headers(school["student_user"]))
        assert student.status_code == 403

    @pytest.mark.asyncio
    async def test_mark_then_update(self, client, school, db_session):
        payload = {
            "classRoomId": school["class_a"].id,
            "subjectId": school["math"].id,
            "date": "2025-10-06",
            "records": [{"studentId": school["student"].id, "status": "PRESENT"}],
        }
        headers = auth_headers(school["teacher_user"])

        first = await client.post("/api/attendance", headers=headers, json=payload)
        assert first.status_code == 200
        assert (first.json()["created"], first.json()["updated"]) == (1, 0)

        payload["records"][0].update(status="LATE", remarks="Bus delay")
        second = await client.post("/api/attendance", headers=headers, json=payload)
        assert (second.json()["created"], second.json()["updated"]) == (0, 1)

        rows = (await db_session.execute(
            select(Attendance).execution_options(populate_existing=True)
        )).scalars().all()
        assert len(rows) == 1
        assert rows[0].status == AttendanceStatus.LATE
        assert rows[0].timetable_id == school["lesson"].id
        assert rows[0].date == date(2025, 10, 6)

    @pytest.mark.asyncio
    async def test_student_from_another_class(self, client, school):
        response = await client.post(
            "/api/attendance",
            headers=auth_headers(school["teacher_user"]),
            json={
                "classRoomId": school["class_a"].id,
                "subjectId": school["math"].id,
                "date": "2025-10-06",
                "records": [{"studentId": school["other_student"].id, "status": "ABSENT"}],
            },
        )
        assert response.status_code == 400
        assert response.json()["error"] == f"Student {school['other_student'].id} is not in this classroom"

    @pytest.mark.asyncio
    async def test_no_lesson_for_subject_and_class(self, client, school):
        response = await client.post(
            "/api/attendance",
            headers=auth_headers(school["teacher_user"]),
            json={
                "classRoomId": school["class_b"].id,
                "subjectId": school["math"].id,
                "date": "2025-10-06",
                "records": [{"studentId": school["other_student"].id, "status": "PRESENT"}],
            },
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_status_is_rejected(self, client, school):
        response = await client.post(
            "/api/attendance",
            headers=auth_headers(school["teacher_user"]),
            json={
                "classRoomId": school["class_a"].id,
                "subjectId": school["math"].id,
                "date": "2025-10-06",
                "records": [{"studentId": school["student"].id, "status": "SICK"}],
            },
        )
        assert response.status_code == 400


class TestGrades:
    @pytest.mark.parametrize(
        "percentage, expected",
        [(100, "A+"), (97, "A+"), (96.99, "A"), (90, "A-"), (85, "B"), (70, "C-"), (60, "D-"), (59.99, "F"), (0, "F")],
    )
    def test_letter_scale(self, percentage, expected):
        assert letter_grade(percentage) == expected

    def test_percentage_of(self):
        assert percentage_of(1, 3) == 33.33
        assert percentage_of(5, 0) == 0

    @pytest.mark.asyncio
    async def test_teacher_records_grade(self, client, school):
        response = await client.post(
            "/api/grades",
            headers=auth_headers(school["teacher_user"]),
            json={
                "studentId": school["student"].id,
                "subjectId": school["math"].id,
                "marks": 44,
                "totalMarks": 50,
                "examType": "QUIZ",
                "examDate": "2025-10-10",
            },
        )
        assert response.status_code == 201
        grade = response.json()["grade"]
        assert grade["percentage"] == 88.0
        assert grade["letterGrade"] == "B+"
        assert grade["teacherId"] == school["teacher"].id

    @pytest.mark.asyncio
    async def test_marks_above_total(self, client, school):
        response = await client.post(
            "/api/grades",
            headers=auth_headers(school["teacher_user"]),
            json={
                "studentId": school["student"].id,
                "subjectId": school["math"].id,
                "marks": 60,
                "totalMarks": 50,
                "examType": "QUIZ",
                "examDate": "2025-10-10",
            },
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_teacher_outside_subject(self, client, school, seed):
        art = await seed.subject(code="ART1", name="Art")
        response = await client.post(
            "/api/grades",
            headers=auth_headers(school["teacher_user"]),
            json={
                "studentId": school["student"].id,
                "subjectId": art.id,
                "marks": 10,
                "totalMarks": 10,
                "examType": "PROJECT",
                "examDate": "2025-10-10",
            },
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_student(self, client, admin, school):
        response = await client.post(
            "/api/grades",
            headers=auth_headers(admin),
            json={
                "studentId": 999,
                "subjectId": school["math"].id,
                "marks": 10,
                "totalMarks": 10,
                "examType": "FINAL",
                "examDate": "2025-10-10",
            },
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid student"


class TestTeacherSubjects:
    @pytest.mark.asyncio
    async def test_admin_replaces_subjects(self, client, admin, school, seed):
        science = await seed.subject(code="SCI1", name="Science")
        path = f"/api/users/teachers/{school['teacher_user'].id}/subjects"

        current = await client.get(path, headers=auth_headers(admin))
        assert [s["code"] for s in current.json()["subjects"]] == ["MATH1"]

        response = await client.put(
            path,
            headers=auth_headers(admin),
            json={"subjectIds": [science.id, school["math"].id]},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["teacher"]["id"] == school["teacher"].id
        assert [s["code"] for s in body["subjects"]] == ["MATH1", "SCI1"]

    @pytest.mark.asyncio
    async def test_unknown_subject_leaves_assignment_untouched(self, client, admin, school):
        path = f"/api/users/teachers/{school['teacher_user'].id}/subjects"
        response = await client.put(path, headers=auth_headers(admin), json={"subjectIds": [999]})
        assert response.status_code == 400
        assert response.json()["error"] == "One or more subjects not found"

        current = await client.get(path, headers=auth_headers(admin))
        assert [s["id"] for s in current.json()["subjects"]] == [school["math"].id]

    @pytest.mark.asyncio
    async def test_not_a_teacher(self, client, admin, school):
        response = await client.get(
            f"/api/users/teachers/{school['parent_user'].id}/subjects",
            headers=auth_headers(admin),
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Teacher not found"

    @pytest.mark.asyncio
    async def test_admin_only(self, client, school):
        response = await client.put(
            f"/api/users/teachers/{school['teacher_user'].id}/subjects",
            headers=auth_headers(school["teacher_user"]),
            json={"subjectIds": []},
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_assigned_subject_unlocks_coursework(self, client, admin, school, seed):
        history = await seed.subject(code="HIST1", name="History")
        teacher = auth_headers(school["teacher_user"])
        payload = {
            "title": "Timeline",
            "subjectId": history.id,
            "dueDate": _due(),
            "totalMarks": 10,
            "classRoomIds": [school["class_a"].id],
        }
        grade = {
            "studentId": school["student"].id,
            "subjectId": history.id,
            "marks": 8,
            "totalMarks": 10,
            "examType": "QUIZ",
            "examDate": "2025-10-10",
        }
        assert (await client.post("/api/assignments", headers=teacher, json=payload)).status_code == 403
        assert (await client.post("/api/grades", headers=teacher, json=grade)).status_code == 403

        await client.put(
            f"/api/users/teachers/{school['teacher_user'].id}/subjects",
            headers=auth_headers(admin),
            json={"subjectIds": [school["math"].id, history.id]},
        )

        assert (await client.post("/api/assignments", headers=teacher, json=payload)).status_code == 200
        assert (await client.post("/api/grades", headers=teacher, json=grade)).status_code == 201

    @pytest.mark.asyncio
    async def test_subject_assignments_overview(self, client, school, seed):
        await seed.subject(code="ALG2", name="Algebra", teacher=school["teacher"])
        await client.post(
            "/api/assignments",
            headers=auth_headers(school["teacher_user"]),
            json={
                "title": "Worksheet",
                "subjectId": school["math"].id,
                "dueDate": _due(),
                "totalMarks": 10,
                "classRoomIds": [school["class_b"].id, school["class_a"].id],
            },
        )

        response = await client.get(
            "/api/teachers/subject-assignments",
            headers=auth_headers(school["teacher_user"]),
        )
        assert response.status_code == 200
        groups = {g["subject"]["code"]: g for g in response.json()["subjects"]}
        assert set(groups) == {"MATH1", "ALG2"}

        math = groups["MATH1"]
        assert len(math["assignments"]) == 2
        assert [g["id"] for g in math["grades"]] == [school["grade"].id]
        assert [c["id"] for c in math["classrooms"]] == [school["class_a"].id, school["class_b"].id]
        assert groups["ALG2"]["assignments"] == []

    @pytest.mark.asyncio
    async def test_subject_assignments_are_for_teachers(self, client, admin):
        response = await client.get("/api/teachers/subject-assignments", headers=auth_headers(admin))
        assert response.status_code == 403


class TestSubmissions:
    async def _assignment(self, seed, school, days: int = 3, class_room=None, total_marks: float = 20):
        return await seed._save(Assignment(
            title="Essay",
            subject_id=school["math"].id,
            teacher_id=school["teacher"].id,
            class_room_id=(class_room or school["class_a"]).id,
            due_date=datetime.now(timezone.utc) + timedelta(days=days),
            total_marks=total_marks,
            is_active=True,
        ))

    @pytest.mark.asyncio
    async def test_submit_grade_and_review(self, client, school, seed):
        assignment = await self._assignment(seed, school)
        student = auth_headers(school["student_user"])
        path = f"/api/assignments/{assignment.id}/submissions"

        submitted = await client.post(path, headers=student, json={"content": "My essay"})
        assert submitted.status_code == 201
        assert submitted.json()["message"] == "Assignment submitted successfully"
        submission = submitted.json()["submission"]
        assert submission["studentId"] == school["student"].id
        assert submission["student"]["user"]["id"] == school["student_user"].id

        statuses = await client.get(
            "/api/parent/assignments",
            params={"studentId": school["student"].id},
            headers=auth_headers(school["parent_user"]),
        )
        assert [a["status"] for a in statuses.json()["assignments"]] == ["SUBMITTED"]

        graded = await client.put(
            f"{path}/{submission['id']}",
            headers=auth_headers(school["teacher_user"]),
            json={"marksObtained": 17, "feedback": "Well argued"},
        )
        assert graded.status_code == 200
        assert graded.json()["message"] == "Submission graded successfully"
        result = graded.json()["submission"]
        assert result["marksObtained"] == 17.0
        assert result["feedback"] == "Well argued"
        assert result["gradedById"] == school["teacher_user"].id
        assert result["gradedAt"] is not None

        own = await client.get(path, headers=student)
        assert [s["marksObtained"] for s in own.json()["submissions"]] == [17.0]

    @pytest.mark.asyncio
    async def test_resubmission_updates(self, client, school, seed, db_session):
        assignment = await self._assignment(seed, school)
        student = auth_headers(school["student_user"])
        path = f"/api/assignments/{assignment.id}/submissions"

        await client.post(path, headers=student, json={"content": "Draft"})
        again = await client.post(path, headers=student, json={"content": "Final"})
        assert again.status_code == 200
        assert again.json()["message"] == "Assignment submission updated successfully"
        assert again.json()["submission"]["content"] == "Final"

        rows = (await db_session.execute(select(AssignmentSubmission))).scalars().all()
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_deadline_passed(self, client, school, seed):
        assignment = await self._assignment(seed, school, days=-1)
        response = await client.post(
            f"/api/assignments/{assignment.id}/submissions",
            headers=auth_headers(school["student_user"]),
            json={"content": "Too late"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Assignment submission deadline has passed"

    @pytest.mark.asyncio
    async def test_other_classroom_is_not_accessible(self, client, school, seed):
        assignment = await self._assignment(seed, school, class_room=school["class_b"])
        response = await client.post(
            f"/api/assignments/{assignment.id}/submissions",
            headers=auth_headers(school["student_user"]),
            json={"content": "Wrong class"},
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Assignment not found or not accessible"

    @pytest.mark.asyncio
    async def test_only_students_submit(self, client, school, seed):
        assignment = await self._assignment(seed, school)
        response = await client.post(
            f"/api/assignments/{assignment.id}/submissions",
            headers=auth_headers(school["teacher_user"]),
            json={"content": "On behalf"},
        )
        assert response.status_code == 403
        assert response.json()["error"] == "Only students can submit assignments"

    @pytest.mark.asyncio
    async def test_review_rules(self, client, admin, school, seed):
        assignment = await self._assignment(seed, school)
        await seed._save(AssignmentSubmission(
            assignment_id=assignment.id,
            student_id=school["student"].id,
            submitted_at=datetime.now(timezone.utc),
        ))
        path = f"/api/assignments/{assignment.id}/submissions"

        owner = await client.get(path, headers=auth_headers(school["teacher_user"]))
        assert len(owner.json()["submissions"]) == 1
        assert len((await client.get(path, headers=auth_headers(admin))).json()["submissions"]) == 1
        assert (await client.get(path, headers=auth_headers(school["other_user"]))).json()["submissions"] == []

        stranger_user, _ = await seed.user(UserRoleEnum.TEACHER)
        stranger = await client.get(path, headers=auth_headers(stranger_user))
        assert stranger.status_code == 404
        assert stranger.json()["error"] == "Assignment not found or unauthorized"

        parent = await client.get(path, headers=auth_headers(school["parent_user"]))
        assert parent.status_code == 403

    @pytest.mark.asyncio
    async def test_grading_limits(self, client, school, seed):
        assignment = await self._assignment(seed, school, total_marks=10)
        submission = await seed._save(AssignmentSubmission(
            assignment_id=assignment.id,
            student_id=school["student"].id,
            submitted_at=datetime.now(timezone.utc),
        ))
        path = f"/api/assignments/{assignment.id}/submissions/{submission.id}"
        teacher = auth_headers(school["teacher_user"])

        too_many = await client.put(path, headers=teacher, json={"marksObtained": 11})
        assert too_many.status_code == 400
        assert too_many.json()["error"] == "Marks cannot exceed total marks"

        missing = await client.put(path, headers=teacher, json={"feedback": "No mark"})
        assert missing.status_code == 400

        stranger_user, _ = await seed.user(UserRoleEnum.TEACHER)
        stranger = await client.put(path, headers=auth_headers(stranger_user), json={"marksObtained": 5})
        assert stranger.status_code == 404

        unknown = await client.put(
            f"/api/assignments/{assignment.id}/submissions/999",
            headers=teacher,
            json={"marksObtained": 5},
        )
        assert unknown.status_code == 404
        assert unknown.json()["error"] == "Submission not found"
