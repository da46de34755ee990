import pytest
from sqlalchemy import select

from school_portal.core.security import generate_token
from school_portal.models import GradeLevel, Student, User
from school_portal.schemas.enums import UserRoleEnum
from tests.conftest import DEFAULT_PASSWORD, auth_headers


@pytest.mark.asyncio
async def test_login_returns_token_and_sets_cookie(client, admin):
    response = await client.post(
        "/api/auth/login",
        json={"email": "ADMIN@school.org", "password": DEFAULT_PASSWORD},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["token"]
    assert body["user"]["email"] == "admin@school.org"
    assert body["user"]["role"] == "ADMIN"
    assert "passwordHash" not in body["user"]

    cookie = response.headers["set-cookie"]
    assert "auth_token=" in cookie
    assert "httponly" in cookie.lower()


@pytest.mark.asyncio
async def test_login_with_wrong_password(client, admin):
    response = await client.post(
        "/api/auth/login",
        json={"email": "admin@school.org", "password": "nope-nope"},
    )
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Invalid email or password"}


@pytest.mark.asyncio
async def test_login_inactive_account(client, seed):
    await seed.user(UserRoleEnum.TEACHER, email="gone@school.org", is_active=False)
    response = await client.post(
        "/api/auth/login",
        json={"email": "gone@school.org", "password": DEFAULT_PASSWORD},
    )
    assert response.status_code == 401
    assert response.json()["error"] == "Account is inactive"


@pytest.mark.asyncio
async def test_login_rejects_malformed_body(client):
    response = await client.post("/api/auth/login", json={"email": "not-an-email"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request data"


@pytest.mark.asyncio
async def test_protected_route_without_token(client):
    response = await client.get("/api/auth/profile")
    assert response.status_code == 401
    assert response.json()["error"] == "No token provided"


@pytest.mark.asyncio
async def test_protected_route_with_malformed_token(client):
    response = await client.get("/api/auth/profile", headers={"Authorization": "Bearer abc.def.ghi"})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid token"


@pytest.mark.asyncio
async def test_protected_route_with_expired_token(client, admin):
    token = generate_token(admin.id, admin.email, admin.role, expires_hours=-1)
    response = await client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_cookie_used_when_header_is_stale(client, admin):
    token = generate_token(admin.id, admin.email, admin.role)
    response = await client.get(
        "/api/auth/profile",
        headers={"Authorization": "Bearer stale", "Cookie": f"auth_token={token}"},
    )
    assert response.status_code == 200
    assert response.json()["user"]["id"] == admin.id


@pytest.mark.asyncio
async def test_student_profile_includes_classroom_and_parents(client, school):
    response = await client.get("/api/auth/profile", headers=auth_headers(school["student_user"]))
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["role"] == "STUDENT"
    assert user["student"]["classRoom"]["id"] == school["class_a"].id
    assert [p["id"] for p in user["parents"]] == [school["parent"].id]
    assert user["parents"][0]["relationship"] == "Father"


@pytest.mark.asyncio
async def test_parent_profile_lists_children(client, school):
    response = await client.get("/api/auth/profile", headers=auth_headers(school["parent_user"]))
    user = response.json()["user"]
    assert [child["id"] for child in user["children"]] == [school["student"].id]


@pytest.mark.asyncio
async def test_token_of_deleted_user(client):
    token = generate_token(999, "ghost@school.org", "ADMIN")
    response = await client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["error"] == "User not found"


@pytest.mark.asyncio
async def test_token_of_deactivated_admin_is_refused(client, seed, db_session):
    user, _ = await seed.user(UserRoleEnum.ADMIN, is_active=False)
    response = await client.post(
        "/api/academic/grade-levels",
        headers=auth_headers(user),
        json={"name": "Grade 9", "nameAr": "الصف 9", "level": 9},
    )
    assert response.status_code == 401
    assert response.json()["error"] == "Account is inactive"
    assert (await db_session.execute(select(GradeLevel))).scalars().all() == []


@pytest.mark.asyncio
async def test_account_deactivated_after_login(client, admin, db_session):
    headers = auth_headers(admin)
    assert (await client.get("/api/auth/profile", headers=headers)).status_code == 200

    admin.is_active = False
    await db_session.commit()

    response = await client.get("/api/auth/profile", headers=headers)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_register_student_with_profile(client, admin, school, db_session):
    response = await client.post(
        "/api/auth/register",
        headers=auth_headers(admin),
        json={
            "email": "New.Student@School.org",
            "password": "secret123",
            "name": "New Student",
            "role": "STUDENT",
            "studentNumber": "S9000",
            "classRoomId": school["class_b"].id,
        },
    )
    assert response.status_code == 201
    created = response.json()["user"]
    assert created["email"] == "new.student@school.org"

    student = await db_session.scalar(select(Student).where(Student.user_id == created["id"]))
    assert student.class_room_id == school["class_b"].id


@pytest.mark.asyncio
async def test_register_duplicate_email(client, admin):
    response = await client.post(
        "/api/auth/register",
        headers=auth_headers(admin),
        json={"email": "admin@school.org", "password": "secret123", "name": "Twin", "role": "ADMIN"},
    )
    assert response.status_code == 409
    assert response.json()["error"] == "Email already exists"


@pytest.mark.asyncio
async def test_register_requires_admin(client, school, db_session):
    response = await client.post(
        "/api/auth/register",
        headers=auth_headers(school["teacher_user"]),
        json={"email": "x@school.org", "password": "secret123", "name": "X", "role": "STUDENT"},
    )
    assert response.status_code == 403
    assert await db_session.scalar(select(User).where(User.email == "x@school.org")) is None


@pytest.mark.asyncio
async def test_logout_clears_cookie(client):
    response = await client.post("/api/auth/logout")
    assert response.status_code == 200
    assert 'auth_token=""' in response.headers["set-cookie"] or "Max-Age=0" in response.headers["set-cookie"]
