from conftest import STRONG_PASSWORD, completion_token_from, otp_from

ADMIN_EMAIL = "morgan@lakeside.edu"


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def sign_up_admin(client, outbox):
    response = client.post(
        "/auth/admin/generate-otp",
        json={"email": ADMIN_EMAIL, "name": "Morgan Diaz", "university_name": "Lakeside University"},
    )
    assert response.status_code == 200, response.text
    response = client.post(
        "/auth/admin/verify-otp",
        json={
            "email": ADMIN_EMAIL,
            "otp": otp_from(outbox.last_to(ADMIN_EMAIL)),
            "password": STRONG_PASSWORD,
        },
    )
    assert response.status_code == 200, response.text
    body = response.json()
    return body["session"]["access_token"], body["admin"]["university_code"]


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_admin_signup_and_session(client, outbox):
    token, university_code = sign_up_admin(client, outbox)

    me = client.get("/auth/me", headers=auth(token))
    assert me.status_code == 200
    assert me.json()["role"] == "admin"
    assert me.json()["login_path"] == "admin_signup"

    info = client.get(f"/university/info/{university_code.lower()}")
    assert info.json()["university"] == {
        "name": "Lakeside University",
        "university_code": university_code,
    }

    login = client.post(
        "/auth/admin/login", json={"email": ADMIN_EMAIL, "password": STRONG_PASSWORD}
    )
    assert login.status_code == 200
    assert login.json()["session"]["login_path"] == "admin_login"

    exists = client.post("/auth/admin/check-email", json={"email": ADMIN_EMAIL})
    assert exists.json()["exists"] is True


def test_missing_and_expired_tokens(client, outbox, clock):
    token, _ = sign_up_admin(client, outbox)

    missing = client.get("/auth/me")
    assert missing.status_code == 401
    assert missing.json()["code"] == "invalid_token"

    clock.advance(hours=24, seconds=1)
    expired = client.get("/auth/me", headers=auth(token))
    assert expired.status_code == 401
    assert expired.json()["code"] == "token_expired"
    assert expired.json()["expired"] is True


def test_error_body_shape(client):
    response = client.get("/university/info/NOPE-000")

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "code": "tenant_not_found",
        "message": "Invalid university code. Please check and try again.",
        "university_code": "NOPE-000",
    }


def test_request_validation_errors_use_taxonomy(client):
    response = client.post("/auth/admin/login", json={"email": "not-an-email"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "validation_error"
    fields = {error["field"] for error in body["errors"]}
    assert {"email", "password"} <= fields


def test_student_registration_over_http(client, outbox):
    _, university_code = sign_up_admin(client, outbox)

    started = client.post(
        "/student/verify-university-code",
        json={
            "name": "Alex Kim",
            "email": "a@x.edu",
            "university_code": university_code,
            "register_number": "REG-001",
            "class_year": 2,
        },
    )
    assert started.status_code == 200, started.text
    student_id = started.json()["student_id"]
    otp = otp_from(outbox.last_to("a@x.edu"))

    mismatch = client.post("/student/verify-otp", json={"student_id": student_id, "otp": "000000"})
    assert mismatch.status_code == 400
    assert mismatch.json()["code"] == "challenge_mismatch"

    verified = client.post("/student/verify-otp", json={"student_id": student_id, "otp": otp})
    assert verified.status_code == 200

    weak = client.post(
        "/student/complete-registration", json={"student_id": student_id, "password": "Weak1"}
    )
    assert weak.status_code == 400
    assert weak.json()["code"] == "password_policy"
    assert "symbol" in weak.json()["violations"]

    done = client.post(
        "/student/complete-registration",
        json={"student_id": student_id, "password": STRONG_PASSWORD},
    )
    assert done.status_code == 200
    assert done.json()["student"]["status"] == "active"
    me = client.get("/auth/me", headers=auth(done.json()["session"]["access_token"]))
    assert me.json()["role"] == "student"

    again = client.post(
        "/student/verify-university-code",
        json={
            "name": "Alex Kim",
            "email": "a@x.edu",
            "university_code": university_code,
            "register_number": "REG-001",
        },
    )
    assert again.status_code == 409
    assert again.json()["code"] == "already_registered"

    login = client.post(
        "/student/login",
        json={"email": "a@x.edu", "password": STRONG_PASSWORD, "university_code": university_code},
    )
    assert login.status_code == 200
    assert login.json()["session"]["login_path"] == "student_password_login"


def test_faculty_self_registration_and_approval(client, outbox):
    token, university_code = sign_up_admin(client, outbox)

    generated = client.post(
        "/registration-code", json={"code_type": "faculty"}, headers=auth(token)
    )
    assert generated.status_code == 200, generated.text
    code = generated.json()["code"]["code"]

    checked = client.get(f"/verify-registration-code/{code}", params={"code_type": "faculty"})
    assert checked.status_code == 200
    assert checked.json()["university_code"] == university_code

    registration = {
        "registration_code": code,
        "university_code": university_code,
        "name": "Jordan Lee",
        "email": "lee@lakeside.edu",
        "employee_id": "EMP-1",
        "department": "Chemistry",
        "password": STRONG_PASSWORD,
    }
    registered = client.post("/faculty/register", json=registration)
    assert registered.status_code == 201, registered.text
    faculty_id = registered.json()["faculty"]["faculty_id"]
    assert outbox.last_to(ADMIN_EMAIL).subject.startswith("Faculty registration")

    reused = client.post(
        "/faculty/register",
        json=dict(registration, email="kim@lakeside.edu", employee_id="EMP-2"),
    )
    assert reused.status_code == 400
    assert reused.json()["code"] == "invalid_registration_code"

    pending_login = client.post(
        "/faculty/login",
        json={"email": "lee@lakeside.edu", "password": STRONG_PASSWORD, "university_code": university_code},
    )
    assert pending_login.json()["session"]["requires_registration"] is True

    approved = client.post(f"/admin/faculty/{faculty_id}/approve", headers=auth(token))
    assert approved.status_code == 200
    assert approved.json()["faculty"]["status"] == "active"

    codes = client.get("/registration-codes", headers=auth(token)).json()["codes"]
    assert codes[0]["used"] is True
    assert codes[0]["used_by_principal"]["email"] == "lee@lakeside.edu"

    logs = client.get("/admin/registration-logs", headers=auth(token)).json()["logs"]
    assert [log["method"] for log in logs] == ["self-registration"]


def test_admin_created_faculty_completes_profile(client, outbox):
    token, university_code = sign_up_admin(client, outbox)

    created = client.post(
        "/admin/faculty",
        json={
            "name": "Jordan Lee",
            "email": "lee@lakeside.edu",
            "employee_id": "EMP-1",
            "department": "Chemistry",
            "temporary_password": "Temp0rary!Pw",
        },
        headers=auth(token),
    )
    assert created.status_code == 201, created.text
    assert created.json()["faculty"]["state"] == "awaiting_completion"
    link_token = completion_token_from(outbox.last_to("lee@lakeside.edu"))

    login = client.post(
        "/faculty/login",
        json={"email": "lee@lakeside.edu", "password": "Temp0rary!Pw", "university_code": university_code},
    )
    assert login.json()["message"] == "Please complete your registration"
    faculty_token = login.json()["session"]["access_token"]

    completed = client.post(
        f"/faculty/complete-registration/{link_token}",
        json={"phone": "555-0101", "new_password": STRONG_PASSWORD},
    )
    assert completed.status_code == 200, completed.text
    assert completed.json()["faculty"]["registration_completed"] is True

    changed = client.post(
        "/faculty/change-password",
        json={"current_password": STRONG_PASSWORD, "new_password": "An0ther!Pass"},
        headers=auth(faculty_token),
    )
    assert changed.status_code == 200

    forbidden = client.get("/admin/faculty", headers=auth(faculty_token))
    assert forbidden.status_code == 403


def test_registration_code_management(client, outbox):
    token, _ = sign_up_admin(client, outbox)
    code = client.post(
        "/registration-code",
        json={"code_type": "student", "expires_in_days": 7},
        headers=auth(token),
    ).json()["code"]

    deactivated = client.post(
        "/registration-code/deactivate", json={"code_id": code["id"]}, headers=auth(token)
    )
    assert deactivated.json()["code"]["is_active"] is False

    checked = client.get(f"/verify-registration-code/{code['code']}", params={"code_type": "student"})
    assert checked.status_code == 400

    deleted = client.post(
        "/registration-code/delete", json={"code_id": code["id"]}, headers=auth(token)
    )
    assert deleted.status_code == 200
    assert client.get("/registration-codes", headers=auth(token)).json()["codes"] == []

    unauthenticated = client.post("/registration-code", json={"code_type": "student"})
    assert unauthenticated.status_code == 401
