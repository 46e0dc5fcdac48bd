import asyncio
import smtplib
from datetime import timedelta

from therapy_booking.app.auth import create_access_token
from therapy_booking.app.routes import auth as auth_routes
from therapy_booking.app.models import ClientProfile, DoctorProfile, User

from .helpers import (
    PASSWORD,
    auth_headers,
    generate_random_email,
    login_user,
    register_user,
)


def test_register_client_creates_profile_and_requires_verification(client, db):
    email = generate_random_email("client")
    response = client.post("/api/auth/register", json={
        "email": email,
        "password": PASSWORD,
        "first_name": "Amina",
        "last_name": "Salem",
    })
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["success"] is True
    assert body["data"]["requires_verification"] is True
    assert body["data"]["user"]["role"] == "CLIENT"
    assert body["data"]["user"]["preferred_language"] == "FRENCH"
    assert "hashed_password" not in body["data"]["user"]

    user = db.query(User).filter(User.email == email).one()
    assert user.is_verified is False
    assert user.verification_token
    assert db.query(ClientProfile).filter(ClientProfile.user_id == user.id).count() == 1


def test_register_doctor_creates_doctor_profile(client, db):
    user = register_user(client, "DOCTOR", preferred_language="ARABIC")
    profile = db.query(DoctorProfile).filter(DoctorProfile.user_id == user["id"]).one()
    assert profile.hourly_rate == 0
    assert profile.languages == ["ARABIC"]


def test_register_rejects_duplicates_and_bad_payloads(client):
    user = register_user(client, "CLIENT")

    response = client.post("/api/auth/register", json={
        "email": user["email"], "password": PASSWORD, "first_name": "Again", "last_name": "User",
    })
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "User already exists"}

    response = client.post("/api/auth/register", json={
        "password": "123", "first_name": "X", "last_name": "Valid",
    })
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation error"
    fields = {error["field"] for error in body["errors"]}
    assert {"password", "first_name"} <= fields

    response = client.post("/api/auth/register", json={
        "email": generate_random_email("admin"), "password": PASSWORD,
        "first_name": "Sneaky", "last_name": "Admin", "role": "ADMIN",
    })
    assert response.status_code == 400


def test_login_requires_verified_email(client, db):
    user = register_user(client, "CLIENT")

    response = client.post("/api/auth/login", json={"email": user["email"], "password": PASSWORD})
    assert response.status_code == 403
    assert response.json()["requires_verification"] is True

    token = db.query(User).filter(User.id == user["id"]).one().verification_token
    response = client.get("/api/auth/verify-email", params={"token": token})
    assert response.status_code == 200, response.text

    response = client.get("/api/auth/verify-email", params={"token": token})
    assert response.status_code == 400

    access_token = login_user(client, user["email"])
    response = client.get("/api/auth/me", headers=auth_headers(access_token))
    assert response.status_code == 200
    assert response.json()["data"]["user"]["id"] == user["id"]


def test_phone_only_account_logs_in_without_verification(client):
    register_user(client, "CLIENT", email=None, phone="+22245000001")
    response = client.post("/api/auth/login", json={"phone": "+22245000001", "password": PASSWORD})
    assert response.status_code == 200, response.text
    assert response.json()["data"]["token"]


def test_login_with_wrong_password(client):
    user = register_user(client, "CLIENT")
    response = client.post("/api/auth/login", json={"email": user["email"], "password": "wrong-password"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"


def test_error_messages_follow_request_locale(client):
    user = register_user(client, "CLIENT")
    payload = {"email": user["email"], "password": "wrong-password"}

    response = client.post("/api/auth/login?lng=fr", json=payload)
    assert response.json()["message"] == "Identifiants invalides"

    response = client.post("/api/auth/login", json=payload, headers={"Accept-Language": "ar"})
    assert response.json()["message"] == "بيانات الاعتماد غير صحيحة"


def test_token_errors_are_distinct(client, patient):
    user, _ = patient

    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["message"] == "Authentication required"

    response = client.get("/api/auth/me", headers=auth_headers("not-a-jwt"))
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"

    expired = create_access_token({"sub": str(user["id"])}, expires_delta=timedelta(seconds=-30))
    response = client.get("/api/auth/me", headers=auth_headers(expired))
    assert response.status_code == 401
    assert response.json()["message"] == "Token expired"

    orphan = create_access_token({"sub": "999999"})
    response = client.get("/api/auth/me", headers=auth_headers(orphan))
    assert response.status_code == 401
    assert response.json()["message"] == "User not found"


def test_update_language(client, patient):
    _, token = patient
    response = client.patch("/api/auth/language", json={"preferred_language": "ARABIC"},
                            headers=auth_headers(token))
    assert response.status_code == 200
    assert response.json()["data"]["user"]["preferred_language"] == "ARABIC"

    response = client.patch("/api/auth/language", json={"preferred_language": "GERMAN"},
                            headers=auth_headers(token))
    assert response.status_code == 400


def test_forgot_and_reset_password(client, db, patient):
    user, _ = patient

    unknown = client.post("/api/auth/forgot-password", json={"email": generate_random_email("nobody")})
    known = client.post("/api/auth/forgot-password", json={"email": user["email"]})
    assert unknown.status_code == known.status_code == 200
    assert unknown.json()["message"] == known.json()["message"]

    reset_token = db.query(User).filter(User.id == user["id"]).one().reset_password_token
    assert reset_token

    response = client.post("/api/auth/reset-password", json={"token": "bogus", "password": "newpassword1"})
    assert response.status_code == 400

    response = client.post("/api/auth/reset-password", json={"token": reset_token, "password": "newpassword1"})
    assert response.status_code == 200, response.text

    login_user(client, user["email"], "newpassword1")
    response = client.post("/api/auth/login", json={"email": user["email"], "password": PASSWORD})
    assert response.status_code == 401


def test_resend_verification(client, db):
    user = register_user(client, "CLIENT")
    old_token = db.query(User).filter(User.id == user["id"]).one().verification_token

    response = client.post("/api/auth/resend-verification", json={"email": user["email"]})
    assert response.status_code == 200, response.text

    db.expire_all()
    assert db.query(User).filter(User.id == user["id"]).one().verification_token != old_token


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "OK"


def recording_sender(calls, error=None):
    """Records which thread each send ran on; an event loop there means the handler blocked it."""
    def send(to, *args):
        try:
            asyncio.get_running_loop()
            calls.append(("event-loop", to))
        except RuntimeError:
            calls.append(("worker", to))
        if error:
            raise error
    return send


def test_emails_are_sent_off_the_event_loop(client, monkeypatch):
    calls = []
    monkeypatch.setattr(auth_routes, "send_verification_email",
                        recording_sender(calls, smtplib.SMTPException("mailbox unavailable")))
    monkeypatch.setattr(auth_routes, "send_password_reset_email", recording_sender(calls))

    # A failed delivery does not fail registration
    user = register_user(client, "CLIENT")
    response = client.post("/api/auth/forgot-password", json={"email": user["email"]})
    assert response.status_code == 200

    assert calls == [("worker", user["email"]), ("worker", user["email"])]


def test_resend_verification_reports_delivery_failure(client, monkeypatch):
    user = register_user(client, "CLIENT")
    calls = []
    monkeypatch.setattr(auth_routes, "send_verification_email",
                        recording_sender(calls, smtplib.SMTPException("mailbox unavailable")))

    response = client.post("/api/auth/resend-verification", json={"email": user["email"]})
    assert response.status_code == 500
    assert response.json()["message"] == "Failed to send verification email"
    assert calls == [("worker", user["email"])]
