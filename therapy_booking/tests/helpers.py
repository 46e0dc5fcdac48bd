import random
import string
from datetime import datetime, timedelta, timezone

from therapy_booking.app.auth import get_password_hash
from therapy_booking.app.dependencies import UserRole
from therapy_booking.app.models import User

PASSWORD = "testpassword123"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def generate_random_email(role):
    return f"test_{role.lower()}_{''.join(random.choices(string.ascii_lowercase + string.digits, k=8))}@example.com"


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


def future_date(days=3, hours=0):
    return (datetime.now(timezone.utc) + timedelta(days=days, hours=hours)).isoformat()


def register_user(client, role, **overrides):
    user_data = {
        "email": generate_random_email(role),
        "password": PASSWORD,
        "first_name": "Test",
        "last_name": role.capitalize(),
        "role": role,
    }
    user_data.update(overrides)
    response = client.post("/api/auth/register", json=user_data)
    assert response.status_code == 201, f"{role.capitalize()} registration failed: {response.text}"
    return response.json()["data"]["user"]


def mark_verified(session_factory, user_id):
    with session_factory() as session:
        user = session.get(User, user_id)
        user.is_verified = True
        user.verification_token = None
        session.commit()


def login_user(client, email, password=PASSWORD):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, f"Login failed: {response.text}"
    return response.json()["data"]["token"]


def create_verified_user(client, session_factory, role):
    """Register, verify and log in; returns ``(user, token)``."""
    user = register_user(client, role)
    mark_verified(session_factory, user["id"])
    return user, login_user(client, user["email"])


def create_admin(client, session_factory):
    email = generate_random_email("admin")
    with session_factory() as session:
        admin = User(
            email=email,
            hashed_password=get_password_hash(PASSWORD),
            first_name="Site",
            last_name="Admin",
            role=UserRole.ADMIN.value,
            is_verified=True,
        )
        session.add(admin)
        session.commit()
        admin_id = admin.id
    return {"id": admin_id, "email": email}, login_user(client, email)


def create_booking(client, token, doctor_user_id, **overrides):
    booking_data = {
        "doctor_id": doctor_user_id,
        "session_date": future_date(),
        "session_duration": 60,
        "session_type": "video",
    }
    booking_data.update(overrides)
    response = client.post("/api/bookings", json=booking_data, headers=auth_headers(token))
    assert response.status_code == 201, f"Booking creation failed: {response.text}"
    return response.json()["data"]["booking"]


def set_booking_status(client, token, booking_id, status, **extra):
    return client.patch(
        f"/api/bookings/{booking_id}/status",
        json={"status": status, **extra},
        headers=auth_headers(token),
    )


def submit_payment(client, token, booking_id, amount=500, filename="proof.png", content=PNG_BYTES,
                   content_type="image/png"):
    return client.post(
        "/api/payments/submit",
        data={"booking_id": str(booking_id), "amount": str(amount)},
        files={"screenshot": (filename, content, content_type)},
        headers=auth_headers(token),
    )


def verify_payment(client, token, payment_id):
    return client.patch(f"/api/payments/{payment_id}/verify", headers=auth_headers(token))


def complete_session(client, doctor_token, patient_token, doctor_user_id, amount=500):
    """Drive a booking through confirm, payment and verification to COMPLETED; returns the booking id."""
    booking = create_booking(client, patient_token, doctor_user_id)
    assert set_booking_status(client, doctor_token, booking["id"], "CONFIRMED").status_code == 200

    response = submit_payment(client, patient_token, booking["id"], amount=amount)
    assert response.status_code == 201, response.text
    payment_id = response.json()["data"]["payment"]["id"]
    assert verify_payment(client, doctor_token, payment_id).status_code == 200

    response = set_booking_status(client, doctor_token, booking["id"], "COMPLETED")
    assert response.status_code == 200, response.text
    return booking["id"]
