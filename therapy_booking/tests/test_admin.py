from therapy_booking.app.models import DoctorProfile

from .helpers import auth_headers, complete_session, create_booking, register_user


def test_admin_routes_require_admin(client, doctor, patient):
    _, doctor_token = doctor
    _, patient_token = patient
    for path in ("/api/admin/users", "/api/admin/analytics", "/api/admin/bookings"):
        assert client.get(path).status_code == 401
        assert client.get(path, headers=auth_headers(doctor_token)).status_code == 403
        assert client.get(path, headers=auth_headers(patient_token)).status_code == 403


def test_list_users_with_filters(client, admin, doctor, patient):
    _, admin_token = admin
    doctor_user, _ = doctor
    register_user(client, "CLIENT", first_name="Zeinab")

    response = client.get("/api/admin/users", headers=auth_headers(admin_token))
    assert response.status_code == 200
    assert response.json()["data"]["pagination"]["total"] == 4

    response = client.get("/api/admin/users", params={"role": "DOCTOR"}, headers=auth_headers(admin_token))
    assert [u["id"] for u in response.json()["data"]["users"]] == [doctor_user["id"]]

    response = client.get("/api/admin/users", params={"search": "zein"}, headers=auth_headers(admin_token))
    users = response.json()["data"]["users"]
    assert len(users) == 1 and users[0]["first_name"] == "Zeinab"


def test_verify_user_also_verifies_doctor_profile(client, db, admin):
    _, admin_token = admin
    doctor_user = register_user(client, "DOCTOR")

    response = client.patch(f"/api/admin/users/{doctor_user['id']}/verify", json={"is_verified": True},
                            headers=auth_headers(admin_token))
    assert response.status_code == 200, response.text
    assert response.json()["data"]["user"]["is_verified"] is True
    assert db.query(DoctorProfile).filter(DoctorProfile.user_id == doctor_user["id"]).one().is_verified is True

    response = client.patch("/api/admin/users/999999/verify", json={"is_verified": True},
                            headers=auth_headers(admin_token))
    assert response.status_code == 404


def test_analytics_and_booking_oversight(client, admin, doctor, patient):
    _, admin_token = admin
    doctor_user, doctor_token = doctor
    _, patient_token = patient

    complete_session(client, doctor_token, patient_token, doctor_user["id"], amount=400)
    complete_session(client, doctor_token, patient_token, doctor_user["id"], amount=600)
    create_booking(client, patient_token, doctor_user["id"])

    response = client.get("/api/admin/analytics", headers=auth_headers(admin_token))
    data = response.json()["data"]
    assert data["users"] == {"total": 3, "clients": 1, "doctors": 1}
    assert data["bookings"] == {"total": 3, "completed": 2}
    assert data["revenue"] == {"total": 1000.0, "monthly": 1000.0}

    response = client.get("/api/admin/bookings", params={"status": "PENDING"}, headers=auth_headers(admin_token))
    bookings = response.json()["data"]["bookings"]
    assert len(bookings) == 1
    assert bookings[0]["status"] == "PENDING"

    response = client.get("/api/admin/bookings", params={"limit": 2}, headers=auth_headers(admin_token))
    assert response.json()["data"]["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
