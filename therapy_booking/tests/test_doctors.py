from .helpers import PNG_BYTES, auth_headers, complete_session, create_booking, future_date, register_user


def update_profile(client, token, **fields):
    return client.put("/api/doctors/profile", json=fields, headers=auth_headers(token))


def test_update_profile_uses_canonical_schema(client, doctor):
    _, doctor_token = doctor

    response = update_profile(
        client, doctor_token,
        bio="CBT practitioner",
        specialization=[" Anxiety ", "Depression", " "],
        languages=["FRENCH", "ARABIC"],
        hourly_rate=1500,
        available_hours={"monday": ["09:00-12:00"]},
        years_of_experience=8,
        first_name="Mariem",
    )
    assert response.status_code == 200, response.text
    profile = response.json()["data"]["doctor_profile"]
    assert profile["specialization"] == ["Anxiety", "Depression"]
    assert profile["languages"] == ["FRENCH", "ARABIC"]
    assert profile["hourly_rate"] == 1500
    assert profile["available_hours"] == {"monday": ["09:00-12:00"]}
    assert profile["user"]["first_name"] == "Mariem"

    assert update_profile(client, doctor_token, hourly_rate=-1).status_code == 400
    assert update_profile(client, doctor_token, specialization="Anxiety").status_code == 400
    assert update_profile(client, doctor_token, languages=["SPANISH"]).status_code == 400


def test_update_profile_rejects_taken_email(client, doctor, patient):
    _, doctor_token = doctor
    patient_user, patient_token = patient

    response = update_profile(client, doctor_token, email=patient_user["email"])
    assert response.status_code == 400
    assert response.json()["message"] == "Email already exists"

    assert update_profile(client, patient_token, bio="nope").status_code == 403


def test_public_listing_and_detail(client, doctor):
    doctor_user, doctor_token = doctor
    update_profile(client, doctor_token, specialization=["Anxiety"], languages=["ARABIC"])
    register_user(client, "DOCTOR", first_name="Other")

    response = client.get("/api/doctors")
    assert response.status_code == 200
    assert response.json()["data"]["pagination"]["total"] == 2

    response = client.get("/api/doctors", params={"specialization": "Anxiety"})
    assert [d["user_id"] for d in response.json()["data"]["doctors"]] == [doctor_user["id"]]

    response = client.get("/api/doctors", params={"specialization": "Grief"})
    assert response.json()["data"]["doctors"] == []

    response = client.get("/api/doctors", params={"language": "ARABIC"})
    assert [d["user_id"] for d in response.json()["data"]["doctors"]] == [doctor_user["id"]]

    response = client.get("/api/doctors", params={"search": "oth"})
    assert [d["user"]["first_name"] for d in response.json()["data"]["doctors"]] == ["Other"]

    response = client.get(f"/api/doctors/{doctor_user['id']}")
    assert response.status_code == 200
    assert response.json()["data"]["doctor"]["reviews"] == []

    assert client.get("/api/doctors/999999").status_code == 404


def test_listing_filters_match_non_ascii_specializations(client, doctor):
    doctor_user, doctor_token = doctor
    response = update_profile(client, doctor_token, specialization=["Thérapie de couple", "علاج نفسي"])
    assert response.status_code == 200, response.text
    register_user(client, "DOCTOR", first_name="Other")

    for specialization in ("Thérapie de couple", "علاج نفسي"):
        response = client.get("/api/doctors", params={"specialization": specialization})
        assert [d["user_id"] for d in response.json()["data"]["doctors"]] == [doctor_user["id"]]

    response = client.get("/api/doctors", params={"specialization": "Thérapie"})
    assert response.json()["data"]["doctors"] == []


def test_own_profile_lists_open_bookings(client, doctor, patient):
    doctor_user, doctor_token = doctor
    _, patient_token = patient
    later = create_booking(client, patient_token, doctor_user["id"], session_date=future_date(days=9))
    sooner = create_booking(client, patient_token, doctor_user["id"], session_date=future_date(days=2))
    cancelled = create_booking(client, patient_token, doctor_user["id"])
    client.patch(f"/api/bookings/{cancelled['id']}/status", json={"status": "CANCELLED"},
                 headers=auth_headers(patient_token))

    response = client.get("/api/doctors/profile/me", headers=auth_headers(doctor_token))
    assert response.status_code == 200
    bookings = response.json()["data"]["doctor_profile"]["bookings"]
    assert [b["id"] for b in bookings] == [sooner["id"], later["id"]]

    assert client.get("/api/doctors/profile/me", headers=auth_headers(patient_token)).status_code == 403


def test_statistics_are_recomputed(client, doctor, patient):
    doctor_user, doctor_token = doctor
    _, patient_token = patient
    complete_session(client, doctor_token, patient_token, doctor_user["id"], amount=800)
    confirmed = create_booking(client, patient_token, doctor_user["id"])
    client.patch(f"/api/bookings/{confirmed['id']}/status", json={"status": "CONFIRMED"},
                 headers=auth_headers(doctor_token))

    response = client.get("/api/doctors/statistics/me", headers=auth_headers(doctor_token))
    assert response.status_code == 200
    statistics = response.json()["data"]["statistics"]
    assert statistics["total_sessions"] == 2
    assert statistics["completed_sessions"] == 1
    assert statistics["upcoming_sessions"] == 1
    assert statistics["total_earnings"] == 800
    assert statistics["monthly_earnings"] == 800

    response = client.get(f"/api/doctors/{doctor_user['id']}")
    assert response.json()["data"]["doctor"]["statistics"]["total_sessions"] == 2


def test_photo_uploads(client, doctor, patient):
    _, doctor_token = doctor
    _, patient_token = patient

    response = client.put("/api/doctors/profile/photo", files={"photo": ("me.jpg", PNG_BYTES, "image/jpeg")},
                          headers=auth_headers(doctor_token))
    assert response.status_code == 200, response.text
    assert response.json()["data"]["photo"].startswith("/uploads/doctor-")

    response = client.post("/api/users/profile/photo", files={"photo": ("me.png", PNG_BYTES, "image/png")},
                           headers=auth_headers(patient_token))
    assert response.status_code == 200
    photo = response.json()["data"]["photo"]

    response = client.get("/api/auth/me", headers=auth_headers(patient_token))
    assert response.json()["data"]["user"]["photo"] == photo

    response = client.post("/api/users/profile/photo", files={"photo": ("me.txt", b"text", "text/plain")},
                           headers=auth_headers(patient_token))
    assert response.status_code == 400


def test_client_profile_update(client, patient, other_patient):
    _, patient_token = patient
    other_user, _ = other_patient

    response = client.patch("/api/users/profile", json={
        "first_name": "Fatima",
        "city": "Nouakchott",
        "date_of_birth": "1990-04-12",
    }, headers=auth_headers(patient_token))
    assert response.status_code == 200, response.text
    profile = response.json()["data"]["profile"]
    assert profile["city"] == "Nouakchott"
    assert profile["date_of_birth"] == "1990-04-12"
    assert profile["user"]["first_name"] == "Fatima"

    response = client.patch("/api/users/profile", json={"city": "  "}, headers=auth_headers(patient_token))
    assert response.json()["data"]["profile"]["city"] is None

    response = client.patch("/api/users/profile", json={"email": other_user["email"]},
                            headers=auth_headers(patient_token))
    assert response.status_code == 400

    response = client.get("/api/users/profile", headers=auth_headers(patient_token))
    assert response.json()["data"]["profile"]["user"]["first_name"] == "Fatima"