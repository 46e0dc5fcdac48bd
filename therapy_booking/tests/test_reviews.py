from therapy_booking.app.models import ClientProfile, DoctorProfile, Review

from .helpers import auth_headers, complete_session, create_booking


def post_review(client, token, booking_id, rating, comment=None):
    return client.post("/api/reviews", json={"booking_id": booking_id, "rating": rating, "comment": comment},
                       headers=auth_headers(token))


def test_review_flow_recomputes_doctor_rating(client, db, doctor, patient):
    doctor_user, doctor_token = doctor
    patient_user, patient_token = patient

    first = complete_session(client, doctor_token, patient_token, doctor_user["id"])
    second = complete_session(client, doctor_token, patient_token, doctor_user["id"])

    response = post_review(client, patient_token, first, 5, "Very helpful")
    assert response.status_code == 201, response.text
    review = response.json()["data"]["review"]
    assert review["rating"] == 5

    client_profile = db.query(ClientProfile).filter(ClientProfile.user_id == patient_user["id"]).one()
    assert db.query(Review).filter(Review.id == review["id"]).one().client_id == client_profile.id

    assert post_review(client, patient_token, second, 2).status_code == 201

    profile = db.query(DoctorProfile).filter(DoctorProfile.user_id == doctor_user["id"]).one()
    assert profile.rating == 3.5
    assert profile.total_reviews == 2

    response = post_review(client, patient_token, first, 4)
    assert response.status_code == 400
    assert response.json()["message"] == "Review already exists for this booking"


def test_review_preconditions(client, doctor, patient, other_patient):
    doctor_user, doctor_token = doctor
    _, patient_token = patient
    _, other_token = other_patient

    pending = create_booking(client, patient_token, doctor_user["id"])
    response = post_review(client, patient_token, pending["id"], 5)
    assert response.status_code == 400
    assert response.json()["message"] == "Session must be completed before reviewing"

    completed = complete_session(client, doctor_token, patient_token, doctor_user["id"])
    assert post_review(client, other_token, completed, 5).status_code == 403
    assert post_review(client, patient_token, 999999, 5).status_code == 404
    assert post_review(client, patient_token, completed, 6).status_code == 400
    assert post_review(client, patient_token, completed, 0).status_code == 400
    assert post_review(client, doctor_token, completed, 5).status_code == 403


def test_doctor_reviews_are_public_and_newest_first(client, db, doctor, patient):
    doctor_user, doctor_token = doctor
    _, patient_token = patient

    first = complete_session(client, doctor_token, patient_token, doctor_user["id"])
    second = complete_session(client, doctor_token, patient_token, doctor_user["id"])
    post_review(client, patient_token, first, 4, "Good")
    post_review(client, patient_token, second, 5, "Great")

    profile_id = db.query(DoctorProfile).filter(DoctorProfile.user_id == doctor_user["id"]).one().id
    response = client.get(f"/api/reviews/doctor/{profile_id}")
    assert response.status_code == 200
    data = response.json()["data"]
    assert [r["comment"] for r in data["reviews"]] == ["Great", "Good"]
    assert data["reviews"][0]["client"]["first_name"] == "Test"
    assert data["pagination"]["total"] == 2
