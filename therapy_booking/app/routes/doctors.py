import logging

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Session

from ..auth import get_current_user, role_required
from ..dependencies import BookingStatus, UserRole, dump_json, get_db
from ..doctor_stats import recompute_doctor_statistics
from ..errors import AppError
from ..i18n import t
from ..models import Booking, DoctorProfile, Review, User
from ..profiles import update_user_identity
from ..schemas import DoctorProfileUpdate
from ..uploads import read_image_upload, store_upload
from ..utils import (
    isoformat,
    paginate,
    serialize_client_profile,
    serialize_doctor_profile,
    serialize_review,
    serialize_statistics,
    success_body,
)
from ..workflow import get_doctor_profile

router = APIRouter()


def json_list_contains(column, value):
    # JSON lists are compared on their serialized text, written with the engine's serializer
    return cast(column, String).like(f"%{dump_json(value)}%")


def require_doctor_profile(db: Session, user: User) -> DoctorProfile:
    profile = get_doctor_profile(db, user)
    if profile is None:
        raise AppError(status.HTTP_404_NOT_FOUND, "doctor.profile_not_found", "Profile not found")
    return profile


@router.get("")
async def list_doctors(
        specialization: str = Query(None),
        language: str = Query(None),
        search: str = Query(None),
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
        db: Session = Depends(get_db)
):
    query = db.query(DoctorProfile).join(User, DoctorProfile.user_id == User.id).filter(
        User.role == UserRole.DOCTOR.value
    )
    if specialization:
        query = query.filter(json_list_contains(DoctorProfile.specialization, specialization))
    if language:
        query = query.filter(json_list_contains(DoctorProfile.languages, language))
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(User.first_name.ilike(pattern), User.last_name.ilike(pattern)))

    doctors, pagination = paginate(query.order_by(DoctorProfile.rating.desc(), DoctorProfile.id), page, limit)
    return success_body(data={
        "doctors": [serialize_doctor_profile(doctor) for doctor in doctors],
        "pagination": pagination,
    })


@router.put("/profile")
@role_required([UserRole.DOCTOR.value])
async def update_doctor_profile(
        request: Request,
        payload: DoctorProfileUpdate,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    update_user_identity(
        db, current_user,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        phone=payload.phone,
    )

    profile = get_doctor_profile(db, current_user)
    if profile is None:
        logging.info(f"Creating doctor profile for user {current_user.id}")
        profile = DoctorProfile(user_id=current_user.id, available_hours={}, languages=[], specialization=[])
        db.add(profile)

    fields = payload.model_fields_set
    if "bio" in fields:
        profile.bio = payload.bio
    if payload.specialization is not None:
        profile.specialization = payload.specialization
    if payload.languages is not None:
        profile.languages = [language.value for language in payload.languages]
    if payload.hourly_rate is not None:
        profile.hourly_rate = payload.hourly_rate
    if payload.available_hours is not None:
        profile.available_hours = payload.available_hours
    if "years_of_experience" in fields:
        profile.years_of_experience = payload.years_of_experience

    db.commit()
    db.refresh(profile)
    return success_body(t(request, "doctor.profile_updated", "Profile updated successfully"),
                        {"doctor_profile": serialize_doctor_profile(profile)})


@router.put("/profile/photo")
@role_required([UserRole.DOCTOR.value])
async def update_doctor_photo(
        request: Request,
        photo: UploadFile = File(None),
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    profile = require_doctor_profile(db, current_user)
    if photo is None:
        raise AppError(status.HTTP_400_BAD_REQUEST, "upload.photo_required", "Photo is required")

    content = await read_image_upload(photo)
    profile.photo = store_upload(content, photo.filename, "doctor")
    db.commit()
    return success_body(t(request, "doctor.profile_updated", "Profile updated successfully"),
                        {"photo": profile.photo})


@router.get("/profile/me")
@role_required([UserRole.DOCTOR.value])
async def get_own_doctor_profile(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    profile = require_doctor_profile(db, current_user)

    upcoming = (
        db.query(Booking)
        .filter(
            Booking.doctor_id == profile.id,
            Booking.status.in_([BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value]),
        )
        .order_by(Booking.session_date.asc())
        .all()
    )
    serialized = serialize_doctor_profile(profile)
    serialized["bookings"] = [
        {
            "id": booking.id,
            "session_date": isoformat(booking.session_date),
            "session_duration": booking.session_duration,
            "session_type": booking.session_type,
            "status": booking.status,
            "notes": booking.notes,
            "client": serialize_client_profile(booking.client),
        }
        for booking in upcoming
    ]
    return success_body(data={"doctor_profile": serialized})


@router.get("/statistics/me")
@role_required([UserRole.DOCTOR.value])
async def get_own_statistics(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    profile = require_doctor_profile(db, current_user)
    statistics = recompute_doctor_statistics(db, profile)
    return success_body(data={"statistics": serialize_statistics(statistics)})


@router.get("/{user_id}")
async def get_doctor(user_id: int, db: Session = Depends(get_db)):
    profile = db.query(DoctorProfile).join(User, DoctorProfile.user_id == User.id).filter(
        User.id == user_id,
        User.role == UserRole.DOCTOR.value,
    ).first()
    if profile is None:
        raise AppError(status.HTTP_404_NOT_FOUND, "doctor.not_found", "Doctor not found")

    reviews = (
        db.query(Review)
        .filter(Review.doctor_id == profile.id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .limit(10)
        .all()
    )
    serialized = serialize_doctor_profile(profile)
    serialized["reviews"] = [serialize_review(review) for review in reviews]
    return success_body(data={"doctor": serialized})
