import math
from datetime import datetime, timezone


def to_naive_utc(dt: datetime) -> datetime:
    """Normalize an incoming datetime to the naive UTC form stored in the database."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def isoformat(value):
    return value.isoformat() if value else None


def paginate(query, page: int, limit: int):
    """Apply page/limit to ``query``; returns ``(rows, pagination)``."""
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def serialize_user_summary(user, include_contact: bool = False):
    if user is None:
        return None
    serialized = {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
    }
    if include_contact:
        serialized.update({"email": user.email, "phone": user.phone})
    return serialized


def serialize_user(user, photo=None):
    return {
        "id": user.id,
        "email": user.email,
        "phone": user.phone,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "role": user.role,
        "preferred_language": user.preferred_language,
        "is_verified": user.is_verified,
        "created_at": isoformat(user.created_at),
        "photo": photo,
    }


def profile_photo(user):
    profile = user.client_profile or user.doctor_profile
    return profile.photo if profile else None


def serialize_client_profile(profile, include_user: bool = True):
    if profile is None:
        return None
    serialized = {
        "id": profile.id,
        "user_id": profile.user_id,
        "date_of_birth": isoformat(profile.date_of_birth),
        "address": profile.address,
        "city": profile.city,
        "country": profile.country,
        "photo": profile.photo,
    }
    if include_user:
        serialized["user"] = serialize_user_summary(profile.user, include_contact=True)
    return serialized


def serialize_statistics(statistics):
    if statistics is None:
        return None
    return {
        "doctor_id": statistics.doctor_id,
        "total_sessions": statistics.total_sessions,
        "completed_sessions": statistics.completed_sessions,
        "upcoming_sessions": statistics.upcoming_sessions,
        "total_earnings": statistics.total_earnings,
        "monthly_earnings": statistics.monthly_earnings,
        "last_updated": isoformat(statistics.last_updated),
    }


def serialize_doctor_profile(profile, include_user: bool = True):
    if profile is None:
        return None
    serialized = {
        "id": profile.id,
        "user_id": profile.user_id,
        "bio": profile.bio,
        "photo": profile.photo,
        "specialization": profile.specialization or [],
        "languages": profile.languages or [],
        "hourly_rate": profile.hourly_rate,
        "available_hours": profile.available_hours or {},
        "years_of_experience": profile.years_of_experience,
        "is_verified": profile.is_verified,
        "rating": profile.rating,
        "total_reviews": profile.total_reviews,
        "statistics": serialize_statistics(profile.statistics),
    }
    if include_user:
        serialized["user"] = serialize_user_summary(profile.user, include_contact=True)
    return serialized


def serialize_payment(payment):
    if payment is None:
        return None
    return {
        "id": payment.id,
        "booking_id": payment.booking_id,
        "client_id": payment.client_id,
        "amount": payment.amount,
        "currency": payment.currency,
        "payment_method": payment.payment_method,
        "screenshot": payment.screenshot,
        "status": payment.status,
        "created_at": isoformat(payment.created_at),
        "updated_at": isoformat(payment.updated_at),
    }


def serialize_review(review, include_client: bool = True):
    if review is None:
        return None
    serialized = {
        "id": review.id,
        "booking_id": review.booking_id,
        "client_id": review.client_id,
        "doctor_id": review.doctor_id,
        "rating": review.rating,
        "comment": review.comment,
        "created_at": isoformat(review.created_at),
    }
    if include_client and review.client is not None:
        serialized["client"] = serialize_user_summary(review.client.user)
    return serialized


def serialize_session_note(note):
    if note is None:
        return None
    return {
        "id": note.id,
        "booking_id": note.booking_id,
        "doctor_id": note.doctor_id,
        "notes": note.notes,
        "created_at": isoformat(note.created_at),
        "updated_at": isoformat(note.updated_at),
    }


def serialize_booking(booking, include_payment: bool = False, include_review: bool = False,
                      include_session_note: bool = False):
    serialized = {
        "id": booking.id,
        "client_id": booking.client_id,
        "doctor_id": booking.doctor_id,
        "session_date": isoformat(booking.session_date),
        "session_duration": booking.session_duration,
        "session_type": booking.session_type,
        "status": booking.status,
        "notes": booking.notes,
        "created_at": isoformat(booking.created_at),
        "updated_at": isoformat(booking.updated_at),
        "doctor": {
            "id": booking.doctor.id,
            "user_id": booking.doctor.user_id,
            "hourly_rate": booking.doctor.hourly_rate,
            "specialization": booking.doctor.specialization or [],
            "user": serialize_user_summary(booking.doctor.user, include_contact=True),
        },
        "client": {
            "id": booking.client.id,
            "user_id": booking.client.user_id,
            "user": serialize_user_summary(booking.client.user, include_contact=True),
        },
    }
    if include_payment:
        serialized["payment"] = serialize_payment(booking.payment)
    if include_review:
        serialized["review"] = serialize_review(booking.review, include_client=False)
    if include_session_note:
        serialized["session_note"] = serialize_session_note(booking.session_note)
    return serialized


def serialize_message(message):
    return {
        "id": message.id,
        "sender_id": message.sender_id,
        "receiver_id": message.receiver_id,
        "booking_id": message.booking_id,
        "content": message.content,
        "type": message.type,
        "is_read": message.is_read,
        "created_at": isoformat(message.created_at),
        "sender": serialize_user_summary(message.sender),
        "receiver": serialize_user_summary(message.receiver),
    }


def success_body(message=None, data=None):
    body = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body
