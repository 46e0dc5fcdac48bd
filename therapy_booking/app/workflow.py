"""
Booking lifecycle, payment gating and review rules.

Every function takes the request's SQLAlchemy session explicitly and raises
:class:`AppError` for business-rule violations. Multi-step sequences (payment
submission, review plus rating recomputation) are separate commits with no
surrounding transaction, mirroring how the HTTP layer uses them.
"""
import logging
from datetime import datetime

from fastapi import status
from sqlalchemy import func
from sqlalchemy.orm import Session

from .dependencies import BookingStatus, PaymentStatus, UserRole
from .errors import AppError
from .models import Booking, ClientProfile, DoctorProfile, Payment, Review, User, utcnow
from .schemas import BookingCreate, ReviewCreate

# Targets each role may request through the status endpoint
DOCTOR_TARGETS = {BookingStatus.CONFIRMED.value, BookingStatus.DECLINED.value, BookingStatus.COMPLETED.value}
CLIENT_TARGETS = {BookingStatus.CANCELLED.value}

NOT_RESCHEDULABLE = {BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value}


def get_client_profile(db: Session, user: User):
    return db.query(ClientProfile).filter(ClientProfile.user_id == user.id).first()


def get_doctor_profile(db: Session, user: User):
    return db.query(DoctorProfile).filter(DoctorProfile.user_id == user.id).first()


def get_or_create_client_profile(db: Session, user: User) -> ClientProfile:
    profile = get_client_profile(db, user)
    if profile is None:
        logging.info(f"Creating client profile for user {user.id}")
        profile = ClientProfile(user_id=user.id)
        db.add(profile)
        db.commit()
        db.refresh(profile)
    return profile


def get_booking_or_404(db: Session, booking_id: int, message_key: str = "booking.not_found") -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise AppError(status.HTTP_404_NOT_FOUND, message_key, "Booking not found")
    return booking


def owns_booking(db: Session, user: User, booking: Booking) -> bool:
    if user.role == UserRole.CLIENT.value:
        profile = get_client_profile(db, user)
        return profile is not None and booking.client_id == profile.id
    if user.role == UserRole.DOCTOR.value:
        profile = get_doctor_profile(db, user)
        return profile is not None and booking.doctor_id == profile.id
    return False


def ensure_booking_access(db: Session, user: User, booking: Booking):
    """Readers are the booking's client, its doctor, or an admin."""
    if user.role == UserRole.ADMIN.value:
        return
    if not owns_booking(db, user, booking):
        raise AppError(status.HTTP_403_FORBIDDEN, "booking.unauthorized", "Unauthorized")


def create_booking(db: Session, user: User, data: BookingCreate) -> Booking:
    doctor = db.query(DoctorProfile).filter(DoctorProfile.user_id == data.doctor_id).first()
    if not doctor:
        logging.info(f"Doctor not found for user id {data.doctor_id}")
        raise AppError(status.HTTP_404_NOT_FOUND, "booking.doctor_not_found", "Doctor not found")

    client = get_or_create_client_profile(db, user)

    booking = Booking(
        client_id=client.id,
        doctor_id=doctor.id,
        session_date=data.session_date,
        session_duration=data.session_duration,
        session_type=data.session_type.value,
        notes=data.notes,
        status=BookingStatus.PENDING.value,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    logging.info(f"Booking {booking.id} created by client {client.id} for doctor {doctor.id}")
    return booking


def check_completion_payment(db: Session, booking: Booking):
    payment = db.query(Payment).filter(Payment.booking_id == booking.id).first()
    if not payment:
        raise AppError(
            status.HTTP_400_BAD_REQUEST, "booking.payment_required",
            "Payment must be completed before marking session as completed",
        )
    if payment.status != PaymentStatus.COMPLETED.value:
        raise AppError(
            status.HTTP_400_BAD_REQUEST, "booking.payment_not_completed",
            "Payment must be completed before marking session as completed. "
            f"Current payment status: {payment.status}",
            extra={"payment_status": payment.status},
        )


def update_booking_status(db: Session, user: User, booking_id: int, new_status: BookingStatus,
                          expected_status: BookingStatus = None) -> Booking:
    booking = get_booking_or_404(db, booking_id)
    target = new_status.value

    if user.role == UserRole.DOCTOR.value:
        if not owns_booking(db, user, booking):
            raise AppError(status.HTTP_403_FORBIDDEN, "booking.unauthorized", "Unauthorized")
        if target not in DOCTOR_TARGETS:
            raise AppError(status.HTTP_400_BAD_REQUEST, "booking.invalid_status", "Invalid status for doctor")
        if target == BookingStatus.COMPLETED.value:
            check_completion_payment(db, booking)
    elif user.role == UserRole.CLIENT.value:
        if not owns_booking(db, user, booking):
            raise AppError(status.HTTP_403_FORBIDDEN, "booking.unauthorized", "Unauthorized")
        if target not in CLIENT_TARGETS:
            raise AppError(status.HTTP_400_BAD_REQUEST, "booking.invalid_status", "Invalid status for client")
    else:
        raise AppError(status.HTTP_403_FORBIDDEN, "booking.unauthorized", "Unauthorized")

    if expected_status is None:
        booking.status = target
        db.commit()
    else:
        updated = db.query(Booking).filter(
            Booking.id == booking.id,
            Booking.status == expected_status.value,
        ).update({Booking.status: target, Booking.updated_at: utcnow()}, synchronize_session=False)
        db.commit()
        if not updated:
            db.refresh(booking)
            raise AppError(
                status.HTTP_400_BAD_REQUEST, "booking.status_conflict",
                f"Booking status is {booking.status}, expected {expected_status.value}",
                extra={"current_status": booking.status},
            )

    db.refresh(booking)
    logging.info(f"Booking {booking.id} set to {booking.status} by user {user.id}")
    return booking


def reschedule_booking(db: Session, user: User, booking_id: int, session_date: datetime) -> Booking:
    booking = get_booking_or_404(db, booking_id)

    client = get_client_profile(db, user)
    if client is None or booking.client_id != client.id:
        raise AppError(status.HTTP_403_FORBIDDEN, "booking.unauthorized", "Unauthorized")

    if booking.status in NOT_RESCHEDULABLE:
        raise AppError(status.HTTP_400_BAD_REQUEST, "booking.cannot_reschedule", "Cannot reschedule this booking")

    booking.session_date = session_date
    # The doctor has to confirm the new time
    booking.status = BookingStatus.PENDING.value
    db.commit()
    db.refresh(booking)
    return booking


def submit_payment(db: Session, user: User, booking_id: int, amount: float, currency: str, store_proof) -> Payment:
    """Create or replace the payment attestation for a confirmed booking.

    ``store_proof`` is called once every check has passed and returns the
    public path of the saved screenshot.
    """
    client = get_client_profile(db, user)
    if not client:
        raise AppError(status.HTTP_404_NOT_FOUND, "payment.client_profile_not_found", "Client profile not found")

    booking = get_booking_or_404(db, booking_id, "payment.booking_not_found")

    if booking.client_id != client.id:
        raise AppError(status.HTTP_403_FORBIDDEN, "payment.unauthorized",
                       "You don't have permission to pay for this booking")

    if booking.status != BookingStatus.CONFIRMED.value:
        raise AppError(status.HTTP_400_BAD_REQUEST, "payment.booking_not_confirmed",
                       "Booking must be confirmed before payment")

    screenshot = store_proof()

    payment = db.query(Payment).filter(Payment.booking_id == booking.id).first()
    if payment:
        payment.screenshot = screenshot
        payment.amount = amount
        payment.currency = currency
        payment.status = PaymentStatus.PENDING.value
        logging.info(f"Payment {payment.id} for booking {booking.id} replaced, back to PENDING")
    else:
        payment = Payment(
            booking_id=booking.id,
            client_id=booking.client_id,
            amount=amount,
            currency=currency,
            payment_method="manual",
            screenshot=screenshot,
            status=PaymentStatus.PENDING.value,
        )
        db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


def verify_payment(db: Session, user: User, payment_id: int) -> Payment:
    doctor = get_doctor_profile(db, user)
    if not doctor:
        raise AppError(status.HTTP_404_NOT_FOUND, "payment.doctor_profile_not_found", "Doctor profile not found")

    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise AppError(status.HTTP_404_NOT_FOUND, "payment.not_found", "Payment not found")

    if payment.booking.doctor_id != doctor.id:
        raise AppError(status.HTTP_403_FORBIDDEN, "payment.unauthorized",
                       "You don't have permission to verify this payment")

    if payment.status != PaymentStatus.PENDING.value:
        raise AppError(status.HTTP_400_BAD_REQUEST, "payment.already_processed", "Payment has already been processed")

    payment.status = PaymentStatus.COMPLETED.value
    db.commit()
    db.refresh(payment)
    logging.info(f"Payment {payment.id} verified by doctor {doctor.id}")
    return payment


def recompute_doctor_rating(db: Session, doctor_id: int) -> DoctorProfile:
    average, count = db.query(func.avg(Review.rating), func.count(Review.id)).filter(
        Review.doctor_id == doctor_id
    ).one()
    doctor = db.query(DoctorProfile).filter(DoctorProfile.id == doctor_id).first()
    doctor.rating = float(average or 0)
    doctor.total_reviews = count
    db.commit()
    db.refresh(doctor)
    return doctor


def create_review(db: Session, user: User, data: ReviewCreate) -> Review:
    booking = get_booking_or_404(db, data.booking_id, "review.booking_not_found")

    if booking.client.user_id != user.id:
        raise AppError(status.HTTP_403_FORBIDDEN, "review.unauthorized",
                       "You are not authorized to review this booking")

    if booking.status != BookingStatus.COMPLETED.value:
        raise AppError(status.HTTP_400_BAD_REQUEST, "review.session_not_completed",
                       "Session must be completed before reviewing")

    if db.query(Review).filter(Review.booking_id == booking.id).first():
        raise AppError(status.HTTP_400_BAD_REQUEST, "review.already_exists",
                       "Review already exists for this booking")

    review = Review(
        booking_id=booking.id,
        client_id=booking.client_id,
        doctor_id=booking.doctor_id,
        rating=data.rating,
        comment=data.comment,
    )
    db.add(review)
    db.commit()
    db.refresh(review)

    recompute_doctor_rating(db, booking.doctor_id)
    return review
