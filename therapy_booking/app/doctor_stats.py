# doctor_stats.py
import logging

from sqlalchemy.orm import Session

from . import config
from .dependencies import BookingStatus, PaymentStatus, SessionLocal, get_redis_client
from .models import DoctorProfile, DoctorStatistics, utcnow


def acquire_lock(redis_client, lock_key, ttl=10):
    return redis_client.set(lock_key, "locked", nx=True, ex=ttl)


def release_lock(redis_client, lock_key):
    redis_client.delete(lock_key)


def compute_doctor_statistics(doctor: DoctorProfile, now=None):
    """Session counts and earnings for one doctor, derived from its bookings and their payments."""
    now = now or utcnow()
    bookings = list(doctor.bookings)

    paid = [b.payment for b in bookings if b.payment and b.payment.status == PaymentStatus.COMPLETED.value]
    this_month = [
        p for p in paid
        if p.created_at.year == now.year and p.created_at.month == now.month
    ]

    return {
        "total_sessions": len(bookings),
        "completed_sessions": sum(1 for b in bookings if b.status == BookingStatus.COMPLETED.value),
        "upcoming_sessions": sum(
            1 for b in bookings if b.status == BookingStatus.CONFIRMED.value and b.session_date > now
        ),
        "total_earnings": float(sum(p.amount for p in paid)),
        "monthly_earnings": float(sum(p.amount for p in this_month)),
    }


def recompute_doctor_statistics(db: Session, doctor: DoctorProfile) -> DoctorStatistics:
    values = compute_doctor_statistics(doctor)

    statistics = db.query(DoctorStatistics).filter(DoctorStatistics.doctor_id == doctor.id).first()
    if statistics is None:
        statistics = DoctorStatistics(doctor_id=doctor.id)
        db.add(statistics)
    for field, value in values.items():
        setattr(statistics, field, value)
    statistics.last_updated = utcnow()

    db.commit()
    db.refresh(statistics)
    return statistics


def sync_all_doctor_statistics(session_factory=SessionLocal, redis_client=None):
    """Recompute every doctor's statistics row.

    Each doctor is guarded by a redis lock so concurrent runs never work on
    the same doctor; a doctor whose lock is held elsewhere is skipped.
    Returns the number of doctors refreshed.
    """
    redis_client = redis_client or get_redis_client()
    refreshed = 0

    db = session_factory()
    try:
        doctors = db.query(DoctorProfile).all()

        for doctor in doctors:
            lock_key = f"lock:doctor-statistics:{doctor.id}"

            if acquire_lock(redis_client, lock_key, ttl=config.STATS_LOCK_TTL_SECONDS):
                try:
                    statistics = recompute_doctor_statistics(db, doctor)
                    refreshed += 1
                    logging.info(
                        f"Statistics refreshed for doctor {doctor.id}: "
                        f"{statistics.total_sessions} sessions, {statistics.total_earnings} earned"
                    )
                finally:
                    release_lock(redis_client, lock_key)
            else:
                logging.info(f"Statistics sync skipped for doctor {doctor.id} because another process is running.")
    finally:
        db.close()

    return refreshed
