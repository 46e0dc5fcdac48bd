import logging

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..auth import get_current_user, role_required
from ..dependencies import BookingStatus, PaymentStatus, UserRole, get_db
from ..errors import AppError
from ..i18n import t
from ..models import Booking, DoctorProfile, Payment, User, utcnow
from ..schemas import UserVerificationUpdate
from ..utils import paginate, serialize_booking, serialize_user, success_body

router = APIRouter()


def completed_revenue(db: Session, since=None) -> float:
    query = db.query(func.coalesce(func.sum(Payment.amount), 0)).filter(
        Payment.status == PaymentStatus.COMPLETED.value
    )
    if since is not None:
        query = query.filter(Payment.created_at >= since)
    return float(query.scalar() or 0)


@router.get("/users")
@role_required([UserRole.ADMIN.value])
async def list_users(
        role: UserRole = Query(None),
        search: str = Query(None),
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    query = db.query(User)
    if role is not None:
        query = query.filter(User.role == role.value)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
            User.email.ilike(pattern),
        ))

    users, pagination = paginate(query.order_by(User.created_at.desc(), User.id.desc()), page, limit)
    return success_body(data={"users": [serialize_user(user) for user in users], "pagination": pagination})


@router.patch("/users/{user_id}/verify")
@role_required([UserRole.ADMIN.value])
async def verify_user(
        request: Request,
        user_id: int,
        payload: UserVerificationUpdate,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise AppError(status.HTTP_404_NOT_FOUND, "auth.user_not_found", "User not found")

    is_verified = payload.is_verified
    user.is_verified = is_verified
    if is_verified and user.role == UserRole.DOCTOR.value:
        db.query(DoctorProfile).filter(DoctorProfile.user_id == user.id).update(
            {DoctorProfile.is_verified: True}, synchronize_session=False
        )
    db.commit()
    db.refresh(user)
    logging.info(f"Admin {current_user.id} set is_verified={is_verified} on user {user.id}")
    return success_body(t(request, "admin.user_verified", "User verification updated"),
                        {"user": serialize_user(user)})


@router.get("/analytics")
@role_required([UserRole.ADMIN.value])
async def analytics(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    month_start = utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return success_body(data={
        "users": {
            "total": db.query(User).count(),
            "clients": db.query(User).filter(User.role == UserRole.CLIENT.value).count(),
            "doctors": db.query(User).filter(User.role == UserRole.DOCTOR.value).count(),
        },
        "bookings": {
            "total": db.query(Booking).count(),
            "completed": db.query(Booking).filter(Booking.status == BookingStatus.COMPLETED.value).count(),
        },
        "revenue": {
            "total": completed_revenue(db),
            "monthly": completed_revenue(db, since=month_start),
        },
    })


@router.get("/bookings")
@role_required([UserRole.ADMIN.value])
async def list_bookings(
        status_filter: BookingStatus = Query(None, alias="status"),
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    query = db.query(Booking)
    if status_filter is not None:
        query = query.filter(Booking.status == status_filter.value)

    bookings, pagination = paginate(query.order_by(Booking.created_at.desc(), Booking.id.desc()), page, limit)
    return success_body(data={
        "bookings": [serialize_booking(booking, include_payment=True) for booking in bookings],
        "pagination": pagination,
    })
