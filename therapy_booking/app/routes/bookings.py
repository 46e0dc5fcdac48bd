from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ..auth import get_current_user, role_required
from ..dependencies import BookingStatus, UserRole, get_db
from ..i18n import t
from ..models import Booking, User
from ..schemas import BookingCreate, BookingReschedule, BookingStatusUpdate
from ..utils import paginate, serialize_booking, success_body
from .. import workflow

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
@role_required([UserRole.CLIENT.value])
async def create_booking(
        request: Request,
        payload: BookingCreate,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    booking = workflow.create_booking(db, current_user, payload)
    return success_body(t(request, "booking.created", "Booking created successfully"),
                        {"booking": serialize_booking(booking)})


@router.get("/me")
async def list_my_bookings(
        status_filter: BookingStatus = Query(None, alias="status"),
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    query = db.query(Booking)
    if current_user.role == UserRole.CLIENT.value:
        profile = workflow.get_client_profile(db, current_user)
        query = query.filter(Booking.client_id == (profile.id if profile else None))
    elif current_user.role == UserRole.DOCTOR.value:
        profile = workflow.get_doctor_profile(db, current_user)
        query = query.filter(Booking.doctor_id == (profile.id if profile else None))
    else:
        profile = None

    if profile is None:
        return success_body(data={
            "bookings": [],
            "pagination": {"page": page, "limit": limit, "total": 0, "pages": 0},
        })

    if status_filter is not None:
        query = query.filter(Booking.status == status_filter.value)

    bookings, pagination = paginate(query.order_by(Booking.session_date.desc(), Booking.id.desc()), page, limit)
    return success_body(data={
        "bookings": [serialize_booking(booking, include_payment=True, include_review=True) for booking in bookings],
        "pagination": pagination,
    })


@router.get("/{booking_id}")
async def get_booking(booking_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    booking = workflow.get_booking_or_404(db, booking_id)
    workflow.ensure_booking_access(db, current_user, booking)

    return success_body(data={"booking": serialize_booking(
        booking,
        include_payment=True,
        include_review=True,
        include_session_note=current_user.role == UserRole.DOCTOR.value,
    )})


@router.patch("/{booking_id}/status")
async def update_booking_status(
        request: Request,
        booking_id: int,
        payload: BookingStatusUpdate,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    booking = workflow.update_booking_status(
        db, current_user, booking_id, payload.status, expected_status=payload.expected_status
    )
    return success_body(t(request, "booking.status_updated", "Booking status updated"),
                        {"booking": serialize_booking(booking, include_payment=True)})


@router.patch("/{booking_id}/reschedule")
@role_required([UserRole.CLIENT.value])
async def reschedule_booking(
        request: Request,
        booking_id: int,
        payload: BookingReschedule,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    booking = workflow.reschedule_booking(db, current_user, booking_id, payload.session_date)
    return success_body(t(request, "booking.rescheduled", "Booking rescheduled successfully"),
                        {"booking": serialize_booking(booking)})
