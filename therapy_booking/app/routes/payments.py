from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.orm import Session

from .. import config
from ..auth import get_current_user, role_required
from ..dependencies import PaymentStatus, UserRole, get_db
from ..errors import AppError
from ..i18n import t
from ..models import Booking, Payment, User
from ..uploads import read_image_upload, store_upload
from ..utils import isoformat, paginate, serialize_client_profile, serialize_payment, serialize_user_summary, success_body
from .. import workflow

router = APIRouter()


def serialize_payment_with_booking(payment: Payment, counterpart: str):
    serialized = serialize_payment(payment)
    booking = payment.booking
    serialized["booking"] = {
        "id": booking.id,
        "session_date": isoformat(booking.session_date),
        "session_duration": booking.session_duration,
        "status": booking.status,
    }
    if counterpart == "client":
        serialized["booking"]["client"] = serialize_client_profile(booking.client)
    else:
        serialized["booking"]["doctor"] = {
            "id": booking.doctor.id,
            "user": serialize_user_summary(booking.doctor.user),
        }
    return serialized


@router.get("/phone")
async def get_payment_phone():
    return success_body(data={"phone": config.PAYMENT_PHONE})


@router.post("/submit", status_code=status.HTTP_201_CREATED)
@role_required([UserRole.CLIENT.value])
async def submit_payment(
        request: Request,
        booking_id: int = Form(...),
        amount: float = Form(..., ge=0),
        currency: str = Form(None),
        screenshot: UploadFile = File(None),
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    if screenshot is None or not screenshot.filename:
        raise AppError(status.HTTP_400_BAD_REQUEST, "payment.screenshot_required", "Payment screenshot is required")

    content = await read_image_upload(screenshot)
    payment = workflow.submit_payment(
        db, current_user, booking_id, amount, currency or config.DEFAULT_CURRENCY,
        store_proof=lambda: store_upload(content, screenshot.filename, "payment"),
    )
    return success_body(
        t(request, "payment.submitted_successfully",
          "Payment submitted successfully. We will verify your payment and confirm your booking."),
        {"payment": serialize_payment(payment)},
    )


@router.get("/pending")
@role_required([UserRole.DOCTOR.value])
async def list_pending_payments(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    doctor = workflow.get_doctor_profile(db, current_user)
    if doctor is None:
        raise AppError(status.HTTP_404_NOT_FOUND, "payment.doctor_profile_not_found", "Doctor profile not found")

    payments = (
        db.query(Payment)
        .join(Booking, Payment.booking_id == Booking.id)
        .filter(Booking.doctor_id == doctor.id, Payment.status == PaymentStatus.PENDING.value)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .all()
    )
    return success_body(data={"payments": [serialize_payment_with_booking(p, "client") for p in payments]})


@router.patch("/{payment_id}/verify")
@role_required([UserRole.DOCTOR.value])
async def verify_payment(
        request: Request,
        payment_id: int,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    payment = workflow.verify_payment(db, current_user, payment_id)
    return success_body(t(request, "payment.verified_successfully", "Payment verified successfully"),
                        {"payment": serialize_payment(payment)})


@router.get("/history")
async def payment_history(
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    empty = {"payments": [], "pagination": {"page": page, "limit": limit, "total": 0, "pages": 0}}

    if current_user.role == UserRole.CLIENT.value:
        client = workflow.get_client_profile(db, current_user)
        if client is None:
            return success_body(data=empty)
        query = db.query(Payment).filter(Payment.client_id == client.id)
        counterpart = "doctor"
    elif current_user.role == UserRole.DOCTOR.value:
        doctor = workflow.get_doctor_profile(db, current_user)
        if doctor is None:
            return success_body(data=empty)
        query = db.query(Payment).join(Booking, Payment.booking_id == Booking.id).filter(
            Booking.doctor_id == doctor.id
        )
        counterpart = "client"
    else:
        raise AppError(status.HTTP_403_FORBIDDEN, "auth.forbidden", "Forbidden")

    payments, pagination = paginate(query.order_by(Payment.created_at.desc(), Payment.id.desc()), page, limit)
    return success_body(data={
        "payments": [serialize_payment_with_booking(p, counterpart) for p in payments],
        "pagination": pagination,
    })
