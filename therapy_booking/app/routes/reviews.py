from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ..auth import get_current_user, role_required
from ..dependencies import UserRole, get_db
from ..i18n import t
from ..models import Review, User
from ..schemas import ReviewCreate
from ..utils import paginate, serialize_review, success_body
from .. import workflow

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
@role_required([UserRole.CLIENT.value])
async def create_review(
        request: Request,
        payload: ReviewCreate,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    review = workflow.create_review(db, current_user, payload)
    return success_body(t(request, "review.created", "Review created successfully"),
                        {"review": serialize_review(review)})


@router.get("/doctor/{doctor_id}")
async def list_doctor_reviews(
        doctor_id: int,
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
        db: Session = Depends(get_db)
):
    query = db.query(Review).filter(Review.doctor_id == doctor_id).order_by(Review.created_at.desc(), Review.id.desc())
    reviews, pagination = paginate(query, page, limit)
    return success_body(data={
        "reviews": [serialize_review(review) for review in reviews],
        "pagination": pagination,
    })
