from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from remie.database import get_db
from remie.middleware.auth import get_current_user
from remie.models.user import User
from remie.schemas.common import Pagination
from remie.schemas.rrr import GenerateRRRRequest, RRRListResponse, RRRResponse, RRRVerifyResponse
from remie.services.rrr_service import RRRService

router = APIRouter(prefix="/rrr", tags=["RRR"])


@router.post("/generate", response_model=RRRResponse, status_code=status.HTTP_201_CREATED)
async def generate_rrr(
        request: GenerateRRRRequest,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    """
    Generate a Remita Retrieval Reference for an institutional payment.

    The RRR is valid for 7 days and is also emailed to the payer.
    """
    rrr_payment = RRRService.generate(db, current_user, request)
    return RRRResponse.model_validate(rrr_payment)


@router.get("/verify/{rrr}", response_model=RRRVerifyResponse)
async def verify_rrr(
        rrr: str,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    rrr_payment, message = RRRService.verify(db, current_user.id, rrr)
    return RRRVerifyResponse(
        rrr=rrr_payment.rrr,
        status=rrr_payment.status,
        payment_status=rrr_payment.payment.status,
        amount=rrr_payment.amount,
        paid_at=rrr_payment.paid_at,
        message=message,
    )


@router.get("/list", response_model=RRRListResponse)
async def list_rrrs(
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    items, total = RRRService.list_rrrs(db, current_user.id, page, limit)
    return RRRListResponse(
        rrr_payments=[RRRResponse.model_validate(r) for r in items],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{rrr}", response_model=RRRResponse)
async def get_rrr(
        rrr: str,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    rrr_payment = RRRService.get_rrr(db, current_user.id, rrr)
    return RRRResponse.model_validate(rrr_payment)
