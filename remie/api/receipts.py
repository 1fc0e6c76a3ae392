from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from remie.database import get_db
from remie.middleware.auth import get_current_user
from remie.models.user import User
from remie.schemas.common import Pagination
from remie.schemas.receipt import ReceiptListResponse, ReceiptResponse, ReceiptVerification
from remie.services.receipt_service import ReceiptService

router = APIRouter(prefix="/receipts", tags=["Receipts"])


@router.get("", response_model=ReceiptListResponse)
async def list_receipts(
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    receipts, total = ReceiptService.get_user_receipts(db, current_user.id, page, limit)
    return ReceiptListResponse(
        receipts=[ReceiptResponse.model_validate(r) for r in receipts],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/verify/{receipt_number}", response_model=ReceiptVerification)
async def verify_receipt(receipt_number: str, db: Session = Depends(get_db)):
    """
    Public lookup behind the verification URL printed on a receipt.
    """
    receipt = ReceiptService.get_by_number(db, receipt_number)
    if not receipt:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Receipt not found"
        )

    return ReceiptVerification(
        valid=True,
        receipt_number=receipt.receipt_number,
        amount=receipt.amount,
        payment_reference=receipt.payment.reference,
        payment_status=receipt.payment.status.value,
        issued_at=receipt.created_at,
    )


@router.get("/{receipt_id}", response_model=ReceiptResponse)
async def get_receipt(
        receipt_id: str,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    receipt = ReceiptService.get_receipt(db, receipt_id, current_user.id)
    if not receipt:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Receipt not found"
        )
    return ReceiptResponse.model_validate(receipt)
