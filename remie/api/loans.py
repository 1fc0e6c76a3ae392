from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from remie.core.config import get_settings
from remie.database import get_db
from remie.middleware.auth import get_current_user
from remie.models.user import User
from remie.schemas.loan import (
    CreditScoreResponse,
    LoanApplyRequest,
    LoanCalculateRequest,
    LoanCalculation,
    LoanDetailResponse,
    LoanRepayRequest,
    LoanRepayResponse,
    LoanRepaymentResponse,
    LoanResponse,
)
from remie.services.loan_service import LoanService, MIN_ELIGIBLE_SCORE
from typing import List

router = APIRouter(prefix="/loans", tags=["Loans"])


@router.post("/calculate", response_model=LoanCalculation)
async def calculate_loan(request: LoanCalculateRequest):
    """
    Preview interest and total repayable. Nothing is saved.
    """
    return LoanCalculation(**LoanService.calculate(request.amount, request.tenure, request.interest_rate))


@router.get("/credit-score", response_model=CreditScoreResponse)
async def get_credit_score(
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    score = LoanService.credit_score(db, current_user.id)
    return CreditScoreResponse(
        credit_score=score,
        eligible=score >= MIN_ELIGIBLE_SCORE and not LoanService.has_open_loan(db, current_user.id),
        max_loan_amount=get_settings().MAX_LOAN_AMOUNT,
    )


@router.post("/apply", response_model=LoanResponse, status_code=status.HTTP_201_CREATED)
async def apply_for_loan(
        request: LoanApplyRequest,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    """
    Apply for a loan.

    With auto-approval on, the loan comes back DISBURSED and the wallet is
    already credited.
    """
    loan = LoanService.apply(db, current_user, request)
    return LoanResponse.model_validate(loan)


@router.get("", response_model=List[LoanResponse])
async def list_loans(
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    return [LoanResponse.model_validate(loan) for loan in LoanService.get_user_loans(db, current_user.id)]


@router.get("/{loan_id}", response_model=LoanDetailResponse)
async def get_loan(
        loan_id: str,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    loan = LoanService.get_loan_or_404(db, loan_id, user_id=current_user.id)
    return LoanDetailResponse.model_validate(loan)


@router.post("/{loan_id}/repay", response_model=LoanRepayResponse)
async def repay_loan(
        loan_id: str,
        request: LoanRepayRequest,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    loan, repayment, new_balance = LoanService.repay(db, current_user, loan_id, request.amount)
    return LoanRepayResponse(
        loan=LoanResponse.model_validate(loan),
        repayment=LoanRepaymentResponse.model_validate(repayment),
        new_balance=new_balance,
    )
