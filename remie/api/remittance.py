from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from remie.database import get_db
from remie.middleware.auth import get_current_user
from remie.models.user import User
from remie.schemas.common import Pagination
from remie.schemas.remittance import (
    CalculateRemittanceRequest,
    ExchangeRate,
    RatesResponse,
    RemittanceListResponse,
    RemittanceQuote,
    SendRemittanceRequest,
    SendRemittanceResponse,
)
from remie.schemas.wallet import PaymentResponse
from remie.services.remittance_service import COUNTRY_CURRENCIES, EXCHANGE_RATES, RemittanceService

router = APIRouter(prefix="/remittance", tags=["Remittance"])


@router.get("/rates", response_model=RatesResponse)
async def get_rates():
    """
    Supported destination currencies with their rate and fee.
    """
    return RatesResponse(
        rates=[
            ExchangeRate(currency=to_currency, rate=rate.rate, fee_percent=rate.fee_percent)
            for (_, to_currency), rate in EXCHANGE_RATES.items()
        ],
        countries=COUNTRY_CURRENCIES,
    )


@router.post("/calculate", response_model=RemittanceQuote)
async def calculate(request: CalculateRemittanceRequest):
    quote = RemittanceService.calculate(request.amount, request.from_currency, request.to_currency)
    return RemittanceQuote(**quote._asdict())


@router.post("/send", response_model=SendRemittanceResponse, status_code=status.HTTP_201_CREATED)
async def send_remittance(
        request: SendRemittanceRequest,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    """
    Send money abroad from the NGN wallet.

    The sender pays amount plus fee. A recipient without a REMIE account
    gets one and a link to set their password.
    """
    payment, quote, recipient, created = RemittanceService.send(db, current_user, request)
    wallet = current_user.wallet
    return SendRemittanceResponse(
        payment=PaymentResponse.model_validate(payment),
        quote=RemittanceQuote(**quote._asdict()),
        recipient_id=recipient.id,
        recipient_created=created,
        new_balance=wallet.available_balance,
    )


@router.get("/sent", response_model=RemittanceListResponse)
async def get_sent(
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    payments, total = RemittanceService.get_sent(db, current_user.id, page, limit)
    return RemittanceListResponse(
        remittances=[PaymentResponse.model_validate(p) for p in payments],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/received", response_model=RemittanceListResponse)
async def get_received(
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    payments, total = RemittanceService.get_received(db, current_user.id, page, limit)
    return RemittanceListResponse(
        remittances=[PaymentResponse.model_validate(p) for p in payments],
        pagination=Pagination.build(page, limit, total),
    )
