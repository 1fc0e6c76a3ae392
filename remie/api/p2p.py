from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from remie.database import get_db
from remie.middleware.auth import get_current_user
from remie.models.user import User
from remie.schemas.common import Pagination
from remie.schemas.p2p import (
    P2PSendRequest,
    P2PSendResponse,
    P2PTransferListResponse,
    P2PTransferResponse,
    UserSearchResult,
)
from remie.services.p2p_service import P2PService
from typing import List, Literal

router = APIRouter(prefix="/p2p", tags=["P2P"])


@router.post("/send", response_model=P2PSendResponse, status_code=status.HTTP_201_CREATED)
async def send_money(
        request: P2PSendRequest,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    """
    Send money to another REMIE user.

    The receiver may be identified by email, phone number, student ID or
    wallet number.
    """
    transfer, new_balance = P2PService.send(db, current_user, request)
    return P2PSendResponse(
        transfer=P2PTransferResponse.model_validate(transfer),
        new_balance=new_balance,
    )


@router.get("/transfers", response_model=P2PTransferListResponse)
async def get_transfers(
        type: Literal["sent", "received", "all"] = Query("all"),
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    transfers, total = P2PService.get_transfers(db, current_user.id, type, page, limit)
    return P2PTransferListResponse(
        transfers=[P2PTransferResponse.model_validate(t) for t in transfers],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/transfers/{reference}", response_model=P2PTransferResponse)
async def get_transfer(
        reference: str,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    transfer = P2PService.get_transfer(db, current_user.id, reference)
    return P2PTransferResponse.model_validate(transfer)


@router.get("/search-users", response_model=List[UserSearchResult])
async def search_users(
        q: str = Query(..., min_length=2),
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    users = P2PService.search_users(db, current_user.id, q)
    return [UserSearchResult.model_validate(u) for u in users]
