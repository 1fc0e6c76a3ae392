from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from remie.database import get_db
from remie.middleware.auth import get_current_user
from remie.models.user import User
from remie.schemas.user import UpdateProfileRequest, UserResponse
from remie.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
        request: UpdateProfileRequest,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    user = UserService.update_profile(db, current_user, request)
    return UserResponse.model_validate(user)
