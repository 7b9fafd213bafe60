"""Users API router."""
from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.models import User
from storefront.schemas import UserResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int = Path(..., description="User ID"),
    db: Session = Depends(get_db)
):
    """Get a single user."""
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
