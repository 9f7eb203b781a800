from typing import List
from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from yardsale.api.deps import get_db, get_current_admin
from yardsale.schemas.admin import AdminResponse, DashboardStatsResponse, RecentOfferResponse
from yardsale.schemas.auth import (
    ChangePasswordRequest,
    CreateAdminRequest,
    LoginRequest,
    Token,
    VerifyResponse,
)
from yardsale.schemas.product import MessageResponse
from yardsale.services.admin_service import AdminService, DEFAULT_ACTIVITY_LIMIT, MAX_ACTIVITY_LIMIT

router = APIRouter()


@router.post("/login", response_model=Token)
async def login(
    request: LoginRequest,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Login with username and password.
    
    Returns a JWT access token on success.
    """
    access_token = await AdminService.authenticate(request.username, request.password, db)
    return Token(access_token=access_token, token_type="bearer")


@router.post("/create", response_model=AdminResponse, status_code=status.HTTP_201_CREATED)
async def create_admin(
    request: CreateAdminRequest,
    current_admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Create another administrator (admin only)."""
    admin = await AdminService.create_admin(request.username, request.password, db)
    return AdminResponse(**AdminService.to_admin_response(admin))


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    request: ChangePasswordRequest,
    current_admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Change the current administrator's password."""
    await AdminService.change_password(
        current_admin, request.current_password, request.new_password, db
    )
    return MessageResponse(message="Password changed successfully")


@router.get("/verify", response_model=VerifyResponse)
async def verify_token(current_admin: dict = Depends(get_current_admin)):
    """
    Check that the bearer token is valid.
    
    If the request gets past the auth dependency, it is.
    """
    return VerifyResponse(valid=True, username=current_admin["username"])


@router.get("/stats", response_model=DashboardStatsResponse)
async def get_stats(
    current_admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Get dashboard statistics.
    
    Returns:
    - Total, available, reserved and featured product counts
    - Total number of offers
    """
    return DashboardStatsResponse(**await AdminService.get_stats(db))


@router.get("/activity", response_model=List[RecentOfferResponse])
async def get_recent_activity(
    limit: int = Query(DEFAULT_ACTIVITY_LIMIT, ge=1, le=MAX_ACTIVITY_LIMIT),
    current_admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Get the most recent offers across all products."""
    offers = await AdminService.get_recent_offers(db, limit)
    return [RecentOfferResponse(**offer) for offer in offers]
