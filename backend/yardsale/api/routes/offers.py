from typing import List
from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from yardsale.api.deps import get_db, get_current_admin
from yardsale.schemas.product import HighestOfferResponse, MessageResponse, OfferResponse
from yardsale.services.product_service import ProductService

router = APIRouter()


@router.get("/{product_id}/offers", response_model=List[OfferResponse])
async def get_offers(
    product_id: str,
    current_admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Get all offers for a product, highest first (admin only)."""
    offers = await ProductService.list_offers(product_id, db)
    return [OfferResponse(**offer) for offer in offers]


@router.get("/{product_id}/offers/highest", response_model=HighestOfferResponse)
async def get_highest_offer(
    product_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Get the highest offer price for a product (public)."""
    highest_offer = await ProductService.get_highest_offer(product_id, db)
    return HighestOfferResponse(highest_offer=highest_offer)


@router.delete("/{product_id}/offers/{offer_id}", response_model=MessageResponse)
async def delete_offer(
    product_id: str,
    offer_id: str,
    current_admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Delete a single offer (admin only)."""
    await ProductService.delete_offer(product_id, offer_id, db)
    return MessageResponse(message="Offer deleted successfully")
