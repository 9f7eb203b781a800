"""Schemas for the admin dashboard."""

from datetime import datetime
from pydantic import Field

from yardsale.schemas.product import CamelModel, OfferResponse


class DashboardStatsResponse(CamelModel):
    """Collection-wide product counts."""
    total_products: int = Field(..., description="All products, reserved or not")
    available_products: int = Field(..., description="Products that are not reserved")
    reserved_products: int = Field(..., description="Reserved products")
    featured_products: int = Field(..., description="Products currently featured")
    total_offers: int = Field(..., description="Offers across all products")
    
    class Config:
        json_schema_extra = {
            "example": {
                "totalProducts": 42,
                "availableProducts": 37,
                "reservedProducts": 5,
                "featuredProducts": 6,
                "totalOffers": 118
            }
        }


class RecentOfferResponse(CamelModel):
    """An offer together with the product it was made on."""
    product_id: str
    product_name: str
    product_price: float
    offer: OfferResponse


class AdminResponse(CamelModel):
    id: str
    username: str
    created_at: datetime
