from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from yardsale.models.product import ProductCategory
from yardsale.utils.phone_validator import normalize_phone


class CamelModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case in Python."""
    
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ProductCreate(CamelModel):
    """Schema for creating a product (sent as multipart form fields)."""
    name: str
    description: Optional[str] = None
    category: ProductCategory
    price: float = Field(ge=0, allow_inf_nan=False)
    contact_number: str
    cover_image_index: int = Field(default=0, ge=0)
    
    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value
    
    @field_validator("contact_number")
    @classmethod
    def valid_contact_number(cls, value: str) -> str:
        return normalize_phone(value)


class ProductUpdate(CamelModel):
    """Schema for a partial product update. Unknown keys are ignored."""
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[ProductCategory] = None
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    contact_number: Optional[str] = None
    cover_image_index: Optional[int] = Field(None, ge=0)
    
    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("Name cannot be empty")
        return value
    
    @field_validator("contact_number")
    @classmethod
    def valid_contact_number(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return normalize_phone(value)
    
    class Config:
        json_schema_extra = {
            "example": {
                "price": 20000,
                "coverImageIndex": 1
            }
        }


class ReserveRequest(CamelModel):
    """Schema for reserving a product."""
    phone_number: str
    
    @field_validator("phone_number")
    @classmethod
    def valid_phone_number(cls, value: str) -> str:
        return normalize_phone(value)
    
    class Config:
        json_schema_extra = {
            "example": {
                "phoneNumber": "+265991234567"
            }
        }


class OfferRequest(CamelModel):
    """Schema for making an offer on a product."""
    phone_number: str
    offer_price: float = Field(ge=0, allow_inf_nan=False)
    
    @field_validator("phone_number")
    @classmethod
    def valid_phone_number(cls, value: str) -> str:
        return normalize_phone(value)
    
    class Config:
        json_schema_extra = {
            "example": {
                "phoneNumber": "+265991234567",
                "offerPrice": 15000
            }
        }


class ProductImageResponse(CamelModel):
    url: str
    public_id: str


class ReservationResponse(CamelModel):
    phone_number: str
    reserved_at: datetime


class OfferResponse(CamelModel):
    id: str
    phone_number: str
    offer_price: float
    timestamp: datetime


class ProductResponse(CamelModel):
    """Schema for product response."""
    id: str
    name: str
    description: Optional[str] = None
    category: ProductCategory
    price: float
    images: List[ProductImageResponse]
    cover_image_index: int
    contact_number: str
    contact_link: Optional[str] = None
    featured: bool
    reserved: bool
    reserved_by: Optional[ReservationResponse] = None
    offers: List[OfferResponse]
    created_at: datetime
    updated_at: datetime


class SearchResponse(CamelModel):
    """Text matches plus other products from the matched categories."""
    search_results: List[ProductResponse]
    similar_products: List[ProductResponse]


class HighestOfferResponse(CamelModel):
    highest_offer: Optional[float] = None


class MessageResponse(BaseModel):
    message: str
