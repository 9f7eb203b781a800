from datetime import datetime
from enum import Enum
from typing import List, Optional
from bson import ObjectId
from pydantic import BaseModel, Field, model_validator

# Product invariants
MIN_IMAGES = 1
MAX_IMAGES = 5
MAX_FEATURED = 6

# Search caps
MAX_SEARCH_RESULTS = 10
MAX_SIMILAR_PRODUCTS = 6


class ProductCategory(str, Enum):
    """Product category enumeration."""
    CLOTHING = "clothing"
    ELECTRONICS = "electronics"
    HOME_AND_KITCHEN = "home-and-kitchen"
    HEALTH = "health"
    OUTDOORS = "outdoors"
    STATIONERY = "stationery"
    TOYS_AND_GAMES = "toys-and-games"
    AUTOMOTIVE = "automotive"
    OTHER = "other"


class ProductImage(BaseModel):
    """Stored image: public URL plus the storage id needed to delete it."""
    url: str
    public_id: str


class Reservation(BaseModel):
    """Who reserved a product and when."""
    phone_number: str
    reserved_at: datetime = Field(default_factory=datetime.utcnow)


def generate_offer_id() -> str:
    """Generate a unique offer ID."""
    return str(ObjectId())


class Offer(BaseModel):
    """Offer embedded in a product document."""
    id: str = Field(default_factory=generate_offer_id)
    phone_number: str
    offer_price: float = Field(ge=0, allow_inf_nan=False)
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class Product(BaseModel):
    """Product model for MongoDB."""
    id: Optional[str] = Field(None, alias="_id")
    name: str = Field(min_length=1)
    description: Optional[str] = None
    category: ProductCategory
    price: float = Field(ge=0, allow_inf_nan=False)
    images: List[ProductImage] = Field(min_length=MIN_IMAGES, max_length=MAX_IMAGES)
    cover_image_index: int = Field(default=0, ge=0)
    contact_number: str
    featured: bool = False
    reserved: bool = False
    reserved_by: Optional[Reservation] = None
    offers: List[Offer] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    
    class Config:
        populate_by_name = True
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "name": "Office Chair",
                "description": "Swivel chair, barely used",
                "category": "home-and-kitchen",
                "price": 25000,
                "images": [{"url": "/uploads/chair.jpg", "public_id": "chair.jpg"}],
                "cover_image_index": 0,
                "contact_number": "+265991234567",
                "featured": False,
                "reserved": False
            }
        }
    
    @model_validator(mode="after")
    def check_invariants(self):
        if self.cover_image_index >= len(self.images):
            raise ValueError("cover_image_index must point at an existing image")
        if self.reserved != (self.reserved_by is not None):
            raise ValueError("reserved_by must be set exactly when reserved is true")
        return self
    
    def to_document(self) -> dict:
        """Serialize for insertion; MongoDB assigns the _id."""
        return self.model_dump(exclude={"id"})
