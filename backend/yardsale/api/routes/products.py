from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError

from yardsale.api.deps import get_db, get_current_admin, admin_unless_public
from yardsale.core.exceptions import ValidationFailed
from yardsale.models.product import ProductCategory
from yardsale.schemas.product import (
    MessageResponse,
    OfferRequest,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
    ReserveRequest,
    SearchResponse,
)
from yardsale.services.image_storage import ImageStorage, get_image_storage
from yardsale.services.product_service import ProductService, ProductSort
from yardsale.utils.helpers import format_validation_errors

router = APIRouter()


@router.get("", response_model=List[ProductResponse])
async def get_products(
    sort: Optional[ProductSort] = None,
    category: Optional[ProductCategory] = None,
    include_reserved: bool = Query(False, alias="includeReserved"),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Get list of products.

    Filters:
    - sort: newest, oldest or unsorted
    - category: exact category match
    - includeReserved: also return reserved products (default false)
    """
    products = await ProductService.list_products(
        db,
        category=category.value if category else None,
        include_reserved=include_reserved,
        sort=sort
    )
    return [ProductService.to_response(product) for product in products]


@router.get("/featured", response_model=List[ProductResponse])
async def get_featured_products(db: AsyncIOMotorDatabase = Depends(get_db)):
    """Get featured products for the storefront (at most 6)."""
    products = await ProductService.list_featured(db)
    return [ProductService.to_response(product) for product in products]


@router.get("/search", response_model=SearchResponse)
async def search_products(
    query: str = Query(""),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Search products by name or description.

    Returns the first 10 text matches plus up to 6 other products from the
    same categories. A blank query returns two empty lists.
    """
    results = await ProductService.search_products(query, db)

    return SearchResponse(
        search_results=[ProductService.to_response(p) for p in results["search_results"]],
        similar_products=[ProductService.to_response(p) for p in results["similar_products"]]
    )


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Get a single product by ID."""
    product = await ProductService.get_product(product_id, db)
    return ProductService.to_response(product)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    name: str = Form(...),
    category: str = Form(...),
    price: float = Form(...),
    contact_number: str = Form(..., alias="contactNumber"),
    description: Optional[str] = Form(None),
    cover_image_index: int = Form(0, alias="coverImageIndex"),
    images: Optional[List[UploadFile]] = File(None),
    current_admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
    storage: ImageStorage = Depends(get_image_storage)
):
    """
    Create a new product (admin only).

    Sent as multipart form data with 1 to 5 files in the "images" field.
    """
    try:
        product_in = ProductCreate(
            name=name,
            description=description,
            category=category,
            price=price,
            contact_number=contact_number,
            cover_image_index=cover_image_index
        )
    except ValidationError as e:
        raise ValidationFailed(format_validation_errors(e.errors()))

    product = await ProductService.create_product(product_in, images or [], db, storage)
    return ProductService.to_response(product)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    product_update: ProductUpdate,
    current_admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Update product fields (admin only).

    Accepts any of name, description, category, price, contactNumber and
    coverImageIndex. Nothing is changed if any field is invalid.
    """
    product = await ProductService.update_product(product_id, product_update, db)
    return ProductService.to_response(product)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: str,
    current_admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
    storage: ImageStorage = Depends(get_image_storage)
):
    """Delete a product and its stored images (admin only)."""
    await ProductService.delete_product(product_id, db, storage)
    return MessageResponse(message="Product deleted successfully")


@router.post("/{product_id}/reserve", response_model=ProductResponse)
async def reserve_product(
    product_id: str,
    request: ReserveRequest,
    current_admin: Optional[dict] = Depends(admin_unless_public("reserve")),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Reserve a product. Fails if it is already reserved."""
    product = await ProductService.reserve_product(product_id, request.phone_number, db)
    return ProductService.to_response(product)


@router.post("/{product_id}/unreserve", response_model=ProductResponse)
async def unreserve_product(
    product_id: str,
    current_admin: Optional[dict] = Depends(admin_unless_public("unreserve")),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Clear a product's reservation."""
    product = await ProductService.unreserve_product(product_id, db)
    return ProductService.to_response(product)


@router.post("/{product_id}/offer", response_model=ProductResponse)
async def make_offer(
    product_id: str,
    request: OfferRequest,
    current_admin: Optional[dict] = Depends(admin_unless_public("offer")),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Make an offer on a product. Reserved products do not accept offers."""
    product = await ProductService.make_offer(
        product_id, request.phone_number, request.offer_price, db
    )
    return ProductService.to_response(product)


@router.post("/{product_id}/toggle-featured", response_model=ProductResponse)
async def toggle_featured(
    product_id: str,
    current_admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Feature or un-feature a product (admin only, at most 6 featured)."""
    product = await ProductService.toggle_featured(product_id, db)
    return ProductService.to_response(product)


@router.post("/{product_id}/images", response_model=ProductResponse)
async def add_images(
    product_id: str,
    images: Optional[List[UploadFile]] = File(None),
    current_admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
    storage: ImageStorage = Depends(get_image_storage)
):
    """Append images to a product (admin only, 5 images max in total)."""
    product = await ProductService.add_images(product_id, images or [], db, storage)
    return ProductService.to_response(product)


@router.delete("/{product_id}/images/{image_index}", response_model=ProductResponse)
async def remove_image(
    product_id: str,
    image_index: int,
    current_admin: dict = Depends(get_current_admin),
    db: AsyncIOMotorDatabase = Depends(get_db),
    storage: ImageStorage = Depends(get_image_storage)
):
    """
    Remove one image from a product (admin only).

    The last remaining image cannot be removed. The cover image index is
    adjusted to keep pointing at the same image, or reset to 0 if the cover
    itself was removed.
    """
    product = await ProductService.remove_image(product_id, image_index, db, storage)
    return ProductService.to_response(product)
