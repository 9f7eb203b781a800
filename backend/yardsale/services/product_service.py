"""
Product service: lifecycle rules for listings, reservations, offers and images.

Invariants kept by every operation:
- a product has between MIN_IMAGES and MAX_IMAGES images
- 0 <= cover_image_index < len(images)
- reserved_by is set exactly when reserved is true
- at most MAX_FEATURED products are featured (best effort, see toggle_featured)
"""
import logging
import re
from enum import Enum
from typing import Dict, List, Optional, Tuple

from fastapi import UploadFile
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from yardsale.core.exceptions import (
    AlreadyReserved,
    FeaturedLimitReached,
    ImageLimitExceeded,
    InvalidCoverIndex,
    InvalidImageIndex,
    MinimumImagesRequired,
    OfferNotFound,
    ProductNotFound,
    ProductReserved,
    ValidationFailed,
)
from yardsale.models.product import (
    MAX_FEATURED,
    MAX_IMAGES,
    MAX_SEARCH_RESULTS,
    MAX_SIMILAR_PRODUCTS,
    MIN_IMAGES,
    Offer,
    Product,
)
from yardsale.schemas.product import ProductCreate, ProductResponse, ProductUpdate
from yardsale.services.image_storage import ImageStorage
from yardsale.utils.helpers import get_current_timestamp, parse_object_id
from yardsale.utils.phone_validator import get_whatsapp_link

logger = logging.getLogger(__name__)

# Conditional write attempts before giving up on a contended image list
REMOVE_IMAGE_ATTEMPTS = 3


class ProductSort(str, Enum):
    """Listing order."""
    NEWEST = "newest"
    OLDEST = "oldest"
    UNSORTED = "unsorted"


class ProductService:
    """Service for product lifecycle operations."""

    # created_at direction per sort option; UNSORTED keeps natural order
    SORT_DIRECTIONS = {
        ProductSort.NEWEST: -1,
        ProductSort.OLDEST: 1,
    }

    @staticmethod
    def to_response(product: dict) -> ProductResponse:
        """Build the API representation of a product document."""
        return ProductResponse(
            id=str(product["_id"]),
            name=product["name"],
            description=product.get("description"),
            category=product["category"],
            price=product["price"],
            images=product.get("images", []),
            cover_image_index=product.get("cover_image_index", 0),
            contact_number=product["contact_number"],
            contact_link=get_whatsapp_link(product["contact_number"]),
            featured=product.get("featured", False),
            reserved=product.get("reserved", False),
            reserved_by=product.get("reserved_by"),
            offers=product.get("offers", []),
            created_at=product["created_at"],
            updated_at=product.get("updated_at", product["created_at"])
        )

    @staticmethod
    def repair_cover_index(cover_index: int, removed_index: int) -> int:
        """
        Cover index after the image at removed_index is dropped.

        Removing the cover itself falls back to the first image; removing an
        earlier image shifts the cover down by one.
        """
        if cover_index == removed_index:
            return 0
        if cover_index > removed_index:
            return cover_index - 1
        return cover_index

    @staticmethod
    def remove_image_at(images: List[dict], cover_index: int, index: int) -> Tuple[List[dict], int]:
        """
        Remove one image and repair the cover index.

        Returns:
            Tuple of (remaining_images, new_cover_index)

        Raises:
            InvalidImageIndex: If index is out of range
            MinimumImagesRequired: If removing would leave no images
        """
        if index < 0 or index >= len(images):
            raise InvalidImageIndex(index, len(images))

        if len(images) <= MIN_IMAGES:
            raise MinimumImagesRequired()

        remaining = images[:index] + images[index + 1:]
        return remaining, ProductService.repair_cover_index(cover_index, index)

    @staticmethod
    def build_search_filter(query: str) -> Optional[dict]:
        """Case-insensitive literal substring match on name or description, or None for a blank query."""
        text = (query or "").strip()
        if not text:
            return None

        pattern = {"$regex": re.escape(text), "$options": "i"}
        return {
            "$or": [
                {"name": pattern},
                {"description": pattern}
            ],
            "reserved": False
        }

    @staticmethod
    async def get_product(product_id: str, db: AsyncIOMotorDatabase) -> dict:
        """Get a product by id or raise ProductNotFound."""
        oid = parse_object_id(product_id, ProductNotFound())
        product = await db.products.find_one({"_id": oid})

        if not product:
            raise ProductNotFound()

        return product

    @staticmethod
    async def create_product(
        product_in: ProductCreate,
        files: List[UploadFile],
        db: AsyncIOMotorDatabase,
        storage: ImageStorage
    ) -> dict:
        """
        Create a product with its uploaded images.

        Fields and image count are validated before anything is uploaded.
        If the insert fails, the uploaded images are removed again.
        """
        if not files:
            raise ValidationFailed("At least one image is required")

        if len(files) > MAX_IMAGES:
            raise ImageLimitExceeded(MAX_IMAGES)

        if product_in.cover_image_index >= len(files):
            raise InvalidCoverIndex(product_in.cover_image_index, len(files))

        images = await storage.save_images(files)

        try:
            product = Product(**product_in.model_dump(), images=images)
            product_data = product.to_document()
            result = await db.products.insert_one(product_data)
        except Exception:
            await storage.delete_images_quietly([image["public_id"] for image in images])
            raise

        product_data["_id"] = result.inserted_id
        logger.info(f"Created product {result.inserted_id} with {len(images)} image(s)")

        return product_data

    @staticmethod
    async def list_products(
        db: AsyncIOMotorDatabase,
        category: Optional[str] = None,
        include_reserved: bool = False,
        sort: Optional[ProductSort] = None
    ) -> List[dict]:
        """
        List products.

        Reserved products are left out unless include_reserved is set, so
        the storefront never shows them by default.
        """
        query = {}

        if category:
            query["category"] = category
        if not include_reserved:
            query["reserved"] = False

        cursor = db.products.find(query)

        direction = ProductService.SORT_DIRECTIONS.get(sort)
        if direction is not None:
            cursor = cursor.sort("created_at", direction)

        return await cursor.to_list(length=None)

    @staticmethod
    async def list_featured(db: AsyncIOMotorDatabase) -> List[dict]:
        """Featured, non-reserved products, newest first."""
        cursor = db.products.find({"featured": True, "reserved": False})
        cursor = cursor.sort("created_at", -1).limit(MAX_FEATURED)
        return await cursor.to_list(length=MAX_FEATURED)

    @staticmethod
    async def search_products(query: str, db: AsyncIOMotorDatabase) -> Dict[str, List[dict]]:
        """
        Search products by name or description.

        Returns:
            {"search_results": text matches (max 10),
             "similar_products": other products in the matched categories (max 6)}
        """
        search_filter = ProductService.build_search_filter(query)
        if search_filter is None:
            return {"search_results": [], "similar_products": []}

        search_results = await db.products.find(search_filter).limit(
            MAX_SEARCH_RESULTS
        ).to_list(length=MAX_SEARCH_RESULTS)

        # Keep first-seen order of categories
        categories = list(dict.fromkeys(product["category"] for product in search_results))

        similar_products = []
        if categories:
            similar_filter = {
                "category": {"$in": categories},
                "_id": {"$nin": [product["_id"] for product in search_results]},
                "reserved": False
            }
            similar_products = await db.products.find(similar_filter).limit(
                MAX_SIMILAR_PRODUCTS
            ).to_list(length=MAX_SIMILAR_PRODUCTS)

        return {
            "search_results": search_results,
            "similar_products": similar_products
        }

    @staticmethod
    async def reserve_product(product_id: str, phone_number: str, db: AsyncIOMotorDatabase) -> dict:
        """
        Reserve a product for a buyer.

        The reserved=false check and the write are one conditional update,
        so at most one of several concurrent reservations can succeed.
        """
        oid = parse_object_id(product_id, ProductNotFound())
        now = get_current_timestamp()

        product = await db.products.find_one_and_update(
            {"_id": oid, "reserved": False},
            {"$set": {
                "reserved": True,
                "reserved_by": {"phone_number": phone_number, "reserved_at": now},
                "updated_at": now
            }},
            return_document=ReturnDocument.AFTER
        )

        if product is None:
            # Either missing (raises) or already reserved
            await ProductService.get_product(product_id, db)
            raise AlreadyReserved()

        logger.info(f"Product {product_id} reserved")
        return product

    @staticmethod
    async def unreserve_product(product_id: str, db: AsyncIOMotorDatabase) -> dict:
        """Clear a reservation. Idempotent."""
        oid = parse_object_id(product_id, ProductNotFound())

        product = await db.products.find_one_and_update(
            {"_id": oid},
            {"$set": {
                "reserved": False,
                "reserved_by": None,
                "updated_at": get_current_timestamp()
            }},
            return_document=ReturnDocument.AFTER
        )

        if product is None:
            raise ProductNotFound()

        logger.info(f"Product {product_id} unreserved")
        return product

    @staticmethod
    async def make_offer(
        product_id: str,
        phone_number: str,
        offer_price: float,
        db: AsyncIOMotorDatabase
    ) -> dict:
        """Append an offer. Offers are refused once a product is reserved."""
        oid = parse_object_id(product_id, ProductNotFound())
        offer = Offer(phone_number=phone_number, offer_price=offer_price)

        product = await db.products.find_one_and_update(
            {"_id": oid, "reserved": False},
            {
                "$push": {"offers": offer.model_dump()},
                "$set": {"updated_at": offer.timestamp}
            },
            return_document=ReturnDocument.AFTER
        )

        if product is None:
            await ProductService.get_product(product_id, db)
            raise ProductReserved()

        return product

    @staticmethod
    async def toggle_featured(product_id: str, db: AsyncIOMotorDatabase) -> dict:
        """
        Flip the featured flag.

        The featured count is read right before the write, but the two are
        separate operations: concurrent toggles can still push the total
        past MAX_FEATURED. The cap is best effort.
        """
        product = await ProductService.get_product(product_id, db)
        featured = product.get("featured", False)

        if not featured:
            featured_count = await db.products.count_documents({"featured": True})
            if featured_count >= MAX_FEATURED:
                raise FeaturedLimitReached(MAX_FEATURED)

        updated_product = await db.products.find_one_and_update(
            {"_id": product["_id"]},
            {"$set": {"featured": not featured, "updated_at": get_current_timestamp()}},
            return_document=ReturnDocument.AFTER
        )

        if updated_product is None:
            raise ProductNotFound()

        logger.info(f"Product {product_id} featured={not featured}")
        return updated_product

    @staticmethod
    async def update_product(
        product_id: str,
        product_update: ProductUpdate,
        db: AsyncIOMotorDatabase
    ) -> dict:
        """
        Apply a partial update. All or nothing.

        A new cover_image_index is checked against the image list inside the
        same conditional update, so it can never point past the last image.
        """
        oid = parse_object_id(product_id, ProductNotFound())

        update_data = product_update.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        if not update_data:
            raise ValidationFailed("No valid fields to update")

        query = {"_id": oid}
        cover_index = update_data.get("cover_image_index")
        if cover_index is not None:
            query[f"images.{cover_index}"] = {"$exists": True}

        update_data["updated_at"] = get_current_timestamp()

        product = await db.products.find_one_and_update(
            query,
            {"$set": update_data},
            return_document=ReturnDocument.AFTER
        )

        if product is None:
            existing = await ProductService.get_product(product_id, db)
            if cover_index is not None:
                raise InvalidCoverIndex(cover_index, len(existing.get("images", [])))
            raise ProductNotFound()

        return product

    @staticmethod
    async def add_images(
        product_id: str,
        files: List[UploadFile],
        db: AsyncIOMotorDatabase,
        storage: ImageStorage
    ) -> dict:
        """
        Append images to a product. Either every image is added or none.

        The limit is checked before uploading and again in the write itself:
        the push only matches while position MAX_IMAGES - len(files) is free.
        """
        if not files:
            raise ValidationFailed("At least one image is required")

        product = await ProductService.get_product(product_id, db)

        if len(product.get("images", [])) + len(files) > MAX_IMAGES:
            raise ImageLimitExceeded(MAX_IMAGES)

        new_images = await storage.save_images(files)
        public_ids = [image["public_id"] for image in new_images]

        try:
            updated_product = await db.products.find_one_and_update(
                {"_id": product["_id"], f"images.{MAX_IMAGES - len(new_images)}": {"$exists": False}},
                {
                    "$push": {"images": {"$each": new_images}},
                    "$set": {"updated_at": get_current_timestamp()}
                },
                return_document=ReturnDocument.AFTER
            )
        except Exception:
            await storage.delete_images_quietly(public_ids)
            raise

        if updated_product is None:
            await storage.delete_images_quietly(public_ids)
            await ProductService.get_product(product_id, db)
            raise ImageLimitExceeded(MAX_IMAGES)

        logger.info(f"Added {len(new_images)} image(s) to product {product_id}")
        return updated_product

    @staticmethod
    async def remove_image(
        product_id: str,
        index: int,
        db: AsyncIOMotorDatabase,
        storage: ImageStorage
    ) -> dict:
        """
        Remove the image at index, repair the cover index, then delete the stored file.

        The write only matches while the image list is still the one that was
        read. If another request changed it in between, the removal is
        recomputed from a fresh read.
        """
        for _ in range(REMOVE_IMAGE_ATTEMPTS):
            product = await ProductService.get_product(product_id, db)
            images = product.get("images", [])

            remaining, cover_index = ProductService.remove_image_at(
                images, product.get("cover_image_index", 0), index
            )
            removed = images[index]

            updated_product = await db.products.find_one_and_update(
                {"_id": product["_id"], "images": images},
                {"$set": {
                    "images": remaining,
                    "cover_image_index": cover_index,
                    "updated_at": get_current_timestamp()
                }},
                return_document=ReturnDocument.AFTER
            )

            if updated_product is not None:
                await storage.delete_images_quietly([removed["public_id"]])
                return updated_product

            logger.info(f"Images of product {product_id} changed during removal, retrying")

        raise ValidationFailed("Product images are being modified, please try again")

    @staticmethod
    async def delete_product(product_id: str, db: AsyncIOMotorDatabase, storage: ImageStorage) -> None:
        """
        Delete a product.

        The record goes first; stored images are removed afterwards on a
        best-effort basis and never fail the call.
        """
        oid = parse_object_id(product_id, ProductNotFound())
        product = await db.products.find_one_and_delete({"_id": oid})

        if not product:
            raise ProductNotFound()

        logger.info(f"Deleted product {product_id}")
        await storage.delete_images_quietly(
            [image["public_id"] for image in product.get("images", [])]
        )

    @staticmethod
    async def list_offers(product_id: str, db: AsyncIOMotorDatabase) -> List[dict]:
        """Offers on a product, highest first."""
        product = await ProductService.get_product(product_id, db)
        return sorted(product.get("offers", []), key=lambda offer: offer["offer_price"], reverse=True)

    @staticmethod
    async def get_highest_offer(product_id: str, db: AsyncIOMotorDatabase) -> Optional[float]:
        """Highest offer price, or None when there are no offers."""
        product = await ProductService.get_product(product_id, db)
        offers = product.get("offers", [])

        if not offers:
            return None

        return max(offer["offer_price"] for offer in offers)

    @staticmethod
    async def delete_offer(product_id: str, offer_id: str, db: AsyncIOMotorDatabase) -> None:
        """Remove a single offer from a product."""
        oid = parse_object_id(product_id, ProductNotFound())

        result = await db.products.update_one(
            {"_id": oid, "offers.id": offer_id},
            {
                "$pull": {"offers": {"id": offer_id}},
                "$set": {"updated_at": get_current_timestamp()}
            }
        )

        if result.matched_count == 0:
            await ProductService.get_product(product_id, db)
            raise OfferNotFound()

        logger.info(f"Deleted offer {offer_id} from product {product_id}")
