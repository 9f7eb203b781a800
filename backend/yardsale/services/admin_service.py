"""
Admin service: administrator accounts, login and dashboard figures.
"""
import logging
from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from yardsale.core.config import settings
from yardsale.core.exceptions import Unauthorized, ValidationFailed
from yardsale.core.security import create_access_token, get_password_hash, verify_password
from yardsale.models.admin import Admin
from yardsale.utils.helpers import get_current_timestamp

logger = logging.getLogger(__name__)

DEFAULT_ACTIVITY_LIMIT = 10
MAX_ACTIVITY_LIMIT = 50


class AdminService:
    """Service for administrator operations."""

    @staticmethod
    async def authenticate(username: str, password: str, db: AsyncIOMotorDatabase) -> str:
        """
        Check credentials and issue an access token.

        Raises:
            Unauthorized: If the username is unknown or the password is wrong
        """
        admin = await db.admins.find_one({"username": username})

        if not admin or not verify_password(password, admin["password_hash"]):
            logger.info(f"Failed login attempt for {username!r}")
            raise Unauthorized("Invalid credentials")

        return create_access_token(data={"sub": str(admin["_id"])})

    @staticmethod
    async def create_admin(username: str, password: str, db: AsyncIOMotorDatabase) -> dict:
        """
        Create an administrator.

        Raises:
            ValidationFailed: If the username is already taken
        """
        existing_admin = await db.admins.find_one({"username": username})
        if existing_admin:
            raise ValidationFailed("Username already exists")

        admin_data = Admin(
            username=username,
            password_hash=get_password_hash(password)
        ).to_document()

        try:
            result = await db.admins.insert_one(admin_data)
        except DuplicateKeyError:
            # Lost a race with a concurrent create
            raise ValidationFailed("Username already exists")

        admin_data["_id"] = result.inserted_id
        logger.info(f"Created admin {username!r}")

        return admin_data

    @staticmethod
    async def change_password(
        admin: dict,
        current_password: str,
        new_password: str,
        db: AsyncIOMotorDatabase
    ) -> None:
        """
        Change an administrator's password.

        Raises:
            Unauthorized: If current_password does not match
        """
        if not verify_password(current_password, admin["password_hash"]):
            raise Unauthorized("Current password is incorrect")

        await db.admins.update_one(
            {"_id": admin["_id"]},
            {"$set": {"password_hash": get_password_hash(new_password)}}
        )
        logger.info(f"Password changed for admin {admin['username']!r}")

    @staticmethod
    async def ensure_first_admin(db: AsyncIOMotorDatabase) -> bool:
        """
        Create the configured first admin when no admin exists yet.

        Returns:
            True if an admin was created
        """
        if not settings.ADMIN_USERNAME or not settings.ADMIN_PASSWORD:
            return False

        admin_count = await db.admins.count_documents({})
        if admin_count > 0:
            return False

        await AdminService.create_admin(settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD, db)
        logger.info("First admin created from configuration")
        return True

    @staticmethod
    async def get_stats(db: AsyncIOMotorDatabase) -> dict:
        """Product counts for the dashboard."""
        total_products = await db.products.count_documents({})
        reserved_products = await db.products.count_documents({"reserved": True})
        featured_products = await db.products.count_documents({"featured": True})

        pipeline = [
            {"$project": {"count": {"$size": {"$ifNull": ["$offers", []]}}}},
            {"$group": {"_id": None, "total": {"$sum": "$count"}}}
        ]
        offer_totals = await db.products.aggregate(pipeline).to_list(length=1)
        total_offers = offer_totals[0]["total"] if offer_totals else 0

        return {
            "total_products": total_products,
            "available_products": total_products - reserved_products,
            "reserved_products": reserved_products,
            "featured_products": featured_products,
            "total_offers": total_offers
        }

    @staticmethod
    async def get_recent_offers(db: AsyncIOMotorDatabase, limit: int = DEFAULT_ACTIVITY_LIMIT) -> List[dict]:
        """Most recent offers across all products, newest first."""
        limit = max(1, min(limit, MAX_ACTIVITY_LIMIT))

        pipeline = [
            {"$unwind": "$offers"},
            {"$sort": {"offers.timestamp": -1}},
            {"$limit": limit},
            {"$project": {
                "_id": 0,
                "product_id": {"$toString": "$_id"},
                "product_name": "$name",
                "product_price": "$price",
                "offer": "$offers"
            }}
        ]

        return await db.products.aggregate(pipeline).to_list(length=limit)

    @staticmethod
    def to_admin_response(admin: dict) -> dict:
        """Public view of an admin document (no password hash)."""
        return {
            "id": str(admin["_id"]),
            "username": admin["username"],
            "created_at": admin.get("created_at", get_current_timestamp())
        }
