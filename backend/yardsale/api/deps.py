from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from motor.motor_asyncio import AsyncIOMotorDatabase
from bson import ObjectId
from bson.errors import InvalidId
from yardsale.core.config import settings
from yardsale.core.database import get_database
from yardsale.core.exceptions import Unauthorized
from yardsale.core.security import decode_access_token

# Security scheme; missing credentials are reported by get_current_admin
security = HTTPBearer(auto_error=False)


async def get_db() -> AsyncIOMotorDatabase:
    """Dependency to get database instance."""
    return get_database()


async def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> dict:
    """
    Dependency to get the current authenticated administrator.
    
    Validates the JWT token and returns the admin document from the database.
    
    Raises:
        Unauthorized: If the token is missing or invalid, or the admin no longer exists
    """
    if credentials is None:
        raise Unauthorized("Authentication required")
    
    # Decode JWT token
    payload = decode_access_token(credentials.credentials)
    
    if payload is None:
        raise Unauthorized()
    
    admin_id: str = payload.get("sub")
    if admin_id is None:
        raise Unauthorized()
    
    # Get admin from database
    try:
        admin = await db.admins.find_one({"_id": ObjectId(admin_id)})
    except (InvalidId, TypeError):
        raise Unauthorized()
    
    if admin is None:
        raise Unauthorized("Authentication failed")
    
    return admin


def admin_unless_public(action: str):
    """
    Dependency factory for product actions whose access is configurable.
    
    When the action is listed in PUBLIC_PRODUCT_ACTIONS anyone may call it
    and the dependency yields None; otherwise an admin token is required.
    """
    async def dependency(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
        db: AsyncIOMotorDatabase = Depends(get_db)
    ) -> Optional[dict]:
        if action in settings.PUBLIC_PRODUCT_ACTIONS:
            return None
        return await get_current_admin(credentials, db)
    
    return dependency
