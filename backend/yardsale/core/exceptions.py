"""
Error taxonomy for the yard sale API.

Every error is an HTTPException so services can raise it directly and
FastAPI renders it as {"detail": "..."} with the right status code.
"""
from fastapi import HTTPException, status


class NotFound(HTTPException):
    """Entity id does not resolve."""
    
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ProductNotFound(NotFound):
    def __init__(self):
        super().__init__("Product not found")


class OfferNotFound(NotFound):
    def __init__(self):
        super().__init__("Offer not found")


class ValidationFailed(HTTPException):
    """Malformed or out-of-range input."""
    
    def __init__(self, detail: str = "Validation failed"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class InvalidCoverIndex(ValidationFailed):
    def __init__(self, index: int, image_count: int):
        super().__init__(
            f"Invalid cover image index {index}: product has {image_count} image(s)"
        )


class InvalidImageIndex(ValidationFailed):
    def __init__(self, index: int, image_count: int):
        super().__init__(
            f"Invalid image index {index}: product has {image_count} image(s)"
        )


class AlreadyReserved(ValidationFailed):
    def __init__(self):
        super().__init__("Product is already reserved")


class ProductReserved(ValidationFailed):
    def __init__(self):
        super().__init__("Cannot make offers on reserved products")


class FeaturedLimitReached(ValidationFailed):
    def __init__(self, limit: int):
        super().__init__(f"Maximum of {limit} featured products reached")


class ImageLimitExceeded(ValidationFailed):
    def __init__(self, limit: int):
        super().__init__(f"A product can have at most {limit} images")


class MinimumImagesRequired(ValidationFailed):
    def __init__(self):
        super().__init__("Product must have at least one image")


class Unauthorized(HTTPException):
    """Missing or invalid admin credential."""
    
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class StorageFailure(HTTPException):
    """Persistence or image-store error. Not retried."""
    
    def __init__(self, detail: str = "Storage failure"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
