"""
Tests for the HTTP layer: routing, auth gating, wire format and error mapping.

The database and image store are swapped for in-memory and temporary-dir
versions through dependency overrides; startup events are not run.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bson import ObjectId
from fastapi import status
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from fakes import JPEG_BYTES, FakeDatabase, make_product_doc
from yardsale.api.deps import get_db
from yardsale.core.security import create_access_token, get_password_hash
from yardsale.main import app, startup_event
from yardsale.services.image_storage import get_image_storage


@pytest.fixture
def db():
    admin = {
        "_id": ObjectId(),
        "username": "menye",
        "password_hash": get_password_hash("strongpassword123")
    }
    return FakeDatabase(admins=[admin])


@pytest.fixture
def client(db, storage):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_image_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(db):
    token = create_access_token({"sub": str(db.admins.documents[0]["_id"])})
    return {"Authorization": f"Bearer {token}"}


def product_form(**overrides):
    form = {
        "name": "Chair",
        "category": "other",
        "price": "1000",
        "contactNumber": "+265991234567"
    }
    form.update(overrides)
    return form


def image_files(count=1):
    return [("images", (f"photo-{i}.jpg", JPEG_BYTES, "image/jpeg")) for i in range(count)]


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "healthy"


class TestCreateProduct:
    """Test the multipart create endpoint."""

    def test_create_returns_camel_case_product(self, client, auth_headers):
        """Test a created product comes back in wire format."""
        response = client.post(
            "/api/products", data=product_form(), files=image_files(2), headers=auth_headers
        )

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["name"] == "Chair"
        assert body["coverImageIndex"] == 0
        assert body["contactNumber"] == "+265991234567"
        assert body["contactLink"] == "https://wa.me/265991234567"
        assert body["reserved"] is False
        assert body["reservedBy"] is None
        assert body["offers"] == []
        assert len(body["images"]) == 2
        assert body["images"][0]["url"].startswith("/uploads/")

    def test_create_requires_admin(self, client):
        """Test anonymous callers cannot create products."""
        response = client.post("/api/products", data=product_form(), files=image_files())

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_create_with_unknown_category(self, client, auth_headers, db):
        """Test schema errors on form fields are reported as 400."""
        response = client.post(
            "/api/products",
            data=product_form(category="furniture"),
            files=image_files(),
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "category" in response.json()["detail"]
        assert db.products.documents == []

    def test_create_without_images(self, client, auth_headers):
        """Test at least one image must be uploaded."""
        response = client.post("/api/products", data=product_form(), headers=auth_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_create_with_infinite_price(self, client, auth_headers, db):
        """Test a non-finite price is rejected."""
        response = client.post(
            "/api/products",
            data=product_form(price="inf"),
            files=image_files(),
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert db.products.documents == []

    def test_create_with_missing_field(self, client, auth_headers):
        """Test missing form fields are reported as 400, not 422."""
        form = product_form()
        del form["price"]

        response = client.post("/api/products", data=form, files=image_files(), headers=auth_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "price" in response.json()["detail"]


class TestReadEndpoints:
    """Test listing, featured, search and single fetch."""

    def test_get_product(self, client, db):
        """Test fetching one product by id."""
        doc = make_product_doc()
        db.products.documents.append(doc)

        response = client.get(f"/api/products/{doc['_id']}")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == str(doc["_id"])

    def test_malformed_id_is_404(self, client):
        """Test a malformed id reads as not found."""
        response = client.get("/api/products/not-an-id")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Product not found"

    def test_list_include_reserved(self, client, db):
        """Test the includeReserved query flag."""
        db.products.documents.extend([
            make_product_doc(name="Lamp"),
            make_product_doc(
                name="Desk", reserved=True,
                reserved_by={"phone_number": "+265881234567", "reserved_at": make_product_doc()["created_at"]}
            )
        ])

        default = client.get("/api/products").json()
        everything = client.get("/api/products", params={"includeReserved": "true"}).json()

        assert [p["name"] for p in default] == ["Lamp"]
        assert len(everything) == 2

    def test_featured_route_is_not_an_id(self, client, db):
        """Test /featured is routed to the featured listing."""
        db.products.documents.append(make_product_doc(featured=True))

        response = client.get("/api/products/featured")

        assert response.status_code == status.HTTP_200_OK
        assert len(response.json()) == 1

    def test_search(self, client, db):
        """Test the search response shape."""
        db.products.documents.extend([
            make_product_doc(name="Office Chair", category="other"),
            make_product_doc(name="Garden Hose", description="", category="other")
        ])

        body = client.get("/api/products/search", params={"query": "chair"}).json()

        assert [p["name"] for p in body["searchResults"]] == ["Office Chair"]
        assert [p["name"] for p in body["similarProducts"]] == ["Garden Hose"]


class TestProductActions:
    """Test reservation, offers and admin-only actions."""

    def test_reserve_is_public_by_default(self, client, db):
        """Test anyone can reserve, but only once."""
        doc = make_product_doc()
        db.products.documents.append(doc)
        url = f"/api/products/{doc['_id']}/reserve"

        first = client.post(url, json={"phoneNumber": "0881234567"})
        second = client.post(url, json={"phoneNumber": "0881234567"})

        assert first.status_code == status.HTTP_200_OK
        assert first.json()["reservedBy"]["phoneNumber"] == "+265881234567"
        assert second.status_code == status.HTTP_400_BAD_REQUEST
        assert second.json()["detail"] == "Product is already reserved"

    def test_reserve_with_invalid_phone(self, client, db):
        """Test request body validation errors are 400."""
        doc = make_product_doc()
        db.products.documents.append(doc)

        response = client.post(f"/api/products/{doc['_id']}/reserve", json={"phoneNumber": "12345"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "errors" in response.json()

    def test_unreserve_requires_admin(self, client, db, auth_headers):
        """Test unreserve is admin only with the default configuration."""
        doc = make_product_doc()
        db.products.documents.append(doc)
        url = f"/api/products/{doc['_id']}/unreserve"

        assert client.post(url).status_code == status.HTTP_401_UNAUTHORIZED
        assert client.post(url, headers=auth_headers).status_code == status.HTTP_200_OK

    def test_offer_then_highest(self, client, db):
        """Test public offers and the public highest offer."""
        doc = make_product_doc()
        db.products.documents.append(doc)
        base = f"/api/products/{doc['_id']}"

        client.post(f"{base}/offer", json={"phoneNumber": "0881234567", "offerPrice": 700})
        client.post(f"{base}/offer", json={"phoneNumber": "0991112222", "offerPrice": 850})

        response = client.get(f"{base}/offers/highest")

        assert response.json() == {"highestOffer": 850}

    def test_infinite_offer_rejected(self, client, db):
        """Test a JSON number that overflows to infinity is not stored."""
        doc = make_product_doc()
        db.products.documents.append(doc)
        base = f"/api/products/{doc['_id']}"

        response = client.post(
            f"{base}/offer",
            content=b'{"phoneNumber": "0881234567", "offerPrice": 1e999}',
            headers={"Content-Type": "application/json"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert db.products.documents[0]["offers"] == []
        assert client.get(f"{base}/offers/highest").json() == {"highestOffer": None}

    def test_offer_list_requires_admin(self, client, db, auth_headers):
        """Test offer details are only visible to admins."""
        doc = make_product_doc()
        db.products.documents.append(doc)
        url = f"/api/products/{doc['_id']}/offers"

        assert client.get(url).status_code == status.HTTP_401_UNAUTHORIZED
        assert client.get(url, headers=auth_headers).json() == []

    def test_update_with_only_unknown_keys(self, client, db, auth_headers):
        """Test unknown keys are ignored, leaving nothing to update."""
        doc = make_product_doc()
        db.products.documents.append(doc)

        response = client.put(
            f"/api/products/{doc['_id']}", json={"reserved": True}, headers=auth_headers
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert db.products.documents[0]["reserved"] is False

    def test_update_with_infinite_price(self, client, db, auth_headers):
        """Test a price overflowing to infinity is rejected."""
        doc = make_product_doc()
        db.products.documents.append(doc)

        response = client.put(
            f"/api/products/{doc['_id']}",
            content=b'{"price": 1e999}',
            headers={**auth_headers, "Content-Type": "application/json"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert db.products.documents[0]["price"] == doc["price"]

    def test_toggle_featured(self, client, db, auth_headers):
        """Test featuring a product."""
        doc = make_product_doc()
        db.products.documents.append(doc)

        response = client.post(f"/api/products/{doc['_id']}/toggle-featured", headers=auth_headers)

        assert response.json()["featured"] is True

    def test_delete_product(self, client, db, auth_headers):
        """Test deleting a product."""
        doc = make_product_doc()
        db.products.documents.append(doc)

        response = client.delete(f"/api/products/{doc['_id']}", headers=auth_headers)

        assert response.json() == {"message": "Product deleted successfully"}
        assert db.products.documents == []


class TestAdminEndpoints:
    """Test login and token verification."""

    def test_login_and_verify(self, client):
        """Test a login token is accepted by verify."""
        response = client.post(
            "/api/admin/login", json={"username": "menye", "password": "strongpassword123"}
        )

        assert response.status_code == status.HTTP_200_OK
        token = response.json()["accessToken"]
        assert response.json()["tokenType"] == "bearer"

        verify = client.get("/api/admin/verify", headers={"Authorization": f"Bearer {token}"})

        assert verify.json() == {"valid": True, "username": "menye"}

    def test_login_with_wrong_password(self, client):
        """Test bad credentials are 401."""
        response = client.post("/api/admin/login", json={"username": "menye", "password": "nope"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Invalid credentials"

    def test_create_admin_with_overlong_password(self, client, db, auth_headers):
        """Test a password bcrypt cannot hash is a 400, not a server error."""
        response = client.post(
            "/api/admin/create",
            json={"username": "chikondi", "password": "a" * 80},
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert len(db.admins.documents) == 1
        assert "a" * 80 not in response.text

    def test_change_password_with_overlong_password(self, client, auth_headers):
        """Test the new password is bounded the same way."""
        response = client.post(
            "/api/admin/change-password",
            json={"currentPassword": "strongpassword123", "newPassword": "a" * 80},
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestStorageErrors:
    """Test database failures surface as 503."""

    def test_database_error_is_503(self, client, db):
        """Test an unhandled driver error maps to a storage failure."""
        db.products.find = MagicMock(side_effect=ServerSelectionTimeoutError("No servers found"))

        response = client.get("/api/products")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json() == {"detail": "Storage failure"}


class TestStartup:
    """Test application startup."""

    @pytest.mark.asyncio
    async def test_startup_creates_upload_dir(self, storage):
        """Test uploads can be served before the first image is saved."""
        with patch("yardsale.main.connect_to_mongo", AsyncMock()), \
                patch("yardsale.main.AdminService.ensure_first_admin", AsyncMock(return_value=False)), \
                patch("yardsale.main.image_storage", storage):
            await startup_event()

        assert storage.upload_dir.is_dir()
