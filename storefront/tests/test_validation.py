"""
Test cases for request validation and the validation error envelope.
"""
from decimal import Decimal

import pytest
from pydantic import ValidationError

from storefront.auth.schemas import ChangePasswordRequest, RegisterRequest
from storefront.products.schemas import ProductCreate, ProductQuery, ProductUpdate, SortField
from storefront.tests.helpers import API, bearer, product_payload


def _error_fields(exc_info):
    return {".".join(str(part) for part in error["loc"]) for error in exc_info.value.errors()}


def test_register_collects_every_error():
    with pytest.raises(ValidationError) as exc_info:
        RegisterRequest.model_validate({"email": "nope", "password": "short", "name": "X1"})

    assert _error_fields(exc_info) == {"email", "password", "name"}


@pytest.mark.parametrize("password", ["alllowercase1!", "ALLUPPERCASE1!", "NoDigitsHere!", "NoSpecial123"])
def test_register_rejects_weak_passwords(password):
    with pytest.raises(ValidationError):
        RegisterRequest.model_validate({"email": "a@example.com", "password": password, "name": "Alice"})


def test_register_strips_unknown_fields():
    request = RegisterRequest.model_validate(
        {"email": "a@example.com", "password": "Passw0rd!", "name": "Anne-Marie Dupré", "admin": True}
    )

    assert request.name == "Anne-Marie Dupré"
    assert not hasattr(request, "admin")


def test_change_password_requires_confirmation_match():
    with pytest.raises(ValidationError):
        ChangePasswordRequest.model_validate(
            {"currentPassword": "Old12345!", "newPassword": "N3wPassword!", "confirmPassword": "Other123!"}
        )


def test_product_accepts_camel_and_snake_case():
    camel = ProductCreate.model_validate(
        {"name": "Lamp", "price": "12.50", "sku": "LAMP-1", "category": "Home", "isActive": False}
    )
    snake = ProductCreate.model_validate(
        {"name": "Lamp", "price": "12.50", "sku": "LAMP-1", "category": "Home", "is_active": False}
    )

    assert camel == snake
    assert camel.price == Decimal("12.50")
    assert camel.quantity == 0


@pytest.mark.parametrize(
    "overrides",
    [
        {"sku": "lower-case"},
        {"sku": "AB"},
        {"price": 0},
        {"price": "1.999"},
        {"price": 1e9},
        {"price": "100000000"},
        {"quantity": -1},
        {"category": "X"},
    ],
)
def test_product_rejects_invalid_fields(overrides):
    payload = {"name": "Lamp", "price": "12.50", "sku": "LAMP-1", "category": "Home", **overrides}

    with pytest.raises(ValidationError):
        ProductCreate.model_validate(payload)


def test_product_price_upper_bound():
    payload = {"name": "Lamp", "sku": "LAMP-1", "category": "Home"}

    assert ProductCreate.model_validate({**payload, "price": "99999999.99"}).price == Decimal("99999999.99")
    with pytest.raises(ValidationError) as exc_info:
        ProductUpdate.model_validate({"price": "123456789.00"})
    assert _error_fields(exc_info) == {"price"}


def test_product_update_requires_a_field():
    with pytest.raises(ValidationError):
        ProductUpdate.model_validate({})

    assert ProductUpdate.model_validate({"quantity": 0}).quantity == 0


def test_query_defaults():
    query = ProductQuery.model_validate({})

    assert (query.page, query.limit) == (1, 10)
    assert query.sort_by == SortField.CREATED_AT
    assert query.sort_order.value == "desc"


def test_query_fingerprint_ignores_key_spelling():
    camel = ProductQuery.model_validate({"sortBy": "price", "isActive": "true"})
    snake = ProductQuery.model_validate({"sort_by": "price", "is_active": True})

    assert camel.cache_fingerprint() == snake.cache_fingerprint()


@pytest.mark.asyncio
async def test_validation_envelope(client):
    response = await client.post(
        f"{API}/auth/register", json={"email": "bad", "password": "weak", "name": ""}
    )

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation Error"
    assert body["message"] == "Invalid request data"
    assert {detail["field"] for detail in body["details"]} == {"email", "password", "name"}
    assert all(detail["message"] for detail in body["details"])


@pytest.mark.asyncio
async def test_malformed_json_body(client):
    response = await client.post(
        f"{API}/auth/login", content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Validation Error"


@pytest.mark.asyncio
async def test_price_beyond_column_precision_is_rejected(client, admin_token):
    response = await client.post(
        f"{API}/products", json=product_payload(sku="HUGE-PRICE", price=1e9), headers=bearer(admin_token)
    )

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation Error"
    assert [detail["field"] for detail in body["details"]] == ["price"]
