"""Request helpers shared by the API tests."""
API = "/api/v1"
STRONG_PASSWORD = "Passw0rd!"


async def register(client, email, password=STRONG_PASSWORD, name="Test User", headers=None, **extra):
    payload = {"email": email, "password": password, "name": name, **extra}
    return await client.post(f"{API}/auth/register", json=payload, headers=headers)


async def login(client, email, password):
    return await client.post(f"{API}/auth/login", json={"email": email, "password": password})


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def product_payload(sku="SKU-1", **overrides):
    payload = {
        "name": "Test Product",
        "description": "A product used in tests",
        "price": 19.99,
        "quantity": 25,
        "sku": sku,
        "category": "Testing",
    }
    payload.update(overrides)
    return payload


async def create_product(client, token, **overrides):
    response = await client.post(f"{API}/products", json=product_payload(**overrides), headers=bearer(token))
    assert response.status_code == 201, response.text
    return response.json()["product"]
