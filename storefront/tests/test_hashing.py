"""
Test cases for password hashing.
"""
import pytest

from storefront.auth.hashing import HashingError, PasswordHasher


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=4)


def test_hash_is_salted(hasher):
    first = hasher.hash("Secret123!")
    second = hasher.hash("Secret123!")

    assert first != second
    assert first.startswith("$2b$04$")
    assert "Secret123!" not in first


def test_verify(hasher):
    digest = hasher.hash("Secret123!")

    assert hasher.verify("Secret123!", digest) is True
    assert hasher.verify("secret123!", digest) is False


def test_verify_malformed_digest(hasher):
    with pytest.raises(HashingError):
        hasher.verify("Secret123!", "not-a-bcrypt-hash")


@pytest.mark.asyncio
async def test_async_variants(hasher):
    digest = await hasher.hash_async("Secret123!")

    assert await hasher.verify_async("Secret123!", digest) is True
    assert await hasher.verify_async("Other123!", digest) is False
