"""
Shared fixtures for the cart test suite.

Storage is either an in-memory dict slot or an in-memory SQLite database,
so nothing touches the filesystem.
"""
import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel

from app.core.errors import CartStorageError
from app.database import build_engine
from app.main import app
from app.models.cart import CartSlot  # noqa: F401
from app.repositories.cart_repo import InMemoryCartStorage
from app.routers.cart import get_cart_registry
from app.schemas.cart import LineItemCandidate, Variant
from app.services.cart_persistence import CartRegistry
from app.services.cart_service import CartStore


class BrokenStorage:
    """Storage whose slot is unreachable for both reads and writes."""

    def __init__(self, key: str = "cart-storage:broken"):
        self.key = key
        self.save_calls = 0

    def load(self) -> str | None:
        raise CartStorageError(self.key, "connection refused")

    def save(self, payload: str) -> None:
        self.save_calls += 1
        raise CartStorageError(self.key, "connection refused")


@pytest.fixture
def make_candidate():
    """Build a LineItemCandidate with storefront-like defaults."""

    def _make(product_id: int = 1, price: float = 10.0, variant_id: str | None = None, **extra):
        variant = None
        if variant_id is not None:
            variant = Variant(
                id=variant_id,
                name=variant_id.title(),
                attributes=extra.pop("attributes", {"color": variant_id}),
            )
        return LineItemCandidate(
            product_id=product_id,
            document_id=extra.pop("document_id", f"doc-{product_id}"),
            name=extra.pop("name", f"Product {product_id}"),
            slug=extra.pop("slug", f"product-{product_id}"),
            price=price,
            image=extra.pop("image", None),
            variant=variant,
        )

    return _make


@pytest.fixture
def store() -> CartStore:
    return CartStore()


@pytest.fixture
def slots() -> dict[str, str]:
    return {}


@pytest.fixture
def memory_storage(slots) -> InMemoryCartStorage:
    return InMemoryCartStorage("cart-storage:test", slots)


@pytest.fixture
def broken_storage() -> BrokenStorage:
    return BrokenStorage()


@pytest.fixture
def sqlite_engine():
    engine = build_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def registry(slots) -> CartRegistry:
    return CartRegistry(lambda key: InMemoryCartStorage(key, slots))


@pytest.fixture
def test_client(registry):
    """
    TestClient with the cart registry swapped for an in-memory one.

    The lifespan is not entered, so no database file is created.
    """
    app.dependency_overrides[get_cart_registry] = lambda: registry
    yield TestClient(app)
    app.dependency_overrides.clear()
