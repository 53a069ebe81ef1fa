# app/services/cart_persistence.py
import logging
import threading
from collections import OrderedDict
from collections.abc import Callable

from pydantic import Field, ValidationError
from sqlalchemy.engine import Engine

from app.core.config import Settings
from app.core.errors import CartStorageError
from app.repositories.cart_repo import CartStorage, InMemoryCartStorage, SqlCartStorage
from app.schemas.cart import Cart, CartSchema, LineItem, LineItemCandidate
from app.services.cart_service import CartListener, CartStore

logger = logging.getLogger(__name__)

# Bump when the persisted layout changes; older payloads are then dropped.
SNAPSHOT_VERSION = 0

StorageFactory = Callable[[str], CartStorage]


class CartSnapshot(CartSchema):
    """Persisted envelope: {"state": {...cart...}, "version": 0}."""

    state: Cart
    version: int = SNAPSHOT_VERSION


class StoredCartState(CartSchema):
    """Read side of the envelope; stored total / itemCount are not parsed."""

    items: list[LineItem] = Field(default_factory=list)


class StoredSnapshot(CartSchema):
    state: StoredCartState
    version: int


def encode_snapshot(cart: Cart) -> str:
    return CartSnapshot(state=cart).model_dump_json(by_alias=True)


def decode_snapshot(payload: str | None) -> list[LineItem] | None:
    """
    Parse a persisted payload back into line items.

    Returns None for an empty slot, unparsable JSON, a payload that fails
    validation, or a different snapshot version. Stored aggregates are
    ignored; the store re-derives them from the items.
    """
    if payload is None:
        return None

    try:
        snapshot = StoredSnapshot.model_validate_json(payload)
    except ValidationError:
        return None

    if snapshot.version != SNAPSHOT_VERSION:
        return None
    return list(snapshot.state.items)


class PersistentCartStore:
    """
    Wraps a CartStore and writes the whole cart to `storage` after every
    mutation.

    - restores from storage on construction; an unreadable snapshot leaves
      an empty cart, an empty slot leaves `store` as it was handed in
    - mutation + save run under one lock, so saves are strictly ordered
    - a failed save is logged; the in-memory cart stays the source of truth
    """

    def __init__(self, storage: CartStorage, store: CartStore | None = None):
        self.storage = storage
        self.store = store if store is not None else CartStore()
        self._lock = threading.RLock()
        self.restore()

    @property
    def key(self) -> str:
        return self.storage.key

    # ---- internal helpers ----

    def _persist(self) -> Cart:
        cart = self.store.cart
        try:
            self.storage.save(encode_snapshot(cart))
        except CartStorageError as e:
            logger.error("Could not persist cart %s: %s", self.key, e.message)
        return cart

    # ---- lifecycle ----

    def restore(self) -> Cart:
        """
        Reload the cart from storage without writing anything back.

        A saved snapshot replaces the current items; an unreadable one
        empties the cart; an empty or unreachable slot changes nothing.
        """
        with self._lock:
            try:
                payload = self.storage.load()
            except CartStorageError as e:
                logger.error("Could not load cart %s: %s", self.key, e.message)
                payload = None

            items = decode_snapshot(payload)
            if items is not None:
                self.store.replace(items)
            elif payload is not None:
                logger.warning("Discarding unreadable cart snapshot %s", self.key)
                self.store.replace([])
            return self.store.cart

    # ---- read side ----

    @property
    def cart(self) -> Cart:
        with self._lock:
            return self.store.cart

    def get_item_quantity(self, product_id: int, variant_id: str | None = None) -> int:
        with self._lock:
            return self.store.get_item_quantity(product_id, variant_id)

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        return self.store.subscribe(listener)

    # ---- mutations ----

    def add_item(self, candidate: LineItemCandidate, quantity: int | None = 1) -> Cart:
        with self._lock:
            self.store.add_item(candidate, quantity)
            return self._persist()

    def remove_item(self, product_id: int, variant_id: str | None = None) -> Cart:
        with self._lock:
            self.store.remove_item(product_id, variant_id)
            return self._persist()

    def update_quantity(
        self,
        product_id: int,
        quantity: int,
        variant_id: str | None = None,
    ) -> Cart:
        with self._lock:
            self.store.update_quantity(product_id, quantity, variant_id)
            return self._persist()

    def clear_cart(self) -> Cart:
        with self._lock:
            self.store.clear_cart()
            return self._persist()


class CartRegistry:
    """
    Owns the lifetime of every cart in the process.

    A cart is created (and restored) on first get() for a session and lives
    until discard(), close(), or until it is the least recently used of more
    than `max_size` open carts. Each session maps to one storage key:
    '<storage_name>:<session_id>'.

    Evicted carts keep their durable slot and are restored on the next get().
    """

    def __init__(
        self,
        storage_factory: StorageFactory,
        storage_name: str = "cart-storage",
        max_size: int = 1000,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.storage_factory = storage_factory
        self.storage_name = storage_name
        self.max_size = max_size
        self._stores: OrderedDict[str, PersistentCartStore] = OrderedDict()
        self._lock = threading.Lock()

    def storage_key(self, session_id: str) -> str:
        return f"{self.storage_name}:{session_id}"

    def get(self, session_id: str) -> PersistentCartStore:
        key = self.storage_key(session_id)
        with self._lock:
            store = self._stores.get(key)
            if store is not None:
                self._stores.move_to_end(key)
                return store

            store = PersistentCartStore(self.storage_factory(key))
            self._stores[key] = store
            logger.debug("Opened cart %s", key)

            while len(self._stores) > self.max_size:
                evicted, _ = self._stores.popitem(last=False)
                logger.debug("Evicted idle cart %s", evicted)
            return store

    def discard(self, session_id: str) -> bool:
        """
        Drop the in-process cart. The durable slot is kept, so the next
        get() restores it.
        """
        with self._lock:
            return self._stores.pop(self.storage_key(session_id), None) is not None

    def close(self) -> None:
        with self._lock:
            count = len(self._stores)
            self._stores.clear()
        logger.info("Closed %d cart(s)", count)

    def __len__(self) -> int:
        return len(self._stores)


def build_storage_factory(settings: Settings, engine: Engine) -> StorageFactory:
    """
    Pick the storage backend named by CART_STORAGE_BACKEND.

    'memory' slots share one dict, so discarded carts still restore
    for the lifetime of the process.
    """
    if settings.CART_STORAGE_BACKEND == "memory":
        slots: dict[str, str] = {}
        return lambda key: InMemoryCartStorage(key, slots)

    return lambda key: SqlCartStorage(engine, key)
