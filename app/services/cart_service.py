# app/services/cart_service.py
import logging
from collections.abc import Callable, Iterable

from app.schemas.cart import Cart, IdentityKey, LineItem, LineItemCandidate

CartListener = Callable[[Cart], None]

logger = logging.getLogger(__name__)


def calculate_total(items: Iterable[LineItem]) -> float:
    return sum((item.price * item.quantity for item in items), 0.0)


def calculate_item_count(items: Iterable[LineItem]) -> int:
    return sum(item.quantity for item in items)


class CartStore:
    """
    In-process cart state machine.

    Responsibilities:
      - keep line items in insertion order, one row per (product_id, variant_id)
      - merge repeated adds into the existing row (metadata is not overwritten)
      - never hold a row with quantity < 1
      - re-derive total / item_count after every mutation
      - notify subscribers with the post-mutation projection

    No I/O happens here; persistence is layered on top by PersistentCartStore.

    Quantities are normalized, never rejected:
      - fractional quantities are truncated to whole units
      - add_item: None or anything below 1 adds a single unit
      - update_quantity: negatives are clamped to 0, and 0 removes the row
      - unknown identities are silent no-ops
    """

    def __init__(self, items: Iterable[LineItem] = ()):
        self._items: list[LineItem] = []
        self._total = 0.0
        self._item_count = 0
        self._listeners: list[CartListener] = []
        self.replace(items)

    # ---- internal helpers ----

    def _find_index(self, product_id: int, variant_id: str | None) -> int:
        key: IdentityKey = (product_id, variant_id)
        for index, item in enumerate(self._items):
            if item.identity == key:
                return index
        return -1

    def _commit(self, items: list[LineItem]) -> None:
        # Aggregates are always a full O(n) fold over items, never
        # incremental counters.
        self._items = items
        self._total = calculate_total(items)
        self._item_count = calculate_item_count(items)

        if self._listeners:
            cart = self.cart
            for listener in list(self._listeners):
                try:
                    listener(cart)
                except Exception:
                    # Subscribers cannot interrupt a mutation.
                    logger.exception("Cart listener %r failed", listener)

    # ---- read side ----

    @property
    def cart(self) -> Cart:
        return Cart(
            items=list(self._items),
            total=self._total,
            item_count=self._item_count,
        )

    @property
    def items(self) -> list[LineItem]:
        return list(self._items)

    @property
    def total(self) -> float:
        return self._total

    @property
    def item_count(self) -> int:
        return self._item_count

    def get_item_quantity(self, product_id: int, variant_id: str | None = None) -> int:
        index = self._find_index(product_id, variant_id)
        if index == -1:
            return 0
        return self._items[index].quantity

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """
        Call `listener(cart)` after every mutation.

        Returns a callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---- mutations ----

    def add_item(self, candidate: LineItemCandidate, quantity: int | None = 1) -> None:
        """
        Add `quantity` units of `candidate`.

        If a row with the same product_id + variant id exists, only its
        quantity grows; name / price / image of the new candidate are ignored.
        Otherwise a new row is appended at the end.
        """
        quantity = 1 if quantity is None or quantity < 1 else int(quantity)

        items = list(self._items)
        index = self._find_index(candidate.product_id, candidate.variant_id)

        if index > -1:
            existing = items[index]
            items[index] = existing.model_copy(
                update={"quantity": existing.quantity + quantity}
            )
        else:
            fields = candidate.model_dump(include=set(LineItemCandidate.model_fields))
            items.append(LineItem.model_validate({**fields, "quantity": quantity}))

        self._commit(items)

    def remove_item(self, product_id: int, variant_id: str | None = None) -> None:
        """
        Remove the row matching exactly; variant_id=None only matches rows
        without a variant. No-op when nothing matches.
        """
        items = [
            item for item in self._items
            if item.identity != (product_id, variant_id)
        ]
        self._commit(items)

    def update_quantity(
        self,
        product_id: int,
        quantity: int,
        variant_id: str | None = None,
    ) -> None:
        """
        Set the matching row's quantity to max(0, quantity).

        A resulting quantity of 0 removes the row. No-op when nothing matches.
        """
        quantity = max(0, int(quantity))
        items: list[LineItem] = []

        for item in self._items:
            if item.identity == (product_id, variant_id):
                if quantity == 0:
                    continue
                item = item.model_copy(update={"quantity": quantity})
            items.append(item)

        self._commit(items)

    def clear_cart(self) -> None:
        self._commit([])

    def replace(self, items: Iterable[LineItem]) -> None:
        """
        Swap in a whole item list (used when restoring a saved cart).

        Rows with the same identity are merged so the one-row-per-identity
        rule holds even for hand-edited snapshots.
        """
        merged: list[LineItem] = []
        positions: dict[IdentityKey, int] = {}

        for item in items:
            if item.identity in positions:
                index = positions[item.identity]
                merged[index] = merged[index].model_copy(
                    update={"quantity": merged[index].quantity + item.quantity}
                )
            else:
                positions[item.identity] = len(merged)
                merged.append(item)

        self._commit(merged)
