# app/schemas/cart.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


IdentityKey = tuple[int, str | None]


class CartSchema(BaseModel):
    """
    Base for cart payloads.

    Python attributes are snake_case; JSON (HTTP and persisted snapshots)
    uses the storefront's camelCase names (productId, itemCount, ...).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Variant(CartSchema):
    """
    Purchasable configuration of a product (size, color, ...).

    Only `id` takes part in line-item identity.
    """

    id: str
    name: str = ""
    attributes: dict[str, str] = Field(default_factory=dict)

    @property
    def label(self) -> str:
        """Attributes rendered for display, e.g. 'color: red, size: M'."""
        return ", ".join(f"{key}: {value}" for key, value in self.attributes.items())


class LineItemCandidate(CartSchema):
    """
    Everything about a line item except its quantity.

    name / slug / price / image are snapshotted when the item is first
    added and never re-synced with the product.
    """

    product_id: int
    document_id: str = ""
    name: str = ""
    slug: str = ""
    price: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    image: str | None = None
    variant: Variant | None = None

    @property
    def variant_id(self) -> str | None:
        return self.variant.id if self.variant else None

    @property
    def identity(self) -> IdentityKey:
        return (self.product_id, self.variant_id)


class LineItem(LineItemCandidate):
    """
    One row of the cart. Quantity is always >= 1 while the row exists.
    """

    quantity: int = Field(ge=1)

    @property
    def line_total(self) -> float:
        return self.price * self.quantity

    @property
    def row_key(self) -> str:
        """Stable key for rendering lists, e.g. '12-red' or '12-default'."""
        return f"{self.product_id}-{self.variant_id or 'default'}"


class Cart(CartSchema):
    """
    Read projection of a cart: rows in insertion order plus aggregates.

    total and item_count are always derived from items by the store.
    """

    items: list[LineItem] = Field(default_factory=list)
    total: float = 0.0
    item_count: int = 0


# ---- HTTP payloads ----


class CartItemCreate(LineItemCandidate):
    """
    Payload for adding to cart.

    quantity is optional; a missing value or anything below 1 adds one unit.
    """

    quantity: int | None = None


class CartItemUpdate(CartSchema):
    """
    Payload for setting the quantity of a cart row. Values <= 0 remove it.
    """

    quantity: int


class ItemQuantityRead(CartSchema):
    product_id: int
    variant_id: str | None = None
    quantity: int
