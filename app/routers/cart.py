# app/routers/cart.py
from fastapi import APIRouter, Depends, Header, Request

from app.schemas.cart import Cart, CartItemCreate, CartItemUpdate, ItemQuantityRead
from app.services.cart_persistence import CartRegistry, PersistentCartStore

router = APIRouter(prefix="/cart", tags=["Cart"])


def get_cart_registry(request: Request) -> CartRegistry:
    """
    FastAPI dependency returning the registry created in the app lifespan.
    """
    return request.app.state.cart_registry


def get_cart_store(
    registry: CartRegistry = Depends(get_cart_registry),
    x_cart_session: str = Header(default="default"),
) -> PersistentCartStore:
    """
    Resolve the cart for the calling storefront session.

    The session id comes from the X-Cart-Session header; every session
    has its own storage slot.
    """
    return registry.get(x_cart_session)


@router.get("", response_model=Cart)
def get_cart(store: PersistentCartStore = Depends(get_cart_store)):
    """
    Get the cart: items in insertion order, total and itemCount.
    """
    return store.cart


@router.post("/items", response_model=Cart)
def add_item(
    payload: CartItemCreate,
    store: PersistentCartStore = Depends(get_cart_store),
):
    """
    Add a product (optionally a variant) to the cart.

    Adding an item that is already in the cart only increases its quantity.
    A missing quantity, or one below 1, adds a single unit.
    """
    return store.add_item(payload, payload.quantity)


@router.patch("/items/{product_id}", response_model=Cart)
def update_item_quantity(
    product_id: int,
    payload: CartItemUpdate,
    variant_id: str | None = None,
    store: PersistentCartStore = Depends(get_cart_store),
):
    """
    Set the quantity of a cart row. Zero or negative removes the row.

    Unknown rows are ignored.
    """
    return store.update_quantity(product_id, payload.quantity, variant_id)


@router.delete("/items/{product_id}", response_model=Cart)
def remove_item(
    product_id: int,
    variant_id: str | None = None,
    store: PersistentCartStore = Depends(get_cart_store),
):
    """
    Remove a row from the cart. Unknown rows are ignored.
    """
    return store.remove_item(product_id, variant_id)


@router.get("/items/{product_id}/quantity", response_model=ItemQuantityRead)
def get_item_quantity(
    product_id: int,
    variant_id: str | None = None,
    store: PersistentCartStore = Depends(get_cart_store),
):
    """
    Quantity of one row, 0 when it is not in the cart.
    """
    return ItemQuantityRead(
        product_id=product_id,
        variant_id=variant_id,
        quantity=store.get_item_quantity(product_id, variant_id),
    )


@router.delete("", response_model=Cart)
def clear_cart(store: PersistentCartStore = Depends(get_cart_store)):
    """
    Clear the entire cart.
    """
    return store.clear_cart()
