# app/models/cart.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class CartSlot(SQLModel, table=True):
    """
    Durable key-value slot holding one serialized cart.

    One storage key maps to exactly one cart; the payload is always the
    full snapshot, never a delta.
    """

    __tablename__ = "cart_slots"

    key: str = Field(
        primary_key=True,
        max_length=255,
        description="Storage key, e.g. 'cart-storage:<session>'",
    )

    payload: str = Field(
        description="JSON snapshot envelope of the whole cart",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
