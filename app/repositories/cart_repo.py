# app/repositories/cart_repo.py
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.errors import CartStorageError
from app.models.cart import CartSlot


class CartRepository:
    """
    Data access layer for CartSlot rows.

    - Pure DB operations on one key at a time.
    - No FastAPI, no cart logic.
    """

    def get(self, session: Session, key: str) -> CartSlot | None:
        return session.get(CartSlot, key)

    def upsert(self, session: Session, key: str, payload: str) -> CartSlot:
        slot = self.get(session, key)
        if slot is None:
            slot = CartSlot(key=key, payload=payload)
        else:
            slot.payload = payload
            slot.updated_at = datetime.now(timezone.utc)

        session.add(slot)
        session.commit()
        session.refresh(slot)
        return slot


# ---- storage collaborators ----


class CartStorage(Protocol):
    """
    A single durable slot for one serialized cart.

    save() always receives the whole snapshot; load() returns the last
    saved payload or None when the slot is empty.
    Backends raise CartStorageError when the slot is unreachable.
    """

    key: str

    def load(self) -> str | None:
        ...

    def save(self, payload: str) -> None:
        ...


class SqlCartStorage:
    """
    CartStorage backed by the cart_slots table.

    Opens a short-lived session per call, so one instance can be used
    from the FastAPI threadpool.
    """

    def __init__(
        self,
        engine: Engine,
        key: str,
        repo: CartRepository | None = None,
    ):
        self.engine = engine
        self.key = key
        self.repo = repo or CartRepository()

    def load(self) -> str | None:
        try:
            with Session(self.engine) as session:
                slot = self.repo.get(session, self.key)
                return slot.payload if slot else None
        except SQLAlchemyError as e:
            raise CartStorageError(self.key, f"load failed: {e}") from e

    def save(self, payload: str) -> None:
        try:
            with Session(self.engine) as session:
                self.repo.upsert(session, self.key, payload)
        except SQLAlchemyError as e:
            raise CartStorageError(self.key, f"save failed: {e}") from e


class InMemoryCartStorage:
    """
    Process-local CartStorage. Slots live in `slots`, which may be shared
    between instances to simulate a restart against the same storage.
    """

    def __init__(self, key: str, slots: dict[str, str] | None = None):
        self.key = key
        self.slots = slots if slots is not None else {}

    def load(self) -> str | None:
        return self.slots.get(self.key)

    def save(self, payload: str) -> None:
        self.slots[self.key] = payload
