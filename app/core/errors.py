# app/core/errors.py


class CartStorageError(RuntimeError):
    """
    Raised by a cart storage backend when a slot cannot be read or written.

    Carries the storage key so log lines point at the failing slot.
    """

    def __init__(self, key: str, message: str):
        super().__init__(f"[{key}] {message}")
        self.key = key
        self.message = message
