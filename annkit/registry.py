"""Process-wide table mapping integer tokens to live index handles.

A token packs a slot number and that slot's generation. Freeing a handle
bumps the generation, so a stale token can never reach whichever handle
later reuses the slot.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TypeVar

from annkit.errors import InvalidHandleError, UnsupportedTypeError
from annkit.index.handle import IndexHandle

H = TypeVar("H", bound=IndexHandle)

_SLOT_BITS = 32
_SLOT_MASK = (1 << _SLOT_BITS) - 1


@dataclass(slots=True)
class _Slot:
    generation: int
    handle: IndexHandle | None


class HandleRegistry:
    """Thread-safe generational handle table."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._slots: list[_Slot] = []
        self._free_slots: list[int] = []

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for slot in self._slots if slot.handle is not None)

    @staticmethod
    def _pack(slot: int, generation: int) -> int:
        return (generation << _SLOT_BITS) | slot

    @staticmethod
    def _unpack(token: int) -> tuple[int, int]:
        return token & _SLOT_MASK, token >> _SLOT_BITS

    def register(self, handle: IndexHandle) -> int:
        with self._lock:
            if self._free_slots:
                index = self._free_slots.pop()
                slot = self._slots[index]
                slot.generation += 1
                slot.handle = handle
            else:
                index = len(self._slots)
                slot = _Slot(generation=1, handle=handle)
                self._slots.append(slot)
            return self._pack(index, slot.generation)

    def _lookup(self, token: object) -> tuple[int, _Slot]:
        if isinstance(token, bool) or not isinstance(token, int) or token < 0:
            raise InvalidHandleError(f"Invalid index handle token: {token!r}")
        index, generation = self._unpack(token)
        if index >= len(self._slots):
            raise InvalidHandleError(f"Unknown index handle token: {token}")
        slot = self._slots[index]
        if slot.handle is None or slot.generation != generation:
            raise InvalidHandleError(f"Index handle {token} has been freed")
        return index, slot

    def resolve(self, token: object, variant: type[H] = IndexHandle) -> H:  # type: ignore[assignment]
        """Return the live handle for ``token``, checking its variant."""
        with self._lock:
            _, slot = self._lookup(token)
            handle = slot.handle
        if not isinstance(handle, variant):
            raise UnsupportedTypeError(
                f"Index handle {token} is a {type(handle).__name__}, "
                f"expected {variant.__name__}"
            )
        return handle

    def release(self, token: object) -> IndexHandle:
        """Invalidate ``token`` and return the handle it referred to."""
        with self._lock:
            index, slot = self._lookup(token)
            handle = slot.handle
            slot.handle = None
            self._free_slots.append(index)
        assert handle is not None
        return handle
