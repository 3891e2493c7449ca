"""A page of fixed-size slots backing the positions book."""

from __future__ import annotations

from enum import IntEnum

from audaces.errors import ErrorCode, PerpError

SLOT_SIZE = 47
TAG_SIZE = 1

Pointer = int


class SlotType(IntEnum):
    """Tag stored in the first byte of every slot."""

    FREE_SLOT = 0
    LAST_FREE_SLOT = 1
    INNER_NODE = 2
    LEAF_NODE = 3


class Page:
    """Slot allocator over a mutable byte buffer.

    Freed slots form a linked list threaded through the slots themselves;
    fresh slots are taken from the uninitialised tail of the page.
    """

    def __init__(
        self,
        data: bytearray,
        page_size: int,
        uninitialized_memory: Pointer = 0,
        free_slot_list_hd: Pointer | None = None,
    ) -> None:
        self.data = data
        self.page_size = page_size
        self.uninitialized_memory = uninitialized_memory
        self.free_slot_list_hd = free_slot_list_hd

    @classmethod
    def from_account_data(
        cls,
        data: bytearray,
        uninitialized_memory: Pointer = 0,
        free_slot_list_hd: Pointer | None = None,
    ) -> Page:
        """Build a page over raw account data, whose first byte is the account tag."""
        page_size = (len(data) - TAG_SIZE) // SLOT_SIZE
        return cls(data, page_size, uninitialized_memory, free_slot_list_hd)

    def _span(self, pointer: Pointer, offset: int, length: int) -> slice:
        start = TAG_SIZE + pointer * SLOT_SIZE + offset
        end = start + length
        if start < 0 or end > len(self.data):
            raise PerpError(ErrorCode.MEMORY_ERROR)
        return slice(start, end)

    def allocate(self, slot_type: SlotType) -> Pointer:
        """Reserve a slot, tag it with ``slot_type`` and return its pointer."""
        if self.free_slot_list_hd is not None:
            pointer = self.free_slot_list_hd
            tag = self.read_byte(pointer, 0)
            if tag == SlotType.FREE_SLOT:
                self.free_slot_list_hd = self.read_u32_le(pointer, 1)
            elif tag == SlotType.LAST_FREE_SLOT:
                self.free_slot_list_hd = None
            else:
                raise PerpError(ErrorCode.MEMORY_ERROR)
        else:
            pointer = self.uninitialized_memory
            self.uninitialized_memory += 1
            if self.uninitialized_memory > self.page_size:
                raise PerpError(ErrorCode.OUT_OF_SPACE)
        self.write(pointer, 0, bytes([int(slot_type)]))
        return pointer

    def free(self, pointer: Pointer) -> None:
        """Return a slot to the head of the free list."""
        if self.free_slot_list_hd is not None:
            tag = SlotType.FREE_SLOT
            self.write(pointer, 1, self.free_slot_list_hd.to_bytes(4, "little"))
        else:
            tag = SlotType.LAST_FREE_SLOT
        self.write(pointer, 0, bytes([int(tag)]))
        self.free_slot_list_hd = pointer

    def read(self, pointer: Pointer, offset: int, length: int) -> bytes:
        return bytes(self.data[self._span(pointer, offset, length)])

    def read_byte(self, pointer: Pointer, offset: int) -> int:
        return self.data[self._span(pointer, offset, 1).start]

    def read_u64_be(self, pointer: Pointer, offset: int) -> int:
        return int.from_bytes(self.read(pointer, offset, 8), "big")

    def read_u64_le(self, pointer: Pointer, offset: int) -> int:
        return int.from_bytes(self.read(pointer, offset, 8), "little")

    def read_u32_le(self, pointer: Pointer, offset: int) -> int:
        return int.from_bytes(self.read(pointer, offset, 4), "little")

    def read_u16_le(self, pointer: Pointer, offset: int) -> int:
        return int.from_bytes(self.read(pointer, offset, 2), "little")

    def write(self, pointer: Pointer, offset: int, data: bytes) -> None:
        self.data[self._span(pointer, offset, len(data))] = data

    def free_slot_count(self) -> int:
        """Number of slots on the free list."""
        count = 0
        pointer = self.free_slot_list_hd
        if pointer is None:
            return count
        slot_type = SlotType.FREE_SLOT
        while slot_type == SlotType.FREE_SLOT:
            slot_type = self.read_byte(pointer, 0)
            pointer = self.read_u32_le(pointer, 1)
            count += 1
        return count