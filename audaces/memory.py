"""Paged memory addressed by 32-bit pointers, with a garbage-collection list."""

from __future__ import annotations

from enum import IntEnum
from typing import Iterable

from audaces.errors import ErrorCode, PerpError
from audaces.page import Page, Pointer, SlotType

PAGE_SHIFT = 28
PAGE_MASK = 0xF << PAGE_SHIFT
_LOCAL_MASK = ~PAGE_MASK & 0xFFFFFFFF


class GarbageNodeSchema(IntEnum):
    """Byte offsets used by slots that sit on the garbage-collection list."""

    CRITBIT = 1
    LEFT_POINTER = 10
    RIGHT_POINTER = 14
    IS_LAST_TO_COLLECT = 18
    POINTER_TO_NEXT = 19


class Memory:
    """A set of pages addressed by pointers whose top four bits select the page."""

    def __init__(self, pages: Iterable[Page], gc_list_hd: Pointer | None = None) -> None:
        self.pages = list(pages)
        self.gc_list_hd = gc_list_hd

    def _locate(self, pointer: Pointer) -> tuple[Page, Pointer]:
        page_index = pointer >> PAGE_SHIFT
        if not 0 <= page_index < len(self.pages):
            raise PerpError(ErrorCode.MEMORY_ERROR)
        return self.pages[page_index], pointer & _LOCAL_MASK

    def allocate(self, slot_type: SlotType) -> Pointer:
        """Reserve a slot in the first page that has room and return its pointer."""
        for index, page in enumerate(self.pages):
            if (
                page.page_size != page.uninitialized_memory
                or page.free_slot_list_hd is not None
            ):
                return (index << PAGE_SHIFT) | page.allocate(slot_type)
        raise PerpError(ErrorCode.OUT_OF_SPACE)

    def free(self, pointer: Pointer) -> None:
        page, local = self._locate(pointer)
        page.free(local)

    def read(self, pointer: Pointer, offset: int, length: int) -> bytes:
        page, local = self._locate(pointer)
        return page.read(local, offset, length)

    def read_byte(self, pointer: Pointer, offset: int) -> int:
        page, local = self._locate(pointer)
        return page.read_byte(local, offset)

    def read_u64_be(self, pointer: Pointer, offset: int) -> int:
        page, local = self._locate(pointer)
        return page.read_u64_be(local, offset)

    def read_u64_le(self, pointer: Pointer, offset: int) -> int:
        page, local = self._locate(pointer)
        return page.read_u64_le(local, offset)

    def read_u32_le(self, pointer: Pointer, offset: int) -> int:
        page, local = self._locate(pointer)
        return page.read_u32_le(local, offset)

    def read_u16_le(self, pointer: Pointer, offset: int) -> int:
        page, local = self._locate(pointer)
        return page.read_u16_le(local, offset)

    def write(self, pointer: Pointer, offset: int, data: bytes) -> None:
        page, local = self._locate(pointer)
        page.write(local, offset, data)

    def flag_for_gc(self, pointer: Pointer) -> None:
        """Push a slot onto the head of the garbage-collection list."""
        if self.gc_list_hd is not None:
            self.write(
                pointer,
                GarbageNodeSchema.POINTER_TO_NEXT,
                self.gc_list_hd.to_bytes(4, "little"),
            )
            self.write(pointer, GarbageNodeSchema.IS_LAST_TO_COLLECT, b"\x00")
        else:
            self.write(pointer, GarbageNodeSchema.IS_LAST_TO_COLLECT, b"\x01")
        self.gc_list_hd = pointer

    def crank_garbage_collector(self, max_iterations: int) -> int:
        """Collect up to ``max_iterations`` slots; return how many were collected."""
        collected = 0
        for _ in range(max_iterations):
            pointer = self.gc_list_hd
            if pointer is None:
                break
            if self.read_byte(pointer, GarbageNodeSchema.IS_LAST_TO_COLLECT) == 0:
                self.gc_list_hd = self.read_u32_le(
                    pointer, GarbageNodeSchema.POINTER_TO_NEXT
                )
            else:
                self.gc_list_hd = None

            tag = self.read_byte(pointer, 0)
            if tag == SlotType.INNER_NODE:
                left = self.read_u32_le(pointer, GarbageNodeSchema.LEFT_POINTER)
                right = self.read_u32_le(pointer, GarbageNodeSchema.RIGHT_POINTER)
                self.flag_for_gc(left)
                self.flag_for_gc(right)
            elif tag == SlotType.LEAF_NODE:
                self.free(pointer)
            else:
                raise PerpError(ErrorCode.MEMORY_ERROR)
            collected += 1
        return collected

    def gc_list_len(self) -> int:
        """Number of slots waiting on the garbage-collection list."""
        count = 0
        pointer = self.gc_list_hd
        if pointer is None:
            return count
        is_last = False
        while not is_last:
            is_last = self.read_byte(pointer, GarbageNodeSchema.IS_LAST_TO_COLLECT) == 1
            pointer = self.read_u32_le(pointer, GarbageNodeSchema.POINTER_TO_NEXT)
            count += 1
        return count