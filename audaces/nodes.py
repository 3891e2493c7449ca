"""Inner nodes and leaves of the positions book, stored in slots of memory."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from audaces.errors import ErrorCode, PerpError
from audaces.memory import Memory
from audaces.page import Pointer, SlotType

_U64_MAX = (1 << 64) - 1


class InnerNodeSchema(IntEnum):
    """Byte offsets of the fields of an inner node slot."""

    CRITBIT = 1
    LIQUIDATION_INDEX_MIN = 2
    LEFT_POINTER = 10
    RIGHT_POINTER = 14
    COLLATERAL = 22
    V_COIN = 30
    V_PC = 38
    CALCULATION_FLAG = 46


class LeafNodeSchema(IntEnum):
    """Byte offsets of the fields of a leaf slot."""

    LIQUIDATION_INDEX = 1
    SLOT_NUMBER = 9
    COLLATERAL = 17
    V_COIN = 25
    V_PC = 33


def _write_u64(memory: Memory, pointer: Pointer, offset: int, value: int) -> None:
    if not 0 <= value <= _U64_MAX:
        raise PerpError(ErrorCode.OVERFLOW)
    memory.write(pointer, offset, value.to_bytes(8, "little"))


@dataclass(frozen=True)
class InnerNode:
    """An inner node holding a critbit and the totals of its subtree."""

    pointer: Pointer

    def critbit(self, memory: Memory) -> int:
        return memory.read_byte(self.pointer, InnerNodeSchema.CRITBIT)

    def liquidation_index_range(self, critbit: int, memory: Memory) -> tuple[int, int]:
        """Smallest and largest liquidation index covered by this subtree."""
        low = memory.read_u64_le(self.pointer, InnerNodeSchema.LIQUIDATION_INDEX_MIN)
        high = low | (((2 << critbit) - 1) & _U64_MAX)
        return low, high

    def collateral(self, memory: Memory) -> int:
        return memory.read_u64_le(self.pointer, InnerNodeSchema.COLLATERAL)

    def v_coin(self, memory: Memory) -> int:
        return memory.read_u64_le(self.pointer, InnerNodeSchema.V_COIN)

    def v_pc(self, memory: Memory) -> int:
        return memory.read_u64_le(self.pointer, InnerNodeSchema.V_PC)

    def set_collateral(self, memory: Memory, value: int) -> None:
        _write_u64(memory, self.pointer, InnerNodeSchema.COLLATERAL, value)

    def set_v_coin(self, memory: Memory, value: int) -> None:
        _write_u64(memory, self.pointer, InnerNodeSchema.V_COIN, value)

    def set_v_pc(self, memory: Memory, value: int) -> None:
        _write_u64(memory, self.pointer, InnerNodeSchema.V_PC, value)

    def free(self, memory: Memory) -> None:
        """Hand the whole subtree to the garbage collector."""
        memory.flag_for_gc(self.pointer)


@dataclass(frozen=True)
class Leaf:
    """A leaf holding one aggregated position."""

    pointer: Pointer

    def liquidation_index(self, memory: Memory) -> int:
        return memory.read_u64_le(self.pointer, LeafNodeSchema.LIQUIDATION_INDEX)

    def slot(self, memory: Memory) -> int:
        return memory.read_u64_le(self.pointer, LeafNodeSchema.SLOT_NUMBER)

    def collateral(self, memory: Memory) -> int:
        return memory.read_u64_le(self.pointer, LeafNodeSchema.COLLATERAL)

    def v_coin(self, memory: Memory) -> int:
        return memory.read_u64_le(self.pointer, LeafNodeSchema.V_COIN)

    def v_pc(self, memory: Memory) -> int:
        return memory.read_u64_le(self.pointer, LeafNodeSchema.V_PC)

    def set_collateral(self, memory: Memory, value: int) -> None:
        _write_u64(memory, self.pointer, LeafNodeSchema.COLLATERAL, value)

    def set_v_coin(self, memory: Memory, value: int) -> None:
        _write_u64(memory, self.pointer, LeafNodeSchema.V_COIN, value)

    def set_v_pc(self, memory: Memory, value: int) -> None:
        _write_u64(memory, self.pointer, LeafNodeSchema.V_PC, value)

    def free(self, memory: Memory) -> None:
        """Return the slot to its page's free list."""
        memory.free(self.pointer)


Node = Union[InnerNode, Leaf]


def load_node(memory: Memory, pointer: Pointer) -> Node:
    """Return the node stored at ``pointer``, typed by its slot tag."""
    tag = memory.read_byte(pointer, 0)
    if tag == SlotType.INNER_NODE:
        return InnerNode(pointer)
    if tag == SlotType.LEAF_NODE:
        return Leaf(pointer)
    raise PerpError(ErrorCode.MEMORY_ERROR)