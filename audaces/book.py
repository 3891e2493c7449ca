"""The positions book: two crit-bit trees of positions keyed by liquidation index."""

from __future__ import annotations

from enum import Enum

from audaces.errors import ErrorCode, PerpError
from audaces.memory import Memory
from audaces.nodes import (
    InnerNode,
    InnerNodeSchema,
    Leaf,
    LeafNodeSchema,
    Node,
    load_node,
)
from audaces.page import Pointer, SlotType

_U64_MAX = (1 << 64) - 1


class PositionType(Enum):
    """Side of a position."""

    LONG = "long"
    SHORT = "short"


def _u64(value: int) -> bytes:
    if not 0 <= value <= _U64_MAX:
        raise PerpError(ErrorCode.OVERFLOW)
    return value.to_bytes(8, "little")


def find_critbit(first: int, second: int) -> int:
    """Index of the highest bit in which two liquidation indices differ."""
    diff = first ^ second
    if diff == 0:
        raise ValueError("liquidation indices are equal and have no critical bit")
    return diff.bit_length() - 1


class PositionsBook:
    """Long and short position trees sharing one paged memory."""

    def __init__(
        self,
        shorts_root: Pointer | None,
        longs_root: Pointer | None,
        memory: Memory,
    ) -> None:
        self.shorts_root = shorts_root
        self.longs_root = longs_root
        self.memory = memory

    def root(self, side: PositionType) -> Pointer | None:
        """Root pointer of the tree for ``side``."""
        return self.longs_root if side is PositionType.LONG else self.shorts_root

    def set_root(self, pointer: Pointer | None, side: PositionType) -> None:
        if side is PositionType.LONG:
            self.longs_root = pointer
        else:
            self.shorts_root = pointer

    def get_node(self, pointer: Pointer) -> Node:
        return load_node(self.memory, pointer)

    def _side_total(self, side: PositionType, field: str) -> int:
        pointer = self.root(side)
        if pointer is None:
            return 0
        return getattr(self.get_node(pointer), field)(self.memory)

    def get_collateral(self) -> int:
        """Total collateral of both sides."""
        return self._side_total(PositionType.LONG, "collateral") + self._side_total(
            PositionType.SHORT, "collateral"
        )

    def get_v_coin(self) -> tuple[int, int]:
        """Virtual coin amounts as ``(longs, shorts)``."""
        return (
            self._side_total(PositionType.LONG, "v_coin"),
            self._side_total(PositionType.SHORT, "v_coin"),
        )

    def get_v_pc(self) -> tuple[int, int]:
        """Virtual quote amounts as ``(longs, shorts)``."""
        return (
            self._side_total(PositionType.LONG, "v_pc"),
            self._side_total(PositionType.SHORT, "v_pc"),
        )

    def walk(
        self, pointer: Pointer, liquidation_index: int, critbit: int
    ) -> tuple[bool, InnerNodeSchema, Pointer, Pointer]:
        """Step down from an inner node towards ``liquidation_index``.

        Returns ``(goes_left, next_offset, next_pointer, sibling_pointer)``.
        """
        goes_left = liquidation_index & (1 << critbit) == 0
        if goes_left:
            next_offset = InnerNodeSchema.LEFT_POINTER
            sibling_offset = InnerNodeSchema.RIGHT_POINTER
        else:
            next_offset = InnerNodeSchema.RIGHT_POINTER
            sibling_offset = InnerNodeSchema.LEFT_POINTER
        next_pointer = self.memory.read_u32_le(pointer, next_offset)
        sibling_pointer = self.memory.read_u32_le(pointer, sibling_offset)
        return goes_left, next_offset, next_pointer, sibling_pointer

    def remove_node(
        self,
        pointer: Pointer,
        side: PositionType,
        mother: Pointer | None,
        grandmother: Pointer | None,
        mother_offset: InnerNodeSchema | None,
        grandmother_offset: InnerNodeSchema | None,
    ) -> None:
        """Unlink a node, replacing its mother by its sibling, and free it."""
        if mother is not None:
            if mother_offset == InnerNodeSchema.LEFT_POINTER:
                sibling_offset = InnerNodeSchema.RIGHT_POINTER
            elif mother_offset == InnerNodeSchema.RIGHT_POINTER:
                sibling_offset = InnerNodeSchema.LEFT_POINTER
            else:
                raise PerpError(ErrorCode.MEMORY_ERROR)
            sibling = self.memory.read_u32_le(mother, sibling_offset)
            if grandmother is not None:
                if grandmother_offset is None:
                    raise PerpError(ErrorCode.MEMORY_ERROR)
                self.memory.write(
                    grandmother, grandmother_offset, sibling.to_bytes(4, "little")
                )
            else:
                self.set_root(sibling, side)
            self.memory.free(mother)
        else:
            self.set_root(None, side)
        self.get_node(pointer).free(self.memory)

    def _write_leaf(
        self, liquidation_index: int, slot: int, collateral: int, v_coin: int, v_pc: int
    ) -> Pointer:
        fields = (
            (LeafNodeSchema.COLLATERAL, _u64(collateral)),
            (LeafNodeSchema.V_COIN, _u64(v_coin)),
            (LeafNodeSchema.SLOT_NUMBER, _u64(slot)),
            (LeafNodeSchema.LIQUIDATION_INDEX, _u64(liquidation_index)),
            (LeafNodeSchema.V_PC, _u64(v_pc)),
        )
        pointer = self.memory.allocate(SlotType.LEAF_NODE)
        for offset, raw in fields:
            self.memory.write(pointer, offset, raw)
        return pointer

    def _write_inner(
        self,
        critbit: int,
        liquidation_index_min: int,
        left: Pointer,
        right: Pointer,
        collateral: int,
        v_coin: int,
        v_pc: int,
    ) -> Pointer:
        fields = (
            (InnerNodeSchema.CRITBIT, bytes([critbit])),
            (InnerNodeSchema.LIQUIDATION_INDEX_MIN, _u64(liquidation_index_min)),
            (InnerNodeSchema.LEFT_POINTER, left.to_bytes(4, "little")),
            (InnerNodeSchema.RIGHT_POINTER, right.to_bytes(4, "little")),
            (InnerNodeSchema.COLLATERAL, _u64(collateral)),
            (InnerNodeSchema.V_COIN, _u64(v_coin)),
            (InnerNodeSchema.V_PC, _u64(v_pc)),
            (InnerNodeSchema.CALCULATION_FLAG, b"\x00"),
        )
        pointer = self.memory.allocate(SlotType.INNER_NODE)
        for offset, raw in fields:
            self.memory.write(pointer, offset, raw)
        return pointer

    def _attach(
        self,
        new_pointer: Pointer,
        side: PositionType,
        mother: Pointer | None,
        mother_offset: InnerNodeSchema | None,
    ) -> None:
        if mother is None:
            self.set_root(new_pointer, side)
        else:
            self.memory.write(mother, mother_offset, new_pointer.to_bytes(4, "little"))

    def open_position(
        self,
        liquidation_index: int,
        collateral: int,
        v_coin: int,
        v_pc: int,
        side: PositionType,
        slot: int,
    ) -> Leaf:
        """Insert a position and return the leaf that now holds it."""
        root = self.root(side)
        if root is None:
            leaf_pointer = self._write_leaf(
                liquidation_index, slot, collateral, v_coin, v_pc
            )
            self.set_root(leaf_pointer, side)
            return Leaf(leaf_pointer)

        pointer = root
        mother: Pointer | None = None
        mother_offset: InnerNodeSchema | None = None
        while True:
            node = self.get_node(pointer)
            if isinstance(node, InnerNode):
                critbit = node.critbit(self.memory)
                low, high = node.liquidation_index_range(critbit, self.memory)
                current_collateral = node.collateral(self.memory)
                current_v_pc = node.v_pc(self.memory)
                current_v_coin = node.v_coin(self.memory)

                if liquidation_index > high or liquidation_index < low:
                    new_critbit = find_critbit(liquidation_index, low)
                    new_min = liquidation_index & ~((2 << new_critbit) - 1) & _U64_MAX
                    leaf_pointer = self._write_leaf(
                        liquidation_index, slot, collateral, v_coin, v_pc
                    )
                    if liquidation_index & (1 << new_critbit) == 0:
                        left, right = leaf_pointer, pointer
                    else:
                        left, right = pointer, leaf_pointer
                    inner_pointer = self._write_inner(
                        new_critbit,
                        new_min,
                        left,
                        right,
                        collateral + current_collateral,
                        v_coin + current_v_coin,
                        v_pc + current_v_pc,
                    )
                    self._attach(inner_pointer, side, mother, mother_offset)
                    return Leaf(leaf_pointer)

                node.set_collateral(self.memory, current_collateral + collateral)
                node.set_v_coin(self.memory, current_v_coin + v_coin)
                node.set_v_pc(self.memory, current_v_pc + v_pc)
                mother = pointer
                if liquidation_index & (1 << critbit) == 0:
                    mother_offset = InnerNodeSchema.LEFT_POINTER
                else:
                    mother_offset = InnerNodeSchema.RIGHT_POINTER
                pointer = self.memory.read_u32_le(pointer, mother_offset)
                continue

            leaf_index = node.liquidation_index(self.memory)
            if leaf_index == liquidation_index:
                node.set_collateral(self.memory, collateral + node.collateral(self.memory))
                node.set_v_coin(self.memory, v_coin + node.v_coin(self.memory))
                node.set_v_pc(self.memory, v_pc + node.v_pc(self.memory))
                return node

            critbit = find_critbit(liquidation_index, leaf_index)
            new_min = leaf_index & liquidation_index & ~((1 << critbit) - 1) & _U64_MAX
            leaf_pointer = self._write_leaf(
                liquidation_index, slot, collateral, v_coin, v_pc
            )
            if liquidation_index & (1 << critbit) == 0:
                left, right = leaf_pointer, pointer
            else:
                left, right = pointer, leaf_pointer
            inner_pointer = self._write_inner(
                critbit,
                new_min,
                left,
                right,
                node.collateral(self.memory) + collateral,
                v_coin + node.v_coin(self.memory),
                v_pc + node.v_pc(self.memory),
            )
            self._attach(inner_pointer, side, mother, mother_offset)
            return Leaf(leaf_pointer)