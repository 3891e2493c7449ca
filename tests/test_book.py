import pytest

from audaces.book import PositionType, PositionsBook, find_critbit
from audaces.errors import ErrorCode, PerpError
from audaces.memory import Memory
from audaces.nodes import InnerNode, InnerNodeSchema, Leaf
from audaces.page import SLOT_SIZE, Page

POSITIONS = [
    (0x84, 100, 42, 908),
    (0xFE, 101, 75, 98),
    (0x0F, 107, 4500, 708),
    (0x9B, 123, 78000, 408),
    (0x52, 144, 9685, 958),
    (0xC1, 177, 7584, 108),
    (0xAF, 295, 4681, 444),
    (0x2F, 1045, 12346, 333),
    (0xFB, 4049, 47958413, 12),
    (0xB7, 7940, 42, 24),
]


def make_book(pages=4, size=1024):
    page_size = size // SLOT_SIZE
    memory = Memory([Page(bytearray(size), page_size) for _ in range(pages)], None)
    return PositionsBook(None, None, memory)


@pytest.mark.parametrize("side", [PositionType.LONG, PositionType.SHORT])
def test_build_root_totals(side):
    book = make_book()
    for index, coll, v_coin, v_pc in POSITIONS:
        book.open_position(index, coll, v_coin, v_pc, side, 0)
    root = book.root(side)
    assert root is not None
    node = book.get_node(root)
    assert node.collateral(book.memory) == sum(p[1] for p in POSITIONS)
    assert node.v_coin(book.memory) == sum(p[2] for p in POSITIONS)
    assert node.v_pc(book.memory) == sum(p[3] for p in POSITIONS)


def test_build_other_side_empty():
    book = make_book()
    for index, coll, v_coin, v_pc in POSITIONS:
        book.open_position(index, coll, v_coin, v_pc, PositionType.LONG, 0)
    assert book.root(PositionType.SHORT) is None
    assert book.get_v_coin() == (sum(p[2] for p in POSITIONS), 0)
    assert book.get_v_pc() == (sum(p[3] for p in POSITIONS), 0)


def test_get_collateral_sums_both_sides():
    book = make_book()
    book.open_position(0x10, 5, 6, 7, PositionType.LONG, 0)
    book.open_position(0x20, 11, 12, 13, PositionType.SHORT, 0)
    assert book.get_collateral() == 16
    assert book.get_v_coin() == (6, 12)
    assert book.get_v_pc() == (7, 13)


def test_first_open_returns_root_leaf():
    book = make_book()
    leaf = book.open_position(0x42, 10, 20, 30, PositionType.LONG, 9)
    assert isinstance(leaf, Leaf)
    assert book.longs_root == leaf.pointer
    assert leaf.liquidation_index(book.memory) == 0x42
    assert leaf.slot(book.memory) == 9


def test_same_index_merges_into_leaf():
    book = make_book()
    first = book.open_position(0x42, 10, 20, 30, PositionType.SHORT, 0)
    second = book.open_position(0x42, 1, 2, 3, PositionType.SHORT, 0)
    assert first.pointer == second.pointer
    assert second.collateral(book.memory) == 11
    assert second.v_coin(book.memory) == 22
    assert second.v_pc(book.memory) == 33


def test_two_leaves_make_inner_node():
    book = make_book()
    low = book.open_position(0x10, 1, 1, 1, PositionType.LONG, 0)
    high = book.open_position(0x20, 2, 2, 2, PositionType.LONG, 0)
    root = book.get_node(book.longs_root)
    assert isinstance(root, InnerNode)
    critbit = root.critbit(book.memory)
    assert critbit == 5
    assert root.liquidation_index_range(critbit, book.memory) == (0, 0x3F)
    assert book.memory.read_u32_le(root.pointer, InnerNodeSchema.LEFT_POINTER) == low.pointer
    assert book.memory.read_u32_le(root.pointer, InnerNodeSchema.RIGHT_POINTER) == high.pointer


def test_walk_directions():
    book = make_book()
    low = book.open_position(0x10, 1, 1, 1, PositionType.LONG, 0)
    high = book.open_position(0x20, 2, 2, 2, PositionType.LONG, 0)
    root = book.longs_root
    assert book.walk(root, 0x11, 5) == (
        True,
        InnerNodeSchema.LEFT_POINTER,
        low.pointer,
        high.pointer,
    )
    assert book.walk(root, 0x21, 5) == (
        False,
        InnerNodeSchema.RIGHT_POINTER,
        high.pointer,
        low.pointer,
    )


def test_remove_leaf_with_mother():
    book = make_book()
    low = book.open_position(0x10, 1, 3, 5, PositionType.LONG, 0)
    high = book.open_position(0x20, 2, 4, 6, PositionType.LONG, 0)
    book.remove_node(
        high.pointer,
        PositionType.LONG,
        book.longs_root,
        None,
        InnerNodeSchema.RIGHT_POINTER,
        None,
    )
    assert book.longs_root == low.pointer
    assert book.get_collateral() == 1


def test_remove_root_leaf_empties_tree():
    book = make_book()
    leaf = book.open_position(0x10, 1, 3, 5, PositionType.SHORT, 0)
    book.remove_node(leaf.pointer, PositionType.SHORT, None, None, None, None)
    assert book.shorts_root is None
    assert book.get_collateral() == 0
    assert book.memory.pages[0].free_slot_count() == 1


def test_set_root():
    book = make_book()
    book.set_root(7, PositionType.SHORT)
    assert book.shorts_root == 7
    assert book.root(PositionType.LONG) is None


def test_overflow_on_merge():
    book = make_book()
    big = (1 << 64) - 1
    book.open_position(0x42, big, 0, 0, PositionType.LONG, 0)
    with pytest.raises(PerpError) as info:
        book.open_position(0x42, 1, 0, 0, PositionType.LONG, 0)
    assert info.value.code == ErrorCode.OVERFLOW


@pytest.mark.parametrize(
    "first, second, expected",
    [(0x84, 0xFE, 6), (1, 0, 0), (0x10, 0x20, 5), (0, 1 << 63, 63)],
)
def test_find_critbit(first, second, expected):
    assert find_critbit(first, second) == expected


def test_find_critbit_equal_raises():
    with pytest.raises(ValueError):
        find_critbit(5, 5)