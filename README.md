# audaces

A positions book for a perpetual futures market. Open positions are kept in
crit-bit trees keyed by liquidation index, one tree for longs and one for
shorts. Every inner node also holds the collateral, virtual coin and virtual
quote totals of its subtree. The trees live in fixed-size slots of 47 bytes,
spread over byte-array pages.

## Modules

- `audaces.page`: `Page` and `SlotType`. A `Page` hands out slots from a
  mutable byte buffer. Freed slots go onto a free list that is threaded
  through the slots themselves (`allocate`, `free`, `free_slot_count`). It
  also has little-endian readers and a `write` method.
  `Page.from_account_data` works out the page size from a buffer whose first
  byte is an account tag.
- `audaces.memory`: `Memory` covers up to sixteen pages. The top four bits of
  a pointer select the page. `allocate` takes a slot from the first page that
  has room. `flag_for_gc` pushes a slot onto a garbage-collection list.
  `crank_garbage_collector(max_iterations)` works through that list:
  - an inner node on the list flags both of its children;
  - a leaf goes back to its page.
  
  It returns how many slots it handled. `gc_list_len` counts the list.
- `audaces.nodes`: `InnerNode`, `Leaf`, `InnerNodeSchema`, `LeafNodeSchema`
  and `load_node`. These are typed views onto tree slots. `load_node` reads
  the slot tag and returns the matching view.
- `audaces.book`: `PositionsBook`, `PositionType` and `find_critbit`.
  - `open_position` inserts a position. It merges it into a leaf that has the
    same liquidation index, if there is one.
  - `get_collateral`, `get_v_coin` and `get_v_pc` read the totals.
    `get_v_coin` and `get_v_pc` return `(longs, shorts)`.
  - `walk`, `remove_node`, `root` and `set_root` are the lower-level tree
    operations.
- `audaces.errors`: `PerpError`, which carries an `ErrorCode`, and
  `log_message(code)` for the diagnostic line of each code. There are also
  `CrankError` and its subclasses `CrankConnectionError` and
  `InvalidMarketState`.

Failures are raised as `PerpError`:
- `OUT_OF_SPACE` when every page is full;
- `MEMORY_ERROR` for an access outside a page or an unexpected slot tag;
- `OVERFLOW` when a value does not fit in 64 bits.

## Example

```python
from audaces.book import PositionsBook, PositionType
from audaces.memory import Memory
from audaces.page import Page

pages = [Page(bytearray(1024), 1024 // 47) for _ in range(4)]
book = PositionsBook(None, None, Memory(pages))

book.open_position(0x84, 100, 42, 908, PositionType.LONG, 0)
book.open_position(0xFE, 101, 75, 98, PositionType.LONG, 0)
book.open_position(0x0F, 107, 4500, 708, PositionType.SHORT, 0)

print(book.get_collateral())  # 308
print(book.get_v_coin())      # (117, 4500)
print(book.get_v_pc())        # (1006, 708)
```

## What it does not do

The package can open positions and read totals. It has no operations that:
- close or reduce an existing position;
- liquidate the positions past a given index.

`remove_node` will unlink a single node if you know where it sits in the tree.

There is no command-line tool and no network client. The `CrankError` types
are only exception classes.

## Tests

```
pip install -e ".[test]"
pytest
```