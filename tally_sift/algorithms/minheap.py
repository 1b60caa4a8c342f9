"""
Binary min-heap for TallySift.

A priority queue over a caller-supplied ordering. Unlike the heapq module it
accepts an explicit comparator and can report every slot change through a
callback, which lets an owner keep an external item -> slot index current and
re-sift an item whose priority changed in place.
"""

from typing import Any, Callable, Generic, Iterable, Iterator, List, Optional, TypeVar

from tally_sift.core.errors import EmptyHeapError

T = TypeVar("T")

Comparator = Callable[[Any, Any], int]
MoveCallback = Callable[[Any, int], None]


def natural_order(a: Any, b: Any) -> int:
    """Three-way comparison using the items' own ordering."""
    if a == b:
        return 0
    return -1 if a < b else 1


class MinHeap(Generic[T]):
    """
    Array-backed binary min-heap.

    Every node compares less than or equal to its children under the
    configured comparator. Ties are broken arbitrarily. All sift operations
    are iterative.

    Popping or peeking an empty heap raises EmptyHeapError.
    """

    __slots__ = ["_heap", "_compare", "_on_move"]

    def __init__(
        self,
        items: Optional[Iterable[T]] = None,
        comparator: Optional[Comparator] = None,
        on_move: Optional[MoveCallback] = None,
    ):
        """
        Initialize a new heap.

        Args:
            items: Optional initial items. They are copied into the heap's own
                   storage and heapified in O(n).
            comparator: Function returning a negative number, zero, or a
                        positive number when its first argument sorts before,
                        with, or after the second. Defaults to natural order.
            on_move: Optional callback invoked as ``on_move(item, index)``
                     whenever an item is placed at a slot.
        """
        self._heap: List[T] = list(items) if items is not None else []
        self._compare = comparator if comparator is not None else natural_order
        self._on_move = on_move

        if self._on_move is not None:
            for index, item in enumerate(self._heap):
                self._on_move(item, index)

        # Sift down every parent, last parent first
        for index in range(len(self._heap) // 2 - 1, -1, -1):
            self._sift_down(index)

    def _place(self, index: int, item: T) -> None:
        self._heap[index] = item
        if self._on_move is not None:
            self._on_move(item, index)

    def _sift_up(self, index: int) -> int:
        heap = self._heap
        item = heap[index]

        while index > 0:
            parent = (index - 1) >> 1
            if self._compare(heap[parent], item) <= 0:
                break
            self._place(index, heap[parent])
            index = parent

        self._place(index, item)
        return index

    def _sift_down(self, index: int) -> int:
        heap = self._heap
        size = len(heap)
        item = heap[index]

        while True:
            smallest = index
            smallest_item = item
            left = 2 * index + 1
            right = left + 1

            if left < size and self._compare(heap[left], smallest_item) < 0:
                smallest = left
                smallest_item = heap[left]
            if right < size and self._compare(heap[right], smallest_item) < 0:
                smallest = right
                smallest_item = heap[right]

            if smallest == index:
                break

            self._place(index, smallest_item)
            index = smallest

        self._place(index, item)
        return index

    def push(self, item: T) -> None:
        """Add an item to the heap in O(log n)."""
        self._heap.append(item)
        self._sift_up(len(self._heap) - 1)

    def pop(self) -> T:
        """
        Remove and return the minimum item in O(log n).

        Raises:
            EmptyHeapError: If the heap is empty.
        """
        if not self._heap:
            raise EmptyHeapError("pop from an empty heap")

        last = self._heap.pop()
        if not self._heap:
            return last

        minimum = self._heap[0]
        self._heap[0] = last
        self._sift_down(0)
        return minimum

    def peek_min(self) -> T:
        """
        Return the minimum item without removing it.

        Raises:
            EmptyHeapError: If the heap is empty.
        """
        if not self._heap:
            raise EmptyHeapError("peek at an empty heap")
        return self._heap[0]

    def restore(self, index: int) -> int:
        """
        Restore heap order after the item at ``index`` changed priority.

        Args:
            index: Slot of the item whose priority was modified in place.

        Returns:
            The slot the item ends up in.
        """
        if not 0 <= index < len(self._heap):
            raise IndexError(f"Heap index {index} out of range")

        new_index = self._sift_up(index)
        if new_index == index:
            new_index = self._sift_down(index)
        return new_index

    def size(self) -> int:
        """Return the number of items in the heap."""
        return len(self._heap)

    def items(self) -> List[T]:
        """Return a copy of the backing list, in heap order."""
        return list(self._heap)

    def __getitem__(self, index: int) -> T:
        return self._heap[index]

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)

    def __iter__(self) -> Iterator[T]:
        return iter(self.items())

    def __repr__(self) -> str:
        return f"MinHeap(size={len(self._heap)})"
