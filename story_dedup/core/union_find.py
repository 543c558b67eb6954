from __future__ import annotations


class UnionFind:
    """Disjoint-set forest over the indices 0..size-1.

    Uses path compression and union by rank, giving near-constant amortized
    find/union. Parent and rank arrays are owned by the instance.
    """

    def __init__(self, size: int):
        if size < 0:
            raise ValueError(f"Size must be non-negative, got {size}")
        self.size = size
        self._parent = list(range(size))
        self._rank = [0] * size

    def _check(self, element: int) -> None:
        if not 0 <= element < self.size:
            raise IndexError(f"Element out of bounds: {element}")

    def find(self, element: int) -> int:
        self._check(element)
        root = element
        while self._parent[root] != root:
            root = self._parent[root]
        # Compress: point every node on the path straight at the root.
        while self._parent[element] != root:
            self._parent[element], element = root, self._parent[element]
        return root

    def union(self, a: int, b: int) -> bool:
        """Merge the sets of a and b. Returns False if already joined."""
        root_a = self.find(a)
        root_b = self.find(b)
        if root_a == root_b:
            return False
        if self._rank[root_a] < self._rank[root_b]:
            root_a, root_b = root_b, root_a
        self._parent[root_b] = root_a
        if self._rank[root_a] == self._rank[root_b]:
            self._rank[root_a] += 1
        return True

    def connected(self, a: int, b: int) -> bool:
        return self.find(a) == self.find(b)

    def groups(self) -> list[list[int]]:
        """Return the components, each in ascending index order.

        Components are ordered by their smallest member.
        """
        by_root: dict[int, list[int]] = {}
        for index in range(self.size):
            by_root.setdefault(self.find(index), []).append(index)
        return list(by_root.values())
