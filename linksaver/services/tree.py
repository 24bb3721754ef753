"""In-memory view of one owner's category hierarchy.

Categories are stored as flat rows with a nullable ``parent_id``. This module
turns those rows into an arena (``id -> node``) plus a derived index
(``parent_id -> child ids``) so hierarchy questions can be answered without
chasing object references or issuing one query per hop.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

# Top-level categories and their direct children.
MAX_DEPTH = 2


@dataclass(frozen=True, slots=True)
class CategoryNode:
    """Immutable snapshot of a category row."""

    id: int
    name: str
    color: str
    parent_id: int | None


@dataclass
class CategoryTree:
    """Arena of category nodes with a parent -> children index."""

    nodes: dict[int, CategoryNode] = field(default_factory=dict)
    children: dict[int, set[int]] = field(default_factory=dict)

    @classmethod
    def from_rows(cls, rows: Iterable[Any]) -> CategoryTree:
        """Build a tree from ORM rows or any objects with matching attributes."""

        tree = cls()
        for row in rows:
            tree.add(
                CategoryNode(
                    id=row.id,
                    name=row.name,
                    color=row.color,
                    parent_id=row.parent_id,
                )
            )
        return tree

    def __contains__(self, category_id: object) -> bool:
        return category_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[CategoryNode]:
        return iter(self.nodes.values())

    def get(self, category_id: int) -> CategoryNode | None:
        return self.nodes.get(category_id)

    def add(self, node: CategoryNode) -> None:
        """Insert or replace a node and keep the child index in sync."""

        previous = self.nodes.get(node.id)
        if previous is not None and previous.parent_id is not None:
            self.children.get(previous.parent_id, set()).discard(node.id)
        self.nodes[node.id] = node
        if node.parent_id is not None:
            self.children.setdefault(node.parent_id, set()).add(node.id)

    def remove(self, category_id: int) -> None:
        node = self.nodes.pop(category_id, None)
        if node is None:
            return
        if node.parent_id is not None:
            self.children.get(node.parent_id, set()).discard(category_id)
        self.children.pop(category_id, None)

    def reparent(self, category_id: int, parent_id: int | None) -> None:
        node = self.nodes[category_id]
        self.add(
            CategoryNode(
                id=node.id, name=node.name, color=node.color, parent_id=parent_id
            )
        )

    def children_of(self, category_id: int) -> list[CategoryNode]:
        """Direct children, ordered by name."""

        child_ids = self.children.get(category_id, set())
        return sorted(
            (self.nodes[child_id] for child_id in child_ids),
            key=lambda node: (node.name.lower(), node.id),
        )

    def has_children(self, category_id: int) -> bool:
        return bool(self.children.get(category_id))

    def roots(self) -> list[CategoryNode]:
        return sorted(
            (node for node in self.nodes.values() if node.parent_id is None),
            key=lambda node: (node.name.lower(), node.id),
        )

    def ancestors(self, category_id: int) -> list[int]:
        """Walk the parent chain upwards, nearest parent first.

        Stops at a null parent, a parent outside the arena, or a repeated
        id, so corrupted data cannot loop forever.
        """

        chain: list[int] = []
        seen = {category_id}
        node = self.nodes.get(category_id)
        while node is not None and node.parent_id is not None:
            if node.parent_id in seen:
                chain.append(node.parent_id)
                break
            chain.append(node.parent_id)
            seen.add(node.parent_id)
            node = self.nodes.get(node.parent_id)
        return chain

    def depth(self, category_id: int) -> int:
        """1 for a top-level category, 2 for a subcategory."""

        return len(self.ancestors(category_id)) + 1

    def would_create_cycle(self, category_id: int, new_parent_id: int) -> bool:
        """True if ``category_id`` is ``new_parent_id`` or one of its ancestors."""

        if category_id == new_parent_id:
            return True
        return category_id in self.ancestors(new_parent_id)

    def violations(self) -> list[str]:
        """Describe every broken hierarchy rule; empty when the tree is valid."""

        problems: list[str] = []
        for node in self.nodes.values():
            if node.parent_id is None:
                continue
            if node.parent_id not in self.nodes:
                problems.append(
                    f"category {node.id} points at unknown parent {node.parent_id}"
                )
                continue
            if node.id in self.ancestors(node.id):
                problems.append(f"category {node.id} is part of a cycle")
                continue
            if self.depth(node.id) > MAX_DEPTH:
                problems.append(f"category {node.id} is nested too deep")
        return problems
