"""Component hierarchy as an arena of nodes with integer indices.

Nodes never point at each other. Parent links live in a flat list and child
links in an adjacency map, so structural rules reduce to index comparisons.
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from reliability_engine.errors import ValidationError


@dataclass(frozen=True)
class ComponentNode:
    """A component stored in the arena."""
    index: int
    name: str
    system_id: int
    external_id: Optional[Any] = None
    attributes: dict = field(default_factory=dict, compare=False)


class ComponentTree:
    """Component parent/child hierarchy for one or more systems."""

    def __init__(self):
        self._nodes: list[ComponentNode] = []
        self._parents: list[Optional[int]] = []
        self._children: dict[int, list[int]] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[ComponentNode]:
        return iter(self._nodes)

    def _check_index(self, index: int, field_name: str = "index") -> None:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self._nodes):
            raise ValidationError(f"No component at index {index}", field=field_name, value=index)

    def add(
        self,
        name: str,
        system_id: int,
        parent: Optional[int] = None,
        external_id: Optional[Any] = None,
        **attributes,
    ) -> int:
        """Add a component and return its index."""
        if parent is not None:
            self._check_index(parent, "parent")
            if self._nodes[parent].system_id != system_id:
                raise ValidationError(
                    f"Parent {parent} belongs to system {self._nodes[parent].system_id}, not {system_id}",
                    field="parent",
                    value=parent,
                )

        index = len(self._nodes)
        self._nodes.append(ComponentNode(index, name, system_id, external_id, dict(attributes)))
        self._parents.append(parent)
        self._children[index] = []
        if parent is not None:
            self._children[parent].append(index)
        return index

    def node(self, index: int) -> ComponentNode:
        self._check_index(index)
        return self._nodes[index]

    def parent(self, index: int) -> Optional[int]:
        self._check_index(index)
        return self._parents[index]

    def children(self, index: int) -> list[int]:
        self._check_index(index)
        return list(self._children[index])

    def ancestors(self, index: int) -> list[int]:
        """Indices from the direct parent up to the root."""
        self._check_index(index)
        chain = []
        current = self._parents[index]
        while current is not None:
            chain.append(current)
            current = self._parents[current]
        return chain

    def descendants(self, index: int) -> list[int]:
        """All indices below ``index``, depth first."""
        self._check_index(index)
        found = []
        stack = list(reversed(self._children[index]))
        while stack:
            current = stack.pop()
            found.append(current)
            stack.extend(reversed(self._children[current]))
        return found

    def roots(self, system_id: Optional[int] = None) -> list[int]:
        return [
            node.index
            for node in self._nodes
            if self._parents[node.index] is None
            and (system_id is None or node.system_id == system_id)
        ]

    def set_parent(self, index: int, parent: Optional[int]) -> None:
        """Re-parent a component, enforcing the structural rules."""
        self._check_index(index)
        if parent is not None:
            self._check_index(parent, "parent")
            if parent == index:
                raise ValidationError("A component cannot be its own parent", field="parent", value=parent)
            if self._nodes[parent].system_id != self._nodes[index].system_id:
                raise ValidationError(
                    "Parent must belong to the same system",
                    field="parent",
                    value=parent,
                )
            if parent in self.descendants(index):
                raise ValidationError(
                    f"Component {parent} is below {index}; re-parenting would create a cycle",
                    field="parent",
                    value=parent,
                )

        old_parent = self._parents[index]
        if old_parent is not None:
            self._children[old_parent].remove(index)
        self._parents[index] = parent
        if parent is not None:
            self._children[parent].append(index)

    def path(self, index: int) -> list[str]:
        """Names from the root down to ``index``."""
        chain = [index] + self.ancestors(index)
        return [self._nodes[i].name for i in reversed(chain)]
