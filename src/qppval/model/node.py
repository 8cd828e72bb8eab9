# src/qppval/model/node.py
"""
@brief
In-memory node tree of a decoded quality-report submission.

@details
Defines the three value types every validator works with:
    - TemplateId: closed enumeration of node kinds (the "type tag")
    - Node: ordered, attribute-bearing tree element owning its children
    - Detail: immutable validation finding (message + locator path)

Nodes never hold a reference to their parent. Locator paths are derived on
demand while walking down from a root (`walk_with_paths`).
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from qppval.errors import DataError


class TemplateId(Enum):
    """
    @brief
    Closed set of node kinds produced by the decoder.

    @details
    Values are the template identifiers carried by the source document.
    UNKNOWN is used for any element the decoder did not recognise; it is a
    valid tag with no registered validators.
    """

    CLINICAL_DOCUMENT = "2.16.840.1.113883.10.20.27.1.2"
    ACI_SECTION = "2.16.840.1.113883.10.20.27.2.5"
    ACI_NUMERATOR_DENOMINATOR = "2.16.840.1.113883.10.20.27.3.28"
    IA_SECTION = "2.16.840.1.113883.10.20.27.2.4"
    MEASURE_SECTION = "2.16.840.1.113883.10.20.27.2.3"
    MEASURE_REFERENCE_RESULTS = "2.16.840.1.113883.10.20.27.3.1"
    MEASURE_DATA = "2.16.840.1.113883.10.20.27.3.5"
    AGGREGATE_COUNT = "2.16.840.1.113883.10.20.27.3.3"
    PERFORMANCE_RATE_PROPORTION_MEASURE = "2.16.840.1.113883.10.20.27.3.25"
    UNKNOWN = "unknown"

    @property
    def segment(self) -> str:
        """camelCase label used as a path segment, e.g. MEASURE_DATA -> measureData."""
        head, *rest = self.name.lower().split("_")
        return head + "".join(part.capitalize() for part in rest)

    @classmethod
    def from_value(cls, value: str) -> TemplateId:
        """Resolve a raw template identifier, falling back to UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True, slots=True)
class Detail:
    """
    @brief
    One validation finding.

    @details
    Immutable once created. Hashable, so per-validator accumulators can
    drop exact repeats while keeping first-seen order.
    """

    message: str
    path: str

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "path": self.path}


class Node:
    """
    @brief
    Typed, ordered, attribute-bearing tree element.

    @details
    The template id is fixed at construction. Attributes and children are
    appended by the decoder while the tree is built; validators only read.
    Children are owned exclusively by their parent.
    """

    __slots__ = ("_template_id", "_values", "_children")

    def __init__(
        self,
        template_id: TemplateId,
        values: dict[str, str] | None = None,
        children: list[Node] | None = None,
    ) -> None:
        if not isinstance(template_id, TemplateId):
            raise DataError(
                message=f"Invalid template id: expected TemplateId, got {type(template_id).__name__}",
                source="Node.__init__",
                suggested_action="Resolve raw identifiers with TemplateId.from_value().",
            )
        self._template_id = template_id
        self._values: dict[str, str] = {}
        self._children: list[Node] = []

        for name, value in (values or {}).items():
            self.put_value(name, value)
        for child in children or []:
            self.add_child(child)

    # ---------- Read API ----------
    @property
    def template_id(self) -> TemplateId:
        return self._template_id

    @property
    def values(self) -> dict[str, str]:
        """Copy of the attribute mapping."""
        return dict(self._values)

    @property
    def children(self) -> tuple[Node, ...]:
        return tuple(self._children)

    def get_value(self, name: str, default: str | None = None) -> str | None:
        return self._values.get(name, default)

    def get_children(self, *template_ids: TemplateId) -> Iterator[Node]:
        """
        @brief
        Lazily yield direct children of the given kinds in document order.

        @details
        With no arguments every direct child is yielded.
        """
        wanted = set(template_ids)
        return (c for c in self._children if not wanted or c.template_id in wanted)

    def find_descendants(self, *template_ids: TemplateId) -> Iterator[Node]:
        """Depth-first, pre-order iteration over matching descendants (self excluded)."""
        wanted = set(template_ids)
        for child in self._children:
            if not wanted or child.template_id in wanted:
                yield child
            yield from child.find_descendants(*template_ids)

    # ---------- Construction API ----------
    def put_value(self, name: str, value: str, replace: bool = True) -> None:
        """
        @brief
        Set an attribute during tree construction.

        @details
        With replace=False an existing value wins and the call is a no-op.
        """
        if not isinstance(name, str) or not isinstance(value, str):
            raise DataError(
                message=f"Node attributes must be strings (got {name!r}={value!r})",
                source="Node.put_value",
                suggested_action="Convert decoded attribute values to str before storing.",
            )
        if not replace and name in self._values:
            return
        self._values[name] = value

    def add_child(self, child: Node) -> Node:
        if not isinstance(child, Node):
            raise DataError(
                message=f"Child must be a Node, got {type(child).__name__}",
                source="Node.add_child",
            )
        self._children.append(child)
        return child

    def __repr__(self) -> str:
        return (
            f"Node({self._template_id.name}, values={self._values!r}, "
            f"children={len(self._children)})"
        )


# ----------------------------
# PATH DERIVATION
# ----------------------------
def root_path(node: Node) -> str:
    """Locator of a node that is treated as the root of the tree."""
    return "/" + node.template_id.segment


def child_path(parent_path: str, template_id: TemplateId, position: int) -> str:
    """Locator of the `position`-th (1-based) child of kind `template_id`."""
    return f"{parent_path}/{template_id.segment}[{position}]"


def walk_with_paths(root: Node, path: str | None = None) -> Iterator[tuple[Node, str]]:
    """Depth-first, pre-order iteration yielding every node with its locator."""
    current = path or root_path(root)
    yield root, current

    counters: dict[TemplateId, int] = {}
    for child in root.get_children():
        counters[child.template_id] = counters.get(child.template_id, 0) + 1
        yield from walk_with_paths(
            child, child_path(current, child.template_id, counters[child.template_id])
        )


__all__ = [
    "TemplateId",
    "Detail",
    "Node",
    "root_path",
    "child_path",
    "walk_with_paths",
]
