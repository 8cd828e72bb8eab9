# src/qppval/validator/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from qppval.model.node import Detail, Node, TemplateId, root_path
from qppval.validator.checker import DetailCollector


class NodeValidator(ABC):
    """
    @brief
    Contract shared by every template-keyed validator.

    @details
    A validator declares the template ids it handles, whether a document
    must contain at least one node of those kinds (`required`), and the
    programs it is active for (None means every program).

    Instances keep no state between calls: each public call creates its own
    DetailCollector, passes it down and returns the collected Details, so one
    instance may serve any number of documents.
    """

    template_ids: tuple[TemplateId, ...] = ()
    required: bool = False
    programs: frozenset[str] | None = None

    @property
    def name(self) -> str:
        return type(self).__name__

    def applies_to(self, program: str) -> bool:
        return self.programs is None or program in self.programs

    def validate_single_node(self, node: Node, path: str | None = None) -> list[Detail]:
        """
        @brief
        Validate one node of a handled kind.

        @params
            node : Node
                Node to validate; its subtree is read but never modified.
            path : str | None
                Locator of the node; defaults to the node taken as a root.

        @returns
            Details in the order they were found (possibly empty).
        """
        collector = DetailCollector()
        self._validate_node(node, path or root_path(node), collector)
        return collector.details()

    def validate_same_template_nodes(
        self, nodes: Sequence[Node], paths: Sequence[str] | None = None
    ) -> list[Detail]:
        """
        @brief
        Cross-node checks over every node of one kind, in document order.

        @details
        Most validators have no cross-node rules and return an empty list.
        """
        if paths is None:
            paths = [root_path(n) for n in nodes]
        collector = DetailCollector()
        self._validate_group(nodes, paths, collector)
        return collector.details()

    @abstractmethod
    def _validate_node(self, node: Node, path: str, collector: DetailCollector) -> None:
        """Emit Details for a single node into `collector`."""

    def _validate_group(
        self, nodes: Sequence[Node], paths: Sequence[str], collector: DetailCollector
    ) -> None:
        return None

    def __repr__(self) -> str:
        kinds = ",".join(t.name for t in self.template_ids)
        return f"{self.name}(templates={kinds}, required={self.required})"


__all__ = ["NodeValidator"]
