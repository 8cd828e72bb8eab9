# src/qppval/validator/checker.py
"""
@brief
Fluent structural assertions over a single node.

@details
A validator binds a Checker to one node (and its locator) and chains
assertions. Each assertion produces zero or one Detail into a shared
DetailCollector. After `incomplete_validation()` the chain short-circuits:
once any assertion in it has failed, the remaining ones are skipped, so a
broken prerequisite does not produce a cascade of derivative findings.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from qppval.model.node import Detail, Node, TemplateId

MEASURE_ID = "measureId"

# Node kinds whose `measureId` attribute names a reported measure.
MEASURE_BEARING_TEMPLATES: tuple[TemplateId, ...] = (
    TemplateId.ACI_NUMERATOR_DENOMINATOR,
    TemplateId.MEASURE_REFERENCE_RESULTS,
)


class DetailCollector:
    """
    @brief
    Insertion-ordered accumulator of Details for one validator call.

    @details
    `add` always records. `add_once` drops a Detail already recorded (same
    message and path), for assertions re-evaluated on the same child by
    several finders.
    """

    def __init__(self) -> None:
        self._details: list[Detail] = []
        self._seen: set[Detail] = set()

    def add(self, detail: Detail) -> None:
        self._seen.add(detail)
        self._details.append(detail)

    def add_once(self, detail: Detail) -> bool:
        if detail in self._seen:
            return False
        self.add(detail)
        return True

    def extend(self, details: Iterable[Detail]) -> None:
        for detail in details:
            self.add(detail)

    def details(self) -> list[Detail]:
        return list(self._details)

    def __iter__(self) -> Iterator[Detail]:
        return iter(self._details)

    def __len__(self) -> int:
        return len(self._details)


class Checker:
    """
    @brief
    Assertion chain bound to one node.

    @details
    Every assertion returns the checker itself. A chain that has failed at
    least once reports `failed`; in short-circuit mode later assertions on
    the same chain are not evaluated.
    """

    def __init__(
        self, node: Node, path: str, collector: DetailCollector, once: bool = False
    ) -> None:
        self.node = node
        self.path = path
        self._collector = collector
        self._once = once
        self._short_circuit = False
        self._failed = False

    @property
    def failed(self) -> bool:
        return self._failed

    def incomplete_validation(self) -> Checker:
        """Skip every following assertion once one in this chain has failed."""
        self._short_circuit = True
        return self

    def single_value(self, message: str, name: str) -> Checker:
        """Fails if the node does not carry attribute `name`."""
        if self._should_skip():
            return self
        if self.node.get_value(name) is None:
            self._fail(message)
        return self

    def child_minimum(self, message: str, minimum: int, *template_ids: TemplateId) -> Checker:
        """Fails if fewer than `minimum` direct children of the given kinds exist."""
        if self._should_skip():
            return self
        count = 0
        for _ in self.node.get_children(*template_ids):
            count += 1
            if count >= minimum:
                return self
        if count < minimum:
            self._fail(message)
        return self

    def has_measures(self, message: str, *measure_ids: str) -> Checker:
        """Fails if no descendant measure node carries one of `measure_ids`."""
        if self._should_skip():
            return self
        wanted = set(measure_ids)
        for measure in self.node.find_descendants(*MEASURE_BEARING_TEMPLATES):
            if measure.get_value(MEASURE_ID) in wanted:
                return self
        self._fail(message)
        return self

    def _should_skip(self) -> bool:
        return self._short_circuit and self._failed

    def _fail(self, message: str) -> None:
        self._failed = True
        detail = Detail(message, self.path)
        if self._once:
            self._collector.add_once(detail)
        else:
            self._collector.add(detail)


def check(node: Node, path: str, collector: DetailCollector, once: bool = False) -> Checker:
    """
    Short-circuiting chain: stops at the first failed assertion.

    With `once`, a finding already recorded for this node is not repeated.
    """
    return Checker(node, path, collector, once).incomplete_validation()


def thoroughly_check(node: Node, path: str, collector: DetailCollector) -> Checker:
    """Exhaustive chain: every assertion is evaluated."""
    return Checker(node, path, collector)


__all__ = [
    "MEASURE_ID",
    "MEASURE_BEARING_TEMPLATES",
    "DetailCollector",
    "Checker",
    "check",
    "thoroughly_check",
]
