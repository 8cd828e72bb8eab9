# src/qppval/validator/subpopulations.py
"""
@brief
Pure helpers for sub-population consistency matching.

@details
Population-criteria keys, their document spellings, exclusion handling and
the child finders used to match measure-data children against configured
unique identifiers. Finders are predicates over (child, path); while
testing a child they assert that the inspected attribute is present, and a
child without it never matches. A child is reported at most once per
assertion however many finders inspect it.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable, Iterator, Sequence

from qppval.model.node import Node, TemplateId, child_path
from qppval.schemas.models import POPULATION_KEYS, SubPopulation
from qppval.validator.checker import DetailCollector, check

MEASURE_TYPE = "type"
MEASURE_POPULATION = "populationId"
PERFORMANCE_RATE_ID = "performanceRateId"
AGGREGATE_COUNT_VALUE = "aggregateCount"

# Document spellings accepted for each population-criteria key.
KEY_ALIASES: dict[str, tuple[str, ...]] = {
    "IPOP": ("IPOP", "IPP"),
    "DENOM": ("DENOM",),
    "DENEX": ("DENEX",),
    "NUMER": ("NUMER",),
    "DENEXCEP": ("DENEXCEP",),
}

# Order in which each sub-population's identifiers are matched.
MATCH_ORDER: tuple[str, ...] = ("DENEXCEP", "DENEX", "NUMER", "DENOM", "IPOP")

ChildFinder = Callable[[Node, str], bool]


def aliases_for(key: str) -> tuple[str, ...]:
    return KEY_ALIASES.get(key, (key,))


def exclusive_keys(exclusions: Collection[str]) -> list[str]:
    """Population-criteria keys subject to the aggregate count check, in declared order."""
    return [key for key in POPULATION_KEYS if key not in exclusions]


def expected_count(sub_populations: Iterable[SubPopulation], key: str) -> int:
    """Number of sub-populations that configure an identifier for `key`."""
    return sum(1 for sub in sub_populations if sub.get_uuid(key) is not None)


def children_with_paths(
    node: Node, path: str, template_id: TemplateId
) -> Iterator[tuple[Node, str]]:
    """Direct children of one kind, each paired with its locator."""
    for position, child in enumerate(node.get_children(template_id), start=1):
        yield child, child_path(path, template_id, position)


def make_type_finder(
    types: Sequence[str], message: str, collector: DetailCollector
) -> ChildFinder:
    """
    @brief
    Predicate selecting children whose measure type is one of `types`.

    @details
    A child without a measure type is reported with `message` and never
    matches.
    """

    def finder(child: Node, path: str) -> bool:
        chain = check(child, path, collector, once=True).single_value(message, MEASURE_TYPE)
        return not chain.failed and child.get_value(MEASURE_TYPE) in types

    return finder


def make_uuid_finder(
    uuid: str, message: str, attribute: str, collector: DetailCollector
) -> ChildFinder:
    """
    @brief
    Predicate selecting children whose `attribute` equals `uuid`.

    @details
    A child without the attribute is reported with `message` and never
    matches.
    """

    def finder(child: Node, path: str) -> bool:
        chain = check(child, path, collector, once=True).single_value(message, attribute)
        return not chain.failed and child.get_value(attribute) == uuid

    return finder


def find_first(
    candidates: Iterable[tuple[Node, str]], *finders: ChildFinder
) -> tuple[Node, str] | None:
    """
    @brief
    First candidate accepted by every finder, in candidate order.

    @details
    Finders run left to right and stop at the first rejection; candidates
    after the first match are not inspected.
    """
    for child, path in candidates:
        if all(finder(child, path) for finder in finders):
            return child, path
    return None


def locate(
    candidates: Iterable[tuple[Node, str]], key: str, uuid: str
) -> tuple[Node, str] | None:
    """First candidate of population-criteria `key` carrying `uuid`, without reporting."""
    types = aliases_for(key)
    for child, path in candidates:
        if child.get_value(MEASURE_TYPE) in types and child.get_value(MEASURE_POPULATION) == uuid:
            return child, path
    return None


def aggregate_count(node: Node) -> int | None:
    """
    @brief
    Reported count of a measure-data child.

    @details
    Read from its aggregate-count child; None when that child or its value
    is missing or not an integer.
    """
    for count in node.get_children(TemplateId.AGGREGATE_COUNT):
        try:
            return int(count.get_value(AGGREGATE_COUNT_VALUE, ""))
        except ValueError:
            return None
    return None


__all__ = [
    "MEASURE_TYPE",
    "MEASURE_POPULATION",
    "PERFORMANCE_RATE_ID",
    "AGGREGATE_COUNT_VALUE",
    "KEY_ALIASES",
    "MATCH_ORDER",
    "aliases_for",
    "exclusive_keys",
    "expected_count",
    "children_with_paths",
    "make_type_finder",
    "make_uuid_finder",
    "find_first",
    "locate",
    "aggregate_count",
]
