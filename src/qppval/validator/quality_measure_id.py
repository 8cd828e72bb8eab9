# src/qppval/validator/quality_measure_id.py
from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Sequence
from dataclasses import dataclass

from qppval.dataloader.measure_store import MeasureConfigStore
from qppval.errors import ValidationError
from qppval.model.node import Detail, Node, TemplateId
from qppval.schemas.models import MeasureConfig, SubPopulation
from qppval.validator.base import NodeValidator
from qppval.validator.checker import MEASURE_ID, DetailCollector, thoroughly_check
from qppval.validator.subpopulations import (
    MATCH_ORDER,
    MEASURE_POPULATION,
    PERFORMANCE_RATE_ID,
    aggregate_count,
    aliases_for,
    children_with_paths,
    exclusive_keys,
    expected_count,
    find_first,
    locate,
    make_type_finder,
    make_uuid_finder,
)

logger = logging.getLogger(__name__)

MEASURE_GUID_MISSING = "The measure reference results must have a measure GUID"
UNKNOWN_MEASURE_GUID = "The measure GUID {0} is not a known measure"
NO_CHILD_MEASURE = "The measure reference results must have at least one measure"
SINGLE_MEASURE_POPULATION = "The measure reference results must have a single measure population"
SINGLE_MEASURE_TYPE = "The measure reference results must have a single measure type"
INCORRECT_POPULATION_CRITERIA_COUNT = (
    "The eCQM (electronic measure id: {0}) requires {1} {2}(s) but there are {3}"
)
INCORRECT_UUID = "The eCQM (electronic measure id: {0}) requires a {1} with the correct UUID of {2}"
SINGLE_PERFORMANCE_RATE = "A Performance Rate must contain a single Performance Rate UUID"
REQUIRE_VALID_DENOMINATOR_COUNT = (
    "The Denominator count must be less than or equal to Initial Population count "
    "for an eCQM that is proportion measure"
)

CPC_EXCLUSIONS = frozenset({"DENEX", "DENEXCEP"})


@dataclass(frozen=True)
class SubPopulationMatch:
    """
    @brief
    A measure-data child matched to one configured identifier.

    @details
    Handed to follow-up checks together with the collector of the running
    validation call.
    """

    measure: Node
    measure_path: str
    child: Node
    child_path: str
    key: str
    sub_population: SubPopulation
    config: MeasureConfig
    collector: DetailCollector


FollowUp = Callable[[SubPopulationMatch], None]


def check_performance_rate(match: SubPopulationMatch) -> None:
    """
    @brief
    Require a performance rate carrying the numerator identifier.

    @details
    Applies to proportion measures only, and only to the matched numerator.
    The performance rate must be a child of the measure reference node, have
    exactly one performance-rate id, and that id must equal the configured
    numerator identifier.
    """
    if not match.config.is_proportion or match.key != "NUMER":
        return
    uuid = match.sub_population.numerator_uuid
    if uuid is None:
        return

    rates = children_with_paths(
        match.measure, match.measure_path, TemplateId.PERFORMANCE_RATE_PROPORTION_MEASURE
    )
    finder = make_uuid_finder(uuid, SINGLE_PERFORMANCE_RATE, PERFORMANCE_RATE_ID, match.collector)
    if find_first(rates, finder) is None:
        message = INCORRECT_UUID.format(match.config.electronic_measure_id, PERFORMANCE_RATE_ID, uuid)
        match.collector.add(Detail(message, match.measure_path))


def check_denominator_count(match: SubPopulationMatch) -> None:
    """
    @brief
    Require DENOM count <= IPOP count within one sub-population.

    @details
    Applies to proportion measures only, on the matched denominator. The
    initial population is the measure-data child carrying the same
    sub-population's initial population identifier. A missing initial
    population or an unreadable count skips the comparison.
    """
    if not match.config.is_proportion or match.key != "DENOM":
        return
    uuid = match.sub_population.initial_population_uuid
    if uuid is None:
        return

    children = children_with_paths(match.measure, match.measure_path, TemplateId.MEASURE_DATA)
    initial_population = locate(children, "IPOP", uuid)
    if initial_population is None:
        return

    denominator = aggregate_count(match.child)
    population = aggregate_count(initial_population[0])
    if denominator is None or population is None:
        return
    if denominator > population:
        match.collector.add(Detail(REQUIRE_VALID_DENOMINATOR_COUNT, match.child_path))


def check_proportion_measure(match: SubPopulationMatch) -> None:
    """MIPS follow-up: performance rate and denominator count of proportion measures."""
    check_performance_rate(match)
    check_denominator_count(match)


class QualityMeasureIdValidator(NodeValidator):
    """
    @brief
    Validates a measure reference results node against its measure configuration.

    @details
    Checks that the node has a measure GUID and at least one measure-data
    child, then, when the GUID resolves to a configuration:
      - for every key outside the exclusion set, the number of children of
        that population-criteria type equals the number of sub-populations
        configuring an identifier for it;
      - every configured identifier of every sub-population is carried by a
        child of the right type, regardless of the exclusion set;
      - an optional follow-up runs for each matched child.

    Unknown measure GUIDs are accepted; they are reported only when
    `report_unknown_measures` is set.
    """

    template_ids = (TemplateId.MEASURE_REFERENCE_RESULTS,)

    def __init__(
        self,
        store: MeasureConfigStore,
        *,
        exclusions: Collection[str] = frozenset(),
        follow_up: FollowUp | None = None,
        report_unknown_measures: bool = False,
        programs: Collection[str] | None = None,
    ) -> None:
        self.store = store
        self.exclusions = frozenset(exclusions)
        self.follow_up = follow_up
        self.report_unknown_measures = report_unknown_measures
        self.programs = frozenset(programs) if programs is not None else None

    def _validate_node(self, node: Node, path: str, collector: DetailCollector) -> None:
        chain = (
            thoroughly_check(node, path, collector)
            .single_value(MEASURE_GUID_MISSING, MEASURE_ID)
            .child_minimum(NO_CHILD_MEASURE, 1, TemplateId.MEASURE_DATA)
        )

        # Nothing to cross-check without measure data
        if chain.failed and not any(True for _ in node.get_children(TemplateId.MEASURE_DATA)):
            return

        self._validate_measure_configs(node, path, collector)

    def _validate_measure_configs(self, node: Node, path: str, collector: DetailCollector) -> None:
        value = node.get_value(MEASURE_ID)
        config = self.store.lookup(value)

        if config is not None:
            self._validate_all_sub_populations(node, path, config, collector)
            return

        # A missing GUID has already been reported by the chain above
        if value is None:
            return
        if self.report_unknown_measures:
            logger.error("Unknown measure GUID %s at %s", value, path)
            collector.add(Detail(UNKNOWN_MEASURE_GUID.format(value), path))
        else:
            logger.debug("No measure configuration for GUID %s at %s; skipping.", value, path)

    def _validate_all_sub_populations(
        self, node: Node, path: str, config: MeasureConfig, collector: DetailCollector
    ) -> None:
        sub_populations = config.sub_populations
        if not sub_populations:
            return

        children = list(children_with_paths(node, path, TemplateId.MEASURE_DATA))

        # (1) Aggregate population-criteria counts, exclusions honoured
        for key in exclusive_keys(self.exclusions):
            self._validate_child_type_count(sub_populations, key, node, path, children, collector)

        # (2) Identifier matching per sub-population, exclusions ignored
        for sub_population in sub_populations:
            self._validate_sub_population(node, path, config, sub_population, children, collector)

    def _validate_child_type_count(
        self,
        sub_populations: Sequence[SubPopulation],
        key: str,
        node: Node,
        path: str,
        children: Sequence[tuple[Node, str]],
        collector: DetailCollector,
    ) -> None:
        expected = expected_count(sub_populations, key)
        finder = make_type_finder(aliases_for(key), SINGLE_MEASURE_TYPE, collector)
        actual = sum(1 for child, child_path in children if finder(child, child_path))

        if expected != actual:
            message = INCORRECT_POPULATION_CRITERIA_COUNT.format(
                self._electronic_measure_id(node), expected, key, actual
            )
            collector.add(Detail(message, path))

    def _validate_sub_population(
        self,
        node: Node,
        path: str,
        config: MeasureConfig,
        sub_population: SubPopulation,
        children: Sequence[tuple[Node, str]],
        collector: DetailCollector,
    ) -> None:
        for key in MATCH_ORDER:
            uuid = sub_population.get_uuid(key)
            if uuid is None:
                continue

            types = aliases_for(key)
            match = find_first(
                children,
                make_type_finder(types, SINGLE_MEASURE_TYPE, collector),
                make_uuid_finder(uuid, SINGLE_MEASURE_POPULATION, MEASURE_POPULATION, collector),
            )

            if match is None:
                message = INCORRECT_UUID.format(
                    self._electronic_measure_id(node), ",".join(types), uuid
                )
                collector.add(Detail(message, path))
            elif self.follow_up is not None:
                child, child_path = match
                self.follow_up(
                    SubPopulationMatch(
                        measure=node,
                        measure_path=path,
                        child=child,
                        child_path=child_path,
                        key=key,
                        sub_population=sub_population,
                        config=config,
                        collector=collector,
                    )
                )

    def _electronic_measure_id(self, node: Node) -> str | None:
        """
        @brief
        Electronic measure id of the node's configuration, for messages.

        @raises
            ValidationError
                Raised if the configuration the node was matched against can
                no longer be resolved.
        """
        config = self.store.lookup(node.get_value(MEASURE_ID))
        if config is None:
            raise ValidationError(
                message=f"Measure configuration vanished for GUID {node.get_value(MEASURE_ID)}",
                source="QualityMeasureIdValidator._electronic_measure_id",
                suggested_action="Do not modify the measure configuration store during validation.",
            )
        return config.electronic_measure_id


def mips_quality_measure_validator(
    store: MeasureConfigStore,
    *,
    exclusions: Collection[str] | None = None,
    report_unknown_measures: bool = False,
) -> QualityMeasureIdValidator:
    """MIPS variant: every key counted, proportion measures get the follow-up checks."""
    return QualityMeasureIdValidator(
        store,
        exclusions=exclusions if exclusions is not None else frozenset(),
        follow_up=check_proportion_measure,
        report_unknown_measures=report_unknown_measures,
        programs={"mips"},
    )


def cpc_quality_measure_validator(
    store: MeasureConfigStore,
    *,
    exclusions: Collection[str] | None = None,
    report_unknown_measures: bool = False,
) -> QualityMeasureIdValidator:
    """CPC variant: denominator exclusions and exceptions are not counted."""
    return QualityMeasureIdValidator(
        store,
        exclusions=exclusions if exclusions is not None else CPC_EXCLUSIONS,
        report_unknown_measures=report_unknown_measures,
        programs={"cpc"},
    )


__all__ = [
    "MEASURE_GUID_MISSING",
    "UNKNOWN_MEASURE_GUID",
    "NO_CHILD_MEASURE",
    "SINGLE_MEASURE_POPULATION",
    "SINGLE_MEASURE_TYPE",
    "INCORRECT_POPULATION_CRITERIA_COUNT",
    "INCORRECT_UUID",
    "SINGLE_PERFORMANCE_RATE",
    "REQUIRE_VALID_DENOMINATOR_COUNT",
    "CPC_EXCLUSIONS",
    "SubPopulationMatch",
    "check_performance_rate",
    "check_denominator_count",
    "check_proportion_measure",
    "QualityMeasureIdValidator",
    "mips_quality_measure_validator",
    "cpc_quality_measure_validator",
]
