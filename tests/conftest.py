import sys
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

import pytest

# (1) Add src/ to sys.path so the suite runs from a plain checkout
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from qppval.dataloader.measure_store import MeasureConfigStore  # noqa: E402
from qppval.model.node import Node, TemplateId  # noqa: E402

# (2) Literal measure data shared by the suite (no global store swapping)
MEASURE_RECORDS: list[dict] = [
    {
        "measureId": "requiresNothingGuid",
        "electronicMeasureId": "CMS000v1",
        "category": "quality",
        "subPopulation": [],
    },
    {
        "measureId": "requiresDenominatorExclusionGuid",
        "electronicMeasureId": "CMS001v1",
        "category": "quality",
        "metricType": "singlePerformanceRate",
        "subPopulation": [{"denominatorExclusionsUuid": "DENEX-UUID-1"}],
    },
    {
        "measureId": "requiresDenominatorExceptionGuid",
        "electronicMeasureId": "CMS002v1",
        "category": "quality",
        "subPopulation": [{"denominatorExceptionsUuid": "DENEXCEP-UUID-1"}],
    },
    {
        "measureId": "proportionGuid",
        "electronicMeasureId": "CMS165v5",
        "category": "quality",
        "metricType": "singlePerformanceRate",
        "title": "Controlling High Blood Pressure",
        "subPopulation": [
            {
                "initialPopulationUuid": "IPOP-1",
                "denominatorUuid": "DENOM-1",
                "numeratorUuid": "NUMER-1",
                "denominatorExclusionsUuid": "DENEX-1",
            }
        ],
    },
    {
        "measureId": "twoStrataGuid",
        "electronicMeasureId": "CMS136v6",
        "category": "quality",
        "metricType": "registryMultiPerformanceRate",
        "subPopulation": [
            {"initialPopulationUuid": "IPOP-A", "denominatorUuid": "DENOM-A", "numeratorUuid": "NUMER-A"},
            {"initialPopulationUuid": "IPOP-B", "denominatorUuid": "DENOM-B", "numeratorUuid": "NUMER-B"},
        ],
    },
    {"measureId": "ACI_EP_1", "category": "aci", "isRequired": True},
    {"measureId": "ACI_PEA_1", "category": "aci", "isRequired": True},
    {"measureId": "ACI_OPTIONAL_1", "category": "aci", "isRequired": False},
]

MeasureData = tuple[str | None, str | None]


def build_measure_reference(
    measure_id: str | None = None,
    data: Sequence[MeasureData] = (),
    rates: Sequence[str | None] = (),
    counts: Mapping[str, str] | None = None,
) -> Node:
    """
    @brief
    Build a measure reference results node.

    @details
    `data` holds (type, populationId) pairs for measure-data children and
    `rates` the performanceRateId of performance-rate children; None leaves
    the attribute out. `counts` overrides the aggregate count of the children
    with the given populationId (default "600").
    """
    node = Node(TemplateId.MEASURE_REFERENCE_RESULTS)
    if measure_id is not None:
        node.put_value("measureId", measure_id)
    for measure_type, population_id in data:
        child = node.add_child(Node(TemplateId.MEASURE_DATA))
        if measure_type is not None:
            child.put_value("type", measure_type)
        if population_id is not None:
            child.put_value("populationId", population_id)
        count = (counts or {}).get(population_id, "600")
        child.add_child(Node(TemplateId.AGGREGATE_COUNT, {"aggregateCount": count}))
    for rate_id in rates:
        rate = node.add_child(Node(TemplateId.PERFORMANCE_RATE_PROPORTION_MEASURE))
        if rate_id is not None:
            rate.put_value("performanceRateId", rate_id)
        rate.put_value("rate", "0.5")
    return node


@pytest.fixture()
def measure_records() -> list[dict]:
    return [dict(r) for r in MEASURE_RECORDS]


@pytest.fixture()
def store(measure_records: list[dict]) -> MeasureConfigStore:
    return MeasureConfigStore.from_records(measure_records)


@pytest.fixture()
def make_measure_reference() -> Callable[..., Node]:
    return build_measure_reference


@pytest.fixture()
def make_document() -> Callable[..., Node]:
    """Factory for a full document: clinical document > sections > measures."""

    def _make(
        measure_references: Sequence[Node] = (),
        aci_measure_ids: Sequence[str] | None = ("ACI_EP_1", "ACI_PEA_1"),
    ) -> Node:
        root = Node(TemplateId.CLINICAL_DOCUMENT, {"programName": "mips"})
        if aci_measure_ids is not None:
            aci = root.add_child(Node(TemplateId.ACI_SECTION, {"category": "aci"}))
            for measure_id in aci_measure_ids:
                aci.add_child(Node(TemplateId.ACI_NUMERATOR_DENOMINATOR, {"measureId": measure_id}))
        section = root.add_child(Node(TemplateId.MEASURE_SECTION, {"category": "quality"}))
        for reference in measure_references:
            section.add_child(reference)
        return root

    return _make
