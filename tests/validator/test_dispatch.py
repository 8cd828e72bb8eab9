# tests/validator/test_dispatch.py
from __future__ import annotations

import logging

import pytest

from qppval.dataloader.measure_store import MeasureConfigStore
from qppval.errors import DataError
from qppval.model.node import Detail, Node, TemplateId
from qppval.schemas.models import ValidationSettings
from qppval.validator.base import NodeValidator
from qppval.validator.checker import DetailCollector
from qppval.validator.dispatch import (
    REQUIRED_TEMPLATE_MISSING,
    DocumentValidator,
    ValidationResult,
    validate_document,
)
from qppval.validator.quality_measure_id import INCORRECT_UUID, MEASURE_GUID_MISSING
from qppval.validator.registry import ValidatorRegistry, build_default_registry

COMPLETE_PROPORTION = [
    ("IPOP", "IPOP-1"),
    ("DENOM", "DENOM-1"),
    ("NUMER", "NUMER-1"),
    ("DENEX", "DENEX-1"),
]
FIRST_REFERENCE = "/clinicalDocument/measureSection[1]/measureReferenceResults[1]"


class DuplicateMeasureValidator(NodeValidator):
    """Flags measure references reporting an already reported measure id."""

    template_ids = (TemplateId.MEASURE_REFERENCE_RESULTS,)

    def __init__(self) -> None:
        self.seen_batches: list[list[str]] = []

    def _validate_node(self, node: Node, path: str, collector: DetailCollector) -> None:
        return None

    def _validate_group(self, nodes, paths, collector: DetailCollector) -> None:
        self.seen_batches.append(list(paths))
        seen: set[str | None] = set()
        for node, path in zip(nodes, paths):
            measure_id = node.get_value("measureId")
            if measure_id in seen:
                collector.add(Detail(f"Duplicate measure {measure_id}", path))
            seen.add(measure_id)


def test_valid_document_has_no_details(store, make_document, make_measure_reference):
    """
    @brief
    A structurally complete MIPS document validates with no findings.
    """
    # --- Arrange ---
    document = make_document(
        [make_measure_reference("proportionGuid", data=COMPLETE_PROPORTION, rates=["NUMER-1"])]
    )

    # --- Act ---
    result = validate_document(document, store)

    # --- Assert ---
    assert isinstance(result, ValidationResult)
    assert result.valid
    assert result.details == []
    assert result.node_count == 15
    assert result.to_dict()["valid"] is True


def test_details_carry_document_paths(store, make_document, make_measure_reference):
    # --- Arrange ---
    document = make_document(
        [
            make_measure_reference(None, data=[("", None)]),
            make_measure_reference("proportionGuid", data=COMPLETE_PROPORTION),
        ]
    )

    # --- Act ---
    result = validate_document(document, store)

    # --- Assert ---
    assert result.details == [
        Detail(MEASURE_GUID_MISSING, FIRST_REFERENCE),
        Detail(
            INCORRECT_UUID.format("CMS165v5", "performanceRateId", "NUMER-1"),
            "/clinicalDocument/measureSection[1]/measureReferenceResults[2]",
        ),
    ]
    assert not result.valid


def test_missing_required_section_reported_against_root(store, make_document):
    # --- Arrange ---
    document = make_document(aci_measure_ids=None)

    # --- Act ---
    result = validate_document(document, store)

    # --- Assert ---
    assert result.details == [Detail(REQUIRED_TEMPLATE_MISSING.format("aciSection"), "/clinicalDocument")]


def test_required_section_check_can_be_disabled(store, make_document):
    settings = ValidationSettings(check_required_templates=False)

    result = validate_document(make_document(aci_measure_ids=None), store, settings)

    assert result.valid


def test_cpc_program_skips_mips_only_validators(store, make_document, make_measure_reference):
    """
    @brief
    CPC documents need no ACI section and no performance rates.
    """
    # --- Arrange ---
    settings = ValidationSettings(program="cpc")
    document = make_document(
        [make_measure_reference("proportionGuid", data=COMPLETE_PROPORTION)],
        aci_measure_ids=None,
    )

    # --- Act ---
    result = validate_document(document, store, settings)

    # --- Assert ---
    assert result.valid


def test_group_pass_receives_nodes_in_document_order(store, make_document, make_measure_reference):
    # --- Arrange ---
    registry = ValidatorRegistry()
    duplicates = registry.register(DuplicateMeasureValidator())
    document = make_document(
        [
            make_measure_reference("requiresNothingGuid", data=[("", None)]),
            make_measure_reference("proportionGuid", data=COMPLETE_PROPORTION),
            make_measure_reference("requiresNothingGuid", data=[("", None)]),
        ]
    )

    # --- Act ---
    details = DocumentValidator(registry).validate(document)

    # --- Assert ---
    assert details == [
        Detail(
            "Duplicate measure requiresNothingGuid",
            "/clinicalDocument/measureSection[1]/measureReferenceResults[3]",
        )
    ]
    assert duplicates.seen_batches == [
        [
            FIRST_REFERENCE,
            "/clinicalDocument/measureSection[1]/measureReferenceResults[2]",
            "/clinicalDocument/measureSection[1]/measureReferenceResults[3]",
        ]
    ]


def test_validation_is_idempotent(store, make_document, make_measure_reference):
    # --- Arrange ---
    document = make_document(
        [
            make_measure_reference("twoStrataGuid", data=[("IPOP", "IPOP-A"), (None, "x")]),
            make_measure_reference(None),
        ],
        aci_measure_ids=("ACI_EP_1",),
    )
    registry = build_default_registry(store)

    # --- Act ---
    first = validate_document(document, store, registry=registry)
    second = validate_document(document, store, registry=registry)

    # --- Assert ---
    assert first.details
    assert first.details == second.details


class _VanishingStore(MeasureConfigStore):
    def __init__(self, configs):
        super().__init__(configs)
        self.calls = 0

    def lookup(self, measure_id):
        self.calls += 1
        return super().lookup(measure_id) if self.calls == 1 else None


def test_invariant_violation_aborts_pass(store, make_document, make_measure_reference, caplog):
    """
    @brief
    An aborted pass is reported distinctly from a valid document.
    """
    # --- Arrange ---
    caplog.set_level(logging.ERROR)
    vanishing = _VanishingStore(store.all_configs())
    document = make_document(
        [make_measure_reference("requiresDenominatorExclusionGuid", data=[("DENEXCEP", "x")])]
    )

    # --- Act ---
    result = validate_document(document, vanishing)

    # --- Assert ---
    assert result.aborted
    assert not result.valid
    assert result.details == []
    assert "requiresDenominatorExclusionGuid" in result.error
    assert "Validation aborted" in caplog.text


def test_non_node_root_raises_dataerror(store):
    with pytest.raises(DataError):
        DocumentValidator(build_default_registry(store)).validate({"templateId": "x"})


def test_info_summary_is_logged(store, make_document, caplog):
    caplog.set_level(logging.INFO)

    validate_document(make_document(), store)

    assert "Validated 5 node(s) for program mips: 0 detail(s)." in caplog.text
