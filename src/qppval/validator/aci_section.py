# src/qppval/validator/aci_section.py
from __future__ import annotations

from qppval.dataloader.measure_store import MeasureConfigStore
from qppval.model.node import Node, TemplateId
from qppval.validator.base import NodeValidator
from qppval.validator.checker import DetailCollector, thoroughly_check

ACI_NUMERATOR_DENOMINATOR_NODE_REQUIRED = (
    "At least one Aci Numerator Denominator Measure Node is required"
)
NO_REQUIRED_MEASURE = (
    "The required measure '{0}' is not present in the source file. "
    "Please add the ACI measure and try again."
)


class AciSectionValidator(NodeValidator):
    """
    @brief
    Validates the ACI section.

    @details
    The section needs at least one ACI numerator/denominator measure, and
    every measure configured as required for the "aci" category must be
    reported by some measure below the section. A MIPS document without an
    ACI section is reported by the orchestrator.
    """

    template_ids = (TemplateId.ACI_SECTION,)
    required = True
    programs = frozenset({"mips"})

    CATEGORY = "aci"

    def __init__(self, store: MeasureConfigStore) -> None:
        self.store = store

    def _validate_node(self, node: Node, path: str, collector: DetailCollector) -> None:
        thoroughly_check(node, path, collector).child_minimum(
            ACI_NUMERATOR_DENOMINATOR_NODE_REQUIRED, 1, TemplateId.ACI_NUMERATOR_DENOMINATOR
        )

        for config in self.store.by_category(self.CATEGORY, required_only=True):
            thoroughly_check(node, path, collector).has_measures(
                NO_REQUIRED_MEASURE.format(config.measure_id), config.measure_id
            )


__all__ = ["AciSectionValidator", "ACI_NUMERATOR_DENOMINATOR_NODE_REQUIRED", "NO_REQUIRED_MEASURE"]
