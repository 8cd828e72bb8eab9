# src/qppval/validator/registry.py
from __future__ import annotations

import logging

from qppval.dataloader.measure_store import MeasureConfigStore
from qppval.model.node import TemplateId
from qppval.schemas.models import ValidationSettings
from qppval.validator.aci_section import AciSectionValidator
from qppval.validator.base import NodeValidator
from qppval.validator.quality_measure_id import (
    cpc_quality_measure_validator,
    mips_quality_measure_validator,
)

logger = logging.getLogger(__name__)


class ValidatorRegistry:
    """
    @brief
    Explicit mapping from template id to the validators handling it.

    @details
    Filled once at start-up. Registration order is kept per template id and
    is the order validators run in during dispatch.
    """

    def __init__(self) -> None:
        self._by_template: dict[TemplateId, list[NodeValidator]] = {}

    def register(self, validator: NodeValidator) -> NodeValidator:
        if not validator.template_ids:
            raise ValueError(f"{validator.name} declares no template ids")
        for template_id in validator.template_ids:
            bucket = self._by_template.setdefault(template_id, [])
            if validator not in bucket:
                bucket.append(validator)
        logger.debug("Registered %r", validator)
        return validator

    def validators_for(
        self, template_id: TemplateId, program: str | None = None
    ) -> list[NodeValidator]:
        """Validators for one template id, optionally restricted to a program."""
        return [
            v
            for v in self._by_template.get(template_id, [])
            if program is None or v.applies_to(program)
        ]

    def required_templates(self, program: str | None = None) -> list[TemplateId]:
        """Template ids a document must contain, in registration order."""
        required: list[TemplateId] = []
        for template_id, validators in self._by_template.items():
            if any(v.required and (program is None or v.applies_to(program)) for v in validators):
                required.append(template_id)
        return required

    def template_ids(self) -> list[TemplateId]:
        return list(self._by_template)

    def __len__(self) -> int:
        return len({id(v) for bucket in self._by_template.values() for v in bucket})


def build_default_registry(
    store: MeasureConfigStore, settings: ValidationSettings | None = None
) -> ValidatorRegistry:
    """
    @brief
    Registry with every built-in validator.

    @details
    Program-scoped validators are all registered; dispatch picks the ones
    matching `settings.program`. An exclusion override in the settings
    replaces the default exclusion set of both measure-reference variants.
    """
    settings = settings or ValidationSettings()
    exclusions = settings.subpopulation_exclusions

    registry = ValidatorRegistry()
    registry.register(AciSectionValidator(store))
    registry.register(
        mips_quality_measure_validator(
            store,
            exclusions=exclusions,
            report_unknown_measures=settings.report_unknown_measures,
        )
    )
    registry.register(
        cpc_quality_measure_validator(
            store,
            exclusions=exclusions,
            report_unknown_measures=settings.report_unknown_measures,
        )
    )
    return registry


__all__ = ["ValidatorRegistry", "build_default_registry"]
