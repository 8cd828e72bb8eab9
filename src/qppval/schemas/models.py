"""
@brief
Pydantic data models for the qppval validation core.

@details
Defines the canonical model types:
    - SubPopulation: population-criteria key -> required unique identifier
    - MeasureConfig: required structural shape of one measure (external data)
    - ValidationSettings: runtime settings (from settings.yaml)

Measure records mirror the external measures data, so they accept the
camelCase names found there and ignore fields the validators do not read.
They are frozen: the configuration store is shared read-only state.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

PopulationKey = Literal["IPOP", "DENOM", "DENEX", "NUMER", "DENEXCEP"]

# Declared order of population-criteria keys; aggregate count checks follow it.
POPULATION_KEYS: tuple[str, ...] = ("IPOP", "DENOM", "DENEX", "NUMER", "DENEXCEP")


class _StrictBaseModel(BaseModel):
    """
    @brief
    Base model enforcing strict defaults for settings contracts.

    @details
    Forbids unknown fields and preserves exact naming rules.
    """

    model_config = {
        "extra": "forbid",  # Reject unknown fields
        "populate_by_name": True,  # Allow population by field name
        "use_enum_values": True,
    }


class _RecordModel(BaseModel):
    """
    @brief
    Base model for externally supplied, read-only measure records.

    @details
    Unknown fields are ignored (the measures data carries titles, descriptions
    and other metadata), instances are immutable once validated.
    """

    model_config = {
        "extra": "ignore",
        "populate_by_name": True,
        "frozen": True,
    }


class SubPopulation(_RecordModel):
    """
    @brief
    One bundle of population-criteria unique identifiers within a measure.

    @details
    A missing identifier means the key is not required for this
    sub-population.
    """

    initial_population_uuid: str | None = Field(None, alias="initialPopulationUuid")
    denominator_uuid: str | None = Field(None, alias="denominatorUuid")
    denominator_exclusions_uuid: str | None = Field(None, alias="denominatorExclusionsUuid")
    numerator_uuid: str | None = Field(None, alias="numeratorUuid")
    denominator_exceptions_uuid: str | None = Field(None, alias="denominatorExceptionsUuid")

    def get_uuid(self, key: str) -> str | None:
        """Unique identifier configured for a population-criteria key, if any."""
        field_name = _KEY_TO_FIELD.get(key)
        if field_name is None:
            return None
        return getattr(self, field_name)


_KEY_TO_FIELD: dict[str, str] = {
    "IPOP": "initial_population_uuid",
    "DENOM": "denominator_uuid",
    "DENEX": "denominator_exclusions_uuid",
    "NUMER": "numerator_uuid",
    "DENEXCEP": "denominator_exceptions_uuid",
}


class MeasureConfig(_RecordModel):
    """
    @brief
    Required structural shape of a single measure.

    @details
    `sub_populations` keeps the declared order of the source data; every
    order-sensitive check iterates it as given.
    """

    measure_id: str = Field(..., alias="measureId", description="Measure identifier (GUID)")
    category: str | None = Field(None, description="Reporting category, e.g. 'aci' or 'quality'")
    required: bool = Field(False, alias="isRequired", description="Must be present when reported")
    electronic_measure_id: str | None = Field(None, alias="electronicMeasureId")
    metric_type: str | None = Field(None, alias="metricType")
    sub_populations: tuple[SubPopulation, ...] = Field((), alias="subPopulation")

    @property
    def is_proportion(self) -> bool:
        """
        Proportion-style measures report a performance rate per numerator.

        Matches whole metric types ("proportion", "singlePerformanceRate",
        "registryMultiPerformanceRate", ...), never "nonProportion".
        """
        metric = (self.metric_type or "").lower()
        return metric == "proportion" or metric.endswith("performancerate")


class ValidationSettings(_StrictBaseModel):
    """
    @brief
    Runtime settings of a validation pass.

    @details
    `program` selects program-scoped validators. `subpopulation_exclusions`
    overrides the program's default exclusion set for the aggregate
    population-criteria count check; None keeps the program default.
    """

    program: Literal["mips", "cpc"] = Field("mips", description="Submission program")
    subpopulation_exclusions: set[PopulationKey] | None = Field(
        None, description="Keys exempt from aggregate cardinality checking"
    )
    report_unknown_measures: bool = Field(
        False, description="Report present but unresolvable measure ids as findings"
    )
    check_required_templates: bool = Field(
        True, description="Report required template ids absent from the document"
    )


__all__ = [
    "POPULATION_KEYS",
    "PopulationKey",
    "SubPopulation",
    "MeasureConfig",
    "ValidationSettings",
]
