from qppval.schemas.models import (
    POPULATION_KEYS,
    MeasureConfig,
    SubPopulation,
    ValidationSettings,
)

__all__ = ["POPULATION_KEYS", "MeasureConfig", "SubPopulation", "ValidationSettings"]
