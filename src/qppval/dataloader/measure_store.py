# src/qppval/dataloader/measure_store.py
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from qppval.errors import ConfigError
from qppval.schemas.models import MeasureConfig

logger = logging.getLogger(__name__)


class MeasureConfigStore:
    """
    @brief
    Read-only lookup from measure identifier to its MeasureConfig.

    @details
    Built once from already-decoded measure records and then shared by every
    validator. Declared record order is preserved for `all_configs()`.
    Nothing in the store can be mutated after construction.
    """

    def __init__(self, configs: Iterable[MeasureConfig]) -> None:
        ordered: list[MeasureConfig] = []
        by_id: dict[str, MeasureConfig] = {}

        # (1) Index configurations by measure id, rejecting duplicates
        for config in configs:
            if not isinstance(config, MeasureConfig):
                raise ConfigError(
                    message=f"Expected MeasureConfig, got {type(config).__name__}",
                    source="MeasureConfigStore.__init__",
                    suggested_action="Build the store with MeasureConfigStore.from_records().",
                )
            if config.measure_id in by_id:
                raise ConfigError(
                    message=f"Duplicate measureId in measure configuration: {config.measure_id}",
                    source="MeasureConfigStore.__init__",
                    suggested_action="Each measure configuration must have a unique measureId.",
                )
            by_id[config.measure_id] = config
            ordered.append(config)

        # (2) Freeze both views
        self._configs: tuple[MeasureConfig, ...] = tuple(ordered)
        self._by_id = MappingProxyType(by_id)
        logger.debug("MeasureConfigStore: %d measure configuration(s) indexed.", len(ordered))

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> MeasureConfigStore:
        """
        @brief
        Validate raw measure records and build a store.

        @details
        Each mapping is validated through the MeasureConfig schema; the first
        malformed record aborts construction with a ConfigError naming its
        position.

        @raises
            ConfigError
                Raised on schema violations or duplicate measure ids.
        """
        configs: list[MeasureConfig] = []
        for position, record in enumerate(records):
            try:
                configs.append(MeasureConfig.model_validate(record))
            except ValidationError as e:
                raise ConfigError(
                    message=f"Invalid measure configuration at index {position}: {e}",
                    source="MeasureConfigStore.from_records",
                    suggested_action="Check measureId and subPopulation fields of the record.",
                ) from e
        return cls(configs)

    def lookup(self, measure_id: str | None) -> MeasureConfig | None:
        if measure_id is None:
            return None
        return self._by_id.get(measure_id)

    def all_configs(self) -> tuple[MeasureConfig, ...]:
        return self._configs

    def by_category(self, category: str, required_only: bool = False) -> list[MeasureConfig]:
        """Configurations of one category in declared order, optionally only required ones."""
        return [
            c
            for c in self._configs
            if c.category == category and (c.required or not required_only)
        ]

    def __contains__(self, measure_id: object) -> bool:
        return measure_id in self._by_id

    def __len__(self) -> int:
        return len(self._configs)


__all__ = ["MeasureConfigStore"]
