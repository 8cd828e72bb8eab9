# src/qppval/dataloader/config_loader.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from qppval.errors import ConfigError
from qppval.schemas.models import ValidationSettings

logger = logging.getLogger(__name__)


class ConfigLoader:
    """
    @brief
    Loader responsible for reading and validating validation settings.

    @details
    Reads YAML from disk, checks the parsed structure, validates it against
    the strict `ValidationSettings` schema and raises `ConfigError` for every
    failure mode. An optional top-level `validation:` key is unwrapped so the
    settings can live inside a larger application file.
    """

    SECTION = "validation"

    def load(self, path: Path) -> ValidationSettings:
        """
        @brief
        Load and validate settings from a YAML file.

        @params
            path : Path
                Filesystem path to the settings file (.yaml or .yml).

        @returns
            Validated ValidationSettings instance with defaults applied.

        @raises
            ConfigError
                Raised if the file is missing, malformed, or fails schema validation.
        """
        data = self._read_yaml(path)

        # `validation:` section of a larger application file
        if set(data) == {self.SECTION} and isinstance(data[self.SECTION], Mapping):
            data = dict(data[self.SECTION])

        settings = self._validate(data)
        logger.info(
            "Settings loaded from %s (program=%s, exclusions=%s)",
            path,
            settings.program,
            sorted(settings.subpopulation_exclusions)
            if settings.subpopulation_exclusions is not None
            else "default",
        )
        return settings

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        """
        @brief
        Read YAML file into a mapping with strict checks.

        @raises
            ConfigError
                Raised on invalid path type, missing file, wrong extension,
                I/O error, syntax error, empty file, or non-mapping structure.
        """
        if not isinstance(path, Path):
            raise ConfigError(
                message=f"Invalid path type: expected pathlib.Path, got {type(path).__name__}",
                source="ConfigLoader._read_yaml",
                suggested_action="Pass a pathlib.Path object pointing to settings.yaml.",
            )

        if not path.exists():
            raise ConfigError(
                message=f"Settings file not found: {path}",
                source="ConfigLoader._read_yaml",
                suggested_action="Ensure settings.yaml exists and the path is correct.",
            )

        if path.suffix.lower() not in {".yaml", ".yml"}:
            raise ConfigError(
                message=f"Invalid settings file extension: {path.suffix}",
                source="ConfigLoader._read_yaml",
                suggested_action="Use .yaml or .yml extension for settings files.",
            )

        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(
                message=f"YAML parsing failed: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Fix YAML syntax/indentation.",
            ) from e
        except OSError as e:
            raise ConfigError(
                message=f"Unable to read settings file: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Check file permissions and path accessibility.",
            ) from e

        if data is None:
            raise ConfigError(
                message="Settings file is empty.",
                source="ConfigLoader._read_yaml",
                suggested_action="Populate settings.yaml or omit it to use defaults.",
            )

        if not isinstance(data, Mapping):
            raise ConfigError(
                message="Settings root must be a mapping (key: value pairs).",
                source="ConfigLoader._read_yaml",
                suggested_action="Ensure top-level YAML structure uses key: value mappings.",
            )

        return dict(data)

    def _validate(self, data: dict[str, Any]) -> ValidationSettings:
        """Wrap pydantic schema errors in a ConfigError."""
        try:
            return ValidationSettings(**data)
        except ValidationError as e:
            raise ConfigError(
                message=f"Invalid settings structure: {e}",
                source="ConfigLoader._validate",
                suggested_action=(
                    "Check field names and values in settings.yaml. "
                    "Allowed programs: mips, cpc. Extra fields are forbidden."
                ),
            ) from e


__all__ = ["ConfigLoader"]
