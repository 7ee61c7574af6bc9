"""
Configuration management for varlayer.

Printer and print presets are plain YAML files validated by pydantic models.
A slicing job file combines a printer, a print (object) preset, the object
height and the user layer height ranges. Presets may be given inline in the
job file or referenced by name from a preset directory.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from varlayer.core.exceptions import ConfigurationError

_PERCENT_RE = re.compile(r"^\s*([0-9]*\.?[0-9]+)\s*%\s*$")


def _get_at(values: list[float], extruder_id: int) -> float:
    """Value for a 1-based extruder id, falling back to the first extruder."""
    index = extruder_id - 1
    if 0 <= index < len(values):
        return values[index]
    return values[0]


class FloatOrPercent(BaseModel):
    """A length given either in millimetres or as a percentage of another length."""

    value: float
    percent: bool = False

    def get_abs_value(self, ratio_over: float) -> float:
        """Resolve to millimetres, percentages being relative to *ratio_over*."""
        if self.percent:
            return ratio_over * self.value / 100.0
        return self.value

    def __str__(self) -> str:
        return f"{self.value:g}%" if self.percent else f"{self.value:g}"


class PrinterConfig(BaseModel):
    """Machine configuration: one entry per extruder in each list."""

    name: str = "default"
    nozzle_diameter: list[float] = Field(default_factory=lambda: [0.4], min_length=1)
    # 0 means "derive from the nozzle diameter"
    min_layer_height: list[float] = Field(default_factory=lambda: [0.07], min_length=1)
    max_layer_height: list[float] = Field(default_factory=lambda: [0.0], min_length=1)

    @field_validator("nozzle_diameter")
    @classmethod
    def _positive_nozzles(cls, values: list[float]) -> list[float]:
        if any(v <= 0 for v in values):
            raise ValueError("nozzle diameters must be positive")
        return values

    @field_validator("min_layer_height", "max_layer_height")
    @classmethod
    def _non_negative_overrides(cls, values: list[float]) -> list[float]:
        if any(v < 0 for v in values):
            raise ValueError("layer height limits must not be negative")
        return values

    def nozzle_diameter_at(self, extruder_id: int) -> float:
        return _get_at(self.nozzle_diameter, extruder_id)

    def min_layer_height_at(self, extruder_id: int) -> float:
        return _get_at(self.min_layer_height, extruder_id)

    def max_layer_height_at(self, extruder_id: int) -> float:
        return _get_at(self.max_layer_height, extruder_id)


class PrintObjectConfig(BaseModel):
    """Per-object print settings that influence layering."""

    name: str = "default"
    layer_height: float = Field(0.3, gt=0)
    first_layer_height: FloatOrPercent = Field(
        default_factory=lambda: FloatOrPercent(value=0.35)
    )
    raft_layers: int = Field(0, ge=0)
    support_material: bool = False
    support_material_extruder: int = Field(1, ge=0)
    support_material_interface_extruder: int = Field(1, ge=0)
    support_material_contact_distance: float = Field(0.2, ge=0)

    @field_validator("first_layer_height", mode="before")
    @classmethod
    def _parse_first_layer_height(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return {"value": float(value), "percent": False}
        if isinstance(value, str):
            match = _PERCENT_RE.match(value)
            if match:
                return {"value": float(match.group(1)), "percent": True}
            try:
                return {"value": float(value), "percent": False}
            except ValueError:
                raise ValueError(f"invalid first layer height: {value!r}") from None
        return value

    @property
    def soluble_interface(self) -> bool:
        return self.support_material_contact_distance == 0.0


class LayerHeightRangeConfig(BaseModel):
    """User layer height override for a Z interval of the object."""

    z_low: float = Field(ge=0)
    z_high: float
    height: float = Field(gt=0)

    @model_validator(mode="after")
    def _ordered(self) -> "LayerHeightRangeConfig":
        if self.z_high < self.z_low:
            raise ValueError("z_high must not be below z_low")
        return self


class SlicingJobConfig(BaseModel):
    """Everything needed to compute the layering of one object."""

    printer: PrinterConfig = Field(default_factory=PrinterConfig)
    print_config: PrintObjectConfig = Field(
        default_factory=PrintObjectConfig, alias="print"
    )
    object_height: float = Field(gt=0)
    extruders: list[int] = Field(default_factory=list)
    ranges: list[LayerHeightRangeConfig] = Field(default_factory=list)
    cusp_value: float = Field(0.2, gt=0)

    model_config = {"populate_by_name": True}


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read config file: {path}", details={"error": str(e)}
        ) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse config file: {path}", details={"error": str(e)}
        ) from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file is not a mapping: {path}")
    return data


def load_job_config(
    path: str | Path, presets: Optional["ConfigManager"] = None
) -> SlicingJobConfig:
    """
    Load a slicing job from a YAML file.

    ``printer`` and ``print`` may be mappings or preset names; names are
    resolved through *presets*.

    Raises:
        ConfigurationError: If the file is missing, malformed or invalid,
            or references a preset that cannot be resolved.
    """
    path = Path(path)
    data = _read_yaml(path)

    for key, getter in (("printer", "get_printer"), ("print", "get_print")):
        ref = data.get(key)
        if isinstance(ref, str):
            if presets is None:
                raise ConfigurationError(
                    f"Job references {key} preset '{ref}' but no preset directory was given",
                    details={"job": str(path)},
                )
            data[key] = getattr(presets, getter)(ref).model_dump()

    try:
        return SlicingJobConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid slicing job: {path}", details={"error": str(e)}
        ) from e


@dataclass
class ConfigManager:
    """
    Preset manager for printer and print configurations.

    Expects ``printers/*.yaml`` files with a top-level ``printer`` mapping
    and ``prints/*.yaml`` files with a top-level ``print`` mapping.

    Example:
        >>> presets = ConfigManager(config_dir=Path("presets"))
        >>> printer = presets.get_printer("mk3")
        >>> print_cfg = presets.get_print("0.20mm_quality")
    """

    config_dir: Path
    _printers: dict[str, PrinterConfig] = field(default_factory=dict, init=False)
    _prints: dict[str, PrintObjectConfig] = field(default_factory=dict, init=False)
    _loaded: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self.config_dir = Path(self.config_dir)
        if not self.config_dir.exists():
            raise ConfigurationError(
                f"Configuration directory not found: {self.config_dir}"
            )

    def load(self) -> None:
        """Load all presets from disk."""
        self._printers = self._load_section("printers", "printer", PrinterConfig)
        self._prints = self._load_section("prints", "print", PrintObjectConfig)
        self._loaded = True

    def _load_section(self, subdir: str, key: str, model: type[BaseModel]) -> dict:
        presets: dict[str, Any] = {}
        section_dir = self.config_dir / subdir
        if not section_dir.exists():
            return presets

        for config_file in sorted(section_dir.glob("*.yaml")):
            data = _read_yaml(config_file)
            if key not in data:
                continue
            section = dict(data[key] or {})
            section.setdefault("name", config_file.stem)
            try:
                presets[config_file.stem] = model.model_validate(section)
            except ValidationError as e:
                raise ConfigurationError(
                    f"Failed to load {key} config: {config_file}",
                    details={"error": str(e)},
                ) from e
        return presets

    def get_printer(self, name: str) -> PrinterConfig:
        """
        Get printer preset by name.

        Raises:
            ConfigurationError: If the preset does not exist.
        """
        if not self._loaded:
            self.load()
        if name not in self._printers:
            raise ConfigurationError(
                f"Printer configuration not found: {name}",
                details={"available": list(self._printers)},
            )
        return self._printers[name]

    def get_print(self, name: str) -> PrintObjectConfig:
        """
        Get print preset by name.

        Raises:
            ConfigurationError: If the preset does not exist.
        """
        if not self._loaded:
            self.load()
        if name not in self._prints:
            raise ConfigurationError(
                f"Print configuration not found: {name}",
                details={"available": list(self._prints)},
            )
        return self._prints[name]

    def list_printers(self) -> list[str]:
        """List available printer presets."""
        if not self._loaded:
            self.load()
        return list(self._printers)

    def list_prints(self) -> list[str]:
        """List available print presets."""
        if not self._loaded:
            self.load()
        return list(self._prints)
