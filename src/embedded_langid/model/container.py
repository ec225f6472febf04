"""
Self-describing model container.

A model file is a zip archive holding ``task_spec.yaml`` plus the binary
parts named by it. The task spec has two sections::

    parameters:          # resolved configuration view
      reliability_thresh: 0.5
      features: [...]
    inputs:              # named inputs and the archive members backing them
      language-identifier-network: [network.npz]
      language-name-id-map: [languages.json]
"""

from __future__ import annotations

import io
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Dict, List, Mapping, Union

import yaml

from .byte_source import ModelBuffer

TASK_SPEC_NAME = "task_spec.yaml"

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}
_ARCHIVE_ERRORS = (
    zipfile.BadZipFile,
    zipfile.LargeZipFile,
    zlib.error,
    NotImplementedError,
    OSError,
    EOFError,
)


class ModelLoadError(RuntimeError):
    """Raised when model bytes cannot be parsed or fail validation."""


@dataclass(slots=True)
class TaskSpec:
    parameters: Dict[str, Any] = field(default_factory=dict)
    inputs: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Any) -> "TaskSpec":
        if not isinstance(data, Mapping):
            raise ModelLoadError("Task spec must be a mapping.")
        parameters = data.get("parameters") or {}
        inputs = data.get("inputs") or {}
        if not isinstance(parameters, Mapping) or not isinstance(inputs, Mapping):
            raise ModelLoadError("Task spec parameters and inputs must be mappings.")
        parsed_inputs: Dict[str, List[str]] = {}
        for name, parts in inputs.items():
            if isinstance(parts, str):
                parts = [parts]
            if not isinstance(parts, list) or not all(isinstance(p, str) for p in parts):
                raise ModelLoadError(f"Input {name} must list its parts as strings.")
            parsed_inputs[str(name)] = list(parts)
        return cls(parameters={str(k): v for k, v in parameters.items()}, inputs=parsed_inputs)

    def to_dict(self) -> dict[str, Any]:
        return {"parameters": dict(self.parameters), "inputs": dict(self.inputs)}

    def has(self, name: str) -> bool:
        return name in self.parameters

    def get(self, name: str, default: Any) -> Any:
        """Return parameter ``name`` converted to the type of ``default``."""
        if name not in self.parameters:
            return default
        value = self.parameters[name]
        try:
            if isinstance(default, bool):
                return _to_bool(value)
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
            if isinstance(default, str):
                return str(value)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ModelLoadError(f"Parameter {name}={value!r} is malformed.") from exc
        return value

    def single_part(self, input_name: str) -> str:
        """Name of the one archive member backing ``input_name``."""
        parts = self.inputs.get(input_name)
        if parts is None:
            raise ModelLoadError(f"No input file name for TaskInput {input_name}")
        if len(parts) != 1:
            raise ModelLoadError(f"TaskInput {input_name} has {len(parts)} parts")
        return parts[0]


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"Not a boolean: {value!r}")


class ModelContainer:
    """Named byte-blob lookup over a model archive."""

    def __init__(self, buffer: ModelBuffer) -> None:
        try:
            self._archive = zipfile.ZipFile(io.BytesIO(buffer), "r")
            raw_spec = self._archive.read(TASK_SPEC_NAME)
            parsed = yaml.safe_load(raw_spec.decode("utf-8"))
        except KeyError as exc:
            raise ModelLoadError(f"Model archive is missing {TASK_SPEC_NAME}") from exc
        except _ARCHIVE_ERRORS as exc:
            raise ModelLoadError(f"Invalid model archive: {exc}") from exc
        except TypeError as exc:
            raise ModelLoadError(f"Model bytes must be a buffer: {exc}") from exc
        except (UnicodeDecodeError, yaml.YAMLError) as exc:
            raise ModelLoadError(f"Unable to parse {TASK_SPEC_NAME}: {exc}") from exc
        try:
            self.task_spec = TaskSpec.from_mapping(parsed)
        except ModelLoadError:
            self._archive.close()
            raise

    def read_part(self, name: str) -> bytes:
        try:
            return self._archive.read(name)
        except KeyError as exc:
            raise ModelLoadError(f"Unable to get bytes for part {name}") from exc
        except _ARCHIVE_ERRORS as exc:
            raise ModelLoadError(f"Corrupt archive member {name}: {exc}") from exc

    def read_input(self, input_name: str) -> bytes:
        return self.read_part(self.task_spec.single_part(input_name))

    def close(self) -> None:
        self._archive.close()

    def __enter__(self) -> "ModelContainer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def write_container(
    target: Union[str, Path, IO[bytes]], task_spec: TaskSpec, parts: Mapping[str, bytes]
) -> None:
    """Write a model archive with ``task_spec`` and the given parts."""
    with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_STORED) as zf:
        zf.writestr(TASK_SPEC_NAME, yaml.safe_dump(task_spec.to_dict(), sort_keys=False))
        for name, data in parts.items():
            zf.writestr(name, data)
