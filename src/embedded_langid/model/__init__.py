from __future__ import annotations

from .byte_source import MappedBytes, open_byte_source
from .container import ModelContainer, ModelLoadError, TaskSpec
from .store import LoadedModel, LoadResult, build_model_bytes, load_model, save_model

__all__ = [
    "LoadResult",
    "LoadedModel",
    "MappedBytes",
    "ModelContainer",
    "ModelLoadError",
    "TaskSpec",
    "build_model_bytes",
    "load_model",
    "open_byte_source",
    "save_model",
]
