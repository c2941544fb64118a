"""Model catalog subsystem.

Submodules:
    registry: static catalog of selectable chat models
"""

from .registry import AVAILABLE_MODELS, DEFAULT_MODEL_ID, ModelInfo, get_model, list_models, models_by_provider

__all__ = [
    "AVAILABLE_MODELS",
    "DEFAULT_MODEL_ID",
    "ModelInfo",
    "get_model",
    "list_models",
    "models_by_provider",
]
