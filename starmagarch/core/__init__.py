# starmagarch/core/__init__.py
"""
STARMAGARCH Core Module

Parameter containers and masking, result containers, validation, the
exception hierarchy and configuration shared by the model components.
"""

from .exceptions import (
    STARMAGARCHError, ParameterError, DimensionError, InvalidShapeError,
    DimensionMismatchError, DataError, ModelSpecificationError, EstimationError,
    SimulationError, NotFittedError, ConfigurationError,
    STARMAGARCHWarning, ConvergenceWarning, NumericWarning
)
from .parameters import FREE, Fixed, Free, ParameterLayout, ParameterMask, ParameterSet
from .results import FitResult, SimulationResult
from .base import ModelBase
from .config import (
    get_config, set_config, reset_config, save_config, get_config_manager,
    get_numerical_config, get_simulation_config
)

__all__ = [
    # Exceptions and warnings
    "STARMAGARCHError",
    "ParameterError",
    "DimensionError",
    "InvalidShapeError",
    "DimensionMismatchError",
    "DataError",
    "ModelSpecificationError",
    "EstimationError",
    "SimulationError",
    "NotFittedError",
    "ConfigurationError",
    "STARMAGARCHWarning",
    "ConvergenceWarning",
    "NumericWarning",
    # Parameters
    "FREE",
    "Fixed",
    "Free",
    "ParameterLayout",
    "ParameterMask",
    "ParameterSet",
    # Results
    "FitResult",
    "SimulationResult",
    # Base classes
    "ModelBase",
    # Configuration
    "get_config",
    "set_config",
    "reset_config",
    "save_config",
    "get_config_manager",
    "get_numerical_config",
    "get_simulation_config",
]
