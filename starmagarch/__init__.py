# starmagarch/__init__.py
"""
STARMAGARCH - Spatio-temporal ARMA-GARCH models for lattice data

The package provides:
- Construction of row-normalised neighbourhood stacks for rook or queen
  contiguity on (optionally toroidal) regular grids
- Simulation of STARMAGARCH(p, q, r, s) processes
- A conditional Gaussian likelihood with pluggable derivative providers and
  parameter masking
- Maximum likelihood estimation with standard errors, information criteria
  and residual diagnostics

This module is the main entry point of the package.
"""

import logging
import os
from typing import Union

# Set up package-wide logger
logger = logging.getLogger("starmagarch")
logger.setLevel(getattr(logging, os.environ.get("STARMAGARCH_LOG_LEVEL", "INFO").upper(), logging.INFO))
_handler = logging.StreamHandler()
_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
logger.addHandler(_handler)

from .version import __version__, __license__, __title__, __description__  # noqa: E402

from . import core  # noqa: E402
from . import models  # noqa: E402
from . import utils  # noqa: E402

from .core.config import get_config, reset_config, save_config, set_config  # noqa: E402
from .core.exceptions import (  # noqa: E402
    ConvergenceWarning, DataError, DimensionMismatchError, EstimationError,
    InvalidShapeError, ModelSpecificationError, NotFittedError, NumericWarning,
    ParameterError, STARMAGARCHError
)
from .core.parameters import FREE, Fixed, ParameterLayout, ParameterMask, ParameterSet  # noqa: E402
from .core.results import FitResult, SimulationResult  # noqa: E402
from .models import (  # noqa: E402
    STARMAGARCH, DerivativeProvider, STARMAGARCHLikelihood, create_likelihood,
    create_neighbourhood_array, fit_starmagarch, neighbourhood_summary,
    simulate_starmagarch, simulate_starmagarch_paths
)
from .utils import NumericalDerivatives  # noqa: E402


def get_version() -> str:
    """
    Return the version of the package.

    Returns:
        str: Version string in format MAJOR.MINOR.PATCH
    """
    return __version__


def set_log_level(level: Union[str, int]) -> None:
    """
    Set the logging level of the package logger.

    Args:
        level: Logging level, either as string ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
              or as an integer constant from the logging module
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    logger.setLevel(level)
    logger.debug(f"Log level set to {logging.getLevelName(level)}")


__all__ = [
    # Neighbourhoods
    "create_neighbourhood_array",
    "neighbourhood_summary",
    # Simulation
    "simulate_starmagarch",
    "simulate_starmagarch_paths",
    # Likelihood and estimation
    "create_likelihood",
    "fit_starmagarch",
    "STARMAGARCHLikelihood",
    "DerivativeProvider",
    "NumericalDerivatives",
    "STARMAGARCH",
    # Parameters
    "ParameterSet",
    "ParameterMask",
    "ParameterLayout",
    "FREE",
    "Fixed",
    # Results
    "FitResult",
    "SimulationResult",
    # Errors and warnings
    "STARMAGARCHError",
    "ParameterError",
    "InvalidShapeError",
    "DimensionMismatchError",
    "DataError",
    "ModelSpecificationError",
    "EstimationError",
    "NotFittedError",
    "ConvergenceWarning",
    "NumericWarning",
    # Configuration
    "get_config",
    "set_config",
    "reset_config",
    "save_config",
    # Package helpers
    "get_version",
    "set_log_level",
    "__version__",
]
