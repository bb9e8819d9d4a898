# starmagarch/models/__init__.py
"""
STARMAGARCH Models Module

Neighbourhood construction, simulation, likelihood evaluation and
estimation of spatio-temporal ARMA-GARCH models.
"""

import logging

# Set up module-level logger
logger = logging.getLogger("starmagarch.models")

from .neighbourhood import create_neighbourhood_array, lattice_distances, neighbourhood_summary  # noqa: E402
from .simulation import simulate_starmagarch, simulate_starmagarch_paths  # noqa: E402
from .likelihood import DerivativeProvider, STARMAGARCHLikelihood, create_likelihood  # noqa: E402
from .estimation import fit_starmagarch, standard_errors  # noqa: E402
from .starmagarch import STARMAGARCH  # noqa: E402

__all__ = [
    "create_neighbourhood_array",
    "lattice_distances",
    "neighbourhood_summary",
    "simulate_starmagarch",
    "simulate_starmagarch_paths",
    "DerivativeProvider",
    "STARMAGARCHLikelihood",
    "create_likelihood",
    "fit_starmagarch",
    "standard_errors",
    "STARMAGARCH",
]
