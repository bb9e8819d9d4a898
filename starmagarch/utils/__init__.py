"""
STARMAGARCH Utility Functions

Numerical helpers shared by the model components.
"""

import logging

from .differentiation import NumericalDerivatives, gradient_2sided, hessian_2sided

logger = logging.getLogger("starmagarch.utils")

__all__ = [
    "gradient_2sided",
    "hessian_2sided",
    "NumericalDerivatives",
]
