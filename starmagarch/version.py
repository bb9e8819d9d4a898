# starmagarch/version.py
"""
STARMAGARCH Version Information

Version information and package metadata, accessible programmatically via
``starmagarch.__version__``.

The package follows semantic versioning (MAJOR.MINOR.PATCH):
- MAJOR: Incompatible API changes
- MINOR: Backwards-compatible functionality additions
- PATCH: Backwards-compatible bug fixes
"""

from typing import Any, Dict, Tuple

# Version components
VERSION_MAJOR = 0
VERSION_MINOR = 1
VERSION_PATCH = 0

# Full version string
__version__ = f"{VERSION_MAJOR}.{VERSION_MINOR}.{VERSION_PATCH}"

# Package metadata
__title__ = "starmagarch"
__description__ = "Spatio-temporal ARMA-GARCH models on regular lattices"
__license__ = "MIT"

# Python version requirements
__python_requires__ = ">=3.10"

# Package dependencies
__dependencies__ = {
    "numpy": ">=1.26.0",
    "scipy": ">=1.11.3",
    "pandas": ">=2.1.1",
    "numba": ">=0.58.0",
    "statsmodels": ">=0.14.0",
}


def get_version_info() -> Dict[str, Any]:
    """
    Get detailed version information.

    Returns:
        Dict containing the version string, its components, the Python
        requirement and the dependency pins.
    """
    return {
        "version": __version__,
        "major": VERSION_MAJOR,
        "minor": VERSION_MINOR,
        "patch": VERSION_PATCH,
        "python_requires": __python_requires__,
        "dependencies": dict(__dependencies__),
        "license": __license__,
    }


def get_version_components() -> Tuple[int, int, int]:
    return (VERSION_MAJOR, VERSION_MINOR, VERSION_PATCH)


def is_compatible_with(version: str) -> bool:
    """
    Check if the current version is compatible with the specified version.

    Args:
        version: Version string to check compatibility with

    Returns:
        True when the major versions agree and the current minor/patch
        version is equal or higher, False otherwise (including for
        malformed version strings).
    """
    try:
        parts = version.split(".")
        major = int(parts[0])
        minor = int(parts[1] if len(parts) > 1 else 0)
        patch = int(parts[2] if len(parts) > 2 else 0)
    except (ValueError, IndexError):
        return False

    if VERSION_MAJOR != major:
        return False
    if VERSION_MINOR < minor:
        return False
    if VERSION_MINOR == minor and VERSION_PATCH < patch:
        return False
    return True
