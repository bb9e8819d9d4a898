'''
Configuration management for the STARMAGARCH toolkit.

Settings are grouped into dataclass sections and resolved in layers:

1. Defaults built into the package
2. An optional user configuration file (JSON)
3. Environment variables of the form ``STARMAGARCH_<SECTION>_<OPTION>``
4. Runtime modifications through :func:`set_config`

The user file lives in ``~/.starmagarch/config.json`` unless the
``STARMAGARCH_CONFIG_DIR`` environment variable points elsewhere. It is only
read when present; :func:`save_config` writes it.
'''

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import ConfigurationError

# Set up module-level logger
logger = logging.getLogger("starmagarch.core.config")

CONFIG_ENV_PREFIX = "STARMAGARCH_"
DEFAULT_CONFIG_FILENAME = "config.json"
USER_CONFIG_DIR_ENV = "STARMAGARCH_CONFIG_DIR"
LOG_LEVEL_ENV = "STARMAGARCH_LOG_LEVEL"

VALID_METHODS = ("L-BFGS-B", "BFGS")
VALID_TOPOLOGIES = ("rook", "queen")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigSection(Enum):
    """Enumeration of configuration sections."""
    NUMERICAL = "numerical"
    SIMULATION = "simulation"
    LOGGING = "logging"


@dataclass
class NumericalConfig:
    """
    Numerical settings used by likelihood evaluation and estimation.

    Attributes:
        optimization_method: Default optimizer (L-BFGS-B is bounded, BFGS is not)
        max_iterations: Maximum number of optimizer iterations
        gradient_tolerance: Projected gradient tolerance passed to the optimizer
        function_tolerance: Relative function reduction tolerance (L-BFGS-B only)
        variance_lower_bound: Lower bound for omega under bounded optimization
        nonnegative_garch: Whether alpha and beta are bounded below by zero
        finite_difference_step: Relative step for numerical derivatives
        invalid_likelihood_value: Objective value returned for invalid variance paths
    """
    optimization_method: str = "L-BFGS-B"
    max_iterations: int = 1000
    gradient_tolerance: float = 1e-6
    function_tolerance: float = 1e-10
    variance_lower_bound: float = 1e-8
    nonnegative_garch: bool = True
    finite_difference_step: float = 1e-5
    invalid_likelihood_value: float = 1e10


@dataclass
class SimulationConfig:
    """
    Defaults for the process simulator and neighbourhood builder.

    Attributes:
        burnin: Number of initial time steps discarded by the simulator
        topology: Default neighbour rule ("rook" or "queen")
        torus: Whether grid boundaries wrap around by default
    """
    burnin: int = 500
    topology: str = "rook"
    torus: bool = True


@dataclass
class LoggingConfig:
    """
    Logging settings for the package logger.

    Attributes:
        log_level: Level of the ``starmagarch`` logger
        log_format: Format string for log messages
        log_date_format: Format string for log message timestamps
        console_logging: Whether to log to the console
    """
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"
    console_logging: bool = True


@dataclass
class STARMAGARCHConfig:
    """Complete configuration combining all sections."""
    numerical: NumericalConfig = field(default_factory=NumericalConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class ConfigManager:
    """
    Configuration manager holding the active settings.

    Attributes:
        _config: The current configuration object
        _initialized: Whether file and environment layers have been applied
        _config_file: Path to the user configuration file
    """

    def __init__(self) -> None:
        self._config = STARMAGARCHConfig()
        self._initialized = False
        self._config_file: Optional[Path] = None
        self._modified_keys: set = set()

    def initialize(self) -> None:
        """Load the user file, apply environment overrides and set up logging."""
        if self._initialized:
            return

        env_config_dir = os.environ.get(USER_CONFIG_DIR_ENV)
        config_dir = Path(env_config_dir) if env_config_dir else Path.home() / ".starmagarch"
        self._config_file = config_dir / DEFAULT_CONFIG_FILENAME

        self._load_user_config()
        self._apply_env_overrides()
        self._validate_config()
        self._setup_logging()

        self._initialized = True
        logger.debug("Configuration manager initialized")

    def _load_user_config(self) -> None:
        if self._config_file is None or not self._config_file.exists():
            logger.debug("No user configuration file found")
            return

        try:
            with open(self._config_file, "r") as f:
                user_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load user configuration: {e}")
            return

        for section_name, section_dict in user_config.items():
            if not hasattr(self._config, section_name) or not isinstance(section_dict, dict):
                logger.warning(f"Unknown configuration section: {section_name}")
                continue
            section = getattr(self._config, section_name)
            for option_name, option_value in section_dict.items():
                if not hasattr(section, option_name):
                    logger.warning(f"Unknown configuration option: {section_name}.{option_name}")
                    continue
                try:
                    typed_value = _coerce(getattr(section, option_name), option_value)
                    _validate_option(section_name, option_name, typed_value)
                except (TypeError, ValueError, ConfigurationError) as e:
                    logger.warning(f"Ignoring {section_name}.{option_name} from user configuration: {e}")
                    continue
                setattr(section, option_name, typed_value)
        logger.debug(f"Loaded user configuration from {self._config_file}")

    def _apply_env_overrides(self) -> None:
        for env_var, value in os.environ.items():
            if not env_var.startswith(CONFIG_ENV_PREFIX):
                continue

            # STARMAGARCH_NUMERICAL_MAX_ITERATIONS -> ("numerical", "max_iterations")
            key = env_var[len(CONFIG_ENV_PREFIX):]
            parts = key.lower().split("_", 1)
            if len(parts) != 2:
                continue

            section, option = parts
            try:
                ConfigSection(section)
            except ValueError:
                continue

            section_obj = getattr(self._config, section)
            if not hasattr(section_obj, option):
                continue

            try:
                typed_value = _coerce(getattr(section_obj, option), value)
                _validate_option(section, option, typed_value)
            except (TypeError, ValueError, ConfigurationError) as e:
                logger.warning(f"Ignoring environment override {env_var}: {e}")
                continue
            setattr(section_obj, option, typed_value)
            logger.debug(f"Applied environment override: {env_var}={value}")

        # Shorthand honoured by the package logger at import time
        log_level = os.environ.get(LOG_LEVEL_ENV)
        if log_level:
            level = log_level.strip().upper()
            if level in VALID_LOG_LEVELS:
                self._config.logging.log_level = level
            else:
                logger.warning(f"Ignoring {LOG_LEVEL_ENV}={log_level!r}, expected one of "
                               f"{', '.join(VALID_LOG_LEVELS)}")

    def _setup_logging(self) -> None:
        package_logger = logging.getLogger("starmagarch")

        for handler in package_logger.handlers[:]:
            package_logger.removeHandler(handler)

        package_logger.setLevel(getattr(logging, self._config.logging.log_level))

        if self._config.logging.console_logging:
            formatter = logging.Formatter(
                fmt=self._config.logging.log_format,
                datefmt=self._config.logging.log_date_format
            )
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            package_logger.addHandler(console_handler)

    def _validate_config(self) -> None:
        for section in ConfigSection:
            section_obj = getattr(self._config, section.value)
            for f in fields(section_obj):
                _validate_option(section.value, f.name, getattr(section_obj, f.name))

    def save_user_config(self) -> None:
        """Save the current configuration to the user configuration file."""
        if self._config_file is None:
            raise ConfigurationError("No user configuration file path available")

        self._config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self._config_file, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.debug(f"Saved user configuration to {self._config_file}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert the configuration to a nested dictionary."""
        return asdict(self._config)

    def get(self, section: str, option: str, default: Any = None) -> Any:
        """Get a configuration value, or ``default`` if it does not exist."""
        section_obj = getattr(self._config, section, None)
        if section_obj is None or not hasattr(section_obj, option):
            return default
        return getattr(section_obj, option)

    def set(self, section: str, option: str, value: Any) -> None:
        """
        Set a configuration value.

        Raises:
            ConfigurationError: If the section or option is unknown, or the
                value cannot be converted or violates a constraint
        """
        section_obj = getattr(self._config, section, None)
        if section_obj is None:
            raise ConfigurationError(
                f"Unknown configuration section: {section}",
                section=section,
                value=value,
                details=f"Valid sections are {[s.value for s in ConfigSection]}"
            )
        if not hasattr(section_obj, option):
            raise ConfigurationError(
                f"Unknown configuration option: {section}.{option}",
                section=section,
                option=option,
                value=value
            )

        try:
            typed_value = _coerce(getattr(section_obj, option), value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Failed to set configuration option: {section}.{option}",
                section=section,
                option=option,
                value=value,
                details=str(e)
            ) from e

        _validate_option(section, option, typed_value)
        setattr(section_obj, option, typed_value)
        self._modified_keys.add(f"{section}.{option}")

        if section == ConfigSection.LOGGING.value:
            self._setup_logging()

        logger.debug(f"Set configuration option: {section}.{option}={typed_value}")

    def reset(self, section: Optional[str] = None, option: Optional[str] = None) -> None:
        """
        Reset configuration to default values.

        Args:
            section: Section to reset, or None to reset everything
            option: Option to reset, or None to reset the entire section

        Raises:
            ConfigurationError: If the section or option is not found
        """
        defaults = STARMAGARCHConfig()

        if section is None:
            self._config = defaults
            self._modified_keys.clear()
            self._setup_logging()
            logger.debug("Reset all configuration to defaults")
            return

        if not hasattr(self._config, section):
            raise ConfigurationError(f"Unknown configuration section: {section}", section=section)

        if option is None:
            setattr(self._config, section, getattr(defaults, section))
            self._modified_keys = {k for k in self._modified_keys if not k.startswith(f"{section}.")}
            if section == ConfigSection.LOGGING.value:
                self._setup_logging()
            logger.debug(f"Reset configuration section: {section}")
            return

        section_obj = getattr(self._config, section)
        if not hasattr(section_obj, option):
            raise ConfigurationError(
                f"Unknown configuration option: {section}.{option}",
                section=section,
                option=option
            )

        setattr(section_obj, option, getattr(getattr(defaults, section), option))
        self._modified_keys.discard(f"{section}.{option}")
        if section == ConfigSection.LOGGING.value:
            self._setup_logging()
        logger.debug(f"Reset configuration option: {section}.{option}")

    def is_modified(self, section: str, option: str) -> bool:
        """Whether an option was changed at runtime."""
        return f"{section}.{option}" in self._modified_keys

    def get_section(self, section: str) -> Any:
        """Return the dataclass holding a configuration section."""
        if not hasattr(self._config, section):
            raise ConfigurationError(f"Unknown configuration section: {section}", section=section)
        return getattr(self._config, section)

    def get_config_file(self) -> Optional[Path]:
        return self._config_file


def _coerce(current_value: Any, value: Any) -> Any:
    """Convert ``value`` to the type of ``current_value``."""
    value_type = type(current_value)
    if value_type is bool:
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "1", "y")
        return bool(value)
    if value_type is int:
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(f"Expected an integer, got {value}")
        return int(value)
    if value_type is float:
        return float(value)
    if value_type is str:
        return str(value)
    return value


def _validate_option(section: str, option: str, value: Any) -> None:
    """Check constraints that go beyond the option's type."""
    invalid = None
    if section == "numerical":
        if option == "optimization_method" and value not in VALID_METHODS:
            invalid = f"must be one of {VALID_METHODS}"
        elif option == "max_iterations" and value < 1:
            invalid = "must be at least 1"
        elif option in ("gradient_tolerance", "function_tolerance",
                        "finite_difference_step", "invalid_likelihood_value") and value <= 0:
            invalid = "must be positive"
        elif option == "variance_lower_bound" and value < 0:
            invalid = "must be non-negative"
    elif section == "simulation":
        if option == "burnin" and value < 0:
            invalid = "must be non-negative"
        elif option == "topology" and value not in VALID_TOPOLOGIES:
            invalid = f"must be one of {VALID_TOPOLOGIES}"
    elif section == "logging":
        if option == "log_level" and value not in VALID_LOG_LEVELS:
            invalid = f"must be one of {VALID_LOG_LEVELS}"

    if invalid is not None:
        raise ConfigurationError(
            f"Invalid value for configuration option {section}.{option}",
            section=section,
            option=option,
            value=value,
            details=f"{option} {invalid}"
        )


# Create a singleton instance of the configuration manager
_config_manager = ConfigManager()


def initialize_config() -> None:
    """Initialize the configuration system."""
    _config_manager.initialize()


def get_config(section: str, option: str, default: Any = None) -> Any:
    """Get a configuration value."""
    if not _config_manager._initialized:
        initialize_config()
    return _config_manager.get(section, option, default)


def set_config(section: str, option: str, value: Any) -> None:
    """
    Set a configuration value.

    Raises:
        ConfigurationError: If the section or option is not found or the value is invalid
    """
    if not _config_manager._initialized:
        initialize_config()
    _config_manager.set(section, option, value)


def reset_config(section: Optional[str] = None, option: Optional[str] = None) -> None:
    """Reset configuration to default values."""
    if not _config_manager._initialized:
        initialize_config()
    _config_manager.reset(section, option)


def save_config() -> None:
    """Save the current configuration to the user configuration file."""
    if not _config_manager._initialized:
        initialize_config()
    _config_manager.save_user_config()


def get_config_manager() -> ConfigManager:
    """Get the configuration manager instance."""
    if not _config_manager._initialized:
        initialize_config()
    return _config_manager


def get_numerical_config() -> NumericalConfig:
    """Get the numerical configuration section."""
    return get_config_manager().get_section("numerical")


def get_simulation_config() -> SimulationConfig:
    """Get the simulation configuration section."""
    return get_config_manager().get_section("simulation")
