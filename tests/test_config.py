'''
Tests for configuration management, version helpers and package logging.
'''

import json
import logging

import pytest

import starmagarch
from starmagarch.core.config import (
    ConfigManager, get_config, get_config_manager, get_numerical_config,
    get_simulation_config, reset_config, save_config, set_config
)
from starmagarch.core.exceptions import ConfigurationError
from starmagarch.version import get_version_components, get_version_info, is_compatible_with


@pytest.fixture
def restore_log_level():
    package_logger = logging.getLogger("starmagarch")
    level = package_logger.level
    yield
    package_logger.setLevel(level)


class TestConfigurationManager:

    def test_defaults(self):
        numerical = get_numerical_config()
        assert numerical.optimization_method == "L-BFGS-B"
        assert numerical.finite_difference_step == 1e-5
        assert numerical.invalid_likelihood_value == 1e10
        simulation = get_simulation_config()
        assert simulation.burnin == 500
        assert simulation.topology == "rook"
        assert simulation.torus is True

    def test_set_and_get(self):
        set_config("numerical", "max_iterations", "250")
        assert get_config("numerical", "max_iterations") == 250
        assert get_config_manager().is_modified("numerical", "max_iterations")

        set_config("simulation", "torus", "false")
        assert get_config("simulation", "torus") is False

    def test_get_with_default(self):
        assert get_config("numerical", "no_such_option", default=3) == 3
        assert get_config("no_such_section", "burnin") is None

    @pytest.mark.parametrize("section, option, value", [
        ("numerical", "optimization_method", "Newton"),
        ("numerical", "max_iterations", 0),
        ("numerical", "max_iterations", 2.5),
        ("numerical", "gradient_tolerance", -1.0),
        ("simulation", "burnin", -10),
        ("simulation", "topology", "bishop"),
        ("logging", "log_level", "LOUD"),
    ])
    def test_invalid_values(self, section, option, value):
        with pytest.raises(ConfigurationError):
            set_config(section, option, value)

    def test_unknown_section_and_option(self):
        with pytest.raises(ConfigurationError):
            set_config("plotting", "style", "dark")
        with pytest.raises(ConfigurationError):
            set_config("numerical", "no_such_option", 1)
        with pytest.raises(ConfigurationError):
            reset_config("plotting")

    def test_reset_option_and_section(self):
        set_config("simulation", "burnin", 10)
        set_config("simulation", "topology", "queen")

        reset_config("simulation", "burnin")
        assert get_config("simulation", "burnin") == 500
        assert get_config("simulation", "topology") == "queen"

        reset_config("simulation")
        assert get_config("simulation", "topology") == "rook"
        assert not get_config_manager().is_modified("simulation", "topology")

    def test_config_drives_neighbourhood_defaults(self):
        set_config("simulation", "topology", "queen")
        set_config("simulation", "torus", False)
        W = starmagarch.create_neighbourhood_array((3, 3), sp=2)
        assert (W[1, 4] != 0).sum() == 8
        assert (W[1, 0] != 0).sum() == 3

    def test_save_config_writes_json(self):
        set_config("numerical", "max_iterations", 77)
        save_config()
        path = get_config_manager().get_config_file()
        try:
            with open(path) as f:
                saved = json.load(f)
            assert saved["numerical"]["max_iterations"] == 77
            assert set(saved) == {"numerical", "simulation", "logging"}
        finally:
            path.unlink()

    def test_user_file_and_environment(self, tmp_path, monkeypatch, restore_log_level):
        (tmp_path / "config.json").write_text(json.dumps({
            "numerical": {"max_iterations": 42, "unknown": 1},
            "simulation": {"topology": "queen"},
        }))
        monkeypatch.setenv("STARMAGARCH_CONFIG_DIR", str(tmp_path))
        monkeypatch.setenv("STARMAGARCH_SIMULATION_BURNIN", "25")
        monkeypatch.setenv("STARMAGARCH_LOG_LEVEL", "debug")

        manager = ConfigManager()
        manager.initialize()

        assert manager.get("numerical", "max_iterations") == 42
        assert manager.get("simulation", "topology") == "queen"
        assert manager.get("simulation", "burnin") == 25
        assert manager.get("logging", "log_level") == "DEBUG"
        assert logging.getLogger("starmagarch").level == logging.DEBUG
        assert manager.get_config_file() == tmp_path / "config.json"

    def test_logging_section_updates_logger(self, restore_log_level):
        set_config("logging", "log_level", "WARNING")
        assert logging.getLogger("starmagarch").level == logging.WARNING

    @pytest.mark.parametrize("args", [("logging",), ("logging", "log_level"), ()])
    def test_reset_restores_logger_level(self, restore_log_level, args):
        set_config("logging", "log_level", "ERROR")
        reset_config(*args)
        assert get_config("logging", "log_level") == "INFO"
        assert logging.getLogger("starmagarch").level == logging.INFO

    @pytest.mark.parametrize("variable", ["STARMAGARCH_LOG_LEVEL", "STARMAGARCH_LOGGING_LOG_LEVEL"])
    def test_invalid_log_level_in_environment_is_ignored(self, tmp_path, monkeypatch,
                                                         restore_log_level, caplog, variable):
        monkeypatch.setenv("STARMAGARCH_CONFIG_DIR", str(tmp_path))
        monkeypatch.setenv(variable, "verbose")

        manager = ConfigManager()
        with caplog.at_level(logging.WARNING, logger="starmagarch.core.config"):
            manager.initialize()

        assert manager.get("logging", "log_level") == "INFO"
        assert any("Ignoring" in record.getMessage() for record in caplog.records)

    def test_invalid_numeric_override_is_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STARMAGARCH_CONFIG_DIR", str(tmp_path))
        monkeypatch.setenv("STARMAGARCH_SIMULATION_BURNIN", "-4")
        monkeypatch.setenv("STARMAGARCH_SIMULATION_TOPOLOGY", "queen")

        manager = ConfigManager()
        manager.initialize()

        assert manager.get("simulation", "burnin") == 500
        assert manager.get("simulation", "topology") == "queen"


class TestPackageHelpers:

    def test_set_log_level(self, restore_log_level):
        starmagarch.set_log_level("error")
        assert logging.getLogger("starmagarch").level == logging.ERROR
        starmagarch.set_log_level(logging.DEBUG)
        assert logging.getLogger("starmagarch").level == logging.DEBUG

    def test_version_helpers(self):
        assert starmagarch.get_version() == starmagarch.__version__
        info = get_version_info()
        assert info["version"] == starmagarch.__version__
        assert "numba" in info["dependencies"]
        assert ".".join(map(str, get_version_components())) == starmagarch.__version__

    @pytest.mark.parametrize("version, expected", [
        ("0.1.0", True),
        ("0.0.9", True),
        ("0.2.0", False),
        ("1.0", False),
        ("not-a-version", False),
    ])
    def test_is_compatible_with(self, version, expected):
        assert is_compatible_with(version) is expected
