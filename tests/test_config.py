"""Tests for ModuleConfig and SuiteSettings."""

import pytest

from ditestkit.config import CONFIG_ENV_VAR, ConfigurationError, ModuleConfig, SuiteSettings


class TestModuleConfig:
    """Tests for ModuleConfig."""

    def test_defaults(self):
        config = ModuleConfig(temp_dir="tmp")

        assert config.config_files == []
        assert config.app_dir is None
        assert config.log_dir is None
        assert config.debug_mode is None
        assert config.remove_default_extensions is False
        assert config.new_container_for_each_test is False
        assert config.validate() == []

    def test_temp_dir_required(self):
        assert "temp_dir is required" in ModuleConfig().validate()
        assert "temp_dir is required" in ModuleConfig(temp_dir="  ").validate()

    def test_require_valid_raises(self):
        with pytest.raises(ConfigurationError, match="temp_dir is required"):
            ModuleConfig().require_valid()

    def test_rejects_bad_types(self):
        config = ModuleConfig(
            temp_dir="tmp",
            config_files="config.yaml",
            app_dir=3,
            debug_mode="yes",
            new_container_for_each_test=1,
        )

        errors = config.validate()

        assert "config_files must be a list of file paths" in errors
        assert "app_dir must be a string, got int" in errors
        assert "debug_mode must be true, false or unset" in errors
        assert "new_container_for_each_test must be true or false" in errors

    def test_from_dict_accepts_camel_case(self):
        config = ModuleConfig.from_dict({
            "tempDir": "tmp",
            "configFiles": ["a.yaml"],
            "newContainerForEachTest": True,
            "removeDefaultExtensions": True,
        })

        assert config.temp_dir == "tmp"
        assert config.config_files == ["a.yaml"]
        assert config.new_container_for_each_test is True
        assert config.remove_default_extensions is True

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ConfigurationError, match="Unknown module option"):
            ModuleConfig.from_dict({"temp_dir": "tmp", "colour": "blue"})

    def test_from_dict_null_config_files(self):
        assert ModuleConfig.from_dict({"temp_dir": "tmp", "config_files": None}).config_files == []

    def test_from_file(self, write_file):
        path = write_file("ditestkit.yaml", """
            temp_dir: tests/_temp
            config_files:
                - tests/config.yaml
            debug_mode: false
        """)

        config = ModuleConfig.from_file(path)

        assert config.temp_dir == "tests/_temp"
        assert config.config_files == ["tests/config.yaml"]
        assert config.debug_mode is False

    def test_from_file_missing(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            ModuleConfig.from_file(tmp_path / "nope.yaml")

    def test_from_file_not_a_mapping(self, write_file):
        path = write_file("ditestkit.yaml", "- tmp\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            ModuleConfig.from_file(path)

    def test_from_env(self, monkeypatch, write_file):
        path = write_file("ditestkit.yaml", "temp_dir: tmp\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

        assert ModuleConfig.from_env().temp_dir == "tmp"

    def test_from_env_unset(self):
        assert ModuleConfig.from_env() is None


def test_suite_settings_from_dict():
    assert SuiteSettings.from_dict({"path": "/p"}).path == "/p"
    assert SuiteSettings.from_dict({}).path is None
