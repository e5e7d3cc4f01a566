"""Tests for the interactive profile selector."""

import io
from unittest.mock import patch

import pytest
from rich.console import Console

from avrodesk.ui.config_selector import select_profile
from config.config import ConfigFile, Profile, SchemaRegistryConfig, load_config_file


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=120)


@pytest.fixture
def config_file():
    return ConfigFile(
        default="local",
        profiles={
            "local": Profile("local", schema_registry=SchemaRegistryConfig(url="http://localhost:8081")),
            "prod": Profile("prod", schema_registry=SchemaRegistryConfig(url="https://registry.prod")),
        },
    )


def answers(*values):
    return patch("avrodesk.ui.config_selector.Prompt.ask", side_effect=list(values))


class TestSelectProfile:
    def test_select_by_number(self, config_file, console):
        with answers("2"):
            assert select_profile(config_file, console).key == "prod"

    def test_quit(self, config_file, console):
        with answers("q"):
            assert select_profile(config_file, console) is None

    def test_out_of_range_number(self, config_file, console):
        with answers("9", "1"):
            assert select_profile(config_file, console).key == "local"
        assert "No profile number 9" in console.file.getvalue()

    def test_set_default_is_saved(self, config_file, console, isolated_home):
        with answers("d", "1"), patch(
            "avrodesk.ui.config_selector.IntPrompt.ask", return_value=2
        ):
            assert select_profile(config_file, console).key == "prod"
        assert load_config_file(isolated_home / "config.yaml").default == "prod"

    def test_new_profile(self, config_file, console, isolated_home):
        with answers(
            "n",
            "staging",
            "Staging",
            "https://registry.staging",
            "none",
            "",
            "PLAINTEXT",
            "q",
        ):
            assert select_profile(config_file, console) is None

        saved = load_config_file(isolated_home / "config.yaml")
        assert saved.profiles["staging"].schema_registry.url == "https://registry.staging"
        assert not saved.profiles["staging"].kafka.is_configured

    def test_invalid_profile_is_reported(self, config_file, console):
        with answers("n", "bad", "Bad", "ftp://registry", "none", "", "PLAINTEXT", "q"):
            select_profile(config_file, console)
        assert "bad" not in config_file.profiles
        assert "must start with http://" in console.file.getvalue()
