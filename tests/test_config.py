"""Tests for cite config loading, groups and hashing."""

from pathlib import Path

import pytest

from pkgcite.core.config import (
    CitationGroup,
    CiteConfig,
    default_config,
    load_cite_config,
)
from pkgcite.core.errors import ConfigurationError
from pkgcite.core.known_citations import TIDYVERSE_MEMBERS

CONFIG_PATH = Path(__file__).resolve().parent.parent / "configs" / "pkgcite.yaml"


@pytest.fixture(scope="module")
def config():
    return load_cite_config(CONFIG_PATH)


# ── Loading ──────────────────────────────────────────────────────────


def test_load_example_config(config):
    assert config.report_title == "Software used in this analysis"
    assert config.max_workers == 4
    assert config.runtime.name == "Python"
    assert config.ide.distribution == "jupyterlab"


def test_example_group_has_own_citation(config):
    pydata = config.group("pydata")
    assert pydata.members == ["numpy", "pandas", "scipy", "matplotlib"]
    assert pydata.resolved_citation().title == "The PyData stack"


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_cite_config(path) == default_config()


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigurationError, match="Cannot read"):
        load_cite_config(tmp_path / "nope.yaml")


def test_malformed_yaml_raises(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("runtime: [unclosed")
    with pytest.raises(ConfigurationError, match="Malformed YAML"):
        load_cite_config(path)


def test_invalid_values_raise(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("max_workers: 0\n")
    with pytest.raises(ConfigurationError, match="Invalid config"):
        load_cite_config(path)


def test_duplicate_group_names_rejected(tmp_path):
    path = tmp_path / "dupes.yaml"
    path.write_text(
        "groups:\n"
        "  - {name: g, members: [a]}\n"
        "  - {name: g, members: [b]}\n"
    )
    with pytest.raises(ConfigurationError, match="Duplicate citation group names: g"):
        load_cite_config(path)


# ── Groups ───────────────────────────────────────────────────────────


def test_tidyverse_is_built_in():
    tidyverse = default_config().group("tidyverse")
    assert tidyverse is not None
    assert tuple(tidyverse.members) == TIDYVERSE_MEMBERS
    assert {"dplyr", "ggplot2", "tidyr"} <= set(tidyverse.members)
    assert tidyverse.resolved_citation().title == "Welcome to the tidyverse"


def test_configured_group_overrides_built_in():
    cfg = CiteConfig(groups=[CitationGroup(name="tidyverse", members=["dplyr"])])
    names = [g.name for g in cfg.active_groups()]
    assert names.count("tidyverse") == 1
    assert cfg.group("tidyverse").members == ["dplyr"]
    # No citation given: the built-in one still applies
    assert cfg.group("tidyverse").resolved_citation().year == "2019"


def test_default_groups_can_be_disabled():
    cfg = CiteConfig(use_default_groups=False)
    assert cfg.active_groups() == []
    assert cfg.group("tidyverse") is None


def test_known_runtime_citation():
    assert default_config().runtime.resolved_citation().title == "Python 3 Reference Manual"


# ── Hashing ──────────────────────────────────────────────────────────


def test_config_hash_stable():
    assert default_config().config_hash() == default_config().config_hash()
    assert len(default_config().config_hash()) == 64


def test_config_hash_changes_with_content():
    assert CiteConfig(report_title="A").config_hash() != CiteConfig(report_title="B").config_hash()
