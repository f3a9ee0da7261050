#!/usr/bin/env python3
"""Tests for catalog_config.py - YAML config, aliases and validation."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
from catalog_config import CatalogConfig, ConfigError, load_config, parse_config
from catalog_model import DocumentRole, Section, Standard


def test_defaults():
    config = parse_config(None)
    assert config == CatalogConfig()
    assert config.fail_on_findings is False
    assert config.resolved_example_root == "."
    assert not config.is_remote


def test_camel_case_aliases():
    config = parse_config({"inputRoot": "docs", "failOnFindings": True, "outputRoot": "out"})
    assert config.input_root == "docs"
    assert config.fail_on_findings is True
    assert config.output_root == "out"
    assert config.resolved_example_root == "docs"


def test_relative_paths_resolve_against_config_dir(tmp_path):
    config = parse_config({"input_root": "corpus", "example_root": "examples"}, base_dir=tmp_path)
    assert config.input_root == str(tmp_path / "corpus")
    assert config.example_root == str(tmp_path / "examples")
    assert config.output_root == "site"


def test_url_root_is_kept_as_is(tmp_path):
    config = parse_config({"input_root": "https://example.org/cpp-features"}, base_dir=tmp_path)
    assert config.input_root == "https://example.org/cpp-features"
    assert config.is_remote
    assert config.resolved_example_root == "."


def test_manifest():
    config = parse_config({"documents": [
        {"path": "README.md", "role": "master"},
        {"path": "cpp03/core.md", "standard": 3, "section": "Core Language"},
        {"path": "cpp23/lib.md", "standard": "C++23", "section": "STL"},
    ]})
    roles = [(d.path, d.role, d.standard, d.section) for d in config.documents]
    assert roles == [
        ("README.md", DocumentRole.MASTER_INDEX, None, None),
        ("cpp03/core.md", DocumentRole.DETAIL, Standard.CXX03, Section.CORE_LANGUAGE),
        ("cpp23/lib.md", DocumentRole.DETAIL, Standard.CXX23, Section.STL),
    ]


@pytest.mark.parametrize("data, message", [
    ({"colour": "blue"}, "unknown config key 'colour'"),
    ({"workers": 0}, "'workers' must be a positive integer"),
    ({"workers": True}, "'workers' must be a positive integer"),
    ({"fail_on_findings": "yes"}, "'fail_on_findings' must be true or false"),
    ({"input_root": 42}, "'input_root' must be a string"),
    ({"documents": {"path": "x"}}, "'documents' must be a list"),
    ({"documents": [{"path": "cpp11/x.md"}]}, "need a valid 'standard' and 'section'"),
    ({"documents": [{"path": "x.md", "role": "sidebar"}]}, "unknown role"),
    (["not", "a", "mapping"], "must contain a mapping"),
])
def test_invalid_config(data, message):
    with pytest.raises(ConfigError, match=message):
        parse_config(data)


def test_with_overrides_ignores_none():
    config = CatalogConfig(input_root="a").with_overrides(input_root=None, output_root="b", workers=3)
    assert (config.input_root, config.output_root, config.workers) == ("a", "b", 3)


def test_load_config_file(tmp_path):
    path = tmp_path / "catalog.yaml"
    path.write_text("input_root: corpus\nfail_on_findings: true\nworkers: 2\n", encoding="utf-8")
    config = load_config(path)
    assert config.input_root == str(tmp_path / "corpus")
    assert config.fail_on_findings is True
    assert config.workers == 2


def test_load_config_missing_default_is_fine(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert load_config() == CatalogConfig()


def test_load_config_missing_explicit_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "nope.yaml")


def test_load_config_bad_yaml(tmp_path):
    path = tmp_path / "catalog.yaml"
    path.write_text("input_root: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid YAML"):
        load_config(path)
