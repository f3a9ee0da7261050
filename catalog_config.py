#!/usr/bin/env python3
"""Configuration for the catalog tool.

Read from catalog.yaml (or --config PATH) and overridden by CLI flags:

    input_root: .                 # where the Markdown corpus lives (dir or http(s) URL)
    example_root: .               # example files are resolved against this
    output_root: site             # rendered site goes here
    fail_on_findings: false       # any finding aborts the run when true
    master_index: README.md
    workers: 4
    site_title: C++ Feature Catalog
    documents:                    # optional manifest; required for URL roots
      - path: README.md
        role: master
      - path: cpp11/core_language.md
        standard: 11
        section: CoreLanguage

camelCase spellings (inputRoot, failOnFindings, ...) are accepted too.
Relative paths resolve against the config file's directory.
"""

import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

import yaml

from catalog_model import DocumentRole, Section, Standard

DEFAULT_CONFIG_NAME = "catalog.yaml"

KEY_ALIASES = {
    "inputRoot": "input_root",
    "exampleRoot": "example_root",
    "outputRoot": "output_root",
    "failOnFindings": "fail_on_findings",
    "masterIndex": "master_index",
    "siteTitle": "site_title",
}

KNOWN_KEYS = {
    "input_root", "example_root", "output_root", "fail_on_findings",
    "master_index", "workers", "site_title", "documents",
}

ROLE_NAMES = {
    "master": DocumentRole.MASTER_INDEX,
    "masterindex": DocumentRole.MASTER_INDEX,
    "index": DocumentRole.MASTER_INDEX,
    "detail": DocumentRole.DETAIL,
}


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class ManifestItem:
    path: str
    role: DocumentRole = DocumentRole.DETAIL
    standard: Optional[Standard] = None
    section: Optional[Section] = None


@dataclass(frozen=True)
class CatalogConfig:
    input_root: str = "."
    example_root: Optional[str] = None
    output_root: str = "site"
    fail_on_findings: bool = False
    master_index: str = "README.md"
    workers: int = 1
    site_title: str = "C++ Feature Catalog"
    documents: tuple = field(default_factory=tuple)

    @property
    def is_remote(self) -> bool:
        return bool(re.match(r"^https?://", self.input_root))

    @property
    def resolved_example_root(self) -> str:
        if self.example_root is not None:
            return self.example_root
        return "." if self.is_remote else self.input_root

    def with_overrides(self, **overrides) -> "CatalogConfig":
        """Apply CLI overrides; None means 'not given'."""
        given = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **given)


# ──────────────────────────────────────────────
# Parsing
# ──────────────────────────────────────────────

def _parse_manifest(raw) -> tuple:
    if not isinstance(raw, list):
        raise ConfigError("'documents' must be a list")
    items = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict) or not item.get("path"):
            raise ConfigError(f"documents[{i}] needs a 'path'")
        role_name = re.sub(r"[^a-z]", "", str(item.get("role", "detail")).lower())
        role = ROLE_NAMES.get(role_name)
        if role is None:
            raise ConfigError(f"documents[{i}]: unknown role '{item.get('role')}'")
        standard = Standard.parse(item.get("standard"))
        section = Section.parse(item.get("section"))
        if role is DocumentRole.DETAIL and (standard is None or section is None):
            raise ConfigError(f"documents[{i}] ({item['path']}): detail documents need "
                              f"a valid 'standard' and 'section'")
        items.append(ManifestItem(str(item["path"]), role, standard, section))
    return tuple(items)


def _resolve(base: Path, value: str) -> str:
    if re.match(r"^https?://", value):
        return value
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base / path
    return str(path)


def parse_config(data, base_dir=None) -> CatalogConfig:
    """Build a CatalogConfig from an already-parsed YAML mapping."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("config file must contain a mapping")

    values = {}
    for key, value in data.items():
        key = KEY_ALIASES.get(key, key)
        if key not in KNOWN_KEYS:
            raise ConfigError(f"unknown config key '{key}'")
        values[key] = value

    for key in ("input_root", "example_root", "output_root", "master_index", "site_title"):
        if key in values and not isinstance(values[key], str):
            raise ConfigError(f"'{key}' must be a string")
    if "fail_on_findings" in values and not isinstance(values["fail_on_findings"], bool):
        raise ConfigError("'fail_on_findings' must be true or false")
    if "workers" in values:
        if isinstance(values["workers"], bool) or not isinstance(values["workers"], int) \
                or values["workers"] < 1:
            raise ConfigError("'workers' must be a positive integer")
    if "documents" in values:
        values["documents"] = _parse_manifest(values["documents"])

    if base_dir is not None:
        base = Path(base_dir)
        for key in ("input_root", "example_root", "output_root"):
            if key in values:
                values[key] = _resolve(base, values[key])

    return CatalogConfig(**values)


def load_config(path=None) -> CatalogConfig:
    """Load the config file.

    With no explicit path, catalog.yaml in the working directory is used
    when present and defaults otherwise. An explicit path must exist.
    """
    explicit = path is not None
    path = Path(path) if explicit else Path(DEFAULT_CONFIG_NAME)
    if not path.exists():
        if explicit:
            raise ConfigError(f"config file not found: {path}")
        return CatalogConfig()

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: invalid YAML: {e}") from e
    try:
        return parse_config(data, base_dir=path.parent)
    except ConfigError as e:
        raise ConfigError(f"{path}: {e}") from e
