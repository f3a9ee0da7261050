"""Tests for catalog_model.py - enum parsing and canonical ordering."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
from catalog_model import Catalog, CatalogEntry, Section, SourceRef, Standard, Status, normalize_name


def test_standards_sort_chronologically_not_numerically():
    """98 comes before 03 even though '03' < '98' as text and 3 < 98 as numbers."""
    shuffled = [Standard.CXX26, Standard.CXX03, Standard.CXX11, Standard.CXX98]
    assert sorted(shuffled) == [Standard.CXX98, Standard.CXX03, Standard.CXX11, Standard.CXX26]


def test_standard_parse_accepts_common_spellings():
    assert Standard.parse("11") is Standard.CXX11
    assert Standard.parse("C++17") is Standard.CXX17
    assert Standard.parse("cpp20") is Standard.CXX20
    assert Standard.parse("c++0x") is Standard.CXX11
    assert Standard.parse("C++2c") is Standard.CXX26
    assert Standard.parse(3) is Standard.CXX03
    assert Standard.parse(98) is Standard.CXX98


def test_standard_parse_unknown_returns_none():
    assert Standard.parse("C++42") is None
    assert Standard.parse(None) is None


def test_section_parse_and_order():
    assert Section.parse("Core Language") is Section.CORE_LANGUAGE
    assert Section.parse("CoreLanguage") is Section.CORE_LANGUAGE
    assert Section.parse("Standard Library") is Section.STL
    assert Section.parse("STL Features") is Section.STL
    assert Section.parse("Contributing") is None
    assert Section.CORE_LANGUAGE < Section.STL


def test_status_parse():
    assert Status.parse("Evolution") is Status.EVOLUTION
    assert Status.parse("deprecated in C++17") is Status.DEPRECATED
    assert Status.parse("proposed") is Status.PROPOSED
    assert Status.parse("Amazing") is None


def test_labels_and_slugs():
    assert Standard.CXX23.label == "C++23"
    assert Standard.CXX23.slug == "cpp23"
    assert Section.CORE_LANGUAGE.slug == "core-language"


def test_catalog_pages_in_canonical_order():
    """pages() orders by standard then section, whatever the entry order."""
    def entry(standard, section, name):
        return CatalogEntry(standard, section, name, Status.ADDITION, "x", "y", SourceRef("d.md", 1))

    catalog = Catalog(entries=(
        entry(Standard.CXX11, Section.STL, "std::array"),
        entry(Standard.CXX98, Section.STL, "std::vector"),
        entry(Standard.CXX11, Section.CORE_LANGUAGE, "auto"),
    ))
    assert catalog.pages() == [
        (Standard.CXX98, Section.STL),
        (Standard.CXX11, Section.CORE_LANGUAGE),
        (Standard.CXX11, Section.STL),
    ]
    assert [e.name for e in catalog.entries_for(Standard.CXX11, Section.STL)] == ["std::array"]


def test_normalize_name_collapses_whitespace():
    assert normalize_name("  lambda   expressions ") == "lambda expressions"
