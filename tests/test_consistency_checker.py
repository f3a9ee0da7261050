#!/usr/bin/env python3
"""Tests for consistency_checker.py - master index vs detail cross-checks."""

import json
import sys
import textwrap
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
import consistency_checker as cc
from catalog_loader import load_catalog
from catalog_model import Document, DocumentRole, Section, Standard

MASTER = """\
## C++23
### STL
- std::expected
- std::print
"""

DETAIL = """\
### std::expected
**Explanation:** Holds either a value or an error.
**Real-World Scenario:** Returning parse errors.

### std::print
**Explanation:** Formatted output.
**Real-World Scenario:** Command-line tools.
"""

EXTRA = """
### std::mdspan
**Explanation:** Multidimensional view.
**Real-World Scenario:** Image processing.
"""


def catalog_of(master_text, detail_text, ref="cpp23/stl.md"):
    docs = [
        Document("README.md", textwrap.dedent(master_text), DocumentRole.MASTER_INDEX),
        Document(ref, textwrap.dedent(detail_text), DocumentRole.DETAIL, Standard.CXX23, Section.STL),
    ]
    return load_catalog(docs)


def test_clean_catalog_has_no_findings():
    report = cc.check_catalog(catalog_of(MASTER, DETAIL))
    assert report.findings == ()
    assert report.is_clean


def test_missing_detail_for_std_expected():
    """Listed under C++23/STL in the master index, absent from the detail document."""
    detail = DETAIL.split("### std::print")[0].replace("### std::expected", "### std::print")
    report = cc.check_catalog(catalog_of(MASTER, detail))
    assert len(report.findings) == 1
    finding = report.findings[0]
    assert finding.kind is cc.FindingKind.MISSING_DETAIL
    assert (finding.standard, finding.section, finding.name) == (Standard.CXX23, Section.STL, "std::expected")
    assert finding.to_dict() == {
        "kind": "MissingDetail",
        "standard": "23",
        "section": "STL",
        "name": "std::expected",
        "locations": ["README.md:3"],
    }


def test_orphan_round_trip():
    """Adding a detail-only entry gives exactly one OrphanedDetail; removing it gives none."""
    report = cc.check_catalog(catalog_of(MASTER, DETAIL + EXTRA))
    assert [(f.kind, f.name) for f in report.findings] == [(cc.FindingKind.ORPHANED_DETAIL, "std::mdspan")]

    report = cc.check_catalog(catalog_of(MASTER, DETAIL))
    assert report.findings == ()


def test_duplicate_in_one_document_is_one_finding_with_both_locations():
    duplicated = DETAIL + "\n" + DETAIL.split("### std::print")[0]
    report = cc.check_catalog(catalog_of(MASTER, duplicated))
    assert len(report.findings) == 1
    finding = report.findings[0]
    assert finding.kind is cc.FindingKind.DUPLICATE_ENTRY
    assert finding.name == "std::expected"
    assert [loc.line for loc in finding.locations] == [1, 9]
    assert all(loc.document == "cpp23/stl.md" for loc in finding.locations)


def test_duplicate_in_master_index():
    report = cc.check_catalog(catalog_of(MASTER + "- std::print\n", DETAIL))
    assert [(f.kind, f.name, len(f.locations)) for f in report.findings] == [
        (cc.FindingKind.DUPLICATE_ENTRY, "std::print", 2),
    ]


def test_findings_ordered_by_standard_section_name():
    """98 before 03 before 11; CoreLanguage before STL; names ascending."""
    docs = [
        Document("README.md", "## C++11\n### STL\n- zeta\n- alpha\n## C++98\n### STL\n- vector\n"
                              "## C++03\n### Core Language\n- value initialization\n"
                              "## C++11\n### Core Language\n- auto\n",
                 DocumentRole.MASTER_INDEX),
    ]
    report = cc.check_catalog(load_catalog(docs))
    assert [(f.standard, f.section, f.name) for f in report.findings] == [
        (Standard.CXX98, Section.STL, "vector"),
        (Standard.CXX03, Section.CORE_LANGUAGE, "value initialization"),
        (Standard.CXX11, Section.CORE_LANGUAGE, "auto"),
        (Standard.CXX11, Section.STL, "alpha"),
        (Standard.CXX11, Section.STL, "zeta"),
    ]


def test_report_is_deterministic_across_runs():
    detail_a = DETAIL + EXTRA
    first = cc.check_catalog(catalog_of(MASTER + "- std::generator\n", detail_a))
    second = cc.check_catalog(catalog_of(MASTER + "- std::generator\n", detail_a))
    assert first == second
    assert json.dumps(first.to_dict()) == json.dumps(second.to_dict())
    assert cc.generate_markdown_report(first, catalog_of(MASTER, DETAIL)) == \
        cc.generate_markdown_report(second, catalog_of(MASTER, DETAIL))


def test_undated_deprecation_is_a_warning_not_a_finding():
    master = "## C++23\n### STL\n- std::aligned_storage (Deprecated)\n"
    detail = ("### std::aligned_storage (Deprecated)\n"
              "**Explanation:** Use alignas instead.\n"
              "**Real-World Scenario:** Old allocators.\n")
    report = cc.check_catalog(catalog_of(master, detail))
    assert report.findings == ()
    assert [w.kind for w in report.warnings] == [cc.UNDATED_DEPRECATION]

    dated = detail.replace("Use alignas instead.", "Deprecated in C++23; use alignas.")
    assert cc.check_catalog(catalog_of(master, dated)).warnings == ()


def test_malformed_entries_make_report_unclean():
    detail = DETAIL + "\n### std::broken\n**Real-World Scenario:** none\n"
    report = cc.check_catalog(catalog_of(MASTER, detail))
    assert report.findings == ()
    assert len(report.malformed) == 1
    assert not report.is_clean


def test_text_and_summary_output():
    report = cc.check_catalog(catalog_of(MASTER, DETAIL + EXTRA))
    text = cc.format_text_report(report)
    assert "OrphanedDetail (1 issues)" in text
    assert "std::mdspan" in text
    assert cc.format_summary(report).startswith("Consistency: 1 findings (0 missing, 1 orphaned, 0 duplicate)")


def test_markdown_report_has_catalog_table():
    catalog = catalog_of(MASTER, DETAIL)
    text = cc.generate_markdown_report(cc.check_catalog(catalog), catalog)
    assert "| C++23 | STL | 2 | 2 |" in text
    assert "## All Clear" in text


def test_findings_do_not_depend_on_document_order():
    """Reversed document order gives the same findings, duplicate locations included."""
    docs = [
        Document("README.md", MASTER + "- std::generator\n", DocumentRole.MASTER_INDEX),
        Document("cpp23/stl.md", DETAIL + EXTRA, DocumentRole.DETAIL, Standard.CXX23, Section.STL),
        Document("cpp23/stl_ranges.md", "### std::print\n**Explanation:** Again.\n"
                 "**Real-World Scenario:** Copy-paste.\n",
                 DocumentRole.DETAIL, Standard.CXX23, Section.STL),
    ]
    forward = cc.check_catalog(load_catalog(docs))
    backward = cc.check_catalog(load_catalog(list(reversed(docs))))

    assert [(f.kind, f.name) for f in forward.findings] == [
        (cc.FindingKind.MISSING_DETAIL, "std::generator"),
        (cc.FindingKind.ORPHANED_DETAIL, "std::mdspan"),
        (cc.FindingKind.DUPLICATE_ENTRY, "std::print"),
    ]
    assert forward.findings == backward.findings
    assert json.dumps(forward.to_dict()) == json.dumps(backward.to_dict())
    assert [str(loc) for loc in forward.findings[2].locations] == ["cpp23/stl.md:5", "cpp23/stl_ranges.md:1"]
