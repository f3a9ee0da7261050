#!/usr/bin/env python3
"""
Catalog Consistency Checker
Cross-references the master index against the per-standard detail documents.

Checks:
    1. Master index entries with no detailed entry        -> MissingDetail
    2. Detailed entries not listed in the master index    -> OrphanedDetail
    3. The same (standard, section, name) twice on a side -> DuplicateEntry
    4. Deprecated entries that never say since when        -> UndatedDeprecation (warning)

Findings never raise. The caller decides whether they are fatal
(catalog_cli --fail-on-findings) or advisory.

Usage:
    from consistency_checker import check_catalog
    report = check_catalog(catalog)
    for finding in report.findings:
        print(finding)
"""

import re
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum

from catalog_model import Status

# ──────────────────────────────────────────────
# Finding / warning kinds
# ──────────────────────────────────────────────


class FindingKind(Enum):
    MISSING_DETAIL = "MissingDetail"
    ORPHANED_DETAIL = "OrphanedDetail"
    DUPLICATE_ENTRY = "DuplicateEntry"


KIND_ORDER = list(FindingKind)

KIND_HINTS = {
    FindingKind.MISSING_DETAIL: "Listed in the master index but has no detailed entry",
    FindingKind.ORPHANED_DETAIL: "Detailed entry is not listed in the master index",
    FindingKind.DUPLICATE_ENTRY: "Same standard, section and name appears more than once",
}

UNDATED_DEPRECATION = "UndatedDeprecation"

MENTIONS_STANDARD_RE = re.compile(r"\bC\+\+\s?(98|03|0x|11|14|17|20|23|26)\b", re.IGNORECASE)


# ──────────────────────────────────────────────
# Finding classes
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Finding:
    kind: FindingKind
    standard: object
    section: object
    name: str
    locations: tuple = ()

    def sort_key(self):
        first = self.locations[0] if self.locations else None
        return (
            self.standard.order,
            self.section.order,
            self.name.casefold(),
            self.name,
            KIND_ORDER.index(self.kind),
            (first.document, first.line) if first else ("", 0),
        )

    def __str__(self):
        locs = ", ".join(str(loc) for loc in self.locations)
        return f"  [{self.kind.value}] {self.standard.label} {self.section.label}: {self.name} ({locs})"

    def to_dict(self):
        return {
            "kind": self.kind.value,
            "standard": self.standard.value,
            "section": self.section.value,
            "name": self.name,
            "locations": [str(loc) for loc in self.locations],
        }


@dataclass(frozen=True)
class CheckWarning:
    kind: str
    message: str
    location: object

    def __str__(self):
        return f"  [{self.kind}] {self.location}: {self.message}"

    def to_dict(self):
        return {"kind": self.kind, "message": self.message, "location": str(self.location)}


@dataclass(frozen=True)
class CheckReport:
    findings: tuple = ()
    warnings: tuple = ()
    malformed: tuple = ()

    @property
    def is_clean(self) -> bool:
        return not self.findings and not self.malformed

    def count(self, kind: FindingKind) -> int:
        return sum(1 for f in self.findings if f.kind is kind)

    def findings_for(self, standard, section) -> list:
        return [f for f in self.findings if f.standard is standard and f.section is section]

    def to_dict(self):
        return {
            "findings": [f.to_dict() for f in self.findings],
            "warnings": [w.to_dict() for w in self.warnings],
            "malformed": [m.to_dict() for m in self.malformed],
            "summary": {
                **{kind.value: self.count(kind) for kind in FindingKind},
                "warnings": len(self.warnings),
                "malformed": len(self.malformed),
                "total": len(self.findings),
            },
        }


# ──────────────────────────────────────────────
# Checks
# ──────────────────────────────────────────────

def _group_by_key(items) -> dict:
    """key -> [locations] ordered by document, then line."""
    grouped = defaultdict(list)
    for item in items:
        grouped[item.key].append(item.location)
    for locations in grouped.values():
        locations.sort(key=lambda loc: (loc.document, loc.line))
    return grouped


def check_duplicates(grouped: dict) -> list:
    """One DuplicateEntry per key seen more than once on one side."""
    findings = []
    for (standard, section, name), locations in grouped.items():
        if len(locations) > 1:
            findings.append(Finding(FindingKind.DUPLICATE_ENTRY, standard, section, name, tuple(locations)))
    return findings


def check_completeness(index_keys: dict, detail_keys: dict) -> list:
    """Set differences in both directions."""
    findings = []
    for key in index_keys.keys() - detail_keys.keys():
        standard, section, name = key
        findings.append(Finding(FindingKind.MISSING_DETAIL, standard, section, name,
                                tuple(index_keys[key])))
    for key in detail_keys.keys() - index_keys.keys():
        standard, section, name = key
        findings.append(Finding(FindingKind.ORPHANED_DETAIL, standard, section, name,
                                tuple(detail_keys[key])))
    return findings


def check_deprecations(entries) -> list:
    """Deprecated entries should say in which standard the deprecation happened."""
    warnings = []
    for entry in entries:
        if entry.status is not Status.DEPRECATED:
            continue
        if MENTIONS_STANDARD_RE.search(entry.explanation):
            continue
        warnings.append(CheckWarning(
            UNDATED_DEPRECATION,
            f"'{entry.name}' is Deprecated but its explanation names no C++ standard",
            entry.location,
        ))
    return warnings


def check_catalog(catalog) -> CheckReport:
    """Run every check. Pure: the catalog is only read."""
    index_keys = _group_by_key(catalog.index_entries)
    detail_keys = _group_by_key(catalog.entries)

    findings = check_completeness(index_keys, detail_keys)
    findings += check_duplicates(index_keys)
    findings += check_duplicates(detail_keys)
    findings.sort(key=Finding.sort_key)

    return CheckReport(
        findings=tuple(findings),
        warnings=tuple(check_deprecations(catalog.entries)),
        malformed=tuple(catalog.malformed),
    )


# ──────────────────────────────────────────────
# Output
# ──────────────────────────────────────────────

def format_text_report(report: CheckReport) -> str:
    """Plain-text report grouped by kind."""
    lines = []
    if report.malformed:
        lines.append(f"MalformedEntry ({len(report.malformed)} issues)")
        lines.append("-" * 50)
        lines.extend(f"  {m}" for m in report.malformed)
        lines.append("")

    by_kind = defaultdict(list)
    for finding in report.findings:
        by_kind[finding.kind].append(finding)
    for kind in KIND_ORDER:
        group = by_kind.get(kind, [])
        if not group:
            continue
        lines.append(f"{kind.value} ({len(group)} issues)")
        lines.append("-" * 50)
        lines.extend(str(f) for f in group)
        lines.append("")

    if report.warnings:
        lines.append(f"Warnings ({len(report.warnings)})")
        lines.append("-" * 50)
        lines.extend(str(w) for w in report.warnings)
        lines.append("")

    if report.is_clean and not report.warnings:
        lines.append("ALL CLEAR -- master index and detail documents agree.")
    lines.append(format_summary(report))
    return "\n".join(lines)


def format_summary(report: CheckReport) -> str:
    """One-line summary."""
    return (
        f"Consistency: {len(report.findings)} findings "
        f"({report.count(FindingKind.MISSING_DETAIL)} missing, "
        f"{report.count(FindingKind.ORPHANED_DETAIL)} orphaned, "
        f"{report.count(FindingKind.DUPLICATE_ENTRY)} duplicate) | "
        f"{len(report.malformed)} malformed | {len(report.warnings)} warnings"
    )


def generate_markdown_report(report: CheckReport, catalog) -> str:
    """Markdown report for committing next to the corpus. No timestamps."""
    out = [
        "# Catalog Consistency Report",
        "",
        f"**Findings:** {len(report.findings)} "
        f"({report.count(FindingKind.MISSING_DETAIL)} missing, "
        f"{report.count(FindingKind.ORPHANED_DETAIL)} orphaned, "
        f"{report.count(FindingKind.DUPLICATE_ENTRY)} duplicate)  ",
        f"**Malformed entries:** {len(report.malformed)}  ",
        f"**Warnings:** {len(report.warnings)}",
        "",
        "---",
        "",
        "## Catalog",
        "",
        "| Standard | Section | Detailed | Indexed |",
        "|----------|---------|----------|---------|",
    ]
    detailed = defaultdict(int)
    indexed = defaultdict(int)
    for e in catalog.entries:
        detailed[(e.standard, e.section)] += 1
    for e in catalog.index_entries:
        indexed[(e.standard, e.section)] += 1
    for standard, section in sorted(detailed.keys() | indexed.keys()):
        out.append(f"| {standard.label} | {section.label} | "
                   f"{detailed[(standard, section)]} | {indexed[(standard, section)]} |")
    out += ["", "---", ""]

    for kind in KIND_ORDER:
        group = [f for f in report.findings if f.kind is kind]
        if not group:
            continue
        out.append(f"## {kind.value} ({len(group)})")
        out.append("")
        out.append(f"_{KIND_HINTS[kind]}._")
        out.append("")
        for f in group:
            locs = ", ".join(f"`{loc}`" for loc in f.locations)
            out.append(f"- **{f.standard.label} {f.section.label}**: {f.name} -- {locs}")
        out.append("")

    if report.malformed:
        out.append(f"## MalformedEntry ({len(report.malformed)})")
        out.append("")
        for m in report.malformed:
            out.append(f"- `{m.document}:{m.line}` {m.heading or '(document)'}: {m.reason}")
        out.append("")

    if report.warnings:
        out.append(f"## Warnings ({len(report.warnings)})")
        out.append("")
        for w in report.warnings:
            out.append(f"- `{w.location}` {w.kind}: {w.message}")
        out.append("")

    if report.is_clean and not report.warnings:
        out += ["## All Clear", "", "Master index and detail documents agree.", ""]

    out += ["---", "", "**Generated by:** `consistency_checker.py`"]
    return "\n".join(out) + "\n"
