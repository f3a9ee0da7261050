#!/usr/bin/env python3
"""Catalog data model - value types shared by loader, checker and renderer.

Everything here is immutable. A Catalog is built once per run by
catalog_loader.load_catalog() and then only read.

Ordering rules live here too: Standard and Section sort by definition
order (chronological for standards, CoreLanguage before STL), which is
what the checker report and the site index rely on.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


# ──────────────────────────────────────────────
# Enumerations
# ──────────────────────────────────────────────

class _Ordered(Enum):
    """Enum that sorts by definition order instead of by value."""

    @property
    def order(self) -> int:
        return list(type(self)).index(self)

    def __lt__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self.order < other.order


class Standard(_Ordered):
    CXX98 = "98"
    CXX03 = "03"
    CXX11 = "11"
    CXX14 = "14"
    CXX17 = "17"
    CXX20 = "20"
    CXX23 = "23"
    CXX26 = "26"

    @property
    def label(self) -> str:
        return f"C++{self.value}"

    @property
    def slug(self) -> str:
        return f"cpp{self.value}"

    @classmethod
    def parse(cls, text) -> Optional["Standard"]:
        """Parse '11', 'C++11', 'cpp11', 'c++0x', 'cxx2b'... Returns None if unknown."""
        if text is None:
            return None
        if isinstance(text, int):
            text = f"{text:02d}"
        token = str(text).strip().lower()
        token = re.sub(r"^(c\+\+|cpp|cxx|c)\s*[-_ ]?", "", token)
        token = _STANDARD_ALIASES.get(token, token)
        for member in cls:
            if member.value == token:
                return member
        return None


# Working-draft nicknames used before a standard was published
_STANDARD_ALIASES = {
    "0x": "11",
    "1y": "14",
    "1z": "17",
    "2a": "20",
    "2b": "23",
    "2c": "26",
    "3": "03",
}


class Section(_Ordered):
    CORE_LANGUAGE = "CoreLanguage"
    STL = "STL"

    @property
    def label(self) -> str:
        return "Core Language" if self is Section.CORE_LANGUAGE else "STL"

    @property
    def slug(self) -> str:
        return "core-language" if self is Section.CORE_LANGUAGE else "stl"

    @classmethod
    def parse(cls, text) -> Optional["Section"]:
        if text is None:
            return None
        words = set(re.findall(r"[a-z]+", str(text).lower()))
        if words & {"stl", "library", "lib", "stdlib"}:
            return cls.STL
        if words & {"core", "language", "lang", "corelanguage"}:
            return cls.CORE_LANGUAGE
        return None


class Status(_Ordered):
    ADDITION = "Addition"
    EVOLUTION = "Evolution"
    PROPOSED = "Proposed"
    DEPRECATED = "Deprecated"

    @classmethod
    def parse(cls, text) -> Optional["Status"]:
        if text is None:
            return None
        token = str(text).strip().lower()
        for member in cls:
            if member.value.lower() == token:
                return member
        # "Deprecated in C++17", "Removed" and friends
        if token.startswith("deprecat") or token.startswith("removed"):
            return cls.DEPRECATED
        if token.startswith("propos") or token in ("planned", "future"):
            return cls.PROPOSED
        if token in ("new", "added"):
            return cls.ADDITION
        if token in ("evolved", "improved", "extended"):
            return cls.EVOLUTION
        return None


class DocumentRole(Enum):
    MASTER_INDEX = "MasterIndex"
    DETAIL = "Detail"


# ──────────────────────────────────────────────
# Documents and source locations
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class SourceRef:
    document: str
    line: int

    def __str__(self):
        return f"{self.document}:{self.line}"


@dataclass(frozen=True)
class Document:
    """One raw text blob handed over by a document source."""
    ref: str
    text: str
    role: DocumentRole
    standard: Optional[Standard] = None
    section: Optional[Section] = None


# ──────────────────────────────────────────────
# Entries
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class CatalogEntry:
    standard: Standard
    section: Section
    name: str
    status: Status
    explanation: str
    scenario: str
    location: SourceRef
    category: Optional[str] = None
    snippet: str = ""
    example_link: Optional[str] = None

    @property
    def key(self):
        return (self.standard, self.section, self.name)


@dataclass(frozen=True)
class IndexEntry:
    """A feature as listed in the master index (name only, no detail)."""
    standard: Standard
    section: Section
    name: str
    location: SourceRef
    status: Status = Status.ADDITION
    category: Optional[str] = None

    @property
    def key(self):
        return (self.standard, self.section, self.name)


@dataclass(frozen=True)
class MalformedEntry:
    document: str
    heading: str
    line: int
    reason: str

    def __str__(self):
        return f"{self.document}:{self.line}: '{self.heading}': {self.reason}"

    def to_dict(self):
        return {
            "document": self.document,
            "heading": self.heading,
            "line": self.line,
            "reason": self.reason,
        }


# ──────────────────────────────────────────────
# Catalog
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Catalog:
    entries: tuple = ()
    index_entries: tuple = ()
    malformed: tuple = ()

    def pages(self) -> list:
        """(standard, section) pairs that have detail entries, in canonical order."""
        return sorted({(e.standard, e.section) for e in self.entries})

    def entries_for(self, standard: Standard, section: Section) -> list:
        """Detail entries of one page, in source order."""
        return [e for e in self.entries if e.standard is standard and e.section is section]


def normalize_name(name: str) -> str:
    """Collapse internal whitespace; names are otherwise compared exactly."""
    return " ".join(name.split())
