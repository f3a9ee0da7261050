#!/usr/bin/env python3
"""Corpus Loader - turns Markdown documents into a structured Catalog.

Two document shapes are understood:

Detail documents (one per standard and section):

    ## Type Deduction                    <- optional category
    ### 1. auto                          <- one entry per heading
    **Status:** Evolution                <- optional, default Addition
    **Explanation:** ...                 <- required
    **Real-World Scenario:** ...         <- required
    **Snippet:**                         <- optional fenced code block
    **Example:** [auto.cpp](examples/cpp11/auto.cpp)

Master index (one document for the whole corpus):

    ## C++11
    ### Core Language
    #### Type Deduction                  <- optional category
    - auto
    - [lambda expressions](cpp11/core.md#lambda) (Evolution)

Broken blocks never stop a load. Every problem becomes a MalformedEntry
diagnostic and parsing carries on with the next block.

Usage:
    from catalog_loader import load_catalog
    catalog = load_catalog(documents, workers=4)
"""

import logging
import posixpath
import re
from concurrent.futures import ThreadPoolExecutor, as_completed

from catalog_model import (
    Catalog,
    CatalogEntry,
    DocumentRole,
    IndexEntry,
    MalformedEntry,
    Section,
    SourceRef,
    Standard,
    Status,
    normalize_name,
)

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Patterns
# ──────────────────────────────────────────────

HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
FENCE_RE = re.compile(r"^\s*(```|~~~)")
# **Label:** text  |  **Label**: text  |  - **Label:** text
BOLD_LABEL_RE = re.compile(r"^\s*(?:[-*+]\s+)?\*\*(?P<label>[^*]+?)\s*:?\s*\*\*\s*:?\s*(?P<rest>.*)$")
NUMBERING_RE = re.compile(r"^\d+(?:\.\d+)*[.)]?\s+")
STATUS_TAG = (
    r"(?<!\[)[\(\[]\s*(?P<tag>addition|added|new|evolution|evolved|proposed|planned|"
    r"deprecated[^\)\]]*|removed[^\)\]]*)\s*[\)\]](?!\])"
)
# (Deprecated) or [Proposed] at either end of a name; [[deprecated]] is an attribute, not a tag
LEADING_STATUS_RE = re.compile(r"^\s*" + STATUS_TAG, re.IGNORECASE)
TRAILING_STATUS_RE = re.compile(r"\s*" + STATUS_TAG + r"\s*$", re.IGNORECASE)
LINK_RE = re.compile(r"\[(?P<text>[^\]]*)\]\((?P<target>[^)\s]*)(?:\s+\"[^\"]*\")?\)")
CODE_SPAN_RE = re.compile(r"(?P<ticks>`+)(?P<code>.+?)(?P=ticks)")
PLACEHOLDER_RE = re.compile(r"\x00(\d+)\x00")
LIST_ITEM_RE = re.compile(r"^(?:[-*+]|\d+[.)])\s+(?P<text>.+)$")
CHECKBOX_RE = re.compile(r"^\[[ xX]\]\s+")
STANDARD_IN_TEXT_RE = re.compile(r"\b(?:c\+\+|cpp|cxx)\s*[-_ ]?(98|03|11|14|17|20|23|26|0x|1y|1z|2a|2b|2c)\b",
                                 re.IGNORECASE)
URL_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
ITEM_SEPARATORS = (" - ", " – ", " — ")

# Field label aliases -> canonical field
FIELD_LABELS = {
    "explanation": "explanation",
    "description": "explanation",
    "real-world scenario": "scenario",
    "real world scenario": "scenario",
    "real-world use case": "scenario",
    "scenario": "scenario",
    "use case": "scenario",
    "snippet": "snippet",
    "code": "snippet",
    "code snippet": "snippet",
    "example": "example",
    "example file": "example",
    "example link": "example",
    "full example": "example",
    "link": "example",
    "status": "status",
    "category": "category",
}

FIELD_TITLES = {
    "explanation": "Explanation",
    "scenario": "Real-World Scenario",
}

REQUIRED_FIELDS = ("explanation", "scenario")


# ──────────────────────────────────────────────
# Low-level helpers
# ──────────────────────────────────────────────

def scan_lines(text: str) -> list:
    """Split text into (line_no, line, heading, in_code) tuples.

    heading is (level, title) for Markdown headings outside fenced code,
    else None. in_code is True for fence delimiters and fenced content.
    A fence closes only on the marker that opened it.
    """
    out = []
    in_fence = False
    fence_marker = None
    for line_no, line in enumerate(text.splitlines(), 1):
        fence = FENCE_RE.match(line)
        if fence:
            if not in_fence:
                in_fence, fence_marker = True, fence.group(1)
            elif fence.group(1) == fence_marker:
                in_fence, fence_marker = False, None
            out.append((line_no, line, None, True))
            continue
        heading = None
        if not in_fence:
            m = HEADING_RE.match(line)
            if m:
                heading = (len(m.group(1)), m.group(2).strip())
        out.append((line_no, line, heading, in_fence))
    return out


def strip_inline(text: str) -> str:
    """Drop links, emphasis and code ticks around a name.

    Code span contents are kept verbatim, so `__VA_OPT__` stays __VA_OPT__.
    """
    text = LINK_RE.sub(lambda m: m.group("text"), text)
    spans = []

    def hold(m):
        spans.append(m.group("code").strip())
        return f"\x00{len(spans) - 1}\x00"

    text = CODE_SPAN_RE.sub(hold, text).replace("`", "")
    text = re.sub(r"(\*\*|__)(.+?)\1", r"\2", text)
    text = re.sub(r"(?<![\w*])\*(?!\s)(.+?)(?<!\s)\*(?![\w*])", r"\1", text)
    text = PLACEHOLDER_RE.sub(lambda m: spans[int(m.group(1))], text)
    return text.strip()


def split_status_tag(text: str):
    """Return (text without status tags, Status or None).

    Only tags at the start or end count; a trailing tag wins over a leading one.
    """
    status = None
    while True:
        m = TRAILING_STATUS_RE.search(text) or LEADING_STATUS_RE.match(text)
        if not m:
            break
        status = status or Status.parse(m.group("tag"))
        text = text[:m.start()] + text[m.end():]
    return text.strip(), status


def clean_heading(title: str):
    """Heading text -> (feature name, status from tag or None)."""
    title, status = split_status_tag(title)
    title = NUMBERING_RE.sub("", strip_inline(title))
    return normalize_name(title), status


def join_paragraphs(lines: list) -> str:
    """Strip lines, join wrapped lines with spaces, keep blank-line paragraph breaks."""
    paragraphs, current = [], []
    for line in lines:
        stripped = line.strip()
        if not stripped:
            if current:
                paragraphs.append(" ".join(current))
                current = []
            continue
        current.append(stripped)
    if current:
        paragraphs.append(" ".join(current))
    return "\n\n".join(paragraphs)


def extract_snippet(lines: list) -> str:
    """First fenced code block of a Snippet field, verbatim. Unfenced text is kept stripped."""
    body, in_fence, marker = [], False, None
    for line in lines:
        fence = FENCE_RE.match(line)
        if fence and not in_fence:
            in_fence, marker = True, fence.group(1)
            continue
        if fence and in_fence and fence.group(1) == marker:
            return "\n".join(body)
        if in_fence:
            body.append(line)
    if in_fence:
        return "\n".join(body)
    return "\n".join(line.rstrip() for line in lines).strip()


def extract_link(lines: list):
    """Example field -> raw link target or None."""
    text = " ".join(line.strip() for line in lines).strip()
    if not text:
        return None
    m = LINK_RE.search(text)
    if m:
        return m.group("target").strip()
    code = re.search(r"`([^`]+)`", text)
    if code:
        return code.group(1).strip()
    return text.strip("<>")


def check_link(target):
    """Return (normalized link, problem). problem is None for well-formed relative paths."""
    if target is None:
        return None, None
    target = target.split("#", 1)[0].split("?", 1)[0]
    if not target:
        return None, "example link is empty"
    if re.search(r"\s", target):
        return None, f"example link '{target}' contains whitespace"
    if "\\" in target:
        return None, f"example link '{target}' uses backslashes"
    if URL_SCHEME_RE.match(target):
        return None, f"example link '{target}' is a URL, expected a relative path"
    if target.startswith("/"):
        return None, f"example link '{target}' is absolute, expected a relative path"
    normalized = posixpath.normpath(target)
    if normalized == ".." or normalized.startswith("../"):
        return None, f"example link '{target}' escapes the example root"
    return normalized, None


# ──────────────────────────────────────────────
# Detail documents
# ──────────────────────────────────────────────

def split_blocks(document) -> list:
    """Segment a detail document into entry blocks.

    Returns dicts with heading, line, category and body lines. Entries are
    level-3 headings (level-2 headings are categories); documents without
    level-3 headings use level-2 headings as entries.
    """
    lines = scan_lines(document.text)
    levels = {h[0] for _, _, h, _ in lines if h}
    entry_level = 3 if 3 in levels else 2

    blocks = []
    current = None
    category = None
    for line_no, line, heading, _ in lines:
        if heading and heading[0] <= entry_level:
            level, title = heading
            if level == entry_level:
                current = {"heading": title, "line": line_no, "category": category, "body": []}
                blocks.append(current)
                continue
            current = None
            if level == entry_level - 1 and level >= 2:
                category = normalize_name(strip_inline(NUMBERING_RE.sub("", title))) or None
            else:
                category = None
            continue
        if current is not None:
            current["body"].append(line)
    return blocks


def split_fields(body: list) -> dict:
    """Group block body lines under their field labels. Text before any label is ignored."""
    fields = {}
    current = None
    in_fence = False
    marker = None
    for line in body:
        fence = FENCE_RE.match(line)
        if fence:
            if not in_fence:
                in_fence, marker = True, fence.group(1)
            elif fence.group(1) == marker:
                in_fence, marker = False, None
            if current is not None:
                fields[current].append(line)
            continue
        if not in_fence:
            label, rest = _match_label(line)
            if label:
                current = label
                fields.setdefault(current, [])
                if rest:
                    fields[current].append(rest)
                continue
            if line.strip() == "---":
                continue
        if current is not None:
            fields[current].append(line)
    return fields


def _match_label(line: str):
    m = BOLD_LABEL_RE.match(line)
    if m:
        label = FIELD_LABELS.get(m.group("label").strip().rstrip(":").lower())
        if label:
            return label, m.group("rest").strip()
    m = HEADING_RE.match(line)
    if m and len(m.group(1)) >= 4:
        label = FIELD_LABELS.get(strip_inline(m.group(2)).rstrip(":").strip().lower())
        if label:
            return label, ""
    return None, ""


def parse_detail(document):
    """Parse one detail document. Returns (entries, diagnostics)."""
    entries, diagnostics = [], []

    if document.standard is None or document.section is None:
        diagnostics.append(MalformedEntry(document.ref, "", 1,
                                          "detail document has no standard/section identity"))
        return entries, diagnostics

    for block in split_blocks(document):
        heading, line_no = block["heading"], block["line"]
        name, tag_status = clean_heading(heading)
        if not name:
            diagnostics.append(MalformedEntry(document.ref, heading, line_no,
                                              "heading has no feature name"))
            continue

        fields = split_fields(block["body"])
        missing = [FIELD_TITLES[f] for f in REQUIRED_FIELDS
                   if not join_paragraphs(fields.get(f, []))]
        if missing:
            diagnostics.append(MalformedEntry(document.ref, heading, line_no,
                                              "missing " + ", ".join(missing)))
            continue

        status = tag_status or Status.ADDITION
        if "status" in fields:
            raw = join_paragraphs(fields["status"])
            parsed = Status.parse(strip_inline(raw))
            if parsed is None:
                diagnostics.append(MalformedEntry(document.ref, heading, line_no,
                                                  f"unknown status '{raw}'"))
                continue
            status = parsed

        category = block["category"]
        if fields.get("category"):
            category = normalize_name(strip_inline(join_paragraphs(fields["category"]))) or category

        link, problem = check_link(extract_link(fields.get("example", [])))
        if problem:
            diagnostics.append(MalformedEntry(document.ref, heading, line_no, problem))

        entries.append(CatalogEntry(
            standard=document.standard,
            section=document.section,
            name=name,
            status=status,
            explanation=join_paragraphs(fields["explanation"]),
            scenario=join_paragraphs(fields["scenario"]),
            location=SourceRef(document.ref, line_no),
            category=category,
            snippet=extract_snippet(fields.get("snippet", [])),
            example_link=link,
        ))

    logger.debug("%s: %d entries, %d malformed", document.ref, len(entries), len(diagnostics))
    return entries, diagnostics


# ──────────────────────────────────────────────
# Master index
# ──────────────────────────────────────────────

def _standard_in(text: str):
    """The one standard a heading names. Range titles like 'C++98 - C++26' name none."""
    found = {Standard.parse(token) for token in STANDARD_IN_TEXT_RE.findall(text)}
    return found.pop() if len(found) == 1 else None


def _item_name(text: str):
    """List item / table cell text -> (name, status tag or None)."""
    text = CHECKBOX_RE.sub("", text.strip())
    m = LINK_RE.match(text)
    if m:
        name, rest = m.group("text"), text[m.end():]
    else:
        name, rest = text, ""
        for sep in ITEM_SEPARATORS:
            if sep in text:
                name, rest = text.split(sep, 1)
                break
    name, status = split_status_tag(name)
    if status is None:
        status = split_status_tag(rest)[1]
    return normalize_name(strip_inline(name)), status


def _table_cells(line: str):
    stripped = line.strip()
    if not (stripped.startswith("|") and stripped.endswith("|")):
        return None
    return [c.strip() for c in stripped.strip("|").split("|")]


def parse_master_index(document):
    """Parse the master index. Returns (index_entries, diagnostics).

    List items and table rows count only once a standard heading is in
    scope; lists elsewhere (contents, credits) are ignored. Items under a
    standard but without a section heading are reported.
    """
    entries, diagnostics = [], []
    standard = section = category = None
    standard_level = section_level = 0
    table_header = None

    def add(name, status, line_no, raw):
        if not name:
            diagnostics.append(MalformedEntry(document.ref, raw, line_no, "index item has no feature name"))
            return
        if section is None:
            diagnostics.append(MalformedEntry(document.ref, raw, line_no,
                                              f"index item under {standard.label} has no section heading"))
            return
        entries.append(IndexEntry(
            standard=standard,
            section=section,
            name=name,
            location=SourceRef(document.ref, line_no),
            status=status or Status.ADDITION,
            category=category,
        ))

    for line_no, line, heading, in_code in scan_lines(document.text):
        if in_code:
            continue

        if heading:
            level, title = heading
            table_header = None
            found_standard = _standard_in(title)
            found_section = Section.parse(STANDARD_IN_TEXT_RE.sub("", title))
            if found_standard:
                standard, standard_level = found_standard, level
                section, section_level, category = None, 0, None
                if found_section:
                    section, section_level = found_section, level
            elif standard and found_section and level > standard_level and \
                    (section is None or level <= section_level):
                # deeper headings under a section are categories, whatever their words
                section, section_level, category = found_section, level, None
            elif standard and section and level > section_level:
                category = normalize_name(strip_inline(NUMBERING_RE.sub("", title))) or None
            elif standard and level > standard_level:
                section, section_level, category = None, 0, None
            else:
                standard = section = category = None
                standard_level = section_level = 0
            continue

        if standard is None:
            continue

        cells = _table_cells(line)
        if cells is not None:
            if table_header is None:
                table_header = [c.lower() for c in cells]
                continue
            if all(re.fullmatch(r":?-{2,}:?", c) for c in cells if c):
                continue
            name, tag_status = _item_name(cells[0])
            status = tag_status
            if "status" in table_header:
                idx = table_header.index("status")
                if idx < len(cells):
                    status = Status.parse(strip_inline(cells[idx])) or status
            add(name, status, line_no, line.strip())
            continue
        table_header = None

        # top-level items only; nested items are notes on the parent
        if line[:1].isspace():
            continue
        m = LIST_ITEM_RE.match(line)
        if m:
            name, status = _item_name(m.group("text"))
            add(name, status, line_no, line.strip())

    logger.debug("%s: %d index entries, %d malformed", document.ref, len(entries), len(diagnostics))
    return entries, diagnostics


# ──────────────────────────────────────────────
# Whole corpus
# ──────────────────────────────────────────────

def parse_document(document):
    """Dispatch on document role. Returns (entries, index_entries, diagnostics)."""
    if document.role is DocumentRole.MASTER_INDEX:
        index_entries, diagnostics = parse_master_index(document)
        return [], index_entries, diagnostics
    entries, diagnostics = parse_detail(document)
    return entries, [], diagnostics


def load_catalog(documents, workers: int = 1) -> Catalog:
    """Parse every document into one Catalog.

    Documents are independent, so with workers > 1 they are parsed in a
    thread pool. Results are reassembled in input order either way, so the
    catalog does not depend on scheduling.
    """
    documents = list(documents)
    results = [None] * len(documents)

    if workers > 1 and len(documents) > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(parse_document, doc): i for i, doc in enumerate(documents)}
            for future in as_completed(futures):
                results[futures[future]] = future.result()
    else:
        for i, doc in enumerate(documents):
            results[i] = parse_document(doc)

    entries, index_entries, malformed = [], [], []
    for doc_entries, doc_index, doc_diagnostics in results:
        entries.extend(doc_entries)
        index_entries.extend(doc_index)
        malformed.extend(doc_diagnostics)

    if not any(d.role is DocumentRole.MASTER_INDEX for d in documents):
        logger.warning("No master index among %d documents; every entry will be reported as orphaned",
                       len(documents))

    logger.info("Loaded %d entries and %d index entries from %d documents (%d malformed)",
                len(entries), len(index_entries), len(documents), len(malformed))
    return Catalog(entries=tuple(entries), index_entries=tuple(index_entries), malformed=tuple(malformed))
