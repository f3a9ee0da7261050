#!/usr/bin/env python3
"""Site Renderer - static HTML pages and a JSON search index from a Catalog.

Output is a dict of relative POSIX path -> page text:

    index.html                  every page, grouped by standard (C++98 first)
    cpp11/core-language.html    one page per (standard, section) with entries
    cpp11/stl.html
    search-index.json           flat list of entries for client-side search

Rendering is a pure function of its inputs: no timestamps and a fixed
order everywhere, so two runs over the same corpus are byte-identical.

Example links that do not resolve to a file under the example root are
rendered as plain text and reported as BrokenLink warnings.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from jinja2 import DictLoader, Environment, select_autoescape
from markupsafe import Markup, escape

from catalog_model import Section, Standard

logger = logging.getLogger(__name__)

BROKEN_LINK = "BrokenLink"
INDEX_PAGE = "index.html"
SEARCH_INDEX = "search-index.json"


# ──────────────────────────────────────────────
# Templates
# ──────────────────────────────────────────────

BASE_TEMPLATE = """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{{ title }}</title>
<style>
body { font-family: system-ui, -apple-system, Segoe UI, Roboto, sans-serif; margin: 0; color: #1a1a1a; }
header, main { max-width: 960px; margin: 0 auto; padding: 16px 20px; }
header { border-bottom: 1px solid #e5e5e5; }
header a { text-decoration: none; font-weight: 600; color: #0b5fff; }
pre { background: #f6f7f9; border: 1px solid #e8eaee; border-radius: 8px; padding: 12px; overflow-x: auto; }
code { background: #f1f1f1; padding: 1px 4px; border-radius: 4px; }
pre code { background: none; padding: 0; }
.badge { display: inline-block; font-size: 12px; padding: 1px 8px; border-radius: 10px; background: #eef; }
.badge.deprecated { background: #fde2e2; }
.badge.proposed { background: #fff4cc; }
.badge.evolution { background: #e3f6e8; }
.warning { background: #fff8e1; border-left: 4px solid #f0b400; padding: 8px 12px; margin: 12px 0; }
.muted { color: #666; }
</style>
</head>
<body>
<header><a href="{{ root }}index.html">{{ site_title }}</a></header>
<main>
{% block content %}{% endblock %}
</main>
</body>
</html>
"""

INDEX_TEMPLATE = """{% extends "base.html" %}
{% block content %}
<h1>{{ site_title }}</h1>
<p class="muted">{{ entry_count }} features across {{ groups|length }} standards.</p>
{% if annotations %}
<div class="warning">
{% for note in annotations %}
<div>{{ note }}</div>
{% endfor %}
</div>
{% endif %}
{% for group in groups %}
<h2 id="{{ group.standard.slug }}">{{ group.standard.label }}</h2>
<ul>
{% for page in group.pages %}
<li><a href="{{ page.path }}">{{ page.section.label }}</a> <span class="muted">({{ page.count }} entries{% if page.findings %}, {{ page.findings }} findings{% endif %})</span></li>
{% endfor %}
</ul>
{% endfor %}
{% endblock %}
"""

PAGE_TEMPLATE = """{% extends "base.html" %}
{% block content %}
<h1>{{ standard.label }} {{ section.label }}</h1>
{% if findings %}
<div class="warning">
<strong>Consistency findings</strong>
<ul>
{% for finding in findings %}
<li>{{ finding.kind.value }}: {{ finding.name }}</li>
{% endfor %}
</ul>
</div>
{% endif %}
{% for group in groups %}
{% if group.category %}
<h2>{{ group.category }}</h2>
{% endif %}
{% for item in group["items"] %}
<section id="{{ item.anchor }}">
<h3>{{ item.entry.name }} <span class="badge {{ item.entry.status.value|lower }}">{{ item.entry.status.value }}</span></h3>
{% for para in item.entry.explanation|paragraphs %}
<p>{{ para|inline }}</p>
{% endfor %}
<p><strong>Real-World Scenario:</strong></p>
{% for para in item.entry.scenario|paragraphs %}
<p>{{ para|inline }}</p>
{% endfor %}
{% if item.entry.snippet %}
<pre><code class="language-cpp">{{ item.entry.snippet }}</code></pre>
{% endif %}
{% if item.entry.example_link %}
{% if item.href %}
<p><strong>Example:</strong> <a href="{{ item.href }}">{{ item.entry.example_link }}</a></p>
{% else %}
<p><strong>Example:</strong> <code>{{ item.entry.example_link }}</code> <span class="muted">(not written yet)</span></p>
{% endif %}
{% endif %}
</section>
{% endfor %}
{% endfor %}
{% endblock %}
"""

TEMPLATES = {
    "base.html": BASE_TEMPLATE,
    "index.html": INDEX_TEMPLATE,
    "page.html": PAGE_TEMPLATE,
}


def _inline(text):
    """Escape text, then turn `code` spans into <code> elements."""
    escaped = str(escape(text))
    return Markup(re.sub(r"`([^`]+)`", r"<code>\1</code>", escaped))


def make_environment() -> Environment:
    env = Environment(
        loader=DictLoader(TEMPLATES),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["inline"] = _inline
    env.filters["paragraphs"] = lambda text: [p for p in text.split("\n\n") if p.strip()]
    return env


# ──────────────────────────────────────────────
# Options / results
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class RenderOptions:
    example_root: Path = Path(".")
    output_root: Path = Path("site")
    site_title: str = "C++ Feature Catalog"
    # absolute URL prefix for example files; None links them relative to the page
    example_url: Optional[str] = None


@dataclass(frozen=True)
class RenderWarning:
    kind: str
    message: str
    location: object

    def __str__(self):
        return f"  [{self.kind}] {self.location}: {self.message}"

    def to_dict(self):
        return {"kind": self.kind, "message": self.message, "location": str(self.location)}


@dataclass
class RenderResult:
    pages: dict = field(default_factory=dict)
    warnings: list = field(default_factory=list)


# ──────────────────────────────────────────────
# Paths and links
# ──────────────────────────────────────────────

def page_path(standard: Standard, section: Section) -> str:
    return f"{standard.slug}/{section.slug}.html"


def root_prefix(path: str) -> str:
    """Relative prefix from a page back to the site root."""
    return "../" * path.count("/")


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "entry"


def example_href(link: str, page: str, options: RenderOptions) -> str:
    """href from an output page to an example file (relative unless example_url is set)."""
    if options.example_url is not None:
        return f"{options.example_url.rstrip('/')}/{link}"
    target = os.path.abspath(os.path.join(str(options.example_root), link))
    page_dir = os.path.dirname(os.path.abspath(os.path.join(str(options.output_root), page)))
    return Path(os.path.relpath(target, page_dir)).as_posix()


# ──────────────────────────────────────────────
# Rendering
# ──────────────────────────────────────────────

def _group_by_category(items: list) -> list:
    """Consecutive runs of the same category, keeping source order."""
    groups = []
    for item in items:
        category = item["entry"].category
        if not groups or groups[-1]["category"] != category:
            groups.append({"category": category, "items": []})
        groups[-1]["items"].append(item)
    return groups


def render_page(env, catalog, standard, section, options, exists, report, warnings):
    path = page_path(standard, section)
    items, used = [], set()
    for entry in catalog.entries_for(standard, section):
        anchor = slugify(entry.name)
        n = 2
        while anchor in used:
            anchor = f"{slugify(entry.name)}-{n}"
            n += 1
        used.add(anchor)

        href = None
        if entry.example_link:
            target = Path(options.example_root) / entry.example_link
            if exists(target):
                href = example_href(entry.example_link, path, options)
            else:
                warnings.append(RenderWarning(
                    BROKEN_LINK,
                    f"example '{entry.example_link}' for '{entry.name}' not found under {options.example_root}",
                    entry.location,
                ))
        items.append({"entry": entry, "anchor": anchor, "href": href})

    findings = report.findings_for(standard, section) if report else []
    html = env.get_template("page.html").render(
        title=f"{standard.label} {section.label} - {options.site_title}",
        site_title=options.site_title,
        root=root_prefix(path),
        standard=standard,
        section=section,
        groups=_group_by_category(items),
        findings=findings,
    )
    return path, html, items


def render_site(catalog, options: Optional[RenderOptions] = None, report=None,
                exists: Optional[Callable] = None) -> RenderResult:
    """Render every page, the index page and the search index."""
    options = options or RenderOptions()
    exists = exists or (lambda p: Path(p).is_file())
    env = make_environment()
    result = RenderResult()
    search = []

    by_standard = {}
    for standard, section in catalog.pages():
        path, html, items = render_page(env, catalog, standard, section, options, exists, report,
                                        result.warnings)
        result.pages[path] = html
        by_standard.setdefault(standard, []).append({
            "section": section,
            "path": path,
            "count": len(items),
            "findings": len(report.findings_for(standard, section)) if report else 0,
        })
        for item in items:
            entry = item["entry"]
            search.append({
                "name": entry.name,
                "standard": standard.value,
                "section": section.value,
                "category": entry.category,
                "status": entry.status.value,
                "url": f"{path}#{item['anchor']}",
            })

    annotations = []
    if report and report.findings:
        annotations.append(f"{len(report.findings)} consistency findings between the master index "
                           f"and the detail documents.")
    if report and report.malformed:
        annotations.append(f"{len(report.malformed)} malformed entries were skipped or degraded.")

    groups = [{"standard": s, "pages": by_standard[s]} for s in Standard if s in by_standard]
    index_html = env.get_template("index.html").render(
        title=options.site_title,
        site_title=options.site_title,
        root="",
        groups=groups,
        entry_count=len(catalog.entries),
        annotations=annotations,
    )
    # index first, then pages in canonical order, then the search index
    result.pages = {INDEX_PAGE: index_html, **result.pages}
    result.pages[SEARCH_INDEX] = json.dumps(search, indent=2, ensure_ascii=False) + "\n"

    for warning in result.warnings:
        logger.debug("%s", warning.message)
    logger.info("Rendered %d pages (%d broken links)", len(result.pages), len(result.warnings))
    return result


def write_site(result: RenderResult, output_root) -> list:
    """Write rendered pages under output_root. Returns the written paths."""
    output_root = Path(output_root)
    written = []
    for rel, content in result.pages.items():
        target = output_root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8", newline="\n") as f:
            f.write(content)
        written.append(target)
    logger.info("Wrote %d files to %s", len(written), output_root)
    return written
