#!/usr/bin/env python3
"""Document sources - where the Markdown corpus comes from.

A source yields catalog_model.Document values tagged with their role and
(standard, section) identity. The loader never touches the filesystem or
the network itself.

    FileSystemSource   local checkout; discovers cpp11/core_language.md style files
    HttpSource         raw files over HTTP(S); follows .md links from the master index

Read failures are not handled here: OSError and requests.RequestException
propagate to the caller, which aborts the run.
"""

import errno
import logging
import re
from pathlib import Path
from urllib.parse import urljoin

import requests

from catalog_model import Document, DocumentRole, Section, Standard

logger = logging.getLogger(__name__)

IDENTITY_STANDARD_RE = re.compile(r"(?:c\+\+|cpp|cxx)[-_ ]?(98|03|11|14|17|20|23|26)(?![0-9])", re.IGNORECASE)
MD_LINK_RE = re.compile(r"\]\(([^)\s#]+\.md)(?:#[^)]*)?\)")
SKIP_DIRS = {".git", "node_modules", "site", "_site", "build"}
USER_AGENT = "cpp-feature-catalog/1.0 (+catalog_cli)"


def infer_identity(path):
    """(standard, section) from a document path, or None.

    cpp11/core_language.md, docs/C++17-STL.md, cxx20_library_features.md ...
    """
    text = str(path).replace("\\", "/")
    m = IDENTITY_STANDARD_RE.search(text)
    if not m:
        return None
    words = " ".join(re.split(r"[^a-zA-Z]+", IDENTITY_STANDARD_RE.sub(" ", text)))
    section = Section.parse(words)
    if section is None:
        return None
    return Standard.parse(m.group(1)), section


# ──────────────────────────────────────────────
# Local files
# ──────────────────────────────────────────────

class FileSystemSource:
    def __init__(self, root, manifest=(), index_name="README.md"):
        self.root = Path(root)
        self.manifest = tuple(manifest)
        self.index_name = index_name

    def _read(self, rel: str) -> str:
        return (self.root / rel).read_text(encoding="utf-8")

    def documents(self) -> list:
        if not self.root.is_dir():
            raise FileNotFoundError(errno.ENOENT, "input root is not a directory", str(self.root))
        if self.manifest:
            return [
                Document(item.path, self._read(item.path), item.role, item.standard, item.section)
                for item in self.manifest
            ]

        docs = []
        if (self.root / self.index_name).is_file():
            docs.append(Document(self.index_name, self._read(self.index_name), DocumentRole.MASTER_INDEX))
        else:
            logger.warning("Master index %s not found under %s", self.index_name, self.root)

        candidates = sorted(
            p.relative_to(self.root).as_posix()
            for p in self.root.rglob("*.md")
            if not (set(p.relative_to(self.root).parts[:-1]) & SKIP_DIRS)
        )
        for rel in candidates:
            if rel == self.index_name:
                continue
            identity = infer_identity(rel)
            if identity is None:
                logger.debug("Skipping %s: no standard/section in its path", rel)
                continue
            standard, section = identity
            docs.append(Document(rel, self._read(rel), DocumentRole.DETAIL, standard, section))

        logger.info("Found %d documents under %s", len(docs), self.root)
        return docs


# ──────────────────────────────────────────────
# HTTP
# ──────────────────────────────────────────────

class HttpSource:
    def __init__(self, base_url, manifest=(), index_name="README.md", timeout=30, session=None):
        self.base_url = base_url.rstrip("/") + "/"
        self.manifest = tuple(manifest)
        self.index_name = index_name
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    def fetch(self, rel: str) -> str:
        url = urljoin(self.base_url, rel)
        logger.debug("GET %s", url)
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.content.decode("utf-8")

    def documents(self) -> list:
        if self.manifest:
            return [
                Document(item.path, self.fetch(item.path), item.role, item.standard, item.section)
                for item in self.manifest
            ]

        index_text = self.fetch(self.index_name)
        docs = [Document(self.index_name, index_text, DocumentRole.MASTER_INDEX)]
        seen = set()
        for rel in MD_LINK_RE.findall(index_text):
            if rel in seen or re.match(r"^[a-z]+://", rel) or rel.startswith("/"):
                continue
            seen.add(rel)
            identity = infer_identity(rel)
            if identity is None:
                continue
            standard, section = identity
            docs.append(Document(rel, self.fetch(rel), DocumentRole.DETAIL, standard, section))
        logger.info("Fetched %d documents from %s", len(docs), self.base_url)
        return docs


def open_source(config):
    """Pick the source matching config.input_root."""
    if config.is_remote:
        return HttpSource(config.input_root, config.documents, config.master_index)
    return FileSystemSource(config.input_root, config.documents, config.master_index)
