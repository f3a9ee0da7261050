#!/usr/bin/env python3
"""Tests for preview_server.py - Flask routes over an in-memory site."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
from preview_server import EXAMPLE_URL, create_app

PAGES = {
    "index.html": "<html><body>index</body></html>\n",
    "cpp11/stl.html": "<html><body>stl</body></html>\n",
    "search-index.json": "[]\n",
}


@pytest.fixture
def client():
    app = create_app(PAGES)
    app.config["TESTING"] = True
    return app.test_client()


def test_root_redirects_to_index(client):
    resp = client.get("/")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/index.html")


def test_serves_pages_with_mimetype(client):
    resp = client.get("/cpp11/stl.html")
    assert resp.status_code == 200
    assert resp.mimetype == "text/html"
    assert resp.get_data(as_text=True) == PAGES["cpp11/stl.html"]

    resp = client.get("/search-index.json")
    assert resp.mimetype == "application/json"


def test_unknown_page_is_404(client):
    assert client.get("/cpp14/stl.html").status_code == 404


def test_api_pages_keeps_render_order(client):
    assert client.get("/api/pages").get_json() == list(PAGES)


def test_serves_example_files_from_example_root(tmp_path):
    (tmp_path / "examples").mkdir()
    (tmp_path / "examples" / "auto.cpp").write_text("int main() { auto x = 1; }\n", encoding="utf-8")
    client = create_app(PAGES, example_root=tmp_path).test_client()

    resp = client.get(f"{EXAMPLE_URL}/examples/auto.cpp")
    assert resp.status_code == 200
    assert resp.get_data(as_text=True) == "int main() { auto x = 1; }\n"
    resp.close()
    assert client.get(f"{EXAMPLE_URL}/examples/missing.cpp").status_code == 404
    assert client.get(f"{EXAMPLE_URL}/../secret.txt").status_code == 404


def test_examples_are_404_without_example_root(client):
    assert client.get(f"{EXAMPLE_URL}/examples/auto.cpp").status_code == 404
