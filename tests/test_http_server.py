"""
Tests for the NewsFlow HTTP API.
Run with: pytest tests/test_http_server.py -v
"""
import pytest
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from unittest.mock import patch
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient

from http_server import app, get_library
from links_library import LinksLibrary
from models import Cluster, ExtractedArticle, ScoredItem

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

ARTICLE = ScoredItem("OpenAI ships a product", "https://a.example/1", "Wired", 9.5, NOW)


@pytest.fixture
def client(tmp_path):
    library = LinksLibrary(str(tmp_path / "api.db"))
    app.dependency_overrides[get_library] = lambda: library
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestNewsEndpoints:
    """Aggregation over HTTP."""

    @patch('http_server.fetch_and_categorize_news')
    def test_news(self, mock_news, client):
        mock_news.return_value = {
            'clusters': [Cluster('cluster-1', 'Tech Company Dynamics', '科技公司动态', (ARTICLE,))],
            'featured': [ARTICLE],
        }

        response = client.get("/api/news?refresh=true")

        assert response.status_code == 200
        mock_news.assert_called_once_with(True)
        data = response.json()
        assert data['clusters'][0] == {
            'id': 'cluster-1',
            'topicEnglish': 'Tech Company Dynamics',
            'topicChinese': '科技公司动态',
            'articles': [{'title': ARTICLE.title, 'url': ARTICLE.url, 'source': 'Wired'}],
        }
        assert data['featured'] == [{'title': ARTICLE.title, 'url': ARTICLE.url, 'source': 'Wired'}]

    @patch('http_server.update_featured_news')
    def test_featured_refreshes_when_stale(self, mock_update, client):
        mock_update.return_value = {'articles': [ARTICLE], 'timestamp': 1700000000000}

        response = client.get("/api/featured")

        data = response.json()
        assert data['updated'] is True
        assert data['timestamp'] == 1700000000000
        assert data['articles'][0]['score'] == 9.5

    @patch('http_server.fetch_and_categorize_news')
    @patch('http_server.should_update_featured_news', return_value=False)
    def test_featured_reuses_recent(self, mock_should, mock_news, client):
        mock_news.return_value = {'clusters': [], 'featured': [ARTICLE]}

        response = client.get("/api/featured?last_updated=1700000000000")

        data = response.json()
        assert data['updated'] is False
        assert data['timestamp'] == 1700000000000
        mock_should.assert_called_once_with(1700000000000)


class TestExtractEndpoints:
    """Extraction and reader proxy."""

    def test_extract_requires_url(self, client):
        response = client.get("/api/extract")
        assert response.status_code == 400
        assert 'error' in response.json()

    @patch('http_server.fetch_and_extract')
    def test_extract_success(self, mock_extract, client):
        mock_extract.return_value = ExtractedArticle(
            title="Story", content="<p>Body</p>", text_content="Body", excerpt="Sum",
            byline="Jane", site_name="example.com", url="https://example.com/final")

        response = client.get("/api/extract", params={"url": "https://example.com/story"})

        assert response.status_code == 200
        assert response.json() == {
            'title': "Story", 'content': "<p>Body</p>", 'textContent': "Body", 'excerpt': "Sum",
            'byline': "Jane", 'siteName': "example.com", 'url': "https://example.com/final",
        }
        mock_extract.assert_called_once_with("https://example.com/story")

    @patch('http_server.fetch_and_extract')
    def test_extract_failure_is_in_band(self, mock_extract, client):
        mock_extract.return_value = ExtractedArticle(
            title="Error Loading Article", content='<p>Please click "Original"</p>',
            site_name="example.com", url="https://example.com/story", error="timeout")

        response = client.get("/api/extract", params={"url": "https://example.com/story"})

        assert response.status_code == 200
        assert response.json()['error'] == "timeout"

    def test_proxy_read_requires_url(self, client):
        response = client.get("/api/proxy-read")
        assert response.status_code == 400
        assert response.json()['success'] is False

    @patch('http_server.fetch_and_extract')
    def test_proxy_read(self, mock_extract, client):
        mock_extract.return_value = ExtractedArticle(
            title="Story", content="<p>Body text</p>", byline="Jane",
            site_name="example.com", url="https://example.com/story")

        response = client.get("/api/proxy-read", params={"url": "https://example.com/story"})

        data = response.json()
        assert data['success'] is True
        assert data['data']['original_url'] == "https://example.com/story"
        assert data['data']['copyright_notice']
        assert data['meta']['content_length'] == len("<p>Body text</p>")
        mock_extract.assert_called_once_with("https://example.com/story", strict=True)


class TestLinksEndpoints:
    """Links library CRUD over HTTP."""

    def test_crud_flow(self, client):
        created = client.post("/api/add-link", json={
            "url": "https://a.example/1", "title": "First", "source": "Wired", "tags": ["ai"]})
        assert created.status_code == 200
        link_id = created.json()['id']

        listed = client.get("/api/links").json()
        assert listed['success'] is True
        assert listed['count'] == 1

        updated = client.put(f"/api/links/{link_id}", json={"title": "Renamed", "is_featured": True})
        assert updated.json()['success'] is True

        fetched = client.get(f"/api/links/{link_id}").json()
        assert fetched['data']['title'] == "Renamed"
        assert fetched['data']['is_featured'] is True

        featured = client.get("/api/links", params={"is_featured": "true"}).json()
        assert featured['count'] == 1

        assert client.delete(f"/api/links/{link_id}").json()['success'] is True
        assert client.get(f"/api/links/{link_id}").status_code == 404

    def test_add_link_missing_fields(self, client):
        response = client.post("/api/add-link", json={"url": "https://a.example/1"})
        assert response.status_code == 400
        assert response.json()['error'] == "Missing required fields: url, title, source"

    def test_update_without_fields(self, client):
        link_id = client.post("/api/add-link", json={
            "url": "https://a.example/1", "title": "First", "source": "Wired"}).json()['id']

        response = client.put(f"/api/links/{link_id}", json={})

        assert response.status_code == 400
        assert response.json()['error'] == "No fields to update"

    def test_missing_link(self, client):
        assert client.get("/api/links/999").status_code == 404
        assert client.put("/api/links/999", json={"title": "x"}).status_code == 404
        assert client.delete("/api/links/999").status_code == 404


class TestGetLibrary:
    """Lazy links library dependency."""

    @patch('http_server._library', None)
    @patch('http_server.LinksLibrary')
    def test_concurrent_first_calls_build_one_library(self, mock_library_cls):
        def slow_build(path):
            time.sleep(0.05)
            return object()

        mock_library_cls.side_effect = slow_build
        barrier = threading.Barrier(4)

        def first_call():
            barrier.wait()
            return get_library()

        with ThreadPoolExecutor(max_workers=4) as executor:
            libraries = list(executor.map(lambda _: first_call(), range(4)))

        assert mock_library_cls.call_count == 1
        assert all(library is libraries[0] for library in libraries)


class TestInfoEndpoints:
    """Root, health, metrics and unknown paths."""

    def test_root(self, client):
        data = client.get("/").json()
        assert data['status'] == "ok"
        assert 'news' in data['endpoints']

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()['status'] == "healthy"

    def test_metrics(self, client):
        response = client.get("/api/metrics")
        assert response.status_code == 200
        assert 'counters' in response.json()['metrics']

    def test_unknown_path(self, client):
        response = client.get("/api/nope")
        assert response.status_code == 404
        assert 'availablePaths' in response.json()

    def test_cors_headers(self, client):
        response = client.get("/api/health", headers={"Origin": "https://reader.example"})
        assert response.headers.get("access-control-allow-origin") == "*"


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
