import json
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient

from render_relay.api.main import app, validation_exception_handler
from render_relay.api.routes.render_routes import get_render_policy
from render_relay.core.exceptions import RendererError, RemoteServiceError

# TestClient setup
client = TestClient(app)

BROWSER_HTML = "<html><head><title>Example Domain</title></head><body><h1>Example Domain</h1></body></html>"
REMOTE_HTML = "<html><body>remote copy</body></html>"


@pytest.fixture
def strategies():
    """
    Replaces both rendering strategies used by RenderPolicy.

    Yields the patched PlaywrightManager class, its instance and the remote client mock.
    """
    mock_pm_instance = AsyncMock()
    mock_pm_instance.get_page_content.return_value = BROWSER_HTML
    mock_remote = AsyncMock()
    mock_remote.fetch_html.return_value = REMOTE_HTML

    # The provider caches its policy; rebuild it around the patched remote client.
    get_render_policy.cache_clear()
    with patch('render_relay.core.policy.PlaywrightManager', return_value=mock_pm_instance) as PatchedPM, \
         patch('render_relay.core.policy.ScraperApiClient', return_value=mock_remote):
        yield PatchedPM, mock_pm_instance, mock_remote
    get_render_policy.cache_clear()


def test_health_check():
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "Render Relay Running"
    assert "timestamp" in data


# --- POST /render ---

def test_render_primary_success(strategies):
    PatchedPM, mock_pm, mock_remote = strategies
    response = client.post("/render", json={"url": "https://example.com"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["url"] == "https://example.com"
    assert data["html"] == BROWSER_HTML
    assert data["method"] == "Playwright"
    assert "warning" not in data
    assert "timestamp" in data
    mock_pm.get_page_content.assert_called_once_with("https://example.com", wait_for=2000)
    mock_remote.fetch_html.assert_not_called()


def test_render_passes_wait_for(strategies):
    _, mock_pm, _ = strategies
    response = client.post("/render", json={"url": "https://example.com", "waitFor": 500})
    assert response.status_code == 200
    mock_pm.get_page_content.assert_called_once_with("https://example.com", wait_for=500)


def test_render_non_numeric_wait_for_uses_default(strategies):
    _, mock_pm, _ = strategies
    response = client.post("/render", json={"url": "https://example.com", "waitFor": "soon"})
    assert response.status_code == 200
    mock_pm.get_page_content.assert_called_once_with("https://example.com", wait_for=2000)


def test_render_falls_back_when_browser_fails(strategies):
    _, mock_pm, mock_remote = strategies
    mock_pm.get_page_content.side_effect = RendererError("Navigation Timeout")

    response = client.post("/render", json={"url": "https://example.com"})

    assert response.status_code == 200
    data = response.json()
    assert data["method"] == "ScraperAPI (fallback)"
    assert data["warning"] == "Playwright failed, used fallback"
    assert data["html"] == REMOTE_HTML
    mock_remote.fetch_html.assert_called_once_with("https://example.com")


def test_render_both_strategies_fail(strategies):
    _, mock_pm, mock_remote = strategies
    mock_pm.get_page_content.side_effect = RendererError("Navigation Timeout")
    mock_remote.fetch_html.side_effect = RemoteServiceError("ScraperAPI request failed with status code 500", status_code=500)

    response = client.post("/render", json={"url": "https://example.com"})

    assert response.status_code == 500
    assert response.json() == {
        "error": "Both Playwright and ScraperAPI failed",
        "puppeteerError": "Navigation Timeout",
        "scraperApiError": "ScraperAPI request failed with status code 500",
    }


def test_render_forced_fallback_success(strategies):
    PatchedPM, _, mock_remote = strategies
    response = client.post("/render", json={"url": "https://example.com", "useScraperAPI": True})

    assert response.status_code == 200
    data = response.json()
    assert data["method"] == "ScraperAPI"
    assert "warning" not in data
    PatchedPM.assert_not_called()
    mock_remote.fetch_html.assert_called_once()


def test_render_forced_fallback_failure(strategies):
    PatchedPM, _, mock_remote = strategies
    mock_remote.fetch_html.side_effect = RemoteServiceError("ScraperAPI request timed out after 30.0s")

    response = client.post("/render", json={"url": "https://example.com", "useScraperAPI": True})

    assert response.status_code == 500
    assert response.json() == {"error": "Scraping failed", "message": "ScraperAPI request timed out after 30.0s"}
    PatchedPM.assert_not_called()


@pytest.mark.parametrize("body", [{}, {"url": ""}, {"url": "   "}, {"waitFor": 100}])
def test_render_missing_url(strategies, body):
    PatchedPM, _, mock_remote = strategies
    response = client.post("/render", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "URL is required"}
    PatchedPM.assert_not_called()
    mock_remote.fetch_html.assert_not_called()


def test_render_without_body(strategies):
    PatchedPM, _, _ = strategies
    response = client.post("/render")
    assert response.status_code == 400
    assert response.json() == {"error": "URL is required"}
    PatchedPM.assert_not_called()


def test_render_malformed_body():
    response = client.post("/render", content="not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 422
    assert response.json()["detail"] == "Request validation failed"


def test_render_binary_text_body_is_client_error(strategies):
    PatchedPM, _, _ = strategies
    response = client.post("/render", content=b"\xff", headers={"Content-Type": "text/plain"})

    assert response.status_code == 400
    assert response.json() == {"error": "URL is required"}
    PatchedPM.assert_not_called()


def test_render_invalid_field_reports_validation_errors(strategies):
    PatchedPM, _, _ = strategies
    response = client.post("/render", json={"url": "https://example.com", "useScraperAPI": "maybe"})

    assert response.status_code == 422
    data = response.json()
    assert data["detail"] == "Request validation failed"
    assert data["errors"][0]["loc"] == ["body", "useScraperAPI"]
    PatchedPM.assert_not_called()


@pytest.mark.asyncio
async def test_validation_handler_encodes_bytes_input():
    exc = RequestValidationError([{
        "type": "model_attributes_type",
        "loc": ("body",),
        "msg": "Input should be a valid dictionary or object to extract fields from",
        "input": b"url=https%3A%2F%2Fexample.com",
    }])

    response = await validation_exception_handler(MagicMock(), exc)

    assert response.status_code == 422
    body = json.loads(response.body)
    assert body["detail"] == "Request validation failed"
    assert body["errors"][0]["input"] == "url=https%3A%2F%2Fexample.com"


def test_render_form_body(strategies):
    _, mock_pm, mock_remote = strategies
    response = client.post("/render", data={"url": "https://example.com", "waitFor": "700"})

    assert response.status_code == 200
    data = response.json()
    assert data["method"] == "Playwright"
    assert data["html"] == BROWSER_HTML
    mock_pm.get_page_content.assert_called_once_with("https://example.com", wait_for=700)
    mock_remote.fetch_html.assert_not_called()


def test_render_form_body_forced_fallback(strategies):
    PatchedPM, _, mock_remote = strategies
    response = client.post("/render", data={"url": "https://example.com", "useScraperAPI": "true"})

    assert response.status_code == 200
    assert response.json()["method"] == "ScraperAPI"
    PatchedPM.assert_not_called()
    mock_remote.fetch_html.assert_called_once_with("https://example.com")


def test_render_form_body_without_url(strategies):
    PatchedPM, _, _ = strategies
    response = client.post("/render", data={"waitFor": "100"})
    assert response.status_code == 400
    assert response.json() == {"error": "URL is required"}
    PatchedPM.assert_not_called()


def test_render_null_use_scraper_api_renders_with_browser(strategies):
    PatchedPM, mock_pm, mock_remote = strategies
    response = client.post("/render", json={"url": "https://example.com", "useScraperAPI": None})

    assert response.status_code == 200
    assert response.json()["method"] == "Playwright"
    mock_pm.get_page_content.assert_called_once()
    mock_remote.fetch_html.assert_not_called()


def test_render_float_string_wait_for_matches_number(strategies):
    _, mock_pm, _ = strategies
    client.post("/render", json={"url": "https://example.com", "waitFor": 1500.5})
    client.get("/scrape", params={"url": "https://example.com", "waitFor": "1500.5"})

    assert [c.kwargs["wait_for"] for c in mock_pm.get_page_content.call_args_list] == [1500, 1500]


def test_render_policy_is_built_once(strategies):
    with patch('render_relay.core.policy.ScraperApiClient') as PatchedClient:
        get_render_policy.cache_clear()
        client.post("/render", json={"url": "https://example.com"})
        client.get("/scrape", params={"url": "https://example.com"})

    assert get_render_policy() is get_render_policy()
    PatchedClient.assert_called_once()


def test_render_twice_is_independent(strategies):
    PatchedPM, _, _ = strategies
    first = client.post("/render", json={"url": "https://example.com"})
    second = client.post("/render", json={"url": "https://example.com"})

    assert first.status_code == second.status_code == 200
    assert first.json()["html"] == second.json()["html"]
    assert PatchedPM.call_count == 2


# --- GET /scrape ---

def test_scrape_primary_success(strategies):
    _, mock_pm, _ = strategies
    response = client.get("/scrape", params={"url": "https://example.com", "waitFor": "750"})

    assert response.status_code == 200
    data = response.json()
    assert data["method"] == "Playwright"
    assert data["html"] == BROWSER_HTML
    mock_pm.get_page_content.assert_called_once_with("https://example.com", wait_for=750)


def test_scrape_invalid_wait_for_uses_default(strategies):
    _, mock_pm, _ = strategies
    response = client.get("/scrape", params={"url": "https://example.com", "waitFor": "abc"})
    assert response.status_code == 200
    mock_pm.get_page_content.assert_called_once_with("https://example.com", wait_for=2000)


def test_scrape_missing_url(strategies):
    PatchedPM, _, mock_remote = strategies
    response = client.get("/scrape")

    assert response.status_code == 400
    assert response.json() == {"error": "URL parameter is required"}
    PatchedPM.assert_not_called()
    mock_remote.fetch_html.assert_not_called()


def test_scrape_forced_fallback_only_for_literal_true(strategies):
    PatchedPM, mock_pm, mock_remote = strategies

    forced = client.get("/scrape", params={"url": "https://example.com", "useScraperAPI": "true"})
    assert forced.json()["method"] == "ScraperAPI"
    PatchedPM.assert_not_called()

    not_forced = client.get("/scrape", params={"url": "https://example.com", "useScraperAPI": "yes"})
    assert not_forced.json()["method"] == "Playwright"
    mock_pm.get_page_content.assert_called_once()


def test_scrape_falls_back_when_browser_fails(strategies):
    _, mock_pm, mock_remote = strategies
    mock_pm.get_page_content.side_effect = RendererError("net::ERR_NAME_NOT_RESOLVED")

    response = client.get("/scrape", params={"url": "https://example.com"})

    assert response.status_code == 200
    assert response.json()["method"] == "ScraperAPI (fallback)"
    mock_remote.fetch_html.assert_called_once()


def test_scrape_both_strategies_fail(strategies):
    _, mock_pm, mock_remote = strategies
    mock_pm.get_page_content.side_effect = RendererError("net::ERR_NAME_NOT_RESOLVED")
    mock_remote.fetch_html.side_effect = RemoteServiceError("ScraperAPI request error: boom")

    response = client.get("/scrape", params={"url": "https://example.com"})

    assert response.status_code == 500
    data = response.json()
    assert data["puppeteerError"] == "net::ERR_NAME_NOT_RESOLVED"
    assert data["scraperApiError"] == "ScraperAPI request error: boom"


def test_scrape_forced_fallback_failure(strategies):
    _, _, mock_remote = strategies
    mock_remote.fetch_html.side_effect = RemoteServiceError("ScraperAPI key is not configured. Set the SCRAPERAPI_KEY environment variable.")

    response = client.get("/scrape", params={"url": "https://example.com", "useScraperAPI": "true"})

    assert response.status_code == 500
    assert response.json()["error"] == "Scraping failed"
    assert "SCRAPERAPI_KEY" in response.json()["message"]
