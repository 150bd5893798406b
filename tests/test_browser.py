"""Tests for browser request filtering."""
import pytest

from countdown_scraper.fetch.browser import should_block_request


@pytest.mark.parametrize("resource_type", ["image", "stylesheet", "media", "font", "other"])
def test_heavy_resources_blocked(resource_type):
    assert should_block_request("https://www.countdown.co.nz/asset", resource_type)


@pytest.mark.parametrize(
    "url",
    [
        "https://www.googletagmanager.com/gtm.js?id=GTM-1",
        "https://js-agent.newrelic.com/nr-1208.min.js",
        "https://static.cloudflareinsights.com/beacon.min.js",
        "https://edge.adobedc.net/ee/v1/interact",
    ],
)
def test_tracking_scripts_blocked(url):
    assert should_block_request(url, "script")


def test_page_scripts_allowed():
    assert not should_block_request("https://www.countdown.co.nz/main.js", "script")
    assert not should_block_request("https://www.countdown.co.nz/api/v1/products", "xhr")
