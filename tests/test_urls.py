"""Tests for scrape target parsing."""
import pytest
from countdown_scraper.fetch.urls import load_targets, parse_and_categorise_url, shorten_url


def test_parse_with_declared_category():
    """Test explicit categories= token and query optimisation."""
    line = "countdown.co.nz/shop/browse/frozen/ice-cream-sorbet/tubs categories=ice-cream"
    result = parse_and_categorise_url(line)

    assert result.url == (
        "https://countdown.co.nz/shop/browse/frozen/ice-cream-sorbet/tubs"
        "?page=1&size=48&inStockProductsOnly=true"
    )
    assert result.categories == ["ice-cream"]


def test_parse_falls_back_to_last_path_segment():
    """Test category derived from the url when none is declared."""
    result = parse_and_categorise_url("https://www.countdown.co.nz/shop/browse/pantry/eggs")

    assert result.url == "https://www.countdown.co.nz/shop/browse/pantry/eggs?page=1&size=48&inStockProductsOnly=true"
    assert result.categories == ["eggs"]


def test_parse_replaces_existing_query():
    """Test that existing query options are stripped before categorising."""
    result = parse_and_categorise_url("countdown.co.nz/shop/browse/bakery/bread?page=3&size=120")

    assert result.url.endswith("/bakery/bread?page=1&size=48&inStockProductsOnly=true")
    assert "page=3" not in result.url
    assert result.categories == ["bread"]


def test_parse_multiple_categories():
    """Test comma separated categories."""
    result = parse_and_categorise_url("countdown.co.nz/shop/browse/frozen/pizza categories=pizza,frozen-meals")
    assert result.categories == ["pizza", "frozen-meals"]


def test_parse_rejects_other_sites():
    """Test lines without a countdown url."""
    assert parse_and_categorise_url("https://example.com/shop/browse/milk") is None
    assert parse_and_categorise_url("") is None


def test_load_targets_skips_comments_and_blanks(tmp_path):
    """Test reading a target list file."""
    urls_file = tmp_path / "urls.txt"
    urls_file.write_text(
        "# dairy\n"
        "countdown.co.nz/shop/browse/fridge-deli/milk categories=milk\n"
        "\n"
        "not a url\n"
        "countdown.co.nz/shop/browse/pantry/eggs\n",
        encoding="utf-8",
    )
    targets = load_targets(urls_file)

    assert [t.categories for t in targets] == [["milk"], ["eggs"]]


def test_load_targets_missing_file(tmp_path):
    """Test that a missing target list is an error."""
    with pytest.raises(FileNotFoundError):
        load_targets(tmp_path / "missing.txt")


def test_shorten_url():
    url = "https://www.countdown.co.nz/shop/browse/pantry/eggs?page=1&size=48&inStockProductsOnly=true"
    assert shorten_url(url) == "countdown.co.nz/shop/browse/pantry/eggs"
