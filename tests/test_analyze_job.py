import sys

import pytest

from localrank.core.config import ConfigError, Settings
from localrank.core.geocoding import build_resolver
from localrank.jobs import analyze
from localrank.models import FilterConfig, ResolvedLocation, TargetDescriptor
from localrank.vendors.google_places import ProviderAccessError

SETTINGS = Settings(google_api_key="key")
TARGET = TargetDescriptor(name="Acme Plumbing", address="1 Main St")


class FakeTextSearch:
    def __init__(self, pages):
        self.pages = list(pages)
        self.calls = []

    def __call__(self, query, api_key, location=None, radius_m=None, pagetoken=None):
        self.calls.append({"query": query, "location": location, "radius_m": radius_m, "pagetoken": pagetoken})
        return self.pages.pop(0)


def _run(monkeypatch, pages, **kwargs):
    fake = FakeTextSearch(pages)
    monkeypatch.setattr(analyze.google_places, "text_search", fake)
    sleeps = []
    monkeypatch.setattr(analyze.time, "sleep", lambda seconds: sleeps.append(seconds))
    options = {
        "location": "34.0522,-118.2437",
        "keywords": ["emergency", "plumber"],
        "target": TARGET,
        "settings": SETTINGS,
        "resolver": build_resolver(Settings()),
    }
    options.update(kwargs)
    return analyze.run_analysis(**options), fake, sleeps


def test_build_query():
    assert analyze.build_query(["  emergency ", "plumber", ""]) == "emergency plumber"
    assert analyze.build_query("plumber") == "plumber"
    with pytest.raises(ValueError):
        analyze.build_query(["", "  "])


def test_run_analysis_finds_target(monkeypatch):
    page = {
        "status": "OK",
        "results": [
            {"place_id": "p1", "name": "Joe's Plumbing", "rating": 4.9},
            {"place_id": "p2", "name": "ACME PLUMBING", "rating": 4.1},
        ],
    }

    result, fake, _ = _run(monkeypatch, [page])

    assert fake.calls[0]["query"] == "emergency plumber"
    assert fake.calls[0]["location"] == (34.0522, -118.2437)
    assert fake.calls[0]["radius_m"] == 25000
    assert result.center.source_strategy == "coordinates"
    assert [business.rank for business in result.businesses] == [1, 2]
    assert result.businesses[1].is_target
    assert result.message == "Found 2 businesses. Your business ranks #2."


def test_run_analysis_adds_missing_target(monkeypatch):
    page = {"status": "OK", "results": [{"place_id": "p1", "name": "Joe's Plumbing"}]}

    result, _, _ = _run(monkeypatch, [page])

    assert len(result.businesses) == 2
    assert result.businesses[-1].is_target
    assert result.message == "Found 2 businesses. Your business was added at rank #2 (not found in search results)."


def test_run_analysis_with_no_results(monkeypatch):
    result, _, _ = _run(monkeypatch, [{"status": "ZERO_RESULTS", "results": []}])

    assert len(result.businesses) == 1
    assert result.businesses[0].rank == 1
    assert result.businesses[0].visibility_score == 86
    payload = result.to_dict()
    assert payload["keywords"] == "emergency plumber"
    assert payload["center"]["provider_errors"] == []


def test_run_analysis_applies_filters(monkeypatch):
    page = {
        "status": "OK",
        "results": [
            {"place_id": "p1", "name": "Low Rated", "rating": 2.0},
            {"place_id": "p2", "name": "Acme Plumbing", "rating": 4.5},
            {"place_id": "p3", "name": "Top Rated", "rating": 4.9},
        ],
    }

    result, fake, _ = _run(monkeypatch, [page], filters=FilterConfig(radius_km=5, min_rating=4.0, sort_by="rating"))

    assert fake.calls[0]["radius_m"] == 5000
    assert [business.name for business in result.businesses] == ["Top Rated", "Acme Plumbing"]
    assert result.message == "Found 2 businesses. Your business ranks #2."


def test_run_analysis_follows_pages(monkeypatch):
    pages = [
        {"status": "OK", "results": [{"name": "One"}, {"name": "Two"}], "next_page_token": "tok"},
        {"status": "OK", "results": [{"name": "Three"}]},
    ]

    result, fake, sleeps = _run(monkeypatch, pages, max_pages=2)

    assert [call["pagetoken"] for call in fake.calls] == [None, "tok"]
    assert sleeps == [2.5]
    assert [business.result_id for business in result.businesses[:3]] == ["place_0", "place_1", "place_2"]


def test_run_analysis_requires_api_key(monkeypatch):
    with pytest.raises(ConfigError):
        _run(monkeypatch, [], settings=Settings())


def test_run_analysis_propagates_quota_errors(monkeypatch):
    def over_limit(*args, **kwargs):
        raise ProviderAccessError("API quota exceeded: daily limit", status="OVER_QUERY_LIMIT")

    monkeypatch.setattr(analyze.google_places, "text_search", over_limit)

    with pytest.raises(ProviderAccessError):
        analyze.run_analysis(
            location="Austin",
            keywords="plumber",
            target=TARGET,
            settings=SETTINGS,
            resolver=build_resolver(Settings()),
        )


def test_run_analysis_with_serpapi_provider(monkeypatch):
    calls = []

    def fake_fetch(query, ll=None, api_key=None):
        calls.append((query, ll, api_key))
        return {"local_results": [{"place_id": "s1", "title": "Acme Plumbing", "rating": 4.7}]}

    monkeypatch.setattr(analyze.serpapi_maps, "fetch_from_serpapi", fake_fetch)

    result = analyze.run_analysis(
        location="Austin",
        keywords="plumber",
        target=TARGET,
        settings=Settings(search_provider="serpapi", serpapi_api_key="serp"),
        resolver=build_resolver(Settings()),
    )

    assert calls == [("plumber", "@30.267200,-97.743100,14z", "serp")]
    assert result.businesses[0].is_target
    assert result.message == "Found 1 businesses. Your business ranks #1."


def test_scan_grid_records_rank_per_point(monkeypatch):
    center = ResolvedLocation(latitude=34.0522, longitude=-118.2437, source_strategy="gazetteer")

    def fake_text_search(query, api_key, location=None, radius_m=None, pagetoken=None):
        if location[0] > center.latitude:
            return {"status": "OK", "results": [{"name": "Other"}, {"name": "Acme Plumbing"}]}
        return {"status": "OK", "results": [{"name": "Other"}]}

    monkeypatch.setattr(analyze.google_places, "text_search", fake_text_search)

    scan = analyze.scan_grid(
        center=center,
        keywords="plumber",
        target=TARGET,
        rings=[(500, 6)],
        settings=SETTINGS,
        pause_seconds=0,
    )

    assert len(scan.cells) == 7
    # Bearings 0, 60 and 300 sit north of the center.
    assert scan.found_count == 3
    found = [cell for cell in scan.cells if cell.found]
    assert {cell.rank for cell in found} == {2}
    missing = [cell for cell in scan.cells if not cell.found]
    assert {cell.rank for cell in missing} == {2}
    payload = scan.to_dict()
    assert payload["total_points"] == 7
    assert len(payload["cells"]) == 7


def test_cli_exits_with_config_code_on_serpapi_quota(monkeypatch, capsys):
    class ExhaustedSearch:
        def __init__(self, params):
            self.params = params

        def get_dict(self):
            return {"error": "Your account has run out of searches."}

    monkeypatch.setattr(analyze, "get_settings", lambda: Settings(search_provider="serpapi", serpapi_api_key="serp"))
    monkeypatch.setattr(analyze.serpapi_maps, "GoogleSearch", ExhaustedSearch)
    monkeypatch.setattr(
        sys,
        "argv",
        ["localrank-analyze", "--location", "40.7128,-74.006", "--keywords", "plumber", "--business-name", "Acme"],
    )

    with pytest.raises(SystemExit) as excinfo:
        analyze.main()

    assert excinfo.value.code == 2
    assert capsys.readouterr().out == ""
