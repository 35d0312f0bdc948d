import pytest

from core.cache import FileCacheService
from core.config import Settings


def test_generate_key_is_order_independent():
    a = FileCacheService.generate_key("stores", {"lat": 1, "category": "food"})
    b = FileCacheService.generate_key("stores", {"category": "food", "lat": 1})

    assert a == b == "stores_category=food&lat=1"


def test_generate_key_distinguishes_values():
    a = FileCacheService.generate_key("stores", {"lat": 1, "lng": 2})
    b = FileCacheService.generate_key("stores", {"lat": 2, "lng": 1})

    assert a != b


@pytest.mark.parametrize("params", [{}, None])
def test_generate_key_without_params(params):
    assert FileCacheService.generate_key("promocodes", params) == "promocodes_"


def test_generate_key_renders_json_literals():
    key = FileCacheService.generate_key("food", {"veg": True, "open": False, "city": None})

    assert key == "food_city=null&open=false&veg=true"


@pytest.mark.parametrize("category,expected", [
    ("products", 30 * 60 * 1000),
    ("food", 15 * 60 * 1000),
    ("promocodes", 60 * 60 * 1000),
    ("maps", 24 * 60 * 60 * 1000),
])
def test_get_ttl_known_categories(cache, category, expected):
    assert cache.get_ttl(category) == expected


@pytest.mark.parametrize("category", ["unknown_category", "", None, ["food"], {"maps": 1}])
def test_get_ttl_falls_back_to_one_hour(cache, category):
    assert cache.get_ttl(category) == 3_600_000


def test_get_ttl_reads_configured_table(tmp_path, monkeypatch):
    monkeypatch.setenv("CACHE_TTL_FOOD", "1234")
    monkeypatch.setenv("CACHE_TTL_DEFAULT", "5000")
    cache = FileCacheService(Settings(cache_dir=str(tmp_path)))

    assert cache.get_ttl("food") == 1234
    assert cache.get_ttl("nope") == 5000
