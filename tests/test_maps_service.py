import httpx
import pytest

from core.cache import FileCacheService
from core.config import Settings
from services.maps import MapsService


PLACES_OK = {
    "status": "OK",
    "results": [
        {
            "place_id": "p1",
            "name": "Croma",
            "vicinity": "Connaught Place",
            "rating": 4.2,
            "user_ratings_total": 120,
            "geometry": {"location": {"lat": 28.63, "lng": 77.21}},
            "photos": [{"photo_reference": "ref1", "width": 400, "height": 300}],
            "types": ["electronics_store", "store"],
            "opening_hours": {"open_now": True},
        }
    ],
}


class RecordingHandler:
    """httpx.MockTransport handler returning a canned response per path suffix."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for suffix, (status_code, body) in self.routes.items():
            if request.url.path.endswith(suffix):
                return httpx.Response(status_code, json=body)
        return httpx.Response(404, json={"status": "NOT_FOUND"})


@pytest.fixture
def maps_settings(tmp_path):
    return Settings(cache_dir=str(tmp_path / "cache"), google_maps_api_key="test-key")


def make_service(settings, handler):
    return MapsService(FileCacheService(settings), settings, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_nearby_stores_fetches_once_then_hits_cache(maps_settings):
    handler = RecordingHandler({"/place/nearbysearch/json": (200, PLACES_OK)})
    service = make_service(maps_settings, handler)

    first = await service.get_nearby_stores(28.6, 77.2, "electronics")
    second = await service.get_nearby_stores(28.6, 77.2, "electronics")

    assert first == second
    assert first[0]["id"] == "p1"
    assert first[0]["location"] == {"lat": 28.63, "lng": 77.21}
    assert first[0]["open_now"] is True
    assert first[0]["source"] == "google_maps"
    assert len(handler.requests) == 1

    request = handler.requests[0]
    assert request.url.path == "/maps/api/place/nearbysearch/json"
    assert request.url.params["key"] == "test-key"
    assert request.url.params["location"] == "28.6,77.2"
    assert request.url.params["keyword"].startswith("electronics store")


@pytest.mark.asyncio
async def test_nearby_stores_cached_under_maps_ttl(maps_settings):
    handler = RecordingHandler({"/place/nearbysearch/json": (200, PLACES_OK)})
    service = make_service(maps_settings, handler)

    await service.get_nearby_stores(28.6, 77.2, "fashion", radius=1000)

    key = service.cache.generate_key(
        "stores", {"radius": 1000, "category": "fashion", "lng": 77.2, "lat": 28.6}
    )
    assert await service.cache.get(key) is not None
    stats = await service.cache.get_stats()
    assert stats.valid_entries == 1


@pytest.mark.asyncio
async def test_nearby_stores_falls_back_on_vendor_error(maps_settings):
    handler = RecordingHandler({"/place/nearbysearch/json": (500, {"status": "UNKNOWN_ERROR"})})
    service = make_service(maps_settings, handler)

    stores = await service.get_nearby_stores(28.6, 77.2, "electronics")
    await service.get_nearby_stores(28.6, 77.2, "electronics")

    assert [s["name"] for s in stores] == ["Croma", "Reliance Digital"]
    assert all(s["source"] == "fallback" for s in stores)
    # fallback data is never cached
    assert len(handler.requests) == 2


@pytest.mark.asyncio
async def test_nearby_stores_falls_back_on_denied_status(maps_settings):
    handler = RecordingHandler({
        "/place/nearbysearch/json": (200, {"status": "REQUEST_DENIED", "error_message": "bad key"})
    })
    service = make_service(maps_settings, handler)

    assert await service.get_nearby_stores(28.6, 77.2, "shoes") == []


@pytest.mark.asyncio
async def test_missing_api_key_skips_vendor_call(tmp_path):
    settings = Settings(cache_dir=str(tmp_path / "cache"), google_maps_api_key=None)
    handler = RecordingHandler({})
    service = make_service(settings, handler)

    stores = await service.get_nearby_stores(28.6, 77.2, "fashion")

    assert len(stores) == 2
    assert handler.requests == []


@pytest.mark.asyncio
async def test_nearby_stores_rejects_invalid_coordinates(maps_settings):
    service = make_service(maps_settings, RecordingHandler({}))

    with pytest.raises(ValueError):
        await service.get_nearby_stores(91.0, 0.0, "food")


@pytest.mark.asyncio
async def test_geocode_caches_hits_but_not_zero_results(maps_settings):
    handler = RecordingHandler({
        "/geocode/json": (200, {
            "status": "OK",
            "results": [{
                "formatted_address": "New Delhi, India",
                "geometry": {"location": {"lat": 28.61, "lng": 77.20}},
                "place_id": "g1",
                "types": ["locality"],
            }],
        })
    })
    service = make_service(maps_settings, handler)

    result = await service.geocode_address("New Delhi")
    assert result["place_id"] == "g1"
    assert await service.geocode_address("  New Delhi ") == result
    assert len(handler.requests) == 1

    handler.routes["/geocode/json"] = (200, {"status": "ZERO_RESULTS", "results": []})
    assert await service.geocode_address("Atlantis") is None
    assert await service.geocode_address("Atlantis") is None
    assert len(handler.requests) == 3


@pytest.mark.asyncio
async def test_geocode_requires_address(maps_settings):
    service = make_service(maps_settings, RecordingHandler({}))

    with pytest.raises(ValueError):
        await service.geocode_address("   ")


@pytest.mark.asyncio
async def test_store_details_parsed_and_cached(maps_settings):
    handler = RecordingHandler({
        "/place/details/json": (200, {
            "status": "OK",
            "result": {
                "name": "Croma",
                "formatted_address": "Connaught Place, New Delhi",
                "formatted_phone_number": "011 1234",
                "rating": 4.2,
                "reviews": [{"author_name": "A", "rating": 5, "text": "great", "time": 1}],
                "opening_hours": {"open_now": False, "weekday_text": ["Mon: 10-9"]},
                "photos": [{"photo_reference": "r1"}],
            },
        })
    })
    service = make_service(maps_settings, handler)

    details = await service.get_store_details("p1")
    await service.get_store_details("p1")

    assert details["phone"] == "011 1234"
    assert details["reviews"] == [{"author": "A", "rating": 5, "text": "great", "time": 1}]
    assert details["opening_hours"] == ["Mon: 10-9"]
    assert details["is_open"] is False
    assert len(handler.requests) == 1


@pytest.mark.asyncio
async def test_store_details_malformed_body_returns_none(maps_settings):
    handler = RecordingHandler({"/place/details/json": (200, {"status": "NOT_FOUND"})})
    service = make_service(maps_settings, handler)

    assert await service.get_store_details("missing") is None


@pytest.mark.asyncio
async def test_distance_matrix(maps_settings):
    handler = RecordingHandler({
        "/distancematrix/json": (200, {
            "status": "OK",
            "rows": [{"elements": [
                {"status": "OK", "distance": {"text": "5 km", "value": 5000},
                 "duration": {"text": "12 mins", "value": 720}},
                {"status": "ZERO_RESULTS"},
            ]}],
        })
    })
    service = make_service(maps_settings, handler)

    elements = await service.get_distance_matrix(["28.6,77.2"], ["Croma", "Nowhere"])

    assert elements[0]["distance_value"] == 5000
    assert elements[0]["duration"] == "12 mins"
    assert elements[1] == {
        "destination_index": 1,
        "distance": None,
        "distance_value": None,
        "duration": None,
        "duration_value": None,
        "status": "ZERO_RESULTS",
    }
    assert handler.requests[0].url.params["destinations"] == "Croma|Nowhere"


@pytest.mark.asyncio
async def test_distance_matrix_transport_error_returns_none(maps_settings):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    service = make_service(maps_settings, handler)

    assert await service.get_distance_matrix(["a"], ["b"]) is None


@pytest.mark.asyncio
async def test_non_object_body_falls_back(maps_settings):
    handler = RecordingHandler({
        "/place/nearbysearch/json": (200, ["x"]),
        "/geocode/json": (200, "not an object"),
    })
    service = make_service(maps_settings, handler)

    stores = await service.get_nearby_stores(28.6, 77.2, "electronics")

    assert [s["id"] for s in stores] == ["fallback_electronics_1", "fallback_electronics_2"]
    assert await service.geocode_address("Delhi") is None
