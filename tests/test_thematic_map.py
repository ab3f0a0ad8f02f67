"""End-to-end tests for ThematicMap."""

import asyncio
import functools
import json

import pytest

from mapmap.core.errors import GeometryFormatError, SourceError
from mapmap.core.geometry_ingestor import DerivedLayer
from mapmap.core.source_client import SourceClient
from mapmap.core.thematic_map import ThematicMap
from mapmap.models.extent import Extent
from mapmap.models.map_settings import MapSettings
from mapmap.models.selector import PropertyMatch


def _collection(*keys, lon=0):
    features = [
        {
            "type": "Feature",
            "properties": {"id": key},
            "geometry": {"type": "Point", "coordinates": [lon + i, i]},
        }
        for i, key in enumerate(keys)
    ]
    return {"type": "FeatureCollection", "features": features}


def _delayed(payload, delay):
    async def load():
        await asyncio.sleep(delay)
        return payload

    return load


def test_geometry_layers_follow_call_order():
    """A slow first load still ends up before a fast second load."""

    async def run():
        async with ThematicMap() as thematic_map:
            first = thematic_map.geometry(_delayed(_collection("a"), 0.5), layers="x")
            second = thematic_map.geometry(_delayed(_collection("b"), 0.01), layers="y")
            done = []
            first.add_done_callback(lambda _: done.append("x"))
            second.add_done_callback(lambda _: done.append("y"))
            await thematic_map.ready()
            return thematic_map.store.keys(), done

    keys, done = asyncio.run(run())
    assert keys == ["x", "y"]
    assert done == ["x", "y"]


def test_data_waits_for_earlier_geometry():
    """Data requested after geometry merges onto it even if it loads first."""

    async def run():
        async with ThematicMap() as thematic_map:
            thematic_map.geometry(_delayed(_collection("AT", "CH"), 0.3), layers="countries")
            updated = thematic_map.data([{"id": "at", "population": 9}])
            count = await updated
            return count, [f.properties.get("population") for f in thematic_map.store.features()]

    count, values = asyncio.run(run())
    assert count == 1
    assert values == [9, None]


def test_data_operations_apply_in_order():
    """A transform sees the data merged by an earlier, slower load."""

    async def run():
        async with ThematicMap() as thematic_map:
            thematic_map.geometry(_collection("AT"), layers="countries")
            thematic_map.data(_delayed([{"id": "AT", "population": 9, "area": 3}], 0.2))
            thematic_map.data(lambda p: {"density": p["population"] / p["area"]})
            await thematic_map.ready()
            return thematic_map.store.features()[0].properties

    properties = asyncio.run(run())
    assert properties["density"] == 3


def test_failed_load_does_not_block_or_corrupt(tmp_path):
    """A failing load rejects its ticket; earlier layers stay, later loads run."""

    async def run():
        async with ThematicMap(client=SourceClient(base_dir=tmp_path)) as thematic_map:
            good = thematic_map.geometry(_collection("a"), layers="good")
            missing = thematic_map.geometry("missing.geojson", layers="missing")
            bad = thematic_map.geometry({"type": "Unknown"}, layers="bad")
            later = thematic_map.geometry(_collection("b"), layers="later")
            results = await asyncio.gather(good, missing, bad, later, return_exceptions=True)
            return results, thematic_map.store.keys()

    results, keys = asyncio.run(run())
    assert results[0] == ["good"]
    assert isinstance(results[1], SourceError)
    assert isinstance(results[2], GeometryFormatError)
    assert results[3] == ["later"]
    assert keys == ["good", "later"]


def test_ready_raises_for_failed_last_load():
    async def run():
        async with ThematicMap() as thematic_map:
            thematic_map.geometry({"type": "Nonsense"})
            await thematic_map.ready()

    with pytest.raises(GeometryFormatError):
        asyncio.run(run())


def test_local_sources(fixtures_dir):
    """Topology and CSV files load relative to the client's base directory."""

    async def run():
        async with ThematicMap(client=SourceClient(base_dir=fixtures_dir)) as thematic_map:
            thematic_map.geometry("europe.topojson")
            thematic_map.data("population.csv", key="code")
            await thematic_map.ready()
            return thematic_map

    thematic_map = asyncio.run(run())
    assert thematic_map.store.keys() == ["countries", "capitals"]
    austria = thematic_map.resolve("at")[0]
    assert austria.properties["population"] == 9100000
    assert thematic_map.fitted_extent == Extent(6, 46, 17, 49)


def test_remote_sources(source_server):
    """Sources are fetched over HTTP."""

    async def run():
        async with ThematicMap() as thematic_map:
            thematic_map.geometry(source_server.url("europe.topojson"), layers="countries")
            thematic_map.data(source_server.url("population.csv"), key="code")
            await thematic_map.ready()
            return thematic_map

    thematic_map = asyncio.run(run())
    assert thematic_map.store.keys() == ["countries"]
    populations = [f.properties["population"] for f in thematic_map.resolve("countries")]
    assert populations == [9100000, 8800000]


def test_remote_not_found(source_server):
    async def run():
        async with ThematicMap() as thematic_map:
            ticket = thematic_map.geometry(source_server.url("nothing.json"))
            with pytest.raises(SourceError, match="404"):
                await ticket

    asyncio.run(run())


def test_pinned_extent_wins_over_automatic_fit(fixtures_dir):
    """extent() stops the automatic fit of pending loads."""

    async def run():
        async with ThematicMap(client=SourceClient(base_dir=fixtures_dir)) as thematic_map:
            thematic_map.geometry("europe.topojson", layers="capitals")
            thematic_map.geometry("europe.topojson", layers="countries")
            fitted = thematic_map.extent("capitals")
            return await fitted, thematic_map

    extent, thematic_map = asyncio.run(run())
    assert extent == Extent(7, 47, 16, 48)
    assert thematic_map.fitted_extent == extent
    assert thematic_map.project(11.5, 47.5) == pytest.approx((400, 200), abs=1e-6)


def test_automatic_fit_runs_once():
    async def run():
        async with ThematicMap() as thematic_map:
            thematic_map.geometry(_collection("a", "b", lon=0), layers="first")
            thematic_map.geometry(_collection("c", lon=50), layers="second")
            await thematic_map.ready()
            return thematic_map.fitted_extent

    assert asyncio.run(run()) == Extent(0, 0, 1, 1)


def test_selection_and_queries():
    """select, resolve, search, get_data, symbolize and value_stats."""

    async def run():
        settings = MapSettings().override(key_field="code")
        async with ThematicMap(settings) as thematic_map:
            payload = _collection("x", "y", "z")
            for feature, code, name in zip(payload["features"], ("AT", "CH", "FR"), ("Austria", "Swiss", "France")):
                feature["properties"].update(code=code, name=name)
            thematic_map.geometry(payload, layers="countries")
            thematic_map.data({"AT": {"value": -2}, "CH": {"value": 5}, "FR": {"value": "n/a"}})
            await thematic_map.ready()

            thematic_map.select(lambda p: p["value"] != "n/a")
            selected = thematic_map.resolve()
            visited = []
            count = await thematic_map.symbolize(lambda f: visited.append(f.canonical_key))
            data = await thematic_map.get_data("code")
            stats = thematic_map.value_stats("value", "countries")
            searched = thematic_map.search("swiss", key="name")
            thematic_map.select(None)
            everything = thematic_map.resolve()
            return selected, visited, count, data, stats, searched, everything

    selected, visited, count, data, stats, searched, everything = asyncio.run(run())
    assert [f.canonical_key for f in selected] == ["at", "ch"]
    assert visited == ["at", "ch"]
    assert count == 2
    assert list(data) == ["AT", "CH"]
    assert stats.count == 3
    assert stats.count_numbers == 2
    assert stats.any_strings
    assert stats.symmetric_domain == (-5, 5)
    assert [f.properties["name"] for f in searched] == ["Swiss"]
    assert len(everything) == 3


def test_identify_changes_name_lookup():
    async def run():
        async with ThematicMap() as thematic_map:
            payload = _collection("AT")
            payload["features"][0]["properties"]["name"] = "Austria"
            thematic_map.geometry(payload, layers="countries")
            await thematic_map.ready()
            before = thematic_map.resolve("austria")
            thematic_map.identify(["name"])
            after = thematic_map.resolve("austria")
            explicit = thematic_map.resolve(PropertyMatch("AT", properties="id"))
            return before, after, explicit

    before, after, explicit = asyncio.run(run())
    assert before == []
    assert len(after) == 1
    assert len(explicit) == 1


def test_geometry_transform_derives_layers():
    """A geometry transform runs after earlier geometry and adds layers."""

    async def run():
        async with ThematicMap() as thematic_map:
            thematic_map.geometry(_delayed(_collection("a", "b"), 0.1), layers="points")

            def first_point(store):
                return DerivedLayer("first", store.get("points").features[:1], index=0)

            written = await thematic_map.geometry(first_point)
            return written, thematic_map.store.keys()

    written, keys = asyncio.run(run())
    assert written == ["first"]
    assert keys == ["first", "points"]


def test_center_and_metadata():
    async def run():
        async with ThematicMap() as thematic_map:
            thematic_map.center(0.25)
            thematic_map.meta({"pop*": {"label": "Population"}, "pop_2020": {"number_format": ",d"}})
            return thematic_map

    thematic_map = asyncio.run(run())
    assert thematic_map.settings.focal_center.x == 0.25
    assert thematic_map.settings.focal_center.y == 0.5
    metadata = thematic_map.get_metadata("pop_2020")
    assert metadata.label == "Population"
    assert metadata.number_format == ",d"
    assert thematic_map.get_metadata("area").label is None


def test_source_file_roundtrip(tmp_path):
    """A GeoJSON file path source keeps feature ids and properties."""
    path = tmp_path / "points.geojson"
    path.write_text(json.dumps(_collection("p1", "p2")))

    async def run():
        async with ThematicMap() as thematic_map:
            await thematic_map.geometry(path, layers="points")
            return thematic_map.resolve("P2")

    (feature,) = asyncio.run(run())
    assert feature.geometry["coordinates"] == [1, 1]


def test_zero_padded_csv_keys_join(tmp_path):
    """CSV join keys with leading zeros match the same text in geometry properties."""
    table = tmp_path / "counties.csv"
    table.write_text("fips,pop\n01001,55\n")
    counties = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {"fips": "01001"}, "geometry": {"type": "Point", "coordinates": [-86.6, 32.5]}}
        ],
    }

    async def run():
        async with ThematicMap() as thematic_map:
            thematic_map.geometry(counties, layers="counties", key_field="fips")
            updated = await thematic_map.data(table, key="fips")
            return updated, thematic_map.store.features()[0].properties

    updated, properties = asyncio.run(run())
    assert updated == 1
    assert properties["fips"] == "01001"
    assert properties["pop"] == 55


def test_partial_coroutine_function_is_a_source():
    async def produce(keys):
        return _collection(*keys)

    async def run():
        async with ThematicMap() as thematic_map:
            return await thematic_map.geometry(functools.partial(produce, ["a", "b"]), layers="points")

    assert asyncio.run(run()) == ["points"]


@pytest.mark.parametrize("kind", ["geometry", "data"])
def test_transform_returning_awaitable_is_rejected(kind):
    async def produce(_):
        return None

    async def run():
        async with ThematicMap() as thematic_map:
            thematic_map.geometry(_collection("a"), layers="points")
            await getattr(thematic_map, kind)(lambda arg: produce(arg))

    with pytest.raises(TypeError, match="returned an awaitable"):
        asyncio.run(run())
