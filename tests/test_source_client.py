"""Tests for source loading and decoding."""

import asyncio

import pytest

from mapmap.core.errors import SourceError
from mapmap.core.source_client import SourceClient, coerce_value, decode_payload, detect_format, is_url


def test_detect_format():
    assert detect_format("data/population.csv") == "csv"
    assert detect_format("http://example.com/world.topojson?v=2") == "json"
    assert detect_format("table.TSV") == "tsv"
    assert detect_format("no_extension") == "json"
    assert is_url("https://example.com/x.json")
    assert not is_url("/tmp/x.json")


def test_coerce_value():
    assert coerce_value("12") == 12
    assert coerce_value("-3.5") == -3.5
    assert coerce_value("AT") == "AT"
    assert coerce_value("") == ""


@pytest.mark.parametrize("cell", ["01001", "040", " 12", "1_000", "nan", "inf", "1e999", "+5"])
def test_coerce_value_keeps_text_that_is_not_a_plain_number(cell):
    assert coerce_value(cell) == cell


def test_decode_delimited_text():
    rows = decode_payload("region\tvalue\n1\t12.5\n", "tsv")
    assert rows == [{"region": 1, "value": 12.5}]


def test_decode_invalid_json():
    with pytest.raises(SourceError, match="broken.json"):
        decode_payload("{not json", "json", "broken.json")
    with pytest.raises(SourceError):
        decode_payload("x", "xml")


def test_load_local_files(fixtures_dir):
    async def run():
        async with SourceClient(base_dir=fixtures_dir) as client:
            table = await client.load("regions.tsv")
            topology = await client.load(fixtures_dir / "europe.topojson")
            return table, topology

    table, topology = asyncio.run(run())
    assert table == [{"region": 1, "value": 12.5}, {"region": 2, "value": -3}]
    assert topology["type"] == "Topology"


def test_load_in_memory_and_awaitable():
    async def produce():
        return {"type": "Point", "coordinates": [0, 0]}

    async def run():
        client = SourceClient()
        records = [{"id": 1}]
        same = await client.load(records)
        produced = await client.load(produce())
        await client.close()
        return same is records, produced

    same, produced = asyncio.run(run())
    assert same
    assert produced["type"] == "Point"


def test_load_rejects_unknown_source_types():
    async def run():
        await SourceClient().load(42)

    with pytest.raises(SourceError):
        asyncio.run(run())


def test_missing_file(tmp_path):
    async def run():
        await SourceClient(base_dir=tmp_path).load("missing.csv")

    with pytest.raises(SourceError, match="cannot read file"):
        asyncio.run(run())


def test_fetch_from_server(source_server):
    async def run():
        async with SourceClient() as client:
            return await client.load(source_server.url("population.csv"))

    rows = asyncio.run(run())
    assert rows[0] == {"code": "AT", "population": 9100000, "area": 83879}
