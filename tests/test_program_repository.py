"""Tests for the Annict program repository mapping and ordering."""

import json

import httpx
import pytest

from annict_bot.services.annict_client import AnnictClient
from annict_bot.services.program_repository import (
    UNKNOWN_EPISODE_NUMBER,
    AnnictProgramRepository,
    FetchError,
    sort_library_entries,
)

from factories import jst_datetime, make_program, mock_client


ENDPOINT = "https://api.annict.test/graphql"


def _repository(data=None, *, status_code: int = 200, body=None, captured: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if captured is not None:
            captured.append(json.loads(request.content))
        if body is not None:
            return httpx.Response(status_code, json=body)
        return httpx.Response(status_code, json={"data": data})

    return AnnictProgramRepository(AnnictClient(mock_client(handler), ENDPOINT))


def _program_node(**overrides):
    node = {
        "startedAt": "2025-10-09T11:00:00Z",
        "channel": {"name": "TOKYO MX"},
        "episode": {"number": 3, "numberText": "#3", "title": "魔法使いの秘密"},
        "work": {
            "title": "ダンジョン飯",
            "officialSiteUrl": "https://delicious-in-dungeon.com/",
            "image": {
                "recommendedImageUrl": "https://img.example/recommended.jpg",
                "facebookOgImageUrl": "https://img.example/og.jpg",
            },
        },
    }
    node.update(overrides)
    return node


def _programs_payload(*nodes):
    return {"viewer": {"programs": {"nodes": list(nodes)}}}


def _library_payload(*nodes):
    return {"viewer": {"libraryEntries": {"nodes": list(nodes)}}}


@pytest.mark.asyncio
class TestFetchTodayPrograms:

    async def test_maps_complete_node(self):
        repository = _repository(_programs_payload(_program_node()))

        programs = await repository.fetch_today_programs()

        assert len(programs) == 1
        program = programs[0]
        assert program.work.title == "ダンジョン飯"
        assert program.work.official_site_url == "https://delicious-in-dungeon.com/"
        assert program.work.image_url == "https://img.example/recommended.jpg"
        assert program.episode.number_text == "#3"
        assert program.episode.title == "魔法使いの秘密"
        assert program.channel.name == "TOKYO MX"
        assert program.start_time == jst_datetime(2025, 10, 9, 20, 0)

    async def test_falls_back_to_og_image(self):
        node = _program_node(work={
            "title": "ダンジョン飯",
            "officialSiteUrl": "",
            "image": {"recommendedImageUrl": "", "facebookOgImageUrl": "https://img.example/og.jpg"},
        })
        repository = _repository(_programs_payload(node))

        program = (await repository.fetch_today_programs())[0]

        assert program.work.image_url == "https://img.example/og.jpg"
        assert program.work.official_site_url is None

    async def test_empty_image_fields_collapse_to_none(self):
        node = _program_node(work={
            "title": "ダンジョン飯",
            "image": {"recommendedImageUrl": None, "facebookOgImageUrl": ""},
        })
        repository = _repository(_programs_payload(node))

        program = (await repository.fetch_today_programs())[0]

        assert program.work.image_url is None

    async def test_synthesizes_episode_number_text(self):
        node = _program_node(episode={"number": 7, "numberText": "", "title": ""})
        repository = _repository(_programs_payload(node))

        program = (await repository.fetch_today_programs())[0]

        assert program.episode.number_text == "第7話"
        assert program.episode.title is None

    async def test_unknown_episode_placeholder(self):
        nodes = [
            _program_node(episode={"number": None, "numberText": None}),
            _program_node(episode=None),
        ]
        repository = _repository(_programs_payload(*nodes))

        programs = await repository.fetch_today_programs()

        assert [p.episode.number_text for p in programs] == [UNKNOWN_EPISODE_NUMBER] * 2

    async def test_unparseable_start_time_is_unset(self):
        nodes = [
            _program_node(startedAt="yesterday"),
            _program_node(startedAt=""),
            _program_node(startedAt=None),
        ]
        repository = _repository(_programs_payload(*nodes))

        programs = await repository.fetch_today_programs()

        assert [p.start_time for p in programs] == [None, None, None]

    async def test_missing_sub_records_use_defaults(self):
        repository = _repository(_programs_payload({"startedAt": "2025-10-09T11:00:00Z"}))

        program = (await repository.fetch_today_programs())[0]

        assert program.work.title == ""
        assert program.work.image_url is None
        assert program.channel.name == ""
        assert program.episode.number_text == UNKNOWN_EPISODE_NUMBER

    async def test_skips_null_and_malformed_nodes(self):
        repository = _repository(_programs_payload(None, "garbage", _program_node()))

        programs = await repository.fetch_today_programs()

        assert len(programs) == 1
        assert programs[0].work.title == "ダンジョン飯"

    async def test_non_string_start_time_leaves_start_time_unset(self):
        repository = _repository(_programs_payload(
            {"startedAt": 1728470400, "work": {"title": "W"}, "episode": {"numberText": "#1"}}
        ))

        programs = await repository.fetch_today_programs()

        assert len(programs) == 1
        assert programs[0].start_time is None
        assert programs[0].work.title == "W"
        assert programs[0].episode.number_text == "#1"

    async def test_non_integer_episode_number_falls_back_to_placeholder(self):
        repository = _repository(_programs_payload(
            _program_node(episode={"number": "x", "title": "魔法使いの秘密"})
        ))

        programs = await repository.fetch_today_programs()

        assert len(programs) == 1
        assert programs[0].episode.number_text == UNKNOWN_EPISODE_NUMBER
        assert programs[0].episode.title == "魔法使いの秘密"

    async def test_wrongly_typed_sub_record_uses_defaults(self):
        repository = _repository(_programs_payload(_program_node(channel="TOKYO MX", work={"title": 42})))

        programs = await repository.fetch_today_programs()

        assert len(programs) == 1
        assert programs[0].channel.name == ""
        assert programs[0].work.title == ""

    @pytest.mark.parametrize(
        "data",
        [
            None,
            {},
            {"viewer": None},
            {"viewer": {"programs": None}},
            {"viewer": {"programs": {"nodes": None}}},
            {"viewer": {"programs": {"nodes": []}}},
        ],
    )
    async def test_empty_response_yields_empty_list(self, data):
        repository = _repository(data)

        assert await repository.fetch_today_programs() == []

    async def test_http_failure_raises_fetch_error(self):
        repository = _repository(status_code=500, body={"message": "boom"})

        with pytest.raises(FetchError, match="GetPrograms failed"):
            await repository.fetch_today_programs()

    async def test_graphql_errors_raise_fetch_error(self):
        repository = _repository(body={"errors": [{"message": "Unauthorized"}], "data": None})

        with pytest.raises(FetchError, match="Unauthorized"):
            await repository.fetch_today_programs()


@pytest.mark.asyncio
class TestFetchLibraryEntries:

    async def test_sends_season_variable(self):
        captured: list = []
        repository = _repository(_library_payload(), captured=captured)

        await repository.fetch_library_entries("2025-autumn")

        assert captured[0]["variables"] == {"seasons": ["2025-autumn"]}
        assert captured[0]["operationName"] == "GetLibraryEntries"

    async def test_maps_next_episode_and_next_program(self):
        node = {
            "work": {"title": "薬屋のひとりごと", "officialSiteUrl": None, "image": None},
            "nextEpisode": {"number": 2, "numberText": "第2話", "title": "後宮"},
            "nextProgram": {"startedAt": "2025-10-10T15:30:00Z", "channel": {"name": "日本テレビ"}},
        }
        repository = _repository(_library_payload(node))

        entry = (await repository.fetch_library_entries("2025-autumn"))[0]

        assert entry.work.title == "薬屋のひとりごと"
        assert entry.work.official_site_url is None
        assert entry.work.image_url is None
        assert entry.episode.number_text == "第2話"
        assert entry.episode.title == "後宮"
        assert entry.channel.name == "日本テレビ"
        assert entry.start_time == jst_datetime(2025, 10, 11, 0, 30)

    async def test_missing_projections(self):
        node = {"work": {"title": "薬屋のひとりごと"}, "nextEpisode": None, "nextProgram": None}
        repository = _repository(_library_payload(node))

        entry = (await repository.fetch_library_entries("2025-autumn"))[0]

        assert entry.episode.number_text == UNKNOWN_EPISODE_NUMBER
        assert entry.channel.name == ""
        assert entry.start_time is None

    async def test_wrongly_typed_next_program_fields_degrade(self):
        node = {
            "work": {"title": "薬屋のひとりごと"},
            "nextEpisode": {"number": "two"},
            "nextProgram": {"startedAt": ["2025-10-10"], "channel": {"name": None}},
        }
        repository = _repository(_library_payload(node))

        entries = await repository.fetch_library_entries("2025-autumn")

        assert len(entries) == 1
        assert entries[0].episode.number_text == UNKNOWN_EPISODE_NUMBER
        assert entries[0].start_time is None

    async def test_result_is_sorted_unset_first_then_descending(self):
        nodes = [
            {"work": {"title": "A"}, "nextProgram": {"startedAt": "2025-10-10T12:00:00+09:00"}},
            {"work": {"title": "B"}, "nextProgram": None},
            {"work": {"title": "C"}, "nextProgram": {"startedAt": "2025-10-10T11:00:00+09:00"}},
        ]
        repository = _repository(_library_payload(*nodes))

        entries = await repository.fetch_library_entries("2025-autumn")

        assert [entry.work.title for entry in entries] == ["B", "A", "C"]

    async def test_transport_failure_raises_fetch_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        repository = AnnictProgramRepository(AnnictClient(mock_client(handler), ENDPOINT))

        with pytest.raises(FetchError, match="GetLibraryEntries failed"):
            await repository.fetch_library_entries("2025-autumn")


def test_sort_library_entries_orders_unset_first():
    t = jst_datetime(2025, 10, 10, 20, 0)
    later = make_program("later", start_time=t)
    unset = make_program("unset")
    earlier = make_program("earlier", start_time=jst_datetime(2025, 10, 10, 19, 0))

    result = sort_library_entries([later, unset, earlier])

    assert result == [unset, later, earlier]
