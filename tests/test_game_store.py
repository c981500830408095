"""Tests for the game store: persistence, transitions, statistics and covers."""

import asyncio
import itertools
import json
import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
from hypothesis import given, settings, strategies as st

from playedyet.models import (
    BacklogGame,
    BacklogInput,
    GameCollections,
    GameInput,
    PlayedGame,
)
from playedyet.services.blob_store import BlobStore
from playedyet.services.errors import ValidationError
from playedyet.services.game_store import (
    DATA_FILE,
    GameStore,
    MonotonicIdGenerator,
    to_iso,
)


class FakeImageService:
    """Stands in for cover acquisition; returns a fixed path or a per-title answer."""

    def __init__(self, result: Any = None) -> None:
        self.result = result
        self.calls: list[tuple[str, bool]] = []

    async def acquire(self, title: str, force_refresh: bool = False) -> str | None:
        self.calls.append((title, force_refresh))
        if callable(self.result):
            return self.result(title)
        return self.result


class CountingBlobStore(BlobStore):
    """Blob store that counts JSON writes."""

    def __init__(self, root: Path) -> None:
        super().__init__(root)
        self.json_writes = 0

    async def write_json(self, path: str | Path, data: dict[str, Any]) -> Path:
        self.json_writes += 1
        return await super().write_json(path, data)


class FailingBlobStore(BlobStore):
    async def write_json(self, path: str | Path, data: dict[str, Any]) -> Path:
        raise OSError("disk full")


class StepClock:
    """Clock that advances one second per reading."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=UTC)) -> None:
        self.now = start
        self.readings: list[datetime] = []

    def __call__(self) -> datetime:
        current = self.now
        self.readings.append(current)
        self.now += timedelta(seconds=1)
        return current


def make_store(
    root: Path,
    image_service: FakeImageService | None = None,
    blob_store: BlobStore | None = None,
    clock: StepClock | None = None,
    id_generator: Any = None,
) -> GameStore:
    return GameStore(
        blob_store or BlobStore(root),
        image_service or FakeImageService(),  # type: ignore[arg-type]
        id_generator=id_generator,
        clock=clock or StepClock(),
    )


def played(game_id: int, genre: str = "", tags: list[str] | None = None, hours: float = 0.0, **kwargs: Any) -> PlayedGame:
    return PlayedGame(
        id=game_id,
        title=kwargs.pop("title", f"Game {game_id}"),
        genre=genre,
        tags=tags or [],
        hours=hours,
        created_at="2024-01-01T00:00:00.000Z",
        **kwargs,
    )


finite_hours = st.floats(min_value=0, max_value=10_000, allow_nan=False, allow_infinity=False)

played_game_strategy = st.builds(
    PlayedGame,
    id=st.integers(min_value=1, max_value=2**53),
    title=st.text(min_size=1, max_size=30).filter(lambda s: s.strip()),
    genre=st.text(max_size=15),
    tags=st.lists(st.text(max_size=10), max_size=4),
    hours=finite_hours,
    created_at=st.just("2024-01-01T00:00:00.000Z"),
    rating=st.none() | st.floats(min_value=0, max_value=10, allow_nan=False),
    difficulty=st.text(max_size=10),
    platform=st.text(max_size=10),
    is_finished=st.booleans(),
    completion_date=st.none() | st.just("2024-05-01T00:00:00.000Z"),
    image_url=st.none() | st.text(min_size=1, max_size=30),
)

backlog_game_strategy = st.builds(
    BacklogGame,
    id=st.integers(min_value=1, max_value=2**53),
    title=st.text(min_size=1, max_size=30).filter(lambda s: s.strip()),
    genre=st.text(max_size=15),
    tags=st.lists(st.text(max_size=10), max_size=4),
    created_at=st.just("2024-02-01T12:30:00.000Z"),
)

collections_strategy = st.builds(
    GameCollections,
    games=st.lists(played_game_strategy, max_size=5, unique_by=lambda g: g.id),
    to_play_games=st.lists(backlog_game_strategy, max_size=5, unique_by=lambda g: g.id),
)


class TestPersistence:
    """Saving and loading the collections document."""

    @given(collections_strategy)
    @settings(max_examples=50, deadline=None)
    def test_save_then_load_round_trip(self, collections: GameCollections) -> None:
        """A saved document loads back field-for-field with order preserved."""

        async def scenario(root: Path) -> None:
            store = make_store(root)
            assert await store.replace_all(collections)

            reloaded = make_store(root)
            await reloaded.initialize()
            assert reloaded.snapshot() == collections

        with tempfile.TemporaryDirectory() as temp_dir:
            asyncio.run(scenario(Path(temp_dir)))

    @given(collections_strategy)
    @settings(max_examples=25, deadline=None)
    def test_initialize_is_idempotent(self, collections: GameCollections) -> None:
        async def scenario(root: Path) -> None:
            await make_store(root).replace_all(collections)

            store = make_store(root)
            await store.initialize()
            first = store.snapshot()
            await store.initialize()
            assert store.snapshot() == first

        with tempfile.TemporaryDirectory() as temp_dir:
            asyncio.run(scenario(Path(temp_dir)))

    @pytest.mark.asyncio
    async def test_missing_file_starts_empty(self, tmp_path: Path) -> None:
        store = make_store(tmp_path)
        await store.initialize()

        assert store.initialized
        assert store.games == ()
        assert store.to_play_games == ()

    @pytest.mark.asyncio
    async def test_corrupt_file_starts_empty(self, tmp_path: Path) -> None:
        (tmp_path / DATA_FILE).write_text("{not json", encoding="utf-8")

        store = make_store(tmp_path)
        await store.initialize()

        assert store.games == ()
        assert store.to_play_games == ()

    @pytest.mark.asyncio
    async def test_document_uses_camel_case_keys(self, tmp_path: Path) -> None:
        store = make_store(tmp_path, image_service=FakeImageService("/covers/a.jpg"))
        await store.initialize()
        await store.add_game(GameInput(title="Celeste", genre="Platformer", tags=["hard"], hours=12))
        await store.add_to_play_game(BacklogInput(title="Hades"))

        data = json.loads((tmp_path / DATA_FILE).read_text(encoding="utf-8"))
        assert set(data) == {"games", "toPlayGames"}
        game = data["games"][0]
        assert game["isFinished"] is False
        assert game["completionDate"] is None
        assert game["imageUrl"] == "/covers/a.jpg"
        assert game["createdAt"] == "2024-01-01T00:00:00.000Z"
        assert data["toPlayGames"][0]["title"] == "Hades"

    @pytest.mark.asyncio
    async def test_failed_save_keeps_memory_and_reports(self, tmp_path: Path) -> None:
        store = make_store(tmp_path, blob_store=FailingBlobStore(tmp_path))
        await store.initialize()

        game = await store.add_game(GameInput(title="Outer Wilds"))

        assert store.get_game(game.id) == game
        assert store.last_save_succeeded is False
        assert await store.save() is False


class TestIds:
    def test_generator_never_repeats_for_a_frozen_clock(self) -> None:
        generator = MonotonicIdGenerator(clock_ms=lambda: 1_000)
        assert [generator() for _ in range(4)] == [1_000, 1_001, 1_002, 1_003]

    def test_generator_follows_a_moving_clock(self) -> None:
        readings = iter([5, 50, 40])
        generator = MonotonicIdGenerator(clock_ms=lambda: next(readings))
        assert [generator(), generator(), generator()] == [5, 50, 51]

    @pytest.mark.asyncio
    async def test_rapid_adds_get_distinct_ids(self, tmp_path: Path) -> None:
        store = make_store(tmp_path, id_generator=MonotonicIdGenerator(clock_ms=lambda: 42))
        await store.initialize()

        for index in range(10):
            await store.add_game(GameInput(title=f"Game {index}"))
            await store.add_to_play_game(BacklogInput(title=f"Backlog {index}"))

        assert len({g.id for g in store.games}) == 10
        assert len({g.id for g in store.to_play_games}) == 10

    @pytest.mark.asyncio
    async def test_new_ids_skip_ids_already_loaded(self, tmp_path: Path) -> None:
        store = make_store(tmp_path, id_generator=MonotonicIdGenerator(clock_ms=lambda: 7))
        await store.replace_all(GameCollections(games=[played(7), played(8)]))

        added = await store.add_game(GameInput(title="New"))

        assert added.id == 9

    def test_iso_timestamps_use_z_suffix(self) -> None:
        moment = datetime(2024, 3, 4, 5, 6, 7, 891_000, tzinfo=UTC)
        assert to_iso(moment) == "2024-03-04T05:06:07.891Z"


class TestAddAndValidate:
    @pytest.mark.asyncio
    async def test_add_game_defaults(self, tmp_path: Path) -> None:
        images = FakeImageService("/covers/celeste.jpg")
        store = make_store(tmp_path, image_service=images)
        await store.initialize()

        game = await store.add_game(GameInput(title="Celeste", hours=3.5, rating=9))

        assert game.is_finished is False
        assert game.completion_date is None
        assert game.image_url == "/covers/celeste.jpg"
        assert game.rating == 9
        assert images.calls == [("Celeste", False)]
        assert store.games == (game,)

    @pytest.mark.asyncio
    async def test_add_game_without_cover_still_creates_record(self, tmp_path: Path) -> None:
        store = make_store(tmp_path, image_service=FakeImageService(None))
        await store.initialize()

        game = await store.add_game(GameInput(title="Obscure Indie"))

        assert game.image_url is None
        assert store.get_game(game.id) is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "game_input",
        [
            GameInput(title="   "),
            GameInput(title="Doom", hours=-1),
            GameInput(title="Doom", rating=11),
            GameInput(title="Doom", rating=-0.5),
        ],
    )
    async def test_add_game_rejects_invalid_input_without_mutation(
        self, tmp_path: Path, game_input: GameInput
    ) -> None:
        images = FakeImageService("/x.jpg")
        store = make_store(tmp_path, image_service=images)
        await store.initialize()

        with pytest.raises(ValidationError):
            await store.add_game(game_input)

        assert store.games == ()
        assert images.calls == []
        assert not (tmp_path / DATA_FILE).exists()

    @pytest.mark.asyncio
    async def test_backlog_requires_title(self, tmp_path: Path) -> None:
        store = make_store(tmp_path)
        await store.initialize()

        with pytest.raises(ValidationError):
            await store.add_to_play_game(BacklogInput(title=""))
        assert store.to_play_games == ()


class TestMoveToPlayed:
    @pytest.mark.asyncio
    async def test_move_creates_fresh_played_record(self, tmp_path: Path) -> None:
        clock = StepClock()
        blob_store = CountingBlobStore(tmp_path)
        store = make_store(
            tmp_path,
            image_service=FakeImageService("/covers/hades.jpg"),
            blob_store=blob_store,
            clock=clock,
        )
        await store.initialize()
        backlog = await store.add_to_play_game(
            BacklogInput(title="Hades", genre="Roguelike", tags=["action", "greek"])
        )
        writes_before = blob_store.json_writes

        moved = await store.move_to_played(backlog.id, hours=5)

        assert moved is not None
        assert store.get_to_play_game(backlog.id) is None
        assert store.games == (moved,)
        assert (moved.title, moved.genre, moved.tags) == ("Hades", "Roguelike", ["action", "greek"])
        assert moved.hours == 5
        assert moved.id != backlog.id
        assert moved.created_at == to_iso(clock.readings[-1])
        assert moved.created_at != backlog.created_at
        assert moved.image_url == "/covers/hades.jpg"
        # Both collections change in one write
        assert blob_store.json_writes == writes_before + 1

    @pytest.mark.asyncio
    async def test_move_persists_both_collections(self, tmp_path: Path) -> None:
        store = make_store(tmp_path)
        await store.initialize()
        backlog = await store.add_to_play_game(BacklogInput(title="Tunic"))
        await store.move_to_played(backlog.id)

        reloaded = make_store(tmp_path)
        await reloaded.initialize()
        assert reloaded.to_play_games == ()
        assert [g.title for g in reloaded.games] == ["Tunic"]

    @pytest.mark.asyncio
    async def test_move_unknown_id_is_noop(self, tmp_path: Path) -> None:
        blob_store = CountingBlobStore(tmp_path)
        store = make_store(tmp_path, blob_store=blob_store)
        await store.initialize()

        assert await store.move_to_played(12345) is None
        assert store.games == ()
        assert blob_store.json_writes == 0

    @pytest.mark.asyncio
    async def test_moved_record_never_reuses_backlog_id(self, tmp_path: Path) -> None:
        (tmp_path / "data.json").write_text(
            json.dumps({"games": [], "toPlayGames": [{"id": 1, "title": "Hades"}]}), encoding="utf-8"
        )
        store = make_store(tmp_path, id_generator=itertools.count(1).__next__)
        await store.initialize()

        moved = await store.move_to_played(1)

        assert moved is not None
        assert moved.id != 1
        assert store.to_play_games == ()


class TestUpdate:
    @given(
        patches=st.lists(
            st.fixed_dictionaries(
                {},
                optional={
                    "title": st.text(min_size=1, max_size=20).filter(lambda s: s.strip()),
                    "genre": st.text(max_size=10),
                    "hours": finite_hours,
                    "is_finished": st.booleans(),
                    "created_at": st.just("1999-01-01T00:00:00.000Z"),
                    "id": st.integers(),
                },
            ),
            max_size=5,
        )
    )
    @settings(max_examples=30, deadline=None)
    def test_created_at_and_id_survive_any_updates(self, patches: list[dict[str, Any]]) -> None:
        async def scenario(root: Path) -> None:
            store = make_store(root)
            await store.initialize()
            game = await store.add_game(GameInput(title="Original"))

            for patch in patches:
                assert await store.update_game(game.id, patch)

            updated = store.get_game(game.id)
            assert updated is not None
            assert updated.created_at == game.created_at
            assert updated.id == game.id

        with tempfile.TemporaryDirectory() as temp_dir:
            asyncio.run(scenario(Path(temp_dir)))

    @pytest.mark.asyncio
    async def test_title_change_overwrites_cover_even_with_none(self, tmp_path: Path) -> None:
        images = FakeImageService(None)
        store = make_store(tmp_path, image_service=images)
        await store.replace_all(GameCollections(games=[played(1, title="Old Title", image_url="/a.jpg")]))

        assert await store.update_game(1, {"title": "New Title"})

        game = store.get_game(1)
        assert game is not None
        assert game.title == "New Title"
        assert game.image_url is None
        assert images.calls == [("New Title", False)]

    @pytest.mark.asyncio
    async def test_same_title_or_no_title_keeps_cover(self, tmp_path: Path) -> None:
        images = FakeImageService(None)
        store = make_store(tmp_path, image_service=images)
        await store.replace_all(GameCollections(games=[played(1, title="Same", image_url="/a.jpg")]))

        await store.update_game(1, {"title": "Same", "genre": "RPG"})
        await store.update_game(1, {"hours": 4})

        game = store.get_game(1)
        assert game is not None
        assert game.image_url == "/a.jpg"
        assert game.genre == "RPG"
        assert game.hours == 4
        assert images.calls == []

    @pytest.mark.asyncio
    async def test_patch_cannot_set_image_url(self, tmp_path: Path) -> None:
        store = make_store(tmp_path)
        await store.replace_all(GameCollections(games=[played(1, image_url="/a.jpg")]))

        await store.update_game(1, {"image_url": "/evil.jpg"})

        game = store.get_game(1)
        assert game is not None
        assert game.image_url == "/a.jpg"

    @pytest.mark.asyncio
    async def test_unknown_patch_field_rejected(self, tmp_path: Path) -> None:
        store = make_store(tmp_path)
        await store.replace_all(GameCollections(games=[played(1)]))

        with pytest.raises(ValidationError):
            await store.update_game(1, {"metacritic": 90})

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "patch",
        [
            {"tags": "co-op"},
            {"tags": ["ok", 3]},
            {"genre": 7},
            {"platform": None},
            {"is_finished": "yes"},
            {"completion_date": 2024},
        ],
    )
    async def test_wrongly_typed_patch_rejected_without_mutation(self, tmp_path: Path, patch: dict[str, Any]) -> None:
        original = played(1, genre="RPG", tags=["solo"])
        store = make_store(tmp_path)
        await store.replace_all(GameCollections(games=[original]))

        with pytest.raises(ValidationError):
            await store.update_game(1, patch)

        assert store.get_game(1) == original

    @pytest.mark.asyncio
    async def test_tags_patch_accepts_tuple_and_none(self, tmp_path: Path) -> None:
        store = make_store(tmp_path)
        await store.replace_all(GameCollections(games=[played(1, tags=["solo"])]))

        assert await store.update_game(1, {"tags": ("co-op", "local")})
        assert store.get_game(1).tags == ["co-op", "local"]  # type: ignore[union-attr]

        assert await store.update_game(1, {"tags": None})
        assert store.get_game(1).tags == []  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_update_unknown_id_is_noop(self, tmp_path: Path) -> None:
        store = make_store(tmp_path)
        await store.initialize()

        assert await store.update_game(99, {"genre": "RPG"}) is False
        assert await store.update_game_hours(99, 3) is False
        assert await store.toggle_finished(99) is False
        assert await store.delete_game(99) is False
        assert await store.delete_to_play_game(99) is False

    @pytest.mark.asyncio
    async def test_update_hours_parses_text(self, tmp_path: Path) -> None:
        store = make_store(tmp_path)
        await store.replace_all(GameCollections(games=[played(1, hours=1)]))

        assert await store.update_game_hours(1, "2.5")
        game = store.get_game(1)
        assert game is not None
        assert game.hours == 2.5

        with pytest.raises(ValidationError):
            await store.update_game_hours(1, "abc")

    @pytest.mark.asyncio
    async def test_toggle_finished_flips_flag(self, tmp_path: Path) -> None:
        store = make_store(tmp_path)
        await store.replace_all(GameCollections(games=[played(1)]))

        await store.toggle_finished(1)
        assert store.get_game(1).is_finished is True  # type: ignore[union-attr]
        await store.toggle_finished(1)
        assert store.get_game(1).is_finished is False  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_delete_removes_only_target(self, tmp_path: Path) -> None:
        store = make_store(tmp_path)
        await store.replace_all(GameCollections(games=[played(1), played(2), played(3)]))

        assert await store.delete_game(2)
        assert [g.id for g in store.games] == [1, 3]


class TestStatistics:
    @pytest.mark.asyncio
    async def test_stats_by_genre(self, tmp_path: Path) -> None:
        store = make_store(tmp_path)
        await store.replace_all(
            GameCollections(games=[played(1, "RPG", hours=10), played(2, "RPG", hours=5), played(3, "Puzzle", hours=2)])
        )

        assert store.get_stats_by_genre() == {"RPG": 15, "Puzzle": 2}
        assert store.get_total_hours() == 17
        assert store.get_top_genre() == "RPG"

    @pytest.mark.asyncio
    async def test_stats_by_tag_double_counts(self, tmp_path: Path) -> None:
        store = make_store(tmp_path)
        await store.replace_all(
            GameCollections(games=[played(1, tags=["co-op", "long"], hours=10), played(2, tags=["long"], hours=3)])
        )

        assert store.get_stats_by_tag() == {"co-op": 10, "long": 13}

    @pytest.mark.asyncio
    async def test_empty_tags_are_not_counted(self, tmp_path: Path) -> None:
        store = make_store(tmp_path)
        await store.replace_all(GameCollections(games=[played(1, tags=["", "solo"], hours=2)]))

        assert store.get_stats_by_tag() == {"solo": 2}

    @pytest.mark.asyncio
    async def test_top_genre_tie_goes_to_later_genre(self, tmp_path: Path) -> None:
        store = make_store(tmp_path)
        await store.replace_all(GameCollections(games=[played(1, "RPG", hours=4), played(2, "Puzzle", hours=4)]))

        assert store.get_top_genre() == "Puzzle"

    @pytest.mark.asyncio
    async def test_top_genre_of_empty_library(self, tmp_path: Path) -> None:
        store = make_store(tmp_path)
        await store.initialize()

        assert store.get_top_genre() == "None"
        assert store.get_total_hours() == 0

    @given(st.lists(st.tuples(st.sampled_from(["RPG", "FPS", "Puzzle"]), finite_hours), max_size=10))
    @settings(max_examples=50, deadline=None)
    def test_genre_totals_sum_to_total_hours(self, entries: list[tuple[str, float]]) -> None:
        async def scenario(root: Path) -> None:
            store = make_store(root)
            games = [played(index + 1, genre, hours=hours) for index, (genre, hours) in enumerate(entries)]
            await store.replace_all(GameCollections(games=games))
            assert sum(store.get_stats_by_genre().values()) == pytest.approx(store.get_total_hours())

        with tempfile.TemporaryDirectory() as temp_dir:
            asyncio.run(scenario(Path(temp_dir)))


class TestBulkOperations:
    @pytest.mark.asyncio
    async def test_refresh_keeps_old_cover_when_nothing_found(self, tmp_path: Path) -> None:
        images = FakeImageService(lambda title: "/new/found.jpg" if title == "Found" else None)
        blob_store = CountingBlobStore(tmp_path)
        store = make_store(tmp_path, image_service=images, blob_store=blob_store)
        await store.replace_all(
            GameCollections(
                games=[
                    played(1, title="Found", image_url="/old/1.jpg"),
                    played(2, title="Missing", image_url="/old/2.jpg"),
                ]
            )
        )
        writes_before = blob_store.json_writes

        progress = [p async for p in store.refresh_images()]

        assert [p.games_processed for p in progress] == [1, 2]
        assert progress[-1].total_games == 2
        assert progress[-1].covers_updated == 1
        assert store.get_game(1).image_url == "/new/found.jpg"  # type: ignore[union-attr]
        assert store.get_game(2).image_url == "/old/2.jpg"  # type: ignore[union-attr]
        assert images.calls == [("Found", True), ("Missing", True)]
        assert blob_store.json_writes == writes_before + 1

    @pytest.mark.asyncio
    async def test_clear_all_persists_empty_library(self, tmp_path: Path) -> None:
        store = make_store(tmp_path)
        await store.replace_all(
            GameCollections(games=[played(1)], to_play_games=[BacklogGame(1, "B", "", [], "2024-01-01T00:00:00.000Z")])
        )

        assert await store.clear_all()

        reloaded = make_store(tmp_path)
        await reloaded.initialize()
        assert reloaded.snapshot() == GameCollections()
