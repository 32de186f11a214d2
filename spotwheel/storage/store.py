"""
spotwheel.storage.store — JSON Document Store & Async Helper
=============================================================

All game data lives in one JSON file.  Every mutation follows the same
read-modify-write cycle:

    1. An interaction fires in Discord  (async world).
    2. The cog calls ``await run_store(some_function, store, …)``.
    3. ``run_store`` ships the synchronous function to a thread via
       ``asyncio.to_thread()`` so file I/O never blocks the event loop.
    4. The function opens ``store.session()``, which loads the whole
       document, hands out a :class:`GameBook`, and writes everything back
       when the block exits cleanly.

Usage::

    from spotwheel.storage.store import JsonStore, run_store

    store = JsonStore("data/gamedata.json")

    def set_flag(store, guild_id, number):
        with store.session() as book:
            book.game(guild_id, number).closed = True

    await run_store(set_flag, store, guild.id, "7")
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import ParamSpec, TypeVar

from spotwheel.storage.models import GameState

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


class GameBook:
    """Typed view over the raw document for the duration of one session.

    Games are parsed lazily; only games that were touched get serialized
    back, everything else is written out exactly as it was read.
    """

    def __init__(self, raw: dict) -> None:
        self._raw = raw
        self._games: dict[tuple[str, str], GameState] = {}

    def game(self, guild_id: int | str, number: int | str) -> GameState:
        """Return the game for ``(guild_id, number)``, creating it if absent."""
        key = (str(guild_id), str(number))
        if key not in self._games:
            guild = self._raw.get(key[0])
            raw_game = guild.get(key[1]) if isinstance(guild, dict) else None
            self._games[key] = (
                GameState.from_dict(raw_game) if raw_game is not None else GameState.new()
            )
        return self._games[key]

    def find(self, guild_id: int | str, number: int | str) -> GameState | None:
        """Like :meth:`game` but returns ``None`` instead of creating."""
        if self.has_game(guild_id, number):
            return self.game(guild_id, number)
        return None

    def has_game(self, guild_id: int | str, number: int | str) -> bool:
        key = (str(guild_id), str(number))
        if key in self._games:
            return True
        guild = self._raw.get(key[0])
        return isinstance(guild, dict) and key[1] in guild

    def game_numbers(self, guild_id: int | str) -> list[str]:
        numbers = set()
        guild = self._raw.get(str(guild_id))
        if isinstance(guild, dict):
            numbers.update(guild)
        numbers.update(n for g, n in self._games if g == str(guild_id))
        return sorted(numbers, key=lambda n: (len(n), n))

    def games(self, guild_id: int | str) -> Iterator[tuple[str, GameState]]:
        """Iterate ``(number, game)`` over every game of a guild."""
        for number in self.game_numbers(guild_id):
            yield number, self.game(guild_id, number)

    def guild_ids(self) -> list[str]:
        ids = {g for g, value in self._raw.items() if isinstance(value, dict)}
        ids.update(g for g, _ in self._games)
        return sorted(ids)

    def to_dict(self) -> dict:
        doc = {
            guild: dict(games) for guild, games in self._raw.items()
            if isinstance(games, dict)
        }
        for (guild, number), game in self._games.items():
            doc.setdefault(guild, {})[number] = game.to_dict()
        return doc


class JsonStore:
    """Owns the JSON document on disk.

    A single lock serializes sessions so two worker threads cannot
    interleave their read-modify-write cycles.  There is no isolation
    across processes; run one bot per data file.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()

    # -------------------------------------------------------------------
    # Raw document I/O
    # -------------------------------------------------------------------
    def ensure_file(self) -> None:
        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("{}", encoding="utf-8")
            logger.info("Created empty data file at %s", self.path)

    def load(self) -> dict:
        """Return the raw document; a corrupt file is moved aside."""
        with self._lock:
            self.ensure_file()
            try:
                data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            except json.JSONDecodeError:
                self._quarantine()
                return {}
            if not isinstance(data, dict):
                self._quarantine()
                return {}
            return data

    def save(self, data: dict) -> None:
        """Write *data* atomically (temp file + rename)."""
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_name(self.path.name + ".tmp")
            tmp.write_text(
                json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8",
            )
            os.replace(tmp, self.path)

    def _quarantine(self) -> None:
        stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S")
        backup = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        os.replace(self.path, backup)
        logger.error(
            "Data file %s is not valid JSON; moved to %s and starting empty.",
            self.path, backup,
        )

    # -------------------------------------------------------------------
    # Session helper
    # -------------------------------------------------------------------
    @contextmanager
    def session(self) -> Iterator[GameBook]:
        """Yield a :class:`GameBook` that saves on success and discards on error.

        Usage::

            with store.session() as book:
                book.game(guild_id, "7").task_spots["1"] = 50
                # saved automatically on block exit
        """
        with self._lock:
            book = GameBook(self.load())
            yield book
            self.save(book.to_dict())

    def snapshot(self) -> GameBook:
        """A read-only book: changes made to it are never written back."""
        return GameBook(self.load())

    def read_game(self, guild_id: int | str, number: int | str) -> GameState | None:
        return self.snapshot().find(guild_id, number)


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_store(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a **synchronous** store function on a background thread.

    Every store call made from a cog, view or service should go through
    this wrapper::

        game = await run_store(game_service.get_game, store, guild_id, "7")
    """
    return await asyncio.to_thread(func, *args, **kwargs)
