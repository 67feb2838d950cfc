from __future__ import annotations

import math
import random
from collections import Counter

from conftest import make_game

from gamedice.picker import pick, weight_for, weights


def test_empty_pool_picks_nothing():
    assert pick([], use_playtime_weighting=False) is None
    assert pick([], use_playtime_weighting=True) is None


def test_single_item_always_chosen():
    only = make_game("gog", "1", "Only")
    rng = random.Random(3)
    assert all(pick([only], True, rng) is only for _ in range(20))


def test_weights_use_steam_hours_only():
    steam = make_game("steam", "1", "S", playtime_hours=99.0)
    epic = make_game("epic", "2", "E", playtime_hours=99.0, tracked_playtime_hours=40.0)
    negative = make_game("steam", "3", "N", playtime_hours=-5.0)
    assert weight_for(steam) == math.sqrt(100.0)
    assert weight_for(epic) == 1.0
    assert weight_for(negative) == 1.0
    assert weights([steam, epic]) == [10.0, 1.0]


def test_uniform_pick_is_roughly_even():
    pool = [make_game("steam", str(i), f"G{i}") for i in range(4)]
    rng = random.Random(1234)
    counts = Counter(pick(pool, False, rng).id for _ in range(8000))
    for game in pool:
        assert 1700 < counts[game.id] < 2300


def test_weighted_pick_follows_weights():
    heavy = make_game("steam", "1", "Heavy", playtime_hours=99.0)
    light = make_game("steam", "2", "Light", playtime_hours=0.0)
    rng = random.Random(42)
    counts = Counter(pick([heavy, light], True, rng).id for _ in range(11000))
    # expected share 10/11
    assert 9500 < counts["1"] < 10500


def test_seeded_picks_are_reproducible():
    pool = [make_game("steam", str(i), f"G{i}", playtime_hours=float(i)) for i in range(10)]
    first = [pick(pool, True, random.Random(7)).id for _ in range(5)]
    second = [pick(pool, True, random.Random(7)).id for _ in range(5)]
    assert first == second


class TopOfRange(random.Random):
    def __init__(self, value: float) -> None:
        super().__init__()
        self.value = value

    def random(self) -> float:
        return self.value


def test_draw_at_top_of_range_picks_last():
    pool = [make_game("steam", str(i), f"G{i}", playtime_hours=0.1 * i) for i in range(7)]
    assert pick(pool, True, TopOfRange(1.0)) is pool[-1]
    # a draw past the accumulated total still lands on the last game
    assert pick(pool, True, TopOfRange(1.0 + 1e-9)) is pool[-1]
