import time

import numpy as np
import pytest

from notation.mini_notation import (
    TimedEvent,
    drum_rows,
    expand_events,
    expand_steps,
    partition,
    slot_boundary,
    split_top_level,
    step_matrix,
)


def _hits(steps: np.ndarray) -> list[int]:
    return [int(index) for index in np.flatnonzero(steps)]


def test_subdivided_quarter_expands_to_two_hits():
    steps = expand_steps("bd ~ [sd sd] ~", 16)

    assert steps.dtype == bool
    assert steps.shape == (16,)
    assert steps[0]
    assert not steps[4]
    assert steps[8] and steps[10]
    assert not steps[12]
    assert _hits(steps) == [0, 8, 10]


def test_events_carry_value_start_and_duration():
    events = expand_events("bd ~ [sd sd] ~", 16)

    assert events == [
        TimedEvent("bd", 0, 4),
        TimedEvent("sd", 8, 2),
        TimedEvent("sd", 10, 2),
    ]


@pytest.mark.parametrize("total", [7, 12, 16, 32])
def test_child_spans_partition_parent_exactly(total):
    for count in range(1, 21):
        spans = partition(total, count)
        assert spans[0][0] == 0
        assert spans[-1][1] == total
        for (_, end), (start, _) in zip(spans, spans[1:]):
            assert end == start


def test_slot_boundary_rounds_half_up():
    # 16 * 1 / 32 == 0.5 rounds up, 16 * 3 / 32 == 1.5 rounds up
    assert slot_boundary(1, 16, 32) == 1
    assert slot_boundary(3, 16, 32) == 2
    assert slot_boundary(1, 16, 3) == 5
    assert slot_boundary(2, 16, 3) == 11


def test_repeat_spreads_evenly_and_recurses_into_groups():
    assert _hits(expand_steps("hh*8", 16)) == [0, 2, 4, 6, 8, 10, 12, 14]
    assert _hits(expand_steps("bd*3", 16)) == [0, 5, 11]
    assert _hits(expand_steps("[bd sd]*2", 16)) == [0, 4, 8, 12]


def test_malformed_repeat_falls_back_to_single_slot_literal():
    events = expand_events("bd*x", 16)

    assert events == [TimedEvent("bd", 0, 1)]
    assert _hits(expand_steps("bd*x ~", 16)) == [0]


def test_parallel_layers_are_not_subdivided():
    steps = expand_steps("bd*4, hh*8", 16)

    assert _hits(steps) == [0, 2, 4, 6, 8, 10, 12, 14]
    events = expand_events("[c3,e3,g3]", 16)
    assert [event.value for event in events] == ["c3", "e3", "g3"]
    assert all(event.start_step == 0 and event.duration == 16 for event in events)


def test_angle_group_selects_one_child_per_cycle():
    assert [event.value for event in expand_events("<bd sd cp>", 16)] == ["bd"]
    assert [event.value for event in expand_events("<bd sd cp>", 16, cycle=1)] == ["sd"]
    assert [event.value for event in expand_events("<bd sd cp>", 16, cycle=4)] == ["sd"]


def test_empty_and_rest_only_expressions_yield_nothing():
    assert not expand_steps("", 16).any()
    assert not expand_steps("~ - ~", 16).any()
    assert expand_events("~ ~", 16) == []
    assert expand_steps("bd", 0).shape == (0,)


def test_single_child_group_matches_unwrapped_child():
    assert expand_events("[bd]", 16) == expand_events("bd", 16)
    assert np.array_equal(expand_steps("[[bd sd]]", 16), expand_steps("bd sd", 16))


def test_nested_groups_subdivide_recursively():
    assert _hits(expand_steps("[bd [sd sd]]", 16)) == [0, 8, 12]


def test_split_top_level_respects_brackets():
    assert split_top_level("bd [sd  sd] <a b>") == ["bd", "[sd  sd]", "<a b>"]
    assert split_top_level("bd*2, [hh,oh] ~", ",") == ["bd*2", "[hh,oh] ~"]


def test_drum_rows_and_step_matrix():
    rows = drum_rows("bd*4, ~ cp ~ cp", 16)

    assert [row.sound for row in rows] == ["bd", "cp"]
    assert _hits(rows[1].steps) == [4, 12]
    matrix = step_matrix("bd*4, ~ cp ~ cp", 16)
    assert matrix.shape == (2, 16)
    assert step_matrix("", 16).shape == (0, 16)


def test_huge_repeat_counts_fill_every_slot_without_stalling():
    started = time.perf_counter()
    steps = expand_steps("hh*20000000", 16)
    elapsed = time.perf_counter() - started

    assert elapsed < 1.0
    assert _hits(steps) == list(range(16))
    assert _hits(expand_steps("hh*17", 16)) == list(range(16))
    assert _hits(expand_steps("[bd*99999 ~]", 8)) == [0, 1, 2, 3]


def test_runaway_nesting_degrades_to_a_first_slot_event():
    expression = "[" * 600 + "bd" + "]" * 600

    events = expand_events(expression, 16)

    assert len(events) == 1
    assert events[0].start_step == 0
    assert events[0].duration == 1
    assert _hits(expand_steps("[[[bd sd]]]", 4)) == [0, 2]
