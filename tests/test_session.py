from core.state import INITIAL_METRICS
from engine.config import EngineConfig
from engine.session import (
    allocate_tokens,
    can_run_plan,
    carry_over,
    metrics_before_round,
    new_game,
    next_round,
    reset_round,
    run_plan,
    tokens_used,
)

from builders import make_card, make_config, make_disaster, make_synergy

CFG = EngineConfig(difficulty="normal")

CARDS = [
    make_card("a", visibility_insight=5, complexity_risk=2),
    make_card("b", efficiency_throughput=4, complexity_risk=1),
    make_card("c", early_warning_prevention=3),
    make_card("d", sustainability_emissions=6, complexity_risk=1),
]
SYNERGIES = [make_synergy("ab", ["a", "b"], "early_warning_prevention", 2)]
GAME_CONFIG = make_config(
    disasters=[make_disaster("outage", rnd=1, trigger="visibility_insight", threshold=35, penalties={"efficiency_throughput": -4})]
)


def play(state):
    return run_plan(state, cards=CARDS, game_config=GAME_CONFIG, synergies=SYNERGIES, config=CFG)


def test_new_game():
    s = new_game(EngineConfig(difficulty="hard"))
    assert s.current_round == 1
    assert s.metrics == INITIAL_METRICS
    assert s.tokens_available == 8
    assert s.allocations == {}
    assert not can_run_plan(s)


def test_allocate_respects_card_cap_and_budget():
    s = new_game(CFG)
    s = allocate_tokens(s, "a", 5)
    assert s.allocations["a"] == 3
    s = allocate_tokens(s, "b", 3)
    s = allocate_tokens(s, "c", 3)
    s = allocate_tokens(s, "d", 3)
    assert s.allocations["d"] == 1
    assert tokens_used(s.allocations) == 10
    s = allocate_tokens(s, "a", -2)
    assert s.allocations["a"] == 0
    assert can_run_plan(s)


def test_allocate_does_not_mutate_previous_state():
    s0 = new_game(CFG)
    s1 = allocate_tokens(s0, "a", 2)
    assert s0.allocations == {}
    assert s1.allocations == {"a": 2}


def test_run_plan_records_history_and_events():
    s = allocate_tokens(new_game(CFG), "a", 2)
    s = allocate_tokens(s, "b", 1)
    s, result = play(s)

    # visibility 25 + 10 = 35 hits the outage threshold
    assert [d.id for d in result.triggered_disasters] == ["outage"]
    assert [x.id for x in result.active_synergies] == ["ab"]
    assert s.metrics == result.metrics_after
    assert s.metrics.efficiency_throughput == 30  # +4 then -4
    assert len(s.round_history) == 1
    assert s.round_history[0].metrics_before == INITIAL_METRICS
    assert s.round_history[0].allocations == {"a": 2, "b": 1}
    assert [e.id for e in s.disaster_events] == ["outage"]
    assert not s.is_game_complete


def test_rerun_replaces_history_entry():
    s = allocate_tokens(new_game(CFG), "a", 2)
    s, _ = play(s)
    s = allocate_tokens(s, "a", 3)
    s, second = play(s)

    assert len(s.round_history) == 1
    assert s.round_history[0].allocations == {"a": 3}
    assert s.round_history[0].metrics_before == INITIAL_METRICS
    assert s.metrics == second.metrics_after
    # the same disaster in the same round is only recorded once
    assert [e.id for e in s.disaster_events] == ["outage"]


def test_next_round_carries_half_of_allocations():
    s = new_game(CFG)
    for cid, t in (("a", 3), ("b", 2), ("c", 1)):
        s = allocate_tokens(s, cid, t)
    s, _ = play(s)
    s = next_round(s, CFG)

    assert s.current_round == 2
    assert s.allocations == {"a": 1, "b": 1, "c": 0}
    assert s.tokens_available == 5 + 2
    assert metrics_before_round(s) == s.round_history[0].metrics_after


def test_game_completes_on_final_round_and_stops_advancing():
    s = new_game(CFG)
    for _ in range(3):
        s = allocate_tokens(s, "c", 1)
        s, _ = play(s)
        s = next_round(s, CFG)
    assert s.current_round == 3
    assert s.is_game_complete
    assert next_round(s, CFG) is s
    assert [h.round for h in s.round_history] == [1, 2, 3]


def test_reset_round():
    s = allocate_tokens(new_game(CFG), "a", 3)
    assert reset_round(s).allocations == {}

    s, _ = play(s)
    s = next_round(s, CFG)
    s = allocate_tokens(s, "b", 2)
    assert reset_round(s).allocations == {"a": 1}


def test_carry_over_floors():
    assert carry_over({"x": 3, "y": 1, "z": 0, "w": 7}) == {"x": 1, "y": 0, "z": 0, "w": 3}


def test_metrics_before_falls_back_without_history():
    s = next_round(new_game(CFG), CFG)
    assert metrics_before_round(s) == INITIAL_METRICS
