import pytest

from core.effects import (
    apply_allocation_effects,
    apply_disaster_penalties,
    apply_synergy_bonuses,
    sprawl_penalty,
    token_multipliers,
)
from core.rng import seeded_stream

from builders import DEFAULT_TM, make_card, make_disaster, make_metrics, make_synergy, make_tm


# -------------------------
# allocation effects
# -------------------------


def test_basic_token_effects():
    cards = [make_card("card1", visibility_insight=5, complexity_risk=2)]
    r = apply_allocation_effects(make_metrics(), {"card1": 2}, cards, DEFAULT_TM)
    assert r.visibility_insight == 35
    assert r.complexity_risk == 24


def test_diminishing_returns_after_threshold():
    cards = [make_card("card1", visibility_insight=10)]
    r = apply_allocation_effects(make_metrics(), {"card1": 3}, cards, make_tm(dr_threshold=2))
    # 10 + 10 + 5
    assert r.visibility_insight == 50


@pytest.mark.parametrize("k", range(0, 8))
@pytest.mark.parametrize("t", [0, 1, 2, 3, 4])
def test_diminishing_returns_schedule(k, t):
    per_token = 6.0
    mult = 0.4
    cards = [make_card("c", efficiency_throughput=per_token)]
    tm = make_tm(dr_threshold=t, dr_mult=mult, sprawl=100)
    r = apply_allocation_effects(make_metrics(efficiency_throughput=0), {"c": k}, cards, tm)
    expected = min(k, t) * per_token + max(0, k - t) * per_token * mult
    assert r.efficiency_throughput == pytest.approx(expected)


def test_multiplier_schedule_is_token_ordered():
    assert token_multipliers(5, make_tm(dr_threshold=2, dr_mult=0.5)) == [1.0, 1.0, 0.5, 0.5, 0.5]
    assert token_multipliers(0, DEFAULT_TM) == []


def test_sprawl_penalty_past_threshold():
    cards = [make_card(f"card{i}", visibility_insight=1) for i in range(1, 6)]
    allocs = {f"card{i}": 3 for i in range(1, 6)}
    r = apply_allocation_effects(make_metrics(), allocs, cards, make_tm(dr_threshold=10))
    # 15 tokens, 3 over threshold, 2 each
    assert r.complexity_risk == 26


def test_no_sprawl_penalty_at_or_below_threshold():
    cards = [make_card("card1")]
    r = apply_allocation_effects(make_metrics(), {"card1": 3}, cards, make_tm(dr_threshold=10))
    assert r.complexity_risk == 20
    assert sprawl_penalty({"a": 6, "b": 6}, DEFAULT_TM) == 0.0


def test_sprawl_penalty_grows_per_excess_token():
    tm = make_tm(sprawl=12, sprawl_penalty=2.0)
    previous = sprawl_penalty({"x": 12}, tm)
    for total in range(13, 20):
        current = sprawl_penalty({"x": total}, tm)
        assert current - previous == 2.0
        previous = current


def test_sprawl_counts_unknown_cards_too():
    # the surcharge is keyed on total spend, not on which cards exist
    r = apply_allocation_effects(make_metrics(), {"ghost": 14}, [], DEFAULT_TM)
    assert r.complexity_risk == 24


@pytest.mark.parametrize("allocs", [{}, {"card1": 0}, {"card1": 0, "card2": 0}])
def test_zero_allocation_identity(allocs):
    m = make_metrics()
    cards = [make_card("card1", visibility_insight=10), make_card("card2", complexity_risk=4)]
    assert apply_allocation_effects(m, allocs, cards, DEFAULT_TM) == m


def test_unknown_card_is_skipped():
    cards = [make_card("card1", visibility_insight=5)]
    r = apply_allocation_effects(make_metrics(), {"missing": 2, "card1": 1}, cards, DEFAULT_TM)
    assert r.visibility_insight == 30


def test_multiple_cards():
    cards = [
        make_card("card1", visibility_insight=5, complexity_risk=1),
        make_card("card2", efficiency_throughput=3, sustainability_emissions=2),
    ]
    r = apply_allocation_effects(make_metrics(), {"card1": 1, "card2": 2}, cards, DEFAULT_TM)
    assert r.visibility_insight == 30
    assert r.complexity_risk == 21
    assert r.efficiency_throughput == 36
    assert r.sustainability_emissions == 34


def test_tokens_above_ui_cap_are_honoured():
    cards = [make_card("c", visibility_insight=10)]
    r = apply_allocation_effects(make_metrics(visibility_insight=0), {"c": 5}, cards, make_tm(dr_threshold=3, dr_mult=0.5))
    assert r.visibility_insight == 40  # 3*10 + 2*5


def test_catalog_mapping_is_accepted():
    card = make_card("c", visibility_insight=4)
    r = apply_allocation_effects(make_metrics(), {"c": 1}, {"c": card}, DEFAULT_TM)
    assert r.visibility_insight == 29


def test_allocation_effects_do_not_mutate_inputs():
    allocs = {"c": 2}
    cards = [make_card("c", visibility_insight=4)]
    m = make_metrics()
    apply_allocation_effects(m, allocs, cards, DEFAULT_TM)
    assert allocs == {"c": 2}
    assert m == make_metrics()


# -------------------------
# synergies
# -------------------------

SYNERGIES = [
    make_synergy("synergy1", ["card1", "card2"], "visibility_insight", 5),
    make_synergy("synergy2", ["card2", "card3", "card4"], "efficiency_throughput", 3),
]


def test_synergy_fires_when_all_cards_funded():
    m, active = apply_synergy_bonuses(make_metrics(), {"card1": 2, "card2": 1}, SYNERGIES)
    assert m.visibility_insight == 30
    assert [s.id for s in active] == ["synergy1"]
    assert active[0].scaled_bonus == 5
    assert active[0].participating_cards == ("card1", "card2")


def test_synergy_scales_with_weakest_card():
    m, active = apply_synergy_bonuses(make_metrics(), {"card1": 3, "card2": 2}, SYNERGIES)
    assert m.visibility_insight == 35
    assert active[0].scaled_bonus == 10


@pytest.mark.parametrize("a_tokens", [1, 2, 3, 9])
def test_synergy_needs_every_card(a_tokens):
    base = make_metrics()
    for allocs in ({"card1": a_tokens}, {"card1": a_tokens, "card2": 0}):
        m, active = apply_synergy_bonuses(base, allocs, SYNERGIES)
        assert m == base
        assert active == ()


def test_multiple_synergies_accumulate():
    m, active = apply_synergy_bonuses(make_metrics(), {"card1": 1, "card2": 1, "card3": 1, "card4": 1}, SYNERGIES)
    assert m.visibility_insight == 30
    assert m.efficiency_throughput == 33
    assert len(active) == 2


def test_negative_synergy_bonus():
    rules = [make_synergy("security-synergy", ["security", "digitalTwin"], "complexity_risk", -3)]
    m, active = apply_synergy_bonuses(make_metrics(), {"security": 2, "digitalTwin": 2}, rules)
    assert m.complexity_risk == 14
    assert active[0].scaled_bonus == -6


def test_same_target_synergies_add_up():
    rules = [
        make_synergy("a", ["x", "y"], "visibility_insight", 2),
        make_synergy("b", ["y", "z"], "visibility_insight", 4),
    ]
    m, active = apply_synergy_bonuses(make_metrics(), {"x": 3, "y": 2, "z": 1}, rules)
    # a: 2*2, b: 4*1
    assert m.visibility_insight == 33
    assert [s.scaled_bonus for s in active] == [4.0, 4.0]


# -------------------------
# disasters
# -------------------------

DISASTERS = [make_disaster(mitigated_by=["securityHardening"])]


def test_disaster_triggers_at_threshold():
    m, fired = apply_disaster_penalties(make_metrics(complexity_risk=85), 3, {}, DISASTERS)
    assert m.efficiency_throughput == 10
    assert m.complexity_risk == 90
    assert [d.id for d in fired] == ["disaster1"]
    assert fired[0].threshold == 80
    assert fired[0].mitigated_by == ("securityHardening",)


def test_disaster_boundary_is_inclusive():
    _, fired = apply_disaster_penalties(make_metrics(complexity_risk=80), 3, {}, DISASTERS)
    assert len(fired) == 1


def test_disaster_below_threshold():
    m = make_metrics(complexity_risk=75)
    out, fired = apply_disaster_penalties(m, 3, {}, DISASTERS)
    assert out == m
    assert fired == ()


@pytest.mark.parametrize("rnd", [1, 2, 4])
def test_disaster_is_round_scoped(rnd):
    m = make_metrics(complexity_risk=99)
    out, fired = apply_disaster_penalties(m, rnd, {}, DISASTERS)
    assert out == m
    assert fired == ()


@pytest.mark.parametrize("level", [80, 90, 100, 250])
def test_mitigation_is_binary(level):
    m = make_metrics(complexity_risk=level)
    out, fired = apply_disaster_penalties(m, 3, {"securityHardening": 1}, DISASTERS)
    assert out == m
    assert fired == ()

    _, fired = apply_disaster_penalties(m, 3, {"securityHardening": 0}, DISASTERS)
    assert len(fired) == 1


def test_penalty_scale():
    m, _ = apply_disaster_penalties(make_metrics(complexity_risk=85), 3, {}, DISASTERS, 0.5)
    assert m.efficiency_throughput == 20
    assert m.complexity_risk == 87.5


def test_disasters_read_the_same_snapshot():
    # the first disaster drops visibility below the second one's threshold;
    # the second still fires because triggers read the incoming metrics
    rules = [
        make_disaster("first", rnd=2, trigger="complexity_risk", threshold=50, penalties={"visibility_insight": -30}),
        make_disaster("second", rnd=2, trigger="visibility_insight", threshold=40, penalties={"efficiency_throughput": -5}),
    ]
    m, fired = apply_disaster_penalties(make_metrics(complexity_risk=60, visibility_insight=45), 2, {}, rules)
    assert [d.id for d in fired] == ["first", "second"]
    assert m.visibility_insight == 15
    assert m.efficiency_throughput == 25


def test_disaster_penalties_are_not_clamped_here():
    rules = [make_disaster(rnd=1, trigger="complexity_risk", threshold=10, penalties={"efficiency_throughput": -50})]
    m, _ = apply_disaster_penalties(make_metrics(), 1, {}, rules)
    assert m.efficiency_throughput == -20


def test_mitigation_fuzz():
    rng = seeded_stream(3, "mitigation-fuzz")
    rule = make_disaster(rnd=2, trigger="complexity_risk", threshold=50, mitigated_by=["a", "b"])
    for _ in range(100):
        level = rng.uniform(0, 100)
        allocs = {"a": rng.randint(0, 3), "b": rng.randint(0, 3), "c": rng.randint(0, 3)}
        _, fired = apply_disaster_penalties(make_metrics(complexity_risk=level), 2, allocs, [rule])
        should_fire = level >= 50 and allocs["a"] == 0 and allocs["b"] == 0
        assert (len(fired) == 1) == should_fire
