"""
Tests for extraction, estimators and the prediction engine
Run with: pytest
"""
import sys
import math
from datetime import date, timedelta
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from xsmb_ai.config import NUMBERS, REASON_LABELS
from xsmb_ai.core.records import (
    DrawRecord, InvalidRecordError, extract_numbers, unique_numbers, normalize_date
)
from xsmb_ai.core import statistics
from xsmb_ai.core.predictor import PredictionEngine, format_reason, cold_score
from xsmb_ai.core.store import InMemoryResultStore
from xsmb_ai.features.features import build_number_table, get_number_summary


def make_record(day, numbers, month=1):
    return DrawRecord.from_dict({
        'ngay': f"{day:02d}/{month:02d}/2024",
        'ket_qua': {'giai-bay': list(numbers)},
    })


def make_history(draws):
    """draws newest first; dates count down from the 28th"""
    return [make_record(28 - i, nums) for i, nums in enumerate(draws)]


def make_long_history(draws, newest=date(2024, 3, 31)):
    """draws newest first, one calendar day apart"""
    return [
        DrawRecord.from_dict({
            'ngay': (newest - timedelta(days=i)).strftime('%d/%m/%Y'),
            'ket_qua': {'giai-bay': list(nums)},
        })
        for i, nums in enumerate(draws)
    ]


@pytest.fixture
def scenario_history():
    return make_history([
        ["12", "34"],
        ["12", "56"],
        ["34", "56"],
    ])


# ============================================
# RECORDS / EXTRACTION
# ============================================
def test_extract_numbers_takes_last_two_digits_in_tier_order():
    record = DrawRecord.from_dict({
        'ngay': '5/3/2024',
        'ket_qua': {
            'giai-db': ['12345'],
            'giai-nhat': ['67890'],
            'giai-bay': ['07', '9', '', 'ab', '123'],
        },
    })
    assert record.date == '05/03/2024'
    assert extract_numbers(record) == ['45', '90', '07', '23']


def test_extract_numbers_handles_raw_mapping_and_none():
    assert extract_numbers({'giai-ba': ['1234', '5634']}) == ['34', '34']
    assert extract_numbers(None) == []
    assert unique_numbers({'giai-ba': ['1234', '5634', '0012']}) == ['12', '34']


def test_from_dict_validates_shape():
    with pytest.raises(InvalidRecordError):
        DrawRecord.from_dict(['not', 'a', 'dict'])
    with pytest.raises(InvalidRecordError):
        DrawRecord.from_dict({'ket_qua': {}})
    with pytest.raises(InvalidRecordError):
        DrawRecord.from_dict({'ngay': 'not a date'})

    record = DrawRecord.from_dict({
        'ngay': '2024-01-09',
        'ket_qua': {'giai-db': ['11111', '22222'], 'giai-xyz': ['33']},
    })
    assert record.date == '09/01/2024'
    assert record.prize_tiers['giai-db'] == ('11111',)
    assert 'giai-xyz' not in record.prize_tiers
    assert record.prize_tiers['giai-bay'] == ()


def test_normalize_date():
    assert normalize_date('1/2/2024') == '01/02/2024'
    assert normalize_date(' 01/02/2024 ') == '01/02/2024'
    assert normalize_date('2024-02-01') == '01/02/2024'


# ============================================
# FREQUENCY
# ============================================
def test_frequency_covers_all_numbers_and_sums_occurrences(scenario_history):
    for window in (0, 1, 2, 3, 10):
        counts = statistics.frequency_map(scenario_history, window)
        assert sorted(counts) == NUMBERS
        assert all(c >= 0 for c in counts.values())
        expected = sum(len(extract_numbers(r)) for r in scenario_history[:window])
        assert sum(counts.values()) == expected


def test_frequency_counts_duplicates():
    history = [make_record(1, ["12", "12", "34"])]
    counts = statistics.frequency_map(history, 1)
    assert counts["12"] == 2
    assert counts["34"] == 1


def test_calculate_frequency_percentages(scenario_history):
    table = statistics.calculate_frequency(scenario_history, 3)
    assert len(table) == 100
    by_number = {row['number']: row for row in table}
    assert by_number["12"]['count'] == 2
    assert by_number["12"]['percentage'] == pytest.approx(33.33)
    assert by_number["99"]['percentage'] == 0.0
    counts = [row['count'] for row in table]
    assert counts == sorted(counts, reverse=True)


def test_calculate_frequency_empty_window():
    table = statistics.calculate_frequency([], 30)
    assert len(table) == 100
    assert all(row['count'] == 0 and row['percentage'] == 0.0 for row in table)


def test_number_in_every_draw_is_hot_and_recent():
    history = make_history([["07", str(10 + i)] for i in range(7)])
    assert statistics.frequency_map(history, 7)["07"] == 7
    assert statistics.cold_map(history, 7)["07"] == 0


# ============================================
# COLD
# ============================================
def test_cold_map_bounds_and_first_write_wins(scenario_history):
    cold = statistics.cold_map(scenario_history, 100)
    assert all(0 <= d <= 100 for d in cold.values())
    assert cold["12"] == 0
    assert cold["34"] == 0
    assert cold["56"] == 1
    assert cold["99"] == 100


def test_cold_map_window_smaller_than_history(scenario_history):
    cold = statistics.cold_map(scenario_history, 1)
    assert cold["56"] == 1
    assert cold["12"] == 0


def test_analyze_cold_numbers_status(scenario_history):
    table = statistics.analyze_cold_numbers(scenario_history, 60)
    assert table[0]['days_since'] == 60
    assert table[0]['status'] == 'cold'
    assert table[-1]['status'] == 'recent'


# ============================================
# MARKOV
# ============================================
def test_markov_needs_two_draws():
    assert statistics.markov_probabilities([], ["12"]) == {}
    assert statistics.markov_probabilities([make_record(1, ["12"])], ["12"]) == {}


def test_markov_transitions(scenario_history):
    transitions = statistics.train_transitions(scenario_history)
    assert transitions["56"]['total'] == 2
    assert transitions["56"]['next_counts'] == {"12": 2, "34": 1, "56": 1}

    probs = statistics.markov_probabilities(scenario_history, ["12", "34"], 365)
    assert probs["56"] == pytest.approx(1.0)
    assert probs["12"] == pytest.approx(2.0)
    assert probs["34"] == pytest.approx(1.0)
    assert probs["99"] == 0.0


def test_markov_ignores_unknown_current_numbers(scenario_history):
    probs = statistics.markov_probabilities(scenario_history, ["99"], 365)
    assert sum(probs.values()) == 0


# ============================================
# POISSON
# ============================================
def test_poisson_range_and_monotonic():
    history = make_history([
        ["01", "02", "03"],
        ["01", "02"],
        ["01", "01"],
    ])
    probs = statistics.poisson_probabilities(history, 3)
    assert all(0 <= p < 1 for p in probs.values())
    assert probs["01"] > probs["02"] > probs["03"] > probs["04"] == 0.0
    # duplicates within a draw count once
    assert probs["01"] == pytest.approx(1 - math.exp(-1))


def test_poisson_empty_history():
    probs = statistics.poisson_probabilities([], 90)
    assert len(probs) == 100
    assert all(p == 0.0 for p in probs.values())


# ============================================
# VARIANCE
# ============================================
def test_pattern_variance_z_score():
    history = make_history([["05"]] * 10)
    z = statistics.pattern_variance(history, 10, 0.27)
    expected = (10 - 10 * 0.27) / math.sqrt(10 * 0.27 * 0.73)
    assert z["05"] == pytest.approx(expected)
    assert z["06"] == pytest.approx(-2.7 / math.sqrt(10 * 0.27 * 0.73))


def test_pattern_variance_zero_std_dev_is_neutral(scenario_history):
    assert set(statistics.pattern_variance(scenario_history, 0).values()) == {0.0}
    assert set(statistics.pattern_variance(scenario_history, 30, 1.0).values()) == {0.0}


# ============================================
# PAIRS
# ============================================
def test_analyze_pairs_two_identical_draws():
    history = make_history([["11", "22"], ["22", "11"]])
    assert statistics.analyze_pairs(history, 30, 30) == [
        {'num1': '11', 'num2': '22', 'count': 2}
    ]


def test_analyze_pairs_deduplicates_and_limits():
    history = make_history([["11", "11", "22", "33"], ["22", "33"]])
    pairs = statistics.analyze_pairs(history, 30, 2)
    assert pairs[0] == {'num1': '22', 'num2': '33', 'count': 2}
    assert len(pairs) == 2
    assert pairs[1] == {'num1': '11', 'num2': '22', 'count': 1}


# ============================================
# LOTO / SUMMARY / FEATURES
# ============================================
def test_loto_patterns_and_grouping():
    history = make_history([["10", "11", "21"]])
    patterns = statistics.analyze_loto_patterns(history, 7)
    assert patterns['hot_heads'][0] == '1'
    assert patterns['hot_tails'][0] == '1'

    groups = statistics.group_by_head_tail(history[0])
    assert groups['by_head']['1'] == ['10', '11']
    assert groups['by_tail']['1'] == ['11', '21']
    assert groups['by_head']['9'] == []


def test_summary(scenario_history):
    summary = statistics.get_summary(scenario_history)
    assert summary['total_days'] == 3
    assert summary['hottest_number'] in ('12', '34', '56')
    assert summary['coldest_days'] == 60
    assert statistics.get_summary([])['hottest_number'] == '--'


def test_number_table(scenario_history):
    df = build_number_table(scenario_history, 30)
    assert len(df) == 100
    assert df['count'].sum() == 6
    assert df.loc['56', 'days_since'] == 1
    assert df['percentage'].sum() == pytest.approx(100.0, abs=0.05)
    assert ((df['p_value'] >= 0) & (df['p_value'] <= 1)).all()

    summary = get_number_summary(scenario_history, 30)
    assert summary['12']['count'] == 2
    assert get_number_summary([]) == {}


# ============================================
# PREDICTION ENGINE
# ============================================
def test_generate_predictions_empty_history():
    engine = PredictionEngine(InMemoryResultStore())
    assert engine.generate_predictions() == []


def test_generate_predictions_scenario_ranks_observed_successor(scenario_history):
    engine = PredictionEngine(InMemoryResultStore(scenario_history))
    predictions = engine.generate_predictions('combined', 100, 30)
    assert len(predictions) == 100

    rank = {p.number: i for i, p in enumerate(predictions)}
    assert rank["56"] < rank["99"]

    by_number = {p.number: p for p in predictions}
    assert by_number["56"].breakdown['markov'] == pytest.approx(40.0)
    assert by_number["56"].breakdown['cold'] == 20
    assert by_number["99"].breakdown['cold'] == 90
    assert by_number["99"].raw_score == pytest.approx(18.0)
    expected_56 = 40 * 0.35 + (1 - math.exp(-2 / 3)) * 100 * 0.25 + 20 * 0.20
    assert by_number["56"].raw_score == pytest.approx(expected_56)


def test_generate_predictions_ordering_and_confidence(scenario_history):
    engine = PredictionEngine(InMemoryResultStore(scenario_history))
    predictions = engine.generate_predictions(limit=20, base_days=30)
    assert len(predictions) == 20

    scores = [p.raw_score for p in predictions]
    confidences = [p.confidence for p in predictions]
    assert scores == sorted(scores, reverse=True)
    assert confidences == sorted(confidences, reverse=True)
    assert confidences[0] == max(confidences) == 99.9
    assert all(0 < c <= 99.9 for c in confidences)


def test_generate_predictions_is_idempotent(scenario_history):
    engine = PredictionEngine(InMemoryResultStore(scenario_history))
    first = engine.generate_predictions('combined', 20, 30)
    second = engine.generate_predictions('combined', 20, 30)
    assert first == second


def test_generate_predictions_limit():
    history = make_history([["01", "02"], ["03"]])
    engine = PredictionEngine(InMemoryResultStore(history))
    assert engine.generate_predictions(limit=0) == []
    assert len(engine.generate_predictions(limit=5)) == 5
    assert len(engine.generate_predictions(limit=500)) == 100


def test_head_and_tail_bonus_stack():
    history = make_history([["10", "11", "12"]])
    engine = PredictionEngine(InMemoryResultStore(history))
    predictions = {p.number: p for p in engine.generate_predictions(limit=100, base_days=30)}

    assert predictions["10"].factors[:2] == ('head_trend', 'tail_trend')
    assert predictions["10"].reason == f"{REASON_LABELS['head_trend']} + {REASON_LABELS['tail_trend']}"
    assert predictions["13"].factors[0] == 'head_trend'
    assert 'tail_trend' not in predictions["13"].factors
    # 13 is undrawn (cold 90) but only gets the head bonus
    assert predictions["13"].raw_score == pytest.approx(90 * 0.20 + 10)
    assert predictions["10"].raw_score > predictions["13"].raw_score > predictions["55"].raw_score


def test_streak_number_collects_every_signal_tag():
    # 05 and 15 drawn together in the newest 20 of 30 draws
    history = make_long_history([["05", "15"]] * 20 + [["77"]] * 10)
    engine = PredictionEngine(InMemoryResultStore(history))
    predictions = {p.number: p for p in engine.generate_predictions('combined', 100, 10)}

    streak = predictions["05"]
    assert streak.breakdown['markov'] == pytest.approx(80.0)
    assert streak.breakdown['poisson'] == pytest.approx((1 - math.exp(-20 / 30)) * 100)
    assert streak.factors == ('head_trend', 'tail_trend', 'markov_strong', 'poisson_high', 'hot_streak')
    assert predictions["99"].factors == ('cycle_due',)
    assert predictions["99"].breakdown['cold'] == 90


def test_cycle_due_starts_after_fifteen_days_and_balanced_high_needs_no_other_tag():
    # one number per draw, every head and tail digit once in the newest ten
    recent = [["01"], ["12"], ["23"], ["34"], ["45"], ["56"], ["67"], ["78"], ["89"], ["90"]]
    history = make_long_history(recent + recent[:5] + [["42"], ["43"]])
    engine = PredictionEngine(InMemoryResultStore(history))

    cold_only = {p.number: p for p in engine.generate_predictions('cold', 100, 10)}
    # 42 last seen 15 draws ago: cold score 80 and no other signal
    assert cold_only["42"].raw_score == pytest.approx(80.0)
    assert cold_only["42"].factors == ('balanced_high',)
    assert cold_only["42"].reason == REASON_LABELS['balanced_high']
    # 43 last seen 16 draws ago
    assert cold_only["43"].raw_score == pytest.approx(80.0)
    assert cold_only["43"].factors == ('cycle_due',)
    assert cold_only["01"].factors == ()

    combined = {p.number: p for p in engine.generate_predictions('combined', 100, 10)}
    assert combined["42"].raw_score < 50
    assert combined["42"].factors == ()
    assert combined["42"].reason == ''


def test_candidates_are_read_only(scenario_history):
    engine = PredictionEngine(InMemoryResultStore(scenario_history))
    candidate = engine.generate_predictions(limit=1)[0]
    with pytest.raises(TypeError):
        candidate.breakdown['markov'] = 0.0
    with pytest.raises(AttributeError):
        candidate.raw_score = 0.0


class StaleLatestStore(InMemoryResultStore):
    """Reports an out-of-date latest draw while holding the newer history"""

    def get_latest_result(self):
        return make_record(1, ["99", "98", "97"])


def test_current_draw_comes_from_the_same_history_read(scenario_history):
    expected = PredictionEngine(InMemoryResultStore(scenario_history)).generate_predictions(limit=100)
    stale = PredictionEngine(StaleLatestStore(scenario_history)).generate_predictions(limit=100)
    assert stale == expected


def test_engine_number_summary(scenario_history):
    engine = PredictionEngine(InMemoryResultStore(scenario_history))
    summary = engine.get_number_summary(30)
    assert len(summary) == 100
    assert summary['56']['days_since'] == 1
    assert summary['99']['status'] == 'COLD'
    assert PredictionEngine(InMemoryResultStore()).get_number_summary() == {}


def test_unknown_method_falls_back_to_combined(scenario_history):
    engine = PredictionEngine(InMemoryResultStore(scenario_history))
    assert engine.generate_predictions('nonsense', 10, 30) == \
        engine.generate_predictions('combined', 10, 30)


def test_single_estimator_method(scenario_history):
    engine = PredictionEngine(InMemoryResultStore(scenario_history))
    predictions = engine.generate_predictions('markov', 3, 30)
    assert predictions[0].number == "12"
    assert predictions[0].raw_score == pytest.approx(80.0)


def test_cold_score_steps():
    assert cold_score(0) == 20
    assert cold_score(10) == 20
    assert cold_score(11) == 80
    assert cold_score(24) == 80
    assert cold_score(25) == 85
    assert cold_score(100) == 90


def test_format_reason():
    assert format_reason([]) == ''
    assert format_reason(['cycle_due', 'cycle_due', 'hot_streak', 'poisson_high']) == \
        f"{REASON_LABELS['cycle_due']} + {REASON_LABELS['hot_streak']}"
    assert format_reason(['custom_tag']) == 'custom_tag'


def test_candidate_to_dict(scenario_history):
    engine = PredictionEngine(InMemoryResultStore(scenario_history))
    payload = engine.generate_predictions(limit=1)[0].to_dict()
    assert set(payload) == {
        'number', 'raw_score', 'confidence', 'confidence_level', 'factors', 'reason', 'breakdown'
    }
    assert payload['confidence'] == 99.9
