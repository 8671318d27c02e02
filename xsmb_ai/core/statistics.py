"""
Statistical estimators over draw history.

Every function takes the history newest-first and slices its own window,
so asking for more draws than exist simply uses what is there. Outputs are
keyed by the canonical two-digit strings "00".."99".
"""
import numpy as np
from collections import Counter
from xsmb_ai.config import NUMBERS, DIGITS, THEORETICAL_PROB, COLD_MAX_DAYS, MARKOV_SAMPLES
from xsmb_ai.core.records import extract_numbers, unique_numbers


def _window(history, days):
    if days is None or days <= 0:
        return []
    return list(history[:days])


def _zero_map(value=0):
    return {num: value for num in NUMBERS}


# ============================================
# FREQUENCY
# ============================================
def frequency_map(history, window_days):
    """Occurrence count of every number (duplicates counted) over the window"""
    counts = _zero_map()
    for record in _window(history, window_days):
        for n in extract_numbers(record):
            counts[n] += 1
    return counts


def calculate_frequency(history, days):
    """
    Frequency table sorted by count, descending.

    Ties keep number order. Percentage is count / total * 100 with two
    decimals, 0.0 for an empty window.
    """
    counts = frequency_map(history, days)
    total = sum(counts.values())

    table = []
    for num, count in counts.items():
        percentage = round(count / total * 100, 2) if total > 0 else 0.0
        table.append({'number': num, 'count': count, 'percentage': percentage})

    table.sort(key=lambda row: row['count'], reverse=True)
    return table


def analyze_hot_numbers(history, days=7, limit=15):
    return calculate_frequency(history, days)[:limit]


# ============================================
# RECENCY (COLD)
# ============================================
def cold_map(history, max_days=COLD_MAX_DAYS):
    """
    Days since each number last appeared.

    Index 0 is the newest draw. Numbers absent from the window keep the
    sentinel value max_days.
    """
    days_since = _zero_map(max_days)
    seen = set()
    for i, record in enumerate(_window(history, max_days)):
        for n in extract_numbers(record):
            if n not in seen:
                seen.add(n)
                days_since[n] = i
    return days_since


def analyze_cold_numbers(history, max_days=60):
    table = [
        {'number': num, 'days_since': days, 'status': 'cold' if days > 10 else 'recent'}
        for num, days in cold_map(history, max_days).items()
    ]
    table.sort(key=lambda row: row['days_since'], reverse=True)
    return table


# ============================================
# MARKOV CHAIN
# ============================================
def train_transitions(history):
    """
    Transition table from each draw to the next one.

    For every adjacent pair (older draw i, newer draw i-1) each number of the
    older draw is a source and each number of the newer draw a successor.
    Returns {source: {'total': int, 'next_counts': Counter}}.
    """
    transitions = {}
    for i in range(1, len(history)):
        prev_draw = extract_numbers(history[i])
        next_draw = extract_numbers(history[i - 1])

        for prev_num in prev_draw:
            state = transitions.setdefault(prev_num, {'total': 0, 'next_counts': Counter()})
            state['total'] += 1
            for next_num in next_draw:
                state['next_counts'][next_num] += 1

    return transitions


def markov_probabilities(history, current_numbers, samples=MARKOV_SAMPLES):
    """
    Likelihood of each number in the next draw given the current draw.

    Probabilities from several current numbers add up, so values are not
    normalized and can exceed 1. Fewer than two draws gives {}.
    """
    results = _window(history, samples)
    if len(results) < 2:
        return {}

    transitions = train_transitions(results)
    combined = _zero_map(0.0)

    for today_num in current_numbers:
        state = transitions.get(today_num)
        if not state or state['total'] == 0:
            continue
        for next_num, count in state['next_counts'].items():
            combined[next_num] += count / state['total']

    return combined


# ============================================
# POISSON
# ============================================
def poisson_probabilities(history, samples=100):
    """
    P(at least one occurrence in the next draw) for each number.

    The rate is the share of draws containing the number (one hit per draw
    at most). An empty window gives all zeros.
    """
    results = _window(history, samples)
    total_draws = len(results)
    if total_draws == 0:
        return _zero_map(0.0)

    counts = _zero_map()
    for record in results:
        for n in unique_numbers(record):
            counts[n] += 1

    lambdas = np.array([counts[num] for num in NUMBERS], dtype=float) / total_draws
    probs = 1 - np.exp(-lambdas)

    return {num: float(p) for num, p in zip(NUMBERS, probs)}


# ============================================
# VARIANCE / TREND
# ============================================
def pattern_variance(history, samples=30, theoretical_prob=THEORETICAL_PROB):
    """
    Z-score of the observed count against a binomial expectation.

    expected = samples * p0, std = sqrt(samples * p0 * (1 - p0)). The
    expectation uses the requested window even when fewer draws exist.
    """
    counts = frequency_map(history, samples)

    expected = samples * theoretical_prob
    variance = samples * theoretical_prob * (1 - theoretical_prob)
    if samples <= 0 or variance <= 0:
        return _zero_map(0.0)
    std_dev = np.sqrt(variance)

    return {num: float((counts[num] - expected) / std_dev) for num in NUMBERS}


# ============================================
# PAIRS
# ============================================
def analyze_pairs(history, days=30, limit=30):
    """
    Most frequent pairs drawn together.

    Each draw contributes its de-duplicated, sorted numbers once. Ties keep
    the order in which the pair was first seen.
    """
    pairs = {}
    for record in _window(history, days):
        nums = unique_numbers(record)
        for i in range(len(nums)):
            for j in range(i + 1, len(nums)):
                key = (nums[i], nums[j])
                pairs[key] = pairs.get(key, 0) + 1

    ranked = sorted(pairs.items(), key=lambda item: item[1], reverse=True)
    return [
        {'num1': a, 'num2': b, 'count': count}
        for (a, b), count in ranked[:limit]
    ]


# ============================================
# LOTO HEAD / TAIL
# ============================================
def digit_frequencies(history, days):
    """Head (first digit) and tail (second digit) counts over the window"""
    head_freq = Counter()
    tail_freq = Counter()
    for record in _window(history, days):
        for n in extract_numbers(record):
            head_freq[n[0]] += 1
            tail_freq[n[1]] += 1
    return head_freq, tail_freq


def analyze_loto_patterns(history, days=7, top=5):
    """Top head and tail digits, most frequent first"""
    head_freq, tail_freq = digit_frequencies(history, days)
    hot_heads = sorted(DIGITS, key=lambda d: head_freq[d], reverse=True)[:top]
    hot_tails = sorted(DIGITS, key=lambda d: tail_freq[d], reverse=True)[:top]
    return {'hot_heads': hot_heads, 'hot_tails': hot_tails}


def group_by_head_tail(record):
    """Endings of a single draw grouped by head digit and by tail digit"""
    by_head = {d: [] for d in DIGITS}
    by_tail = {d: [] for d in DIGITS}
    for n in extract_numbers(record):
        by_head[n[0]].append(n)
        by_tail[n[1]].append(n)
    return {'by_head': by_head, 'by_tail': by_tail}


# ============================================
# SUMMARY
# ============================================
def get_summary(history):
    if not history:
        return {
            'total_days': 0,
            'hottest_number': '--',
            'coldest_number': '--',
            'coldest_days': 0,
        }

    hot = analyze_hot_numbers(history, 7, 1)
    cold = analyze_cold_numbers(history, 60)

    return {
        'total_days': len(history),
        'hottest_number': hot[0]['number'] if hot and hot[0]['count'] > 0 else '--',
        'coldest_number': cold[0]['number'],
        'coldest_days': cold[0]['days_since'],
    }
