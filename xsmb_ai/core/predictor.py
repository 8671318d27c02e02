"""
Master prediction engine.

Combines the Markov, Poisson, variance and cold-cycle estimators into one
weighted score per number, ranks them and normalizes to a display
confidence. Everything is recomputed from the store on each call.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from xsmb_ai.config import (
    NUMBERS, MARKOV_SAMPLES, COLD_MAX_DAYS, POISSON_WINDOW_MULTIPLIER,
    DEFAULT_BASE_DAYS, DEFAULT_PREDICTION_LIMIT, PREDICTION_METHODS,
    MARKOV_SCALE, VARIANCE_SCALE, DIGIT_TREND_RATIO, DIGIT_TREND_BONUS,
    MARKOV_STRONG_THRESHOLD, POISSON_HIGH_THRESHOLD, HOT_STREAK_Z,
    CYCLE_DUE_DAYS, BALANCED_HIGH_SCORE, REASON_LABELS, THEORETICAL_PROB, logger
)
from xsmb_ai.core.records import extract_numbers
from xsmb_ai.core import statistics
from xsmb_ai.features.features import get_number_summary


@dataclass(frozen=True)
class ScoredCandidate:
    number: str
    raw_score: float
    confidence: float
    confidence_level: str
    factors: tuple = ()
    reason: str = ''
    breakdown: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))

    def to_dict(self):
        return {
            'number': self.number,
            'raw_score': round(self.raw_score, 4),
            'confidence': round(self.confidence, 2),
            'confidence_level': self.confidence_level,
            'factors': list(self.factors),
            'reason': self.reason,
            'breakdown': {k: round(v, 4) for k, v in self.breakdown.items()},
        }


def format_reason(factors, labels=None):
    """Display text for the first two unique factor tags"""
    if labels is None:
        labels = REASON_LABELS
    unique = list(dict.fromkeys(factors))
    return ' + '.join(labels.get(f, f) for f in unique[:2])


def cold_score(days_since):
    # recently drawn < due window < overdue
    if days_since <= 10:
        return 20
    if days_since < 25:
        return 80
    return 60 + min(days_since, 30)


def confidence_level(raw_score):
    if raw_score > 70:
        return 'high'
    if raw_score > 50:
        return 'medium'
    return 'low'


class PredictionEngine:
    """
    Weighted multi-factor scoring over the history held by a result store.

    The store only needs get_results_by_days(n) and get_all_results().
    """

    def __init__(self, store, theoretical_prob=THEORETICAL_PROB):
        self.store = store
        self.theoretical_prob = theoretical_prob

    def _history(self, days):
        return self.store.get_results_by_days(days)

    def generate_predictions(self, method='combined', limit=DEFAULT_PREDICTION_LIMIT,
                             base_days=DEFAULT_BASE_DAYS):
        """
        Rank all 100 numbers and return the top `limit` ScoredCandidates.

        Args:
            method: weight profile from PREDICTION_METHODS
            limit: number of candidates to return
            base_days: window for variance and head/tail counts; Poisson
                looks back POISSON_WINDOW_MULTIPLIER times further

        Returns:
            list of ScoredCandidate, highest score first; [] without history
        """
        if limit <= 0:
            return []

        weights = PREDICTION_METHODS.get(method)
        if weights is None:
            logger.warning(f"Unknown prediction method '{method}', using combined")
            weights = PREDICTION_METHODS['combined']

        base_days = max(int(base_days), 0)
        poisson_days = base_days * POISSON_WINDOW_MULTIPLIER
        history = self._history(max(MARKOV_SAMPLES, poisson_days, COLD_MAX_DAYS, base_days))
        if not history:
            return []
        current_numbers = extract_numbers(history[0])

        markov_probs = statistics.markov_probabilities(history, current_numbers, MARKOV_SAMPLES)
        poisson_probs = statistics.poisson_probabilities(history, poisson_days)
        variance_map = statistics.pattern_variance(history, base_days, self.theoretical_prob)
        cold_days = statistics.cold_map(history, COLD_MAX_DAYS)

        window_count = len(history[:base_days])
        head_freq, tail_freq = statistics.digit_frequencies(history, base_days)
        trend_cutoff = window_count * DIGIT_TREND_RATIO

        scored = []
        for num in NUMBERS:
            factors = []

            m_score = min(markov_probs.get(num, 0.0) * MARKOV_SCALE, 100)
            p_score = poisson_probs.get(num, 0.0) * 100
            z_score = variance_map.get(num, 0.0)
            v_score = max(0.0, z_score * VARIANCE_SCALE)
            days_since = cold_days[num]
            c_score = cold_score(days_since)

            score = (m_score * weights['markov'] + p_score * weights['poisson']
                     + v_score * weights['variance'] + c_score * weights['cold'])

            if head_freq[num[0]] > trend_cutoff:
                score += DIGIT_TREND_BONUS
                factors.append('head_trend')
            if tail_freq[num[1]] > trend_cutoff:
                score += DIGIT_TREND_BONUS
                factors.append('tail_trend')

            if m_score > MARKOV_STRONG_THRESHOLD:
                factors.append('markov_strong')
            if p_score > POISSON_HIGH_THRESHOLD:
                factors.append('poisson_high')
            if z_score > HOT_STREAK_Z:
                factors.append('hot_streak')
            if days_since > CYCLE_DUE_DAYS:
                factors.append('cycle_due')
            if not factors and score > BALANCED_HIGH_SCORE:
                factors.append('balanced_high')

            scored.append((num, score, factors, {
                'markov': m_score,
                'poisson': p_score,
                'variance': v_score,
                'cold': float(c_score),
            }))

        scored.sort(key=lambda item: item[1], reverse=True)
        top = scored[:limit]
        max_score = top[0][1] or 1

        predictions = [
            ScoredCandidate(
                number=num,
                raw_score=score,
                confidence=min(score / max_score * 98 + 2, 99.9),
                confidence_level=confidence_level(score),
                factors=tuple(factors),
                reason=format_reason(factors),
                breakdown=MappingProxyType(breakdown),
            )
            for num, score, factors, breakdown in top
        ]

        logger.debug(f"Generated {len(predictions)} predictions ({method}, base_days={base_days}) "
                     f"from {len(history)} draws")
        return predictions

    # -- single-estimator views used by the statistics endpoints --

    def calculate_frequency(self, days=30):
        return statistics.calculate_frequency(self._history(days), days)

    def analyze_hot_numbers(self, days=7, limit=15):
        return statistics.analyze_hot_numbers(self._history(days), days, limit)

    def analyze_cold_numbers(self, max_days=60):
        return statistics.analyze_cold_numbers(self._history(max_days), max_days)

    def analyze_pairs(self, days=30, limit=30):
        return statistics.analyze_pairs(self._history(days), days, limit)

    def analyze_loto_patterns(self, days=7):
        return statistics.analyze_loto_patterns(self._history(days), days)

    def get_summary(self):
        history = self.store.get_all_results()
        return statistics.get_summary(history)

    def get_number_summary(self, window=30):
        history = self._history(max(window * POISSON_WINDOW_MULTIPLIER, COLD_MAX_DAYS, window))
        return get_number_summary(history, window)
