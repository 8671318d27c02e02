"""
Per-number feature table for display - v1.0
NOTE: These features describe PAST behavior only.
"""
import pandas as pd
from scipy import stats as scipy_stats
from xsmb_ai.config import NUMBERS, COLD_MAX_DAYS, POISSON_WINDOW_MULTIPLIER
from xsmb_ai.core import statistics


def build_number_table(history, window=30):
    """
    One row per number "00".."99" with the descriptive statistics of the
    trailing window.

    Columns: count, percentage, days_since, z_score, p_value (two-sided,
    normal approximation of the z-score), poisson_prob, status.
    """
    counts = statistics.frequency_map(history, window)
    total = sum(counts.values())
    cold = statistics.cold_map(history, COLD_MAX_DAYS)
    z_scores = statistics.pattern_variance(history, window)
    poisson = statistics.poisson_probabilities(history, window * POISSON_WINDOW_MULTIPLIER)

    df = pd.DataFrame({
        'number': NUMBERS,
        'count': [counts[n] for n in NUMBERS],
        'days_since': [cold[n] for n in NUMBERS],
        'z_score': [z_scores[n] for n in NUMBERS],
        'poisson_prob': [poisson[n] for n in NUMBERS],
    })

    df['percentage'] = (df['count'] / total * 100).round(2) if total > 0 else 0.0
    df['p_value'] = 2 * (1 - scipy_stats.norm.cdf(df['z_score'].abs()))

    df['status'] = 'NORMAL'
    df.loc[df['z_score'] > 1.5, 'status'] = 'HOT'
    df.loc[df['days_since'] > 10, 'status'] = 'COLD'

    return df.set_index('number')


def get_number_summary(history, window=30):
    """Dict view of build_number_table, keyed by number"""
    if not history:
        return {}
    return build_number_table(history, window).to_dict(orient='index')
