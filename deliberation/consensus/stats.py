"""
Two-proportion significance tests.

Used to decide whether an opinion group's agree (or disagree) rate on a
topic differs from the rate among everyone else. Small samples use an
exact test over all 2×2 tables with the observed margins; large samples
use the pooled normal approximation.

References:
- Fisher, R.A. (1922). "On the interpretation of chi-squared from
  contingency tables, and the calculation of P." J. Royal Statistical
  Society, 85(1), 87-94.
- Lancaster, H.O. (1961). "Significance tests in discrete distributions."
  JASA, 56(294), 223-234. (mid-P)
- Benjamini, Y., Hochberg, Y. (1995). "Controlling the false discovery
  rate." J. Royal Statistical Society B, 57(1), 289-300.
"""

import numpy as np
from scipy.stats import false_discovery_control, hypergeom, norm

# Exact test is used below this combined sample size...
LARGE_SAMPLE_SIZE = 30
# ...or when an expected cell count falls under this...
MIN_EXPECTED_COUNT = 5
# ...as long as enumerating tables stays cheap.
MAX_EXACT_SAMPLE_SIZE = 100

# Relative slack when comparing table probabilities
PROB_TOLERANCE = 1e-7

P_VALUE_FLOOR = 1e-12


def normal_two_proportion_test(x1, n1, x2, n2):
    """
    Pooled two-proportion z-test.

    Args:
        x1, n1: successes and size of the first sample
        x2, n2: successes and size of the second sample

    Returns:
        float: two-sided p-value
    """
    if n1 == 0 or n2 == 0:
        return 1.0

    p1 = x1 / n1
    p2 = x2 / n2
    pooled = (x1 + x2) / (n1 + n2)
    se = np.sqrt(pooled * (1 - pooled) * (1 / n1 + 1 / n2))

    if se == 0:
        return 1.0

    z = (p1 - p2) / se
    return float(min(1.0, 2 * norm.sf(abs(z))))


def exact_two_proportion_test(x1, n1, x2, n2, mid_p=False):
    """
    Fisher exact test on the 2×2 table [[x1, n1-x1], [x2, n2-x2]].

    Enumerates every table sharing the observed margins and sums the
    hypergeometric probabilities of those at most as likely as the
    observed one (two-sided).

    Args:
        x1, n1: successes and size of the first sample
        x2, n2: successes and size of the second sample
        mid_p: count the observed table's probability at one half

    Returns:
        float: two-sided p-value
    """
    if n1 == 0 or n2 == 0:
        return 1.0

    total = n1 + n2
    successes = x1 + x2
    distribution = hypergeom(total, successes, n1)

    low = max(0, n1 - (total - successes))
    high = min(n1, successes)
    probs = distribution.pmf(np.arange(low, high + 1))
    observed = distribution.pmf(x1)

    if mid_p:
        more_extreme = probs[probs < observed * (1 - PROB_TOLERANCE)].sum()
        p_value = more_extreme + 0.5 * observed
    else:
        p_value = probs[probs <= observed * (1 + PROB_TOLERANCE)].sum()

    return float(min(1.0, p_value))


def use_exact_test(x1, n1, x2, n2):
    """True when the sample is small or sparse enough for the exact test."""
    total = n1 + n2
    if total == 0 or total > MAX_EXACT_SAMPLE_SIZE:
        return False
    if total < LARGE_SAMPLE_SIZE:
        return True

    successes = x1 + x2
    failures = total - successes
    expected = [
        n * column / total
        for n in (n1, n2)
        for column in (successes, failures)
    ]
    return min(expected) < MIN_EXPECTED_COUNT


def two_proportion_test(x1, n1, x2, n2):
    """
    Compare x1/n1 against x2/n2, picking the test by sample size.

    Returns:
        float: two-sided p-value (1.0 when either sample is empty)
    """
    if n1 == 0 or n2 == 0:
        return 1.0
    if use_exact_test(x1, n1, x2, n2):
        return exact_two_proportion_test(x1, n1, x2, n2)
    return normal_two_proportion_test(x1, n1, x2, n2)


def p_value_to_z(p_value):
    """
    Convert a p-value into an approximate z-score.

    The p-value is clipped into the open unit interval so the score is
    always finite.
    """
    p_value = min(max(p_value, P_VALUE_FLOOR), 1 - P_VALUE_FLOOR)
    return float(norm.isf(p_value))


def benjamini_hochberg(p_values):
    """
    Benjamini-Hochberg adjusted p-values, in input order.

    Args:
        p_values: sequence of raw p-values

    Returns:
        numpy array of adjusted p-values
    """
    p_values = np.asarray(p_values, dtype=float)
    if p_values.size == 0:
        return p_values
    return false_discovery_control(np.clip(p_values, 0.0, 1.0), method='bh')
