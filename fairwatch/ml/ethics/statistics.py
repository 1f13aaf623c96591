"""
Statistical primitives used by the fairness calculator.

Proportions, confidence intervals, contingency-table tests, effect sizes,
power analysis and variability measures. Nothing in this module knows
about hiring processes or protected attributes.
"""

import math
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import numpy as np
from scipy import stats

from fairwatch.utils.constants import MIN_EXPECTED_CELL_COUNT


@dataclass
class ContingencyTest:
    """Result of a test of independence on a k x 2 table."""

    test_name: str
    p_value: float
    is_significant: bool
    statistic: Optional[float] = None
    degrees_of_freedom: Optional[int] = None
    critical_value: Optional[float] = None


# =============================================================================
# Proportions and intervals
# =============================================================================


def proportion(successes: int, total: int) -> float:
    """Share of successes; 0.0 for an empty sample."""
    if total <= 0:
        return 0.0
    return successes / total


def _z_value(confidence: float) -> float:
    return float(stats.norm.ppf(1 - (1 - confidence) / 2))


def wilson_interval(successes: int, total: int, confidence: float = 0.95) -> tuple[float, float]:
    """
    Wilson score interval for a binomial proportion.

    Behaves well for small samples and proportions near 0 or 1, where the
    normal approximation collapses to a zero-width interval.
    """
    if total <= 0:
        return 0.0, 1.0

    z = _z_value(confidence)
    p = successes / total
    denominator = 1 + z**2 / total
    centre = (p + z**2 / (2 * total)) / denominator
    half_width = z * math.sqrt(p * (1 - p) / total + z**2 / (4 * total**2)) / denominator
    return max(0.0, centre - half_width), min(1.0, centre + half_width)


def normal_interval(
    estimate: float,
    std_error: float,
    confidence: float = 0.95,
    lower: float = 0.0,
    upper: float = 1.0,
) -> tuple[float, float]:
    """Normal-approximation interval clipped to [lower, upper]."""
    z = _z_value(confidence)
    return max(lower, estimate - z * std_error), min(upper, estimate + z * std_error)


def bootstrap_interval(
    n_items: int,
    statistic: Callable[[np.ndarray], float],
    n_resamples: int = 200,
    confidence: float = 0.95,
    seed: Optional[int] = None,
) -> tuple[float, float]:
    """
    Percentile bootstrap interval.

    ``statistic`` receives an array of resampled row indices and returns
    the statistic computed on those rows.
    """
    if n_items <= 0:
        raise ValueError("bootstrap requires at least one item")

    rng = np.random.default_rng(seed)
    values = np.array(
        [statistic(rng.integers(0, n_items, size=n_items)) for _ in range(n_resamples)],
        dtype=float,
    )
    tail = (1 - confidence) / 2 * 100
    return float(np.percentile(values, tail)), float(np.percentile(values, 100 - tail))


# =============================================================================
# Contingency tables
# =============================================================================


def contingency_table(successes: Sequence[int], totals: Sequence[int]) -> np.ndarray:
    """Build a k x 2 table of (successes, failures) per group."""
    successes_arr = np.asarray(successes, dtype=int)
    totals_arr = np.asarray(totals, dtype=int)
    if np.any(successes_arr > totals_arr) or np.any(successes_arr < 0):
        raise ValueError("successes must be between 0 and the group total")
    return np.column_stack([successes_arr, totals_arr - successes_arr])


def expected_counts(table: np.ndarray) -> np.ndarray:
    """Expected cell counts under independence."""
    table = np.asarray(table, dtype=float)
    total = table.sum()
    if total == 0:
        return np.zeros_like(table)
    row_sums = table.sum(axis=1, keepdims=True)
    col_sums = table.sum(axis=0, keepdims=True)
    return row_sums @ col_sums / total


def _is_degenerate(table: np.ndarray) -> bool:
    # a single non-empty row, or an all-zero column, carries no association
    return (
        table.shape[0] < 2
        or np.count_nonzero(table.sum(axis=1)) < 2
        or np.any(table.sum(axis=0) == 0)
    )


def _no_association(test_name: str, table: np.ndarray) -> ContingencyTest:
    return ContingencyTest(
        test_name=test_name,
        p_value=1.0,
        is_significant=False,
        statistic=0.0,
        degrees_of_freedom=max(table.shape[0] - 1, 0),
    )


def chi_square_test(table: np.ndarray, alpha: float = 0.05) -> ContingencyTest:
    """Pearson chi-square test of independence (Yates-corrected for 2 x 2)."""
    table = np.asarray(table, dtype=int)
    if _is_degenerate(table):
        return _no_association("chi_square", table)

    statistic, p_value, dof, _ = stats.chi2_contingency(table)
    return ContingencyTest(
        test_name="chi_square",
        p_value=float(p_value),
        is_significant=bool(p_value < alpha),
        statistic=float(statistic),
        degrees_of_freedom=int(dof),
        critical_value=float(stats.chi2.ppf(1 - alpha, dof)),
    )


def fisher_exact_test(table: np.ndarray, alpha: float = 0.05) -> ContingencyTest:
    """
    Fisher's exact test.

    A 2 x 2 table is tested directly. For k x 2 tables each group is tested
    against the pooled remaining groups and the smallest
    Bonferroni-adjusted p-value is reported.
    """
    table = np.asarray(table, dtype=int)
    if _is_degenerate(table):
        return _no_association("fisher_exact", table)

    if table.shape[0] == 2:
        _, p_value = stats.fisher_exact(table)
    else:
        k = table.shape[0]
        totals = table.sum(axis=0)
        p_values = []
        for row in table:
            if row.sum() == 0:
                continue
            _, p = stats.fisher_exact(np.vstack([row, totals - row]))
            p_values.append(min(1.0, p * k))
        p_value = min(p_values) if p_values else 1.0

    return ContingencyTest(
        test_name="fisher_exact",
        p_value=float(p_value),
        is_significant=bool(p_value < alpha),
        degrees_of_freedom=table.shape[0] - 1,
    )


def contingency_test(table: np.ndarray, alpha: float = 0.05) -> ContingencyTest:
    """Chi-square, or Fisher's exact test when any expected count is below 5."""
    table = np.asarray(table, dtype=int)
    table = table[table.sum(axis=1) > 0]
    if _is_degenerate(table):
        return _no_association("chi_square", table)
    if expected_counts(table).min() < MIN_EXPECTED_CELL_COUNT:
        return fisher_exact_test(table, alpha)
    return chi_square_test(table, alpha)


# =============================================================================
# Effect size and power
# =============================================================================


def cramers_v(table: np.ndarray) -> float:
    """Cramer's V (phi for 2 x 2 tables), without continuity correction."""
    table = np.asarray(table, dtype=int)
    table = table[table.sum(axis=1) > 0]
    if _is_degenerate(table):
        return 0.0
    statistic, _, _, _ = stats.chi2_contingency(table, correction=False)
    n = table.sum()
    k = min(table.shape) - 1
    return float(math.sqrt(statistic / (n * k))) if n and k else 0.0


def interpret_effect_size(value: float) -> str:
    """Cohen's conventions for w / Cramer's V."""
    if value < 0.3:
        return "small"
    if value < 0.5:
        return "medium"
    return "large"


def cohens_h(p1: float, p2: float) -> float:
    """Effect size for the difference between two proportions."""
    return abs(2 * math.asin(math.sqrt(p1)) - 2 * math.asin(math.sqrt(p2)))


def chi_square_power(
    effect_size: float,
    sample_size: int,
    degrees_of_freedom: int = 1,
    alpha: float = 0.05,
) -> float:
    """Power of a chi-square test to detect effect size w."""
    if sample_size <= 0 or degrees_of_freedom < 1:
        return 0.0
    critical = stats.chi2.ppf(1 - alpha, degrees_of_freedom)
    noncentrality = effect_size**2 * sample_size
    return float(stats.ncx2.sf(critical, degrees_of_freedom, noncentrality))


def bonferroni(p_values: dict[str, float], alpha: float = 0.05) -> tuple[dict[str, float], float]:
    """Bonferroni-adjusted p-values and the per-comparison alpha."""
    m = max(len(p_values), 1)
    adjusted = {key: min(1.0, p * m) for key, p in p_values.items()}
    return adjusted, alpha / m


# =============================================================================
# Variability
# =============================================================================


def coefficient_of_variation(values: Sequence[float]) -> Optional[float]:
    """Population standard deviation over mean; None when undefined."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return None
    mean = float(arr.mean())
    std = float(arr.std())
    if mean == 0:
        return 0.0 if std == 0 else None
    return std / abs(mean)


def zscore_outliers(values: Sequence[float], threshold: float = 2.5) -> list[tuple[int, float]]:
    """Indices and z-scores of values with |z| above the threshold."""
    arr = np.asarray(values, dtype=float)
    if arr.size < 2:
        return []
    std = arr.std()
    if std == 0:
        return []
    z_scores = (arr - arr.mean()) / std
    return [(int(i), float(z_scores[i])) for i in np.flatnonzero(np.abs(z_scores) > threshold)]


def min_max_ratio(values: Sequence[float]) -> float:
    """min/max of non-negative values; 1.0 when the maximum is 0."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 1.0
    high = float(arr.max())
    if high <= 0:
        return 1.0
    return max(0.0, min(1.0, float(arr.min()) / high))


def max_abs_difference(values: Sequence[float]) -> float:
    arr = np.asarray(values, dtype=float)
    if arr.size < 2:
        return 0.0
    return float(arr.max() - arr.min())
