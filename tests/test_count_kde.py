"""
Count-density estimator tests: fitting, rescaling, integration and tables.
"""

import warnings

import numpy as np
import pandas as pd
import pytest

from modeling.count_kde import (
    CountDensity,
    DegenerateInput,
    InvalidParameter,
    KDEConfig,
    estimate_count_density,
    fit_raw_density,
    integrate_density,
    probability_frame,
    probability_table,
    rescale_density,
    select_bandwidth,
    validate_counts,
)


SPREAD = list(range(11))
SKEWED = [0, 0, 1, 1, 1, 2, 2, 3, 3, 4, 5, 7, 9, 12]


class TestRawDensity:
    """Gaussian kernel sum over the counts."""

    def test_non_negative_everywhere(self):
        raw = fit_raw_density(SKEWED, bandwidth=1.0)
        xs = np.linspace(-50, 80, 301)
        assert np.all(raw(xs) >= 0)
        assert raw(-1000.0) >= 0

    def test_matches_kernel_average(self):
        raw = fit_raw_density([1, 4], bandwidth=0.5)
        x = 2.0
        expected = np.mean(
            [np.exp(-0.5 * ((x - v) / 0.5) ** 2) / (0.5 * np.sqrt(2 * np.pi)) for v in (1, 4)]
        )
        assert raw(x) == pytest.approx(expected, rel=1e-7)

    def test_scalar_and_array_queries(self):
        raw = fit_raw_density(SPREAD)
        assert isinstance(raw(3.0), float)
        out = raw(np.array([[0.0, 1.0], [2.0, 3.0]]))
        assert out.shape == (2, 2)
        assert out[1, 1] == pytest.approx(raw(3.0))

    def test_order_independent(self):
        shuffled = list(SKEWED)
        np.random.default_rng(7).shuffle(shuffled)
        a = fit_raw_density(SKEWED)
        b = fit_raw_density(shuffled)
        xs = np.linspace(-3, 15, 91)
        np.testing.assert_array_equal(a(xs), b(xs))

    def test_accepts_series(self):
        raw = fit_raw_density(pd.Series(SPREAD, dtype="int64"))
        assert raw.observed_min == 0
        assert raw.observed_max == 10

    def test_integrates_to_about_one_on_real_line(self):
        raw = fit_raw_density(SKEWED)
        assert integrate_density(raw, -20, 40) == pytest.approx(1.0, abs=1e-6)


class TestValidation:
    """Invalid inputs fail at the call."""

    @pytest.mark.parametrize("bandwidth", [0, -1.0, float("nan"), "wide"])
    def test_bad_bandwidth(self, bandwidth):
        with pytest.raises(InvalidParameter):
            fit_raw_density(SPREAD, bandwidth=bandwidth)

    @pytest.mark.parametrize(
        "counts",
        [[], [1, -2, 3], [1.5, 2.0], [1, float("nan")], ["a", "b"]],
    )
    def test_bad_counts(self, counts):
        with pytest.raises(InvalidParameter):
            validate_counts(counts)

    def test_invalid_parameter_is_value_error(self):
        with pytest.raises(ValueError):
            fit_raw_density([], bandwidth=1.0)

    def test_lower_above_upper(self):
        raw = fit_raw_density(SPREAD)
        with pytest.raises(InvalidParameter):
            integrate_density(raw, 5, 4)

    def test_infinite_bound(self):
        raw = fit_raw_density(SPREAD)
        with pytest.raises(InvalidParameter):
            integrate_density(raw, 0, np.inf)

    def test_inverted_window(self):
        raw = fit_raw_density(SPREAD)
        with pytest.raises(InvalidParameter):
            rescale_density(raw, 10, 0)


class TestRescaling:
    """Normalization over the observed (or configured) window."""

    @pytest.mark.parametrize("counts", [SPREAD, SKEWED, [3, 3, 4, 8, 8, 8, 20]])
    @pytest.mark.parametrize("bandwidth", [0.5, 1.0, 2.5])
    def test_window_integral_is_one(self, counts, bandwidth):
        density = rescale_density(fit_raw_density(counts, bandwidth))
        assert integrate_density(density, density.range_min, density.range_max) == pytest.approx(1.0, abs=1e-3)

    def test_default_window_is_observed_range(self):
        density = rescale_density(fit_raw_density(SKEWED))
        assert (density.range_min, density.range_max) == (0.0, 12.0)

    def test_explicit_window(self):
        raw = fit_raw_density(SKEWED)
        wide = rescale_density(raw, -5, 20)
        narrow = rescale_density(raw)
        assert integrate_density(wide, -5, 20) == pytest.approx(1.0, abs=1e-3)
        assert wide.total > narrow.total

    def test_mass_outside_window_is_not_renormalized(self):
        density = rescale_density(fit_raw_density(SKEWED))
        outside = integrate_density(density, -10, 0) + integrate_density(density, 12, 30)
        assert outside > 0
        assert integrate_density(density, -10, 30) > 1.0

    def test_window_without_mass(self):
        raw = fit_raw_density([0, 1], bandwidth=0.1)
        with pytest.raises(InvalidParameter):
            rescale_density(raw, 500, 501)


class TestIntegration:
    def test_zero_width(self):
        density = rescale_density(fit_raw_density(SKEWED))
        assert integrate_density(density, 3.3, 3.3) == 0.0
        assert integrate_density(density, -7, -7) == 0.0

    @pytest.mark.parametrize("lower,mid,upper", [(0, 4, 12), (-2, 0.5, 3), (2.5, 2.5, 9)])
    def test_additivity(self, lower, mid, upper):
        density = rescale_density(fit_raw_density(SKEWED))
        whole = integrate_density(density, lower, upper)
        parts = integrate_density(density, lower, mid) + integrate_density(density, mid, upper)
        assert whole == pytest.approx(parts, abs=1e-7)

    def test_narrow_peak_inside_wide_range(self):
        raw = fit_raw_density([500, 500, 500], bandwidth=0.05)
        assert integrate_density(raw, 0, 1000) == pytest.approx(1.0, abs=1e-6)


class TestDegenerate:
    """All counts identical."""

    def test_all_zero_series_is_peaked(self):
        with pytest.warns(DegenerateInput):
            density = rescale_density(fit_raw_density([0, 0, 0, 0, 0], bandwidth=1.0))
        near = integrate_density(density, -1, 1)
        far = integrate_density(density, 5, 10)
        assert near > far
        assert near > 0.5

    def test_zero_width_window_is_widened(self):
        with pytest.warns(DegenerateInput):
            density = rescale_density(fit_raw_density([3, 3, 3], bandwidth=0.5))
        assert (density.range_min, density.range_max) == (1.0, 5.0)
        assert integrate_density(density, 1.0, 5.0) == pytest.approx(1.0, abs=1e-3)

    def test_single_observation(self):
        with pytest.warns(DegenerateInput):
            estimate = estimate_count_density([7])
        assert estimate.pdf(7.0) > estimate.pdf(9.0)

    def test_one_warning_per_estimation(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            estimate_count_density([4, 4, 4])
        degenerate = [w for w in caught if issubclass(w.category, DegenerateInput)]
        assert len(degenerate) == 1
        assert degenerate[0].filename.endswith("test_count_kde.py")

    def test_explicit_zero_width_window_warns_at_caller(self):
        raw = fit_raw_density(SPREAD)
        with pytest.warns(DegenerateInput) as caught:
            density = rescale_density(raw, 5, 5)
        assert len(caught) == 1
        assert caught[0].filename.endswith("test_count_kde.py")
        assert (density.range_min, density.range_max) == (1.0, 9.0)

    def test_spread_series_does_not_warn(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error", DegenerateInput)
            estimate_count_density(SPREAD)


class TestProbabilityTable:
    def test_uniform_spread_step_two(self):
        density = rescale_density(fit_raw_density(SPREAD, bandwidth=1.0))
        table = probability_table(density, 0, 10, 2)
        assert [label for label, _ in table] == ["0-2", "2-4", "4-6", "6-8", "8-10"]
        probs = [p for _, p in table]
        assert all(0 < p < 1 for p in probs)
        assert sum(probs) == pytest.approx(1.0, abs=0.05)

    def test_last_bucket_not_clipped(self):
        density = rescale_density(fit_raw_density(SPREAD))
        table = probability_table(density, 0, 9, 4)
        assert [label for label, _ in table] == ["0-4", "4-8", "8-12"]
        assert table[-1][1] == pytest.approx(integrate_density(density, 8, 12))

    def test_range_beyond_window(self):
        density = rescale_density(fit_raw_density(SKEWED))
        table = probability_table(density, 0, 40, 5)
        assert len(table) == 8
        assert table[-1][0] == "35-40"
        assert table[-1][1] < 1e-6

    @pytest.mark.parametrize(
        "start,end,step,labels",
        [
            (0, 0.9, 0.3, ["0-0.3", "0.3-0.6", "0.6-0.9"]),
            (0, 0.3, 0.1, ["0-0.1", "0.1-0.2", "0.2-0.3"]),
            (1, 1.7, 0.7, ["1-1.7"]),
        ],
    )
    def test_no_bucket_starting_at_end(self, start, end, step, labels):
        density = rescale_density(fit_raw_density(SPREAD))
        table = probability_table(density, start, end, step)
        assert [label for label, _ in table] == labels

    def test_fractional_labels(self):
        density = rescale_density(fit_raw_density(SPREAD))
        labels = [label for label, _ in probability_table(density, 0, 1, 0.5)]
        assert labels == ["0-0.5", "0.5-1"]

    def test_empty_when_start_equals_end(self):
        density = rescale_density(fit_raw_density(SPREAD))
        assert probability_table(density, 3, 3, 1) == []

    @pytest.mark.parametrize("step", [0, -2])
    def test_bad_step(self, step):
        density = rescale_density(fit_raw_density(SPREAD))
        with pytest.raises(InvalidParameter):
            probability_table(density, 0, 10, step)

    def test_start_after_end(self):
        density = rescale_density(fit_raw_density(SPREAD))
        with pytest.raises(InvalidParameter):
            probability_table(density, 10, 0, 1)

    def test_frame(self):
        density = rescale_density(fit_raw_density(SPREAD))
        frame = probability_frame(probability_table(density, 0, 10, 2))
        assert list(frame.columns) == ["bucket", "probability", "cumulative"]
        assert frame["cumulative"].iloc[-1] == pytest.approx(frame["probability"].sum())


class TestEstimate:
    def test_bundles_its_own_window(self):
        a = estimate_count_density([0, 1, 2, 3])
        b = estimate_count_density([10, 20, 30])
        assert isinstance(a, CountDensity)
        assert (a.range_min, a.range_max) == (0.0, 3.0)
        assert (b.range_min, b.range_max) == (10.0, 30.0)

    def test_config_window_and_bandwidth(self):
        est = estimate_count_density(SKEWED, KDEConfig(bandwidth=2.0, normalize_min=0, normalize_max=40))
        assert est.bandwidth == 2.0
        assert est.probability(0, 40) == pytest.approx(1.0, abs=1e-3)
        assert est.table(0, 40, 10)[0][0] == "0-10"


class TestBandwidthSelection:
    def test_picks_a_candidate(self):
        counts = np.random.default_rng(3).poisson(6, size=200)
        candidates = [0.3, 1.0, 2.0, 5.0]
        assert select_bandwidth(counts, candidates) in candidates

    def test_too_few_counts(self):
        with pytest.raises(InvalidParameter):
            select_bandwidth([1, 2, 3], cv=5)

    def test_rejects_bad_candidates(self):
        with pytest.raises(InvalidParameter):
            select_bandwidth(SPREAD, [1.0, 0.0])
