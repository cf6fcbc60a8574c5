import pytest
import numpy as np
import pandas as pd

from reusable_holdout.subset_fitter import (
    PolicyMode,
    SignificancePolicy,
    compute_pvalues,
    rank_features,
)
from reusable_holdout.utils.exceptions import ConfigurationError


@pytest.fixture
def separated_data():
    rng = np.random.RandomState(3)
    y = pd.Series([0, 1] * 50)
    x = pd.DataFrame({
        'noise': rng.normal(size=100),
        'strong': rng.normal(size=100) + 3.0 * y,
        'weak': rng.normal(size=100) + 0.8 * y,
        'constant': np.ones(100),
    })
    return x, y


class TestSignificancePolicy:

    def test_top_two_is_explicit_mode(self):
        policy = SignificancePolicy.top_two()
        assert policy.mode is PolicyMode.TOP_TWO
        assert policy.is_top_two
        assert policy.cutoff is None
        assert str(policy) == "top-two override"

    def test_cutoff(self):
        policy = SignificancePolicy.cutoff_at(0.05)
        assert policy.mode is PolicyMode.CUTOFF
        assert not policy.is_top_two
        assert str(policy) == "p < 0.05"

    @pytest.mark.parametrize("cutoff", [0.0, 1.0, -0.2, None])
    def test_invalid_cutoff(self, cutoff):
        with pytest.raises(ConfigurationError):
            SignificancePolicy(PolicyMode.CUTOFF, cutoff)

    def test_top_two_rejects_cutoff(self):
        with pytest.raises(ConfigurationError):
            SignificancePolicy(PolicyMode.TOP_TWO, 0.05)


def test_compute_pvalues_orders_by_signal(separated_data):
    x, y = separated_data
    p_values = compute_pvalues(x, y)

    assert list(p_values.index) == list(x.columns)
    assert p_values['strong'] < p_values['weak'] < 0.05
    # Undefined test statistic falls back to 1.0
    assert p_values['constant'] == 1.0
    assert ((p_values >= 0) & (p_values <= 1)).all()


def test_compute_pvalues_needs_two_rows_per_class():
    x = pd.DataFrame({'a': [1.0, 2.0, 3.0], 'b': [0.0, 1.0, 0.0]})
    with pytest.raises(ValueError, match="at least two rows"):
        compute_pvalues(x, pd.Series([0, 0, 1]))


def test_rank_features_is_stable():
    p_values = pd.Series({'a': 0.2, 'b': 0.01, 'c': 0.2, 'd': 0.5})
    assert list(rank_features(p_values).index) == ['b', 'a', 'c', 'd']
