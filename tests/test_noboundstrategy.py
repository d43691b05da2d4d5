import sys

import numpy as np

from evostrat.noboundstrategy import NoBoundStrategy


def test_is_identity():
    assert NoBoundStrategy().is_id() is True


def test_bounds_are_largest_floats():
    s = NoBoundStrategy([-1.0, -1.0], [1.0, 1.0], 2)
    for k in range(3):
        assert s.lower_bound(k) == -sys.float_info.max
        assert s.upper_bound(k) == sys.float_info.max
        assert s.pheno_lower_bound(k) == -sys.float_info.max
        assert s.pheno_upper_bound(k) == sys.float_info.max


def test_to_f_representation_leaves_point():
    x = np.array([0.5, -3.0, 12.0])
    y = NoBoundStrategy().to_f_representation(x)
    np.testing.assert_array_equal(y, [0.5, -3.0, 12.0])


def test_remove_dimensions_keeps_state():
    s = NoBoundStrategy()
    s.remove_dimensions([0, 2])
    assert s.is_id() is True
    assert s.upper_bound(0) == sys.float_info.max