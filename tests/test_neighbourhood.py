'''
Tests for neighbourhood stack construction.

Covers the identity at lag 0, row normalisation, rook and queen contiguity
with and without toroidal wrapping, zero-neighbour rows on bounded grids,
inference of the number of spatial lags and the error paths.
'''

import numpy as np
import pandas as pd
import pytest
from hypothesis import given, settings, strategies as st

from starmagarch.core.exceptions import InvalidShapeError, ModelSpecificationError
from starmagarch.core.parameters import ParameterSet
from starmagarch.models.neighbourhood import (
    create_neighbourhood_array, lattice_distances, neighbourhood_summary
)

grid_shapes = st.lists(st.integers(min_value=1, max_value=5), min_size=1, max_size=3).map(tuple)
topologies = st.sampled_from(["rook", "queen"])


class TestNeighbourhoodProperties:

    @given(shape=grid_shapes, type_=topologies, torus=st.booleans())
    @settings(max_examples=50, deadline=None)
    def test_single_lag_is_identity(self, shape, type_, torus):
        """With sp=1 the stack holds exactly the identity matrix."""
        W = create_neighbourhood_array(shape, sp=1, type=type_, torus=torus)
        n_locations = int(np.prod(shape))
        assert W.shape == (1, n_locations, n_locations)
        np.testing.assert_array_equal(W[0], np.eye(n_locations))

    @given(shape=grid_shapes, type_=topologies, torus=st.booleans(),
           sp=st.integers(min_value=2, max_value=4))
    @settings(max_examples=50, deadline=None)
    def test_rows_sum_to_one_or_zero(self, shape, type_, torus, sp):
        """Every row of a non-identity lag sums to 1, or 0 when it has no neighbours."""
        W = create_neighbourhood_array(shape, sp=sp, type=type_, torus=torus)
        for k in range(1, sp):
            row_sums = W[k].sum(axis=1)
            is_one = np.isclose(row_sums, 1.0)
            is_zero = row_sums == 0.0
            assert np.all(is_one | is_zero)
            assert np.all(np.diag(W[k]) == 0.0)

    @given(shape=grid_shapes, type_=topologies, torus=st.booleans(),
           sp=st.integers(min_value=2, max_value=4))
    @settings(max_examples=30, deadline=None)
    def test_adjacency_is_symmetric(self, shape, type_, torus, sp):
        """Lattice distance is symmetric, so the neighbour pattern is too."""
        W = create_neighbourhood_array(shape, sp=sp, type=type_, torus=torus)
        for k in range(1, sp):
            pattern = W[k] != 0
            np.testing.assert_array_equal(pattern, pattern.T)


class TestConcreteLayouts:

    def test_rook_bounded_grid(self):
        """On a bounded 3x3 grid the centre has 4 rook neighbours and a corner 2."""
        W = create_neighbourhood_array((3, 3), sp=2, type="rook", torus=False)

        centre = W[1, 4]
        assert set(np.flatnonzero(centre)) == {1, 3, 5, 7}
        np.testing.assert_allclose(centre[[1, 3, 5, 7]], 0.25)

        corner = W[1, 0]
        assert set(np.flatnonzero(corner)) == {1, 3}
        np.testing.assert_allclose(corner[[1, 3]], 0.5)

    def test_queen_bounded_grid(self):
        """Queen contiguity adds the diagonals."""
        W = create_neighbourhood_array((3, 3), sp=2, type="queen", torus=False)
        assert set(np.flatnonzero(W[1, 4])) == {0, 1, 2, 3, 5, 6, 7, 8}
        assert set(np.flatnonzero(W[1, 0])) == {1, 3, 4}

    def test_torus_wraps_edges(self):
        """On a 4x4 torus every location has 4 rook neighbours, including across edges."""
        W = create_neighbourhood_array((4, 4), sp=2, type="rook", torus=True)
        counts = (W[1] != 0).sum(axis=1)
        assert np.all(counts == 4)
        # Location 0 is (0, 0); (0, 3) and (3, 0) are adjacent across the edges
        assert set(np.flatnonzero(W[1, 0])) == {1, 3, 4, 12}

    def test_second_order_neighbours(self):
        """Lag 2 holds the locations at distance exactly two."""
        W = create_neighbourhood_array((5, 5), sp=3, type="rook", torus=False)
        # Centre (2, 2) -> index 12
        expected = {2, 6, 8, 10, 14, 16, 18, 22}
        assert set(np.flatnonzero(W[2, 12])) == expected
        np.testing.assert_allclose(W[2, 12].sum(), 1.0)

    def test_zero_neighbour_rows_stay_zero(self):
        """On a bounded line of three cells the middle cell has nothing at distance 2."""
        W = create_neighbourhood_array((3,), sp=3, type="rook", torus=False)
        np.testing.assert_array_equal(W[2, 1], np.zeros(3))
        np.testing.assert_array_equal(W[2, 0], [0.0, 0.0, 1.0])

    def test_locations_in_row_major_order(self):
        W = create_neighbourhood_array((2, 3), sp=2, type="rook", torus=False)
        # (0, 1) -> 1 has neighbours (0, 0), (0, 2), (1, 1) -> 0, 2, 4
        assert set(np.flatnonzero(W[1, 1])) == {0, 2, 4}

    def test_stack_is_read_only(self):
        W = create_neighbourhood_array((3, 3), sp=2)
        with pytest.raises(ValueError):
            W[1, 0, 0] = 1.0

    def test_lattice_distances(self):
        rook = lattice_distances((3, 3), type="rook", torus=False)
        queen = lattice_distances((3, 3), type="queen", torus=False)
        assert rook[0, 8] == 4
        assert queen[0, 8] == 2
        torus = lattice_distances((3, 3), type="rook", torus=True)
        assert torus[0, 8] == 2


class TestDefaultsAndInference:

    def test_sp_inferred_from_parameters(self):
        params = ParameterSet(phi=[[0.2], [0.1], [0.05]], omega=1.0)
        W = create_neighbourhood_array((4, 4), parameters=params)
        assert W.shape[0] == 3

    def test_sp_inferred_for_pure_temporal_model(self):
        params = ParameterSet(mu=0.0, omega=1.0)
        W = create_neighbourhood_array((2, 2), parameters=params)
        assert W.shape == (1, 4, 4)

    def test_integer_shape(self):
        W = create_neighbourhood_array(5, sp=2, type="rook", torus=True)
        assert W.shape == (2, 5, 5)


class TestErrors:

    @pytest.mark.parametrize("shape", [(0, 3), (3, -1), (), (2.5, 2), "ab"])
    def test_invalid_shape(self, shape):
        with pytest.raises(InvalidShapeError):
            create_neighbourhood_array(shape, sp=2)

    @pytest.mark.parametrize("sp", [0, -1, 1.5])
    def test_invalid_sp(self, sp):
        with pytest.raises(InvalidShapeError):
            create_neighbourhood_array((3, 3), sp=sp)

    def test_sp_required_without_parameters(self):
        with pytest.raises(InvalidShapeError):
            create_neighbourhood_array((3, 3))

    def test_unknown_type(self):
        with pytest.raises(ModelSpecificationError):
            create_neighbourhood_array((3, 3), sp=2, type="bishop")


class TestSummary:

    def test_neighbourhood_summary(self):
        W = create_neighbourhood_array((4, 4), sp=3, type="rook", torus=True)
        summary = neighbourhood_summary(W)
        assert isinstance(summary, pd.DataFrame)
        assert list(summary.index) == [0, 1, 2]
        assert summary.loc[0, "mean_neighbours"] == 1
        assert summary.loc[1, "mean_neighbours"] == 4
        assert summary.loc[1, "zero_rows"] == 0
        np.testing.assert_allclose(summary.loc[1, "density"], 4 / 16)

    def test_neighbourhood_summary_rejects_bad_stack(self):
        with pytest.raises(InvalidShapeError):
            neighbourhood_summary(np.zeros((2, 3, 4)))
