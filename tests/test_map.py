"""Tests for map module."""

import os
import tempfile
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from redlist_metrics.aoo import compute_aoo
from redlist_metrics.eoo import compute_eoo
from redlist_metrics.map import _map_extent, create_metrics_map
from redlist_metrics.occurrence import Occurrence

OCCURRENCES = [
    Occurrence(id="a", lat=-10.0, lon=-50.0),
    Occurrence(id="b", lat=-10.0, lon=-49.0),
    Occurrence(id="c", lat=-9.0, lon=-50.0),
]


def setup_plt(mock_plt):
    mock_fig = MagicMock()
    mock_ax = MagicMock()
    mock_plt.figure.return_value = mock_fig
    mock_fig.add_subplot.return_value = mock_ax
    return mock_fig, mock_ax


class TestCreateMetricsMap:
    """Tests for the create_metrics_map function."""

    @patch('redlist_metrics.map.plt')
    def test_basic_map_creation(self, mock_plt):
        """Test map creation with only occurrences."""
        mock_fig, mock_ax = setup_plt(mock_plt)

        with tempfile.TemporaryDirectory() as tmpdir:
            output_path = os.path.join(tmpdir, 'test_map.png')

            result = create_metrics_map(OCCURRENCES, output_path)

            assert result == output_path
            mock_plt.savefig.assert_called_once()
            mock_plt.close.assert_called_once_with(mock_fig)
            mock_ax.scatter.assert_called_once()
            mock_ax.add_geometries.assert_not_called()

    @patch('redlist_metrics.map.plt')
    def test_draws_hull_and_grid(self, mock_plt):
        """Test that the AOO grid and EOO hull are both drawn."""
        _, mock_ax = setup_plt(mock_plt)
        eoo = compute_eoo(OCCURRENCES)
        aoo = compute_aoo(OCCURRENCES, 2000)

        create_metrics_map(OCCURRENCES, 'out.png', eoo=eoo, aoo=aoo)

        assert mock_ax.add_geometries.call_count == 2
        grid_call, hull_call = mock_ax.add_geometries.call_args_list
        assert len(grid_call.args[0]) == aoo.cell_count
        assert hull_call.args[0] == [eoo.hull]

    @patch('redlist_metrics.map.plt')
    def test_no_hull_skips_outline(self, mock_plt):
        """Test that an EOO without hull draws nothing for it."""
        _, mock_ax = setup_plt(mock_plt)

        create_metrics_map(OCCURRENCES[:2], 'out.png', eoo=compute_eoo(OCCURRENCES[:2]))

        mock_ax.add_geometries.assert_not_called()

    @patch('redlist_metrics.map.plt')
    def test_disabled_points_drawn_separately(self, mock_plt):
        """Test that disabled points get their own hollow scatter."""
        _, mock_ax = setup_plt(mock_plt)
        occurrences = OCCURRENCES + [Occurrence(id="d", lat=-9.5, lon=-49.5, calc_status="disabled")]

        create_metrics_map(occurrences, 'out.png')

        assert mock_ax.scatter.call_count == 2
        assert mock_ax.scatter.call_args_list[1].kwargs['facecolors'] == 'none'

    @patch('redlist_metrics.map.plt')
    def test_title(self, mock_plt):
        """Test that a title is set only when given."""
        setup_plt(mock_plt)

        create_metrics_map(OCCURRENCES, 'out.png', title='Species X')
        mock_plt.title.assert_called_once()
        assert mock_plt.title.call_args.args[0] == 'Species X'

        mock_plt.reset_mock()
        setup_plt(mock_plt)
        create_metrics_map(OCCURRENCES, 'out.png')
        mock_plt.title.assert_not_called()

    @patch('redlist_metrics.map.plt')
    def test_custom_dpi(self, mock_plt):
        """Test that dpi is passed to savefig."""
        setup_plt(mock_plt)

        create_metrics_map(OCCURRENCES, 'out.png', dpi=300)

        assert mock_plt.savefig.call_args.kwargs['dpi'] == 300

    def test_no_valid_points(self):
        """Test that ValueError is raised when nothing can be drawn."""
        with pytest.raises(ValueError, match="No occurrences with valid coordinates"):
            create_metrics_map([Occurrence(id="z", lat=0.0, lon=0.0)], 'out.png')


class TestMapExtent:
    """Tests for the _map_extent helper."""

    def test_padding(self):
        """Test that the extent is padded by a fraction of the span."""
        extent = _map_extent(np.array([-50.0, -49.0]), np.array([-10.0, -9.0]))
        assert extent == pytest.approx([-50.15, -48.85, -10.15, -8.85])

    def test_single_point_has_minimum_span(self):
        """Test that a single point still gets a non-empty extent."""
        min_lon, max_lon, min_lat, max_lat = _map_extent(np.array([10.0]), np.array([20.0]))
        assert max_lon > min_lon
        assert max_lat > min_lat

    def test_clamped_to_world(self):
        """Test that the extent never leaves the mappable range."""
        extent = _map_extent(np.array([-180.0, 180.0]), np.array([-85.0, 85.0]))
        assert extent == [-180.0, 180.0, -85.0, 85.0]
