"""
CUAS-Eval Geodesy and Terrain Masking Test Suite

Test ID | Description                         | Reference              | Tolerance
--------|-------------------------------------|------------------------|------------
1       | Haversine distance / bearing        | Sinnott 1984           | 1e-6 rel
2       | Azimuth sector membership           | Wrap-around windows    | Exact
3       | No elevation model = unmasked       | Mask definition        | Exact
4       | Obstacle monotonicity               | Virtual terrain        | Exact
5       | Hill masking of low targets         | ITU-R P.526 profile    | Exact
6       | Data gaps degrade to unmasked       | Error handling         | Exact
7       | Mask cache hit/miss and pickling    | Process-wide cache     | Exact

References:
    - Sinnott, R.W., "Virtues of the Haversine", Sky and Telescope, 1984
    - ITU-R P.526: Propagation by diffraction
"""

import math
import os
import pickle
import sys

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cuaseval.exceptions import DataGapError
from cuaseval.models.environment import EnvironmentState, Obstacle
from cuaseval.models.sensor import Capability, SensorSite
from cuaseval.physics.constants import EARTH_RADIUS, UNMASKED_ANGLE_DEG
from cuaseval.physics.elevation import (
    FlatElevationProvider,
    GridElevationProvider,
    create_hill_terrain,
)
from cuaseval.physics.geo import (
    GeoPosition,
    azimuth_in_sector,
    haversine_distance,
    initial_bearing,
    wrap_azimuth,
)
from cuaseval.physics.terrain import TerrainMaskCache, bucket_index, compute_mask

ORIGIN = GeoPosition(38.42, 27.14, 10.0)
METERS_PER_DEG = math.radians(1.0) * EARTH_RADIUS


def make_sensor(position: GeoPosition = ORIGIN, **kwargs) -> SensorSite:
    params = dict(
        sensor_id="RADAR-1",
        capability=Capability.RADAR,
        position=position,
        nominal_range_m=3000.0,
        max_range_m=8000.0,
    )
    params.update(kwargs)
    return SensorSite(**params)


# =============================================================================
# TEST 1: Great-circle primitives
# =============================================================================


class TestGreatCircle:
    """Haversine distance and initial bearing on a 6371 km sphere"""

    def test_one_degree_of_latitude(self):
        distance = haversine_distance(0.0, 0.0, 1.0, 0.0)
        assert distance == pytest.approx(METERS_PER_DEG, rel=1e-6)

    def test_cardinal_bearings(self):
        assert initial_bearing(0.0, 0.0, 1.0, 0.0) == pytest.approx(0.0, abs=1e-9)
        assert initial_bearing(0.0, 0.0, 0.0, 1.0) == pytest.approx(90.0, abs=1e-9)
        assert initial_bearing(0.0, 0.0, -1.0, 0.0) == pytest.approx(180.0, abs=1e-9)
        assert initial_bearing(0.0, 0.0, 0.0, -1.0) == pytest.approx(270.0, abs=1e-9)

    def test_destination_distance_and_bearing(self):
        point = ORIGIN.destination(45.0, 1500.0)
        assert ORIGIN.distance_to(point) == pytest.approx(1500.0, abs=1e-3)
        assert ORIGIN.bearing_to(point) == pytest.approx(45.0, abs=1e-3)
        assert point.alt_msl == ORIGIN.alt_msl

    def test_slant_range_and_elevation_angle(self):
        above = ORIGIN.destination(0.0, 1000.0)
        above = GeoPosition(above.lat, above.lon, ORIGIN.alt_msl + 1000.0)
        assert ORIGIN.slant_range_to(above) == pytest.approx(1000.0 * math.sqrt(2.0), rel=1e-6)
        assert ORIGIN.elevation_angle_to(above) == pytest.approx(45.0, abs=1e-4)

    def test_interpolate_endpoints(self):
        other = GeoPosition(38.5, 27.2, 110.0)
        assert ORIGIN.interpolate(other, 0.0) == ORIGIN
        assert ORIGIN.interpolate(other, 1.0) == other
        assert ORIGIN.interpolate(other, 0.5).alt_msl == pytest.approx(60.0)


# =============================================================================
# TEST 2: Azimuth sectors
# =============================================================================


class TestAzimuthSector:
    """Sector membership including the 0/360 wrap"""

    def test_wrap_azimuth(self):
        assert wrap_azimuth(-10.0) == pytest.approx(350.0)
        assert wrap_azimuth(370.0) == pytest.approx(10.0)

    def test_sector_across_north(self):
        assert azimuth_in_sector(350.0, 340.0, 30.0)
        assert azimuth_in_sector(10.0, 340.0, 30.0)
        assert not azimuth_in_sector(20.0, 340.0, 30.0)
        assert not azimuth_in_sector(180.0, 340.0, 30.0)

    def test_full_circle_always_inside(self):
        for azimuth in (0.0, 90.0, 359.9):
            assert azimuth_in_sector(azimuth, 123.0, 360.0)

    def test_bucket_index_nearest_radial(self):
        assert bucket_index(0.0, 72) == 0
        assert bucket_index(2.4, 72) == 0
        assert bucket_index(2.6, 72) == 1
        assert bucket_index(358.0, 72) == 0


# =============================================================================
# TEST 3-5: Mask computation
# =============================================================================


class TestTerrainMask:
    """Mask angles from elevation data and obstacles"""

    def test_no_elevation_model_is_unmasked(self):
        mask = compute_mask(make_sensor(), EnvironmentState(), num_azimuths=36, num_samples=20)
        assert mask.num_azimuths == 36
        assert all(a == UNMASKED_ANGLE_DEG for a in mask.mask_angles_deg)
        assert mask.gap_samples == 0

    def test_flat_terrain_below_horizon(self):
        """Earth curvature drops flat terrain below the antenna horizon"""
        env = EnvironmentState(elevation=FlatElevationProvider(0.0))
        mask = compute_mask(make_sensor(), env, num_azimuths=8, num_samples=50)
        assert all(a < 0.0 for a in mask.mask_angles_deg)
        assert mask.is_visible(ORIGIN.destination(90.0, 5000.0))

    def test_obstacle_never_lowers_mask(self):
        """Adding an obstacle is monotone: no azimuth's mask angle decreases"""
        env = EnvironmentState(elevation=FlatElevationProvider(0.0))
        building = Obstacle("B1", ORIGIN.destination(0.0, 500.0), height_m=30.0)
        env_with = EnvironmentState(elevation=FlatElevationProvider(0.0), obstacles=[building])

        before = compute_mask(make_sensor(), env, num_azimuths=72, num_samples=100)
        after = compute_mask(make_sensor(), env_with, num_azimuths=72, num_samples=100)

        assert all(a >= b for a, b in zip(after.mask_angles_deg, before.mask_angles_deg))
        assert after.mask_angle_at(0.0) > before.mask_angle_at(0.0)

    def test_obstacle_angle_and_visibility(self):
        building = Obstacle("B1", ORIGIN.destination(0.0, 500.0), height_m=30.0)
        mask = compute_mask(make_sensor(), EnvironmentState(obstacles=[building]))

        curvature = 500.0**2 / (2.0 * EARTH_RADIUS)
        expected = math.degrees(math.atan2(30.0 - curvature - ORIGIN.alt_msl, 500.0))
        assert mask.mask_angle_at(0.0) == pytest.approx(expected, abs=1e-6)

        ahead = ORIGIN.destination(0.0, 2000.0)
        low = GeoPosition(ahead.lat, ahead.lon, 20.0)
        high = GeoPosition(ahead.lat, ahead.lon, 300.0)
        assert not mask.is_visible(low)
        assert mask.is_visible(high)
        # Other azimuths are untouched
        assert mask.mask_angle_at(180.0) == UNMASKED_ANGLE_DEG

    def test_hill_masks_low_target(self):
        hill_lat = ORIGIN.lat + 3000.0 / METERS_PER_DEG
        terrain = create_hill_terrain(
            GeoPosition(ORIGIN.lat, ORIGIN.lon, 0.0), [(hill_lat, ORIGIN.lon, 200.0, 300.0)]
        )
        mask = compute_mask(make_sensor(), EnvironmentState(elevation=terrain))

        assert mask.mask_angle_at(0.0) > 3.0
        assert mask.mask_angle_at(180.0) < 0.5

        behind = ORIGIN.destination(0.0, 6000.0)
        assert not mask.is_visible(GeoPosition(behind.lat, behind.lon, 100.0))
        assert mask.is_visible(GeoPosition(behind.lat, behind.lon, 1500.0))


# =============================================================================
# TEST 6: Data gaps
# =============================================================================


class TestDataGaps:
    """Missing elevation data degrades to unmasked, never aborts"""

    @pytest.fixture
    def remote_grid(self):
        """Grid covering a patch far away from the sensor"""
        return GridElevationProvider(np.full((3, 3), 500.0), lat0=10.0, lon0=10.0, dlat=0.01, dlon=0.01)

    def test_gap_samples_counted_and_unmasked(self, remote_grid):
        mask = compute_mask(
            make_sensor(), EnvironmentState(elevation=remote_grid), num_azimuths=12, num_samples=10
        )
        assert mask.gap_samples == 12 * 10
        assert all(a == UNMASKED_ANGLE_DEG for a in mask.mask_angles_deg)

    def test_no_data_sentinel_is_a_gap(self):
        heights = np.zeros((3, 3))
        heights[0, 0] = -32767.0
        grid = GridElevationProvider(heights, lat0=38.0, lon0=27.0, dlat=0.01, dlon=0.01)
        assert grid.elevation_at(38.0, 27.0) is None
        assert grid.elevation_at(38.02, 27.02) == pytest.approx(0.0)

    def test_strict_provider_gap_recovered(self):
        grid = GridElevationProvider(
            np.zeros((2, 2)), lat0=10.0, lon0=10.0, dlat=0.01, dlon=0.01, strict=True
        )
        with pytest.raises(DataGapError):
            grid.elevation_at(ORIGIN.lat, ORIGIN.lon)

        building = Obstacle("B1", ORIGIN.destination(90.0, 400.0), height_m=40.0)
        mask = compute_mask(make_sensor(), EnvironmentState(elevation=grid, obstacles=[building]))
        # Obstacle base falls back to 0 m and still masks its radial
        assert mask.mask_angle_at(90.0) > 0.0


# =============================================================================
# TEST 7: Mask cache
# =============================================================================


class TestMaskCache:
    """Masks computed once per (sensor, environment)"""

    def test_hit_after_miss(self):
        cache = TerrainMaskCache()
        sensor = make_sensor()
        env = EnvironmentState()

        first = cache.get_or_compute(sensor, env, 36, 20)
        second = cache.get_or_compute(sensor, env, 36, 20)

        assert first is second
        assert (cache.misses, cache.hits) == (1, 1)
        assert len(cache) == 1

    def test_environment_change_is_a_new_key(self):
        cache = TerrainMaskCache()
        sensor = make_sensor()
        cache.get_or_compute(sensor, EnvironmentState(), 36, 20)
        building = Obstacle("B1", ORIGIN.destination(0.0, 500.0), height_m=30.0)
        cache.get_or_compute(sensor, EnvironmentState(obstacles=[building]), 36, 20)
        assert cache.misses == 2
        assert len(cache) == 2

    def test_clear_and_pickle(self):
        cache = TerrainMaskCache()
        cache.get_or_compute(make_sensor(), EnvironmentState(), 36, 20)
        restored = pickle.loads(pickle.dumps(cache))
        assert len(restored) == 0
        cache.clear()
        assert len(cache) == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
