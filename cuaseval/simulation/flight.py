"""
Flight Plan Interpolation

Ground-truth target kinematics from waypoint flight plans.

Before the first waypoint the target holds the first position; after the
last waypoint it holds the last position. Between waypoints position is
linear in time, speed is the segment's ground speed and heading is the
segment's initial bearing.
"""

import bisect

from ..models.target import FlightPlan, TargetState


def interpolate_state(plan: FlightPlan, t: float) -> TargetState:
    """
    Ground-truth state of a planned target at time t.

    Args:
        plan: Validated flight plan (non-empty, non-decreasing times)
        t: Scenario time [s]

    Returns:
        TargetState at t
    """
    waypoints = plan.waypoints
    first, last = waypoints[0], waypoints[-1]

    if len(waypoints) == 1 or t <= first.time_s:
        return TargetState(plan.target_id, t, first.position, 0.0, _initial_heading(plan))
    if t >= last.time_s:
        return TargetState(plan.target_id, t, last.position, 0.0, _final_heading(plan))

    times = [w.time_s for w in waypoints]
    # Rightmost waypoint at or before t; zero-length segments resolve to the later waypoint
    index = bisect.bisect_right(times, t) - 1
    start, end = waypoints[index], waypoints[index + 1]

    span = end.time_s - start.time_s
    fraction = (t - start.time_s) / span
    position = start.position.interpolate(end.position, fraction)
    speed = start.position.distance_to(end.position) / span
    heading = start.position.bearing_to(end.position) if speed > 0 else 0.0

    return TargetState(plan.target_id, t, position, speed, heading)


def _initial_heading(plan: FlightPlan) -> float:
    for a, b in zip(plan.waypoints, plan.waypoints[1:]):
        if a.position != b.position:
            return a.position.bearing_to(b.position)
    return 0.0


def _final_heading(plan: FlightPlan) -> float:
    pairs = list(zip(plan.waypoints, plan.waypoints[1:]))
    for a, b in reversed(pairs):
        if a.position != b.position:
            return a.position.bearing_to(b.position)
    return 0.0
