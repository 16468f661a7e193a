"""
Track Engine for DTI Evaluation

Per-target track continuity state machine driven by fused detections, and
post-hoc track reconstruction from the observed fixes.

Track Lifecycle:
    UNTRACKED -> ACQUIRED -> TRACKING <-> COASTING -> DROPPED -> ACQUIRED ...

    - UNTRACKED/DROPPED + hit       -> ACQUIRED (new segment; from DROPPED the
                                       drop counter increments)
    - ACQUIRED + hit within the
      expected update interval      -> TRACKING
    - TRACKING + miss               -> COASTING (loss event)
    - COASTING + hit                -> TRACKING, same UID (recovery)
    - ACQUIRED/COASTING + miss past
      the coast tolerance           -> DROPPED

Continuity counts TRACKING and COASTING steps plus the opening ACQUIRED step
of each segment. A target whose fixes never arrive within the update interval
stays ACQUIRED and earns continuity only for its first step.

The track UID is keyed by target identity, so one physical target never owns
more than one UID regardless of how many sensors report it. A re-acquisition
after a drop is still a break in track identity for the operator and counts
as a UID change; recovery from COASTING keeps the UID.

Reference:
    - Blackman, S. "Multiple-Target Tracking with Radar Applications", 1986
    - CWA 18150, track continuity and UID preservation tests
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..models.results import DetectionResult, TrackingResult
from ..models.target import TargetState
from ..physics.geo import GeoPosition

logger = logging.getLogger(__name__)

_TIME_EPS = 1e-9


class TrackState(Enum):
    """Track continuity states."""

    UNTRACKED = "untracked"  # Never detected
    ACQUIRED = "acquired"  # First fix of a segment
    TRACKING = "tracking"  # Regular updates
    COASTING = "coasting"  # Missed updates, within coast tolerance
    DROPPED = "dropped"  # Coast tolerance exceeded, segment closed


HELD_STATES = frozenset({TrackState.ACQUIRED, TrackState.TRACKING, TrackState.COASTING})
"""States in which the target holds a live track (position estimate, update rate)"""

CONTINUITY_STATES = frozenset({TrackState.TRACKING, TrackState.COASTING})
"""States counted toward continuity in addition to a segment's opening step"""


@dataclass
class Track:
    """
    Track of one target.

    Attributes:
        target_id: Target identity
        uid: Track UID, fixed at first acquisition
        state: Current continuity state
        segment: Current segment number (0 before first acquisition)
        last_hit_time: Time of the last fused detection
        uid_changes: Re-acquisitions after a drop (breaks in track identity)
        fixes: Observed fixes as (time, position, segment)
        history: (time, state, segment, continuous) after each update
    """

    target_id: str
    uid: str = ""
    state: TrackState = TrackState.UNTRACKED
    segment: int = 0
    last_hit_time: Optional[float] = None
    detections: int = 0
    drop_count: int = 0
    loss_events: int = 0
    recoveries: int = 0
    uid_changes: int = 0
    fixes: List[Tuple[float, GeoPosition, int]] = field(default_factory=list)
    history: List[Tuple[float, TrackState, int, bool]] = field(default_factory=list)


class TrackEngine:
    """
    Track continuity state machine for all targets of a scenario.

    Example:
        >>> engine = TrackEngine(update_interval_s=1.0, coast_tolerance_s=3.0)
        >>> engine.update("T1", 0.0, hit_detection)
        <TrackState.ACQUIRED: 'acquired'>
    """

    def __init__(self, update_interval_s: float = 1.0, coast_tolerance_s: float = 3.0) -> None:
        """
        Initialize Track Engine.

        Args:
            update_interval_s: Expected interval between fixes for ACQUIRED -> TRACKING
            coast_tolerance_s: Max time without a fix before a track is dropped
        """
        self.update_interval_s = update_interval_s
        self.coast_tolerance_s = coast_tolerance_s
        self.tracks: Dict[str, Track] = {}

    def track_for(self, target_id: str) -> Track:
        track = self.tracks.get(target_id)
        if track is None:
            track = Track(target_id=target_id)
            self.tracks[target_id] = track
        return track

    def update(self, target_id: str, t: float, detection: Optional[DetectionResult]) -> TrackState:
        """
        Advance one target's track by one timestep.

        Args:
            target_id: Target identity
            t: Scenario time [s]
            detection: Fused detection for this step (None or detected=False = miss)

        Returns:
            State after the update
        """
        track = self.track_for(target_id)
        previous = track.state

        if detection is not None and detection.detected:
            self._on_hit(track, t, detection)
        else:
            self._on_miss(track, t)

        opening = track.state is TrackState.ACQUIRED and previous is not TrackState.ACQUIRED
        continuous = opening or track.state in CONTINUITY_STATES
        track.history.append((t, track.state, track.segment, continuous))
        if track.state is not previous:
            logger.debug(
                "Track %s (%s) t=%.1f: %s -> %s",
                track.uid or "-",
                target_id,
                t,
                previous.value,
                track.state.value,
            )
        return track.state

    def _on_hit(self, track: Track, t: float, detection: DetectionResult) -> None:
        state = track.state

        if state in (TrackState.UNTRACKED, TrackState.DROPPED):
            if state is TrackState.DROPPED:
                track.drop_count += 1
                track.uid_changes += 1
            if not track.uid:
                track.uid = f"TRK-{track.target_id}"
            track.segment += 1
            track.state = TrackState.ACQUIRED
        elif state is TrackState.ACQUIRED:
            if t - track.last_hit_time <= self.update_interval_s + _TIME_EPS:
                track.state = TrackState.TRACKING
        elif state is TrackState.COASTING:
            track.state = TrackState.TRACKING
            track.recoveries += 1

        track.last_hit_time = t
        track.detections += 1
        if detection.reported_position is not None:
            track.fixes.append((t, detection.reported_position, track.segment))

    def _on_miss(self, track: Track, t: float) -> None:
        if track.state is TrackState.TRACKING:
            track.state = TrackState.COASTING
            track.loss_events += 1

        if track.state in (TrackState.ACQUIRED, TrackState.COASTING):
            if t - track.last_hit_time > self.coast_tolerance_s + _TIME_EPS:
                track.state = TrackState.DROPPED

    # =========================================================================
    # TRACK SUMMARY
    # =========================================================================

    def summarize(
        self,
        target_id: str,
        truth: Sequence[TargetState],
        in_range: Sequence[bool],
        dt: float,
    ) -> TrackingResult:
        """
        Build the TrackingResult of one target.

        Track positions between fixes are interpolated from the observed
        fixes of the same segment, and extrapolated from the last two fixes
        after the segment's final fix. Errors are measured against ground
        truth at the same timestamps.

        Args:
            target_id: Target identity
            truth: Ground-truth state per timestep (aligned with update calls)
            in_range: Whether the target was within any sensor's nominal range per step
            dt: Timestep [s]

        Returns:
            TrackingResult
        """
        track = self.track_for(target_id)
        held = [state in HELD_STATES for _, state, _, _ in track.history]
        continuous = [c for _, _, _, c in track.history]

        in_range_steps = int(sum(bool(r) for r in in_range))
        continuous_in_range = sum(1 for c, r in zip(continuous, in_range) if c and r)
        held_steps = int(sum(held))

        errors = []
        for (t, state, segment, _), truth_state in zip(track.history, truth):
            if state not in HELD_STATES:
                continue
            estimate = self._estimate_position(track, segment, t)
            if estimate is not None:
                errors.append(estimate.distance_to(truth_state.position))

        continuity = continuous_in_range / in_range_steps if in_range_steps else 0.0
        update_rate = track.detections / (held_steps * dt) if held_steps else 0.0

        # Ratios with no events are perfect if a track existed, zero otherwise
        ever_tracked = track.segment > 0
        if track.loss_events:
            track_after_loss = track.recoveries / track.loss_events
        else:
            track_after_loss = 1.0 if ever_tracked else 0.0
        identity_events = track.recoveries + track.uid_changes
        if identity_events:
            uid_preservation = track.recoveries / identity_events
        else:
            uid_preservation = 1.0 if ever_tracked else 0.0

        return TrackingResult(
            target_id=target_id,
            track_uid=track.uid,
            mean_position_error_m=float(np.mean(errors)) if errors else 0.0,
            max_position_error_m=float(np.max(errors)) if errors else 0.0,
            continuity_ratio=float(continuity),
            update_rate_hz=float(update_rate),
            drop_count=track.drop_count,
            loss_events=track.loss_events,
            recoveries=track.recoveries,
            uid_changes=track.uid_changes,
            track_after_loss=float(track_after_loss),
            uid_preservation=float(uid_preservation),
            detections=track.detections,
            held_steps=held_steps,
            in_range_steps=in_range_steps,
            position_errors=[float(e) for e in errors],
            state_history=[state.value for _, state, _, _ in track.history],
        )

    def _estimate_position(self, track: Track, segment: int, t: float) -> Optional[GeoPosition]:
        """Track position at t from the fixes of one segment."""
        fixes = [(ft, pos) for ft, pos, seg in track.fixes if seg == segment and ft <= t + _TIME_EPS]
        later = [(ft, pos) for ft, pos, seg in track.fixes if seg == segment and ft > t + _TIME_EPS]
        if not fixes:
            return None

        if later:
            # Between fixes: interpolate using the bracketing pair
            (t0, p0), (t1, p1) = fixes[-1], later[0]
            return p0.interpolate(p1, (t - t0) / (t1 - t0))

        if len(fixes) == 1:
            return fixes[-1][1]

        # After the last fix: extrapolate from the last two fixes
        (t0, p0), (t1, p1) = fixes[-2], fixes[-1]
        if t1 - t0 <= _TIME_EPS:
            return p1
        return p0.interpolate(p1, (t - t0) / (t1 - t0))

    def clear(self) -> None:
        """Clear all tracks."""
        self.tracks.clear()
