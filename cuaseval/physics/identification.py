"""
Identification / Classification Model

Simulates classification of tracked targets, payload identification and
IFF declaration.

Features:
    - Classification probability by sensor capability tier:
        * optical sensors: harder for small and slow targets, low-light loss at night
        * RF / RF+ sensors: protocol fingerprinting, independent of target size,
          requires the target to emit
        * radar: micro-Doppler, mildly size dependent
        * acoustic: capability base only
    - Weather and EW degrade identification exactly as they degrade detection
    - Payload identification only when the class is right AND the target truly
      carries a payload (ground truth, never inferred from estimated size)
    - IFF declaration accuracy
    - Clutter (bird) rejection of synthesized false alarms
"""

from typing import Dict, Optional

import numpy as np

from ..models.environment import EnvironmentState
from ..models.results import IdentificationResult
from ..models.sensor import Capability, SensorSite
from ..models.target import TargetState, UasClass, UasTarget
from .constants import RCS_TO_CM2
from .detection import clamp01, environment_factor, latency_distribution

CLASSIFICATION_BASE: Dict[Capability, float] = {
    Capability.RADAR: 0.70,
    Capability.RF: 0.90,
    Capability.RF_PLUS: 0.95,
    Capability.EO_IR: 0.85,
    Capability.IR: 0.80,
    Capability.MULTISPECTRAL: 0.90,
    Capability.ACOUSTIC: 0.60,
}

PAYLOAD_ID_BASE: Dict[Capability, float] = {
    Capability.RADAR: 0.30,
    Capability.RF: 0.20,
    Capability.RF_PLUS: 0.40,
    Capability.EO_IR: 0.80,
    Capability.IR: 0.60,
    Capability.MULTISPECTRAL: 0.85,
    Capability.ACOUSTIC: 0.10,
}

OPTICAL_SIZE_FACTORS: Dict[UasClass, float] = {
    UasClass.C0: 0.55,
    UasClass.C1: 0.70,
    UasClass.C2: 0.85,
    UasClass.C3: 0.95,
    UasClass.C4: 1.00,
    UasClass.SPECIFIC: 1.00,
    UasClass.UNKNOWN: 0.60,
}

# Upper size bound [cm²] of each ordered class, used to classify by estimated size
SIZE_CLASS_BOUNDS = (
    (150.0, UasClass.C0),
    (500.0, UasClass.C1),
    (2000.0, UasClass.C2),
    (8000.0, UasClass.C3),
)

SIZE_NOISE_CM2 = 50.0


def speed_factor(speed_mps: float) -> float:
    """Slow or hovering targets are harder to separate from clutter optically."""
    return min(1.0, 0.6 + max(0.0, speed_mps) / 50.0)


def classification_probability(
    sensor: SensorSite,
    target: UasTarget,
    state: TargetState,
    environment: EnvironmentState,
) -> float:
    """
    Probability that a sensor classifies a target correctly.

    Args:
        sensor: Classifying sensor
        target: Ground-truth target
        state: Target state (speed)
        environment: Weather/EW environment

    Returns:
        Probability in [0, 1]
    """
    capability = sensor.capability
    base = (
        sensor.classification_base
        if sensor.classification_base is not None
        else CLASSIFICATION_BASE[capability]
    )

    if capability.optical:
        tier = OPTICAL_SIZE_FACTORS[target.uas_class] * speed_factor(state.speed_mps)
    elif capability.emission_based:
        tier = 1.0 if target.emits_rf else 0.0
    elif capability is Capability.RADAR:
        tier = 0.8 + 0.2 * OPTICAL_SIZE_FACTORS[target.uas_class]
    else:
        tier = 1.0

    return clamp01(base * tier * environment_factor(sensor, environment))


def payload_probability(sensor: SensorSite, environment: EnvironmentState) -> float:
    """Payload identification probability given a correct classification."""
    base = (
        sensor.payload_id_probability
        if sensor.payload_id_probability is not None
        else PAYLOAD_ID_BASE[sensor.capability]
    )
    return clamp01(base * environment_factor(sensor, environment))


def class_from_size(size_cm2: float) -> UasClass:
    for bound, uas_class in SIZE_CLASS_BOUNDS:
        if size_cm2 < bound:
            return uas_class
    return UasClass.C4


class IdentificationModel:
    """Seeded identification draws for one scenario run."""

    def __init__(self, rng: np.random.Generator) -> None:
        self.rng = rng
        self._latency: Dict[str, object] = {}

    def identify(
        self,
        sensor: SensorSite,
        target: UasTarget,
        state: TargetState,
        environment: EnvironmentState,
        probability: Optional[float] = None,
    ) -> IdentificationResult:
        """
        One identification attempt.

        Args:
            sensor: Classifying sensor
            target: Ground-truth target
            state: Target state at the attempt
            environment: Environment
            probability: Precomputed classification probability

        Returns:
            IdentificationResult
        """
        if probability is None:
            probability = classification_probability(sensor, target, state, environment)

        correct = bool(self.rng.random() < probability)
        payload = bool(self.rng.random() < payload_probability(sensor, environment))
        iff_correct = bool(self.rng.random() < clamp01(sensor.iff_accuracy))

        size = max(0.0, target.rcs_m2 * RCS_TO_CM2 + self.rng.normal(0.0, SIZE_NOISE_CM2))
        if correct:
            estimated = target.uas_class
        else:
            estimated = class_from_size(size)
            if estimated is target.uas_class:
                estimated = UasClass.UNKNOWN

        return IdentificationResult(
            target_id=target.target_id,
            time_s=state.time_s,
            sensor_id=sensor.sensor_id,
            classification_correct=correct,
            payload_identified=correct and target.has_payload and payload,
            has_payload=target.has_payload,
            iff_correct=iff_correct,
            estimated_size_cm2=float(size),
            estimated_class=estimated.value,
            latency_s=self._sample_latency(sensor),
            probability=probability,
        )

    def reject_clutter(self, sensor: SensorSite, environment: EnvironmentState) -> bool:
        """
        Present a false alarm to the classifier.

        Non-UAS clutter (birds, reflections) is rejected with the sensor's
        classification base degraded by the environment. Emission-based
        sensors see no control link on clutter and always reject it.
        """
        if sensor.capability.emission_based:
            probability = 1.0
        else:
            base = (
                sensor.classification_base
                if sensor.classification_base is not None
                else CLASSIFICATION_BASE[sensor.capability]
            )
            probability = clamp01(base * environment_factor(sensor, environment))
        return bool(self.rng.random() < probability)

    def _sample_latency(self, sensor: SensorSite) -> float:
        dist = self._latency.get(sensor.sensor_id)
        if dist is None:
            dist = latency_distribution(sensor.id_latency_mean_s, sensor.id_latency_std_s)
            self._latency[sensor.sensor_id] = dist
        return float(dist.rvs(random_state=self.rng))
