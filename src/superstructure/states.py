"""
Mechanism state table.

Every state is a bundle of setpoints, one per actuator. The set of states is
closed; ready presets map to exactly one fire state through FIRE_STATES.
"""

from enum import Enum
from types import MappingProxyType
from typing import Optional, Tuple, Union

from .exceptions import UnknownStateError


class MechanismState(Enum):
    #                 intake  conveyor  arm(rad)  left(rad/s)  right(rad/s)
    HOME =            (0.0,   0.0,      0.00,     0.0,         0.0)
    INTAKE =          (6.0,   3.0,      0.12,     0.0,         0.0)

    SUBWOOFER =       (0.0,   0.0,      0.35,     300.0,       250.0)
    MID_LOW =         (0.0,   0.0,      0.60,     400.0,       350.0)
    MID_HIGH =        (0.0,   0.0,      0.85,     450.0,       400.0)
    AMP =             (0.0,   0.0,      1.55,     120.0,       120.0)

    SHOOT_SUBWOOFER = (0.0,   6.0,      0.35,     300.0,       250.0)
    SHOOT_MID_LOW =   (0.0,   6.0,      0.60,     400.0,       350.0)
    SHOOT_MID_HIGH =  (0.0,   6.0,      0.85,     450.0,       400.0)
    SHOOT_AMP =       (0.0,   6.0,      1.55,     120.0,       120.0)

    def __init__(self, intake_volts: float, conveyor_volts: float, arm_position_radians: float,
                 shooter_left_rad_per_sec: float, shooter_right_rad_per_sec: float):
        self.intake_volts = intake_volts
        self.conveyor_volts = conveyor_volts
        self.arm_position_radians = arm_position_radians
        self.shooter_left_rad_per_sec = shooter_left_rad_per_sec
        self.shooter_right_rad_per_sec = shooter_right_rad_per_sec

    def __str__(self):
        return self.name


# Ordered by increasing arm angle
READY_PRESETS: Tuple[MechanismState, ...] = (
    MechanismState.SUBWOOFER,
    MechanismState.MID_LOW,
    MechanismState.MID_HIGH,
    MechanismState.AMP,
)

FIRE_STATES = MappingProxyType({
    MechanismState.SUBWOOFER: MechanismState.SHOOT_SUBWOOFER,
    MechanismState.MID_LOW: MechanismState.SHOOT_MID_LOW,
    MechanismState.MID_HIGH: MechanismState.SHOOT_MID_HIGH,
    MechanismState.AMP: MechanismState.SHOOT_AMP,
})


def is_ready_preset(state: MechanismState) -> bool:
    return state in FIRE_STATES


def is_fire_state(state: MechanismState) -> bool:
    return state in FIRE_STATES.values()


def fire_state_for(state: MechanismState) -> Optional[MechanismState]:
    """
    Returns the fire state paired with a ready preset.
    :param state: the current mechanism state
    :return: the matching fire state, or None when state is not a ready preset
    """
    return FIRE_STATES.get(state)


def presets_by_arm_angle() -> Tuple[MechanismState, ...]:
    return tuple(sorted(READY_PRESETS, key=lambda s: s.arm_position_radians))


def state_by_name(name: Union[str, MechanismState]) -> MechanismState:
    if isinstance(name, MechanismState):
        return name
    try:
        return MechanismState[name.strip().upper()]
    except (KeyError, AttributeError):
        raise UnknownStateError(f"Unknown mechanism state '{name}'")


def preset_by_name(name: Union[str, MechanismState]) -> MechanismState:
    """
    Looks up a ready preset by name (case-insensitive).
    :raises UnknownStateError: if the name is not a ready preset
    """
    state = state_by_name(name)
    if not is_ready_preset(state):
        raise UnknownStateError(f"'{state}' is not a ready preset")
    return state
