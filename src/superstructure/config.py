"""
Tunable constants for the superstructure.

All values live in frozen dataclasses that are handed to each actuator loop
at construction. Defaults can be overridden from a JSON file whose top-level
sections match the RobotConfig field names, e.g.

    {"arm": {"max_position_radians": 1.6, "pid": {"kp": 9.0}},
     "superstructure": {"fire_debounce_seconds": 0.3}}
"""

import json
import logging
import math
from dataclasses import dataclass, fields, is_dataclass, replace
from enum import Enum
from typing import Optional

from .exceptions import ConfigError, UnknownStateError
from .states import MechanismState, is_fire_state, is_ready_preset, state_by_name

logger = logging.getLogger(__name__)


class RobotMode(Enum):
    REAL = 'real'
    SIM = 'sim'
    DISABLED = 'disabled'


@dataclass(frozen=True)
class PIDGains:
    kp: float = 0.0
    ki: float = 0.0
    kd: float = 0.0
    # Integrator clamp (absolute), None for unbounded
    integral_limit: Optional[float] = None


@dataclass(frozen=True)
class ArmConfig:
    lead_channel: int = 1
    follow_channel: int = 2
    pid: PIDGains = PIDGains(kp=12.0, ki=0.0, kd=0.8)
    max_velocity_rad_per_sec: float = 3.0
    max_acceleration_rad_per_sec2: float = 6.0
    ks: float = 0.15
    kg: float = 0.45
    kv: float = 1.8
    min_position_radians: float = -0.05
    max_position_radians: float = 1.65
    tolerance_radians: float = 0.03
    manual_voltage: float = 2.0


@dataclass(frozen=True)
class ShooterConfig:
    left_channel: int = 3
    right_channel: int = 4
    left_pid: PIDGains = PIDGains(kp=0.02, ki=0.0, kd=0.0)
    right_pid: PIDGains = PIDGains(kp=0.02, ki=0.0, kd=0.0)
    ks: float = 0.1
    kv: float = 0.021
    left_manual_voltage: float = 4.0
    right_manual_voltage: float = 4.0


@dataclass(frozen=True)
class RollerConfig:
    channel: int = 0
    manual_voltage: float = 6.0


@dataclass(frozen=True)
class SuperstructureConfig:
    period_seconds: float = 0.02
    fire_debounce_seconds: float = 0.25
    object_sensor_channel: int = 0
    object_sensor_inverted: bool = False
    intake_ready_state: MechanismState = MechanismState.SUBWOOFER
    default_fire_state: MechanismState = MechanismState.SHOOT_MID_HIGH


@dataclass(frozen=True)
class RobotConfig:
    mode: RobotMode = RobotMode.SIM
    port: str = '/dev/ttyACM0'
    baud_rate: int = 921600
    arm: ArmConfig = ArmConfig()
    shooter: ShooterConfig = ShooterConfig()
    intake: RollerConfig = RollerConfig(channel=5, manual_voltage=6.0)
    conveyor: RollerConfig = RollerConfig(channel=6, manual_voltage=4.0)
    superstructure: SuperstructureConfig = SuperstructureConfig()

    def __post_init__(self):
        validate(self)


def validate(config: RobotConfig) -> None:
    arm = config.arm
    if not arm.min_position_radians < arm.max_position_radians:
        raise ConfigError(f"Arm soft limits inverted: min={arm.min_position_radians} max={arm.max_position_radians}")
    if arm.tolerance_radians <= 0:
        raise ConfigError("Arm tolerance must be positive")
    if arm.max_velocity_rad_per_sec <= 0 or arm.max_acceleration_rad_per_sec2 <= 0:
        raise ConfigError("Arm profile constraints must be positive")

    sup = config.superstructure
    if sup.period_seconds <= 0 or not math.isfinite(sup.period_seconds):
        raise ConfigError(f"Invalid control period {sup.period_seconds}")
    if sup.fire_debounce_seconds < 0:
        raise ConfigError("Fire debounce window must not be negative")
    if not is_ready_preset(sup.intake_ready_state):
        raise ConfigError(f"{sup.intake_ready_state} is not a ready preset")
    if not is_fire_state(sup.default_fire_state):
        raise ConfigError(f"{sup.default_fire_state} is not a fire state")

    channels = [arm.lead_channel, arm.follow_channel,
                config.shooter.left_channel, config.shooter.right_channel,
                config.intake.channel, config.conveyor.channel]
    if len(set(channels)) != len(channels):
        raise ConfigError(f"Motor channels must be unique, got {channels}")


def _coerce(template, value, path: str):
    if isinstance(template, Enum):
        try:
            if isinstance(template, MechanismState):
                return state_by_name(value)
            return type(template)(value)
        except (ValueError, UnknownStateError):
            raise ConfigError(f"Invalid value '{value}' for {path}")
    if isinstance(template, bool):
        if not isinstance(value, bool):
            raise ConfigError(f"Expected boolean for {path}, got {value!r}")
        return value
    if template is None and value is None:
        return None
    if isinstance(template, (int, float)) or template is None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"Expected number for {path}, got {value!r}")
        return float(value) if template is None else type(template)(value)
    if isinstance(template, str):
        if not isinstance(value, str):
            raise ConfigError(f"Expected string for {path}, got {value!r}")
        return value
    raise ConfigError(f"Cannot set {path}")


def _merge(base, overrides: dict, path: str = ''):
    if not isinstance(overrides, dict):
        raise ConfigError(f"Expected a mapping for '{path or 'root'}'")

    known = {f.name for f in fields(base)}
    changes = {}
    for key, value in overrides.items():
        if key not in known:
            raise ConfigError(f"Unknown configuration key '{path}{key}'")
        current = getattr(base, key)
        if is_dataclass(current):
            changes[key] = _merge(current, value, f"{path}{key}.")
        else:
            changes[key] = _coerce(current, value, f"{path}{key}")
    return replace(base, **changes)


def load_config(path: Optional[str] = None) -> RobotConfig:
    """
    Builds a RobotConfig from defaults, optionally overridden by a JSON file.
    :param path: path of a JSON file, or None for the defaults
    :return: the validated configuration
    """
    config = RobotConfig()
    if path is None:
        return config

    try:
        with open(path, 'r') as f:
            overrides = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read configuration '{path}': {e}")

    config = _merge(config, overrides)
    logger.info(f"Loaded configuration from '{path}' (mode={config.mode.value})")
    return config
