from dataclasses import dataclass


@dataclass
class RollerInputs:
    applied_voltage: float = 0.0
    current_amps: float = 0.0


@dataclass
class ArmInputs:
    applied_voltage: float = 0.0
    lead_current_amps: float = 0.0
    follow_current_amps: float = 0.0
    position_radians: float = 0.0
    velocity_radians_per_second: float = 0.0


@dataclass
class ShooterInputs:
    left_applied_voltage: float = 0.0
    right_applied_voltage: float = 0.0
    left_current_amps: float = 0.0
    right_current_amps: float = 0.0
    left_velocity_rad_per_sec: float = 0.0
    right_velocity_rad_per_sec: float = 0.0


@dataclass
class ArmLoopState:
    holding: bool
    target_radians: float
    setpoint_position: float
    setpoint_velocity: float


@dataclass
class ShooterLoopState:
    enabled: bool
    left_target_rad_per_sec: float
    right_target_rad_per_sec: float
