import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .config import PIDGains


class PIDController:
    def __init__(self, kp: float, ki: float, kd: float, period: float,
                 integral_limit: Optional[float] = None):
        """
        Discrete PID controller, called once per control period.
        :param period: control period in seconds
        :param integral_limit: absolute clamp on the accumulated error, None for unbounded
        """
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.period = period
        self.integral_limit = integral_limit

        self.integral = 0.0
        self.prev_error = 0.0
        self.first_update = True

    @classmethod
    def from_gains(cls, gains: PIDGains, period: float) -> 'PIDController':
        return cls(gains.kp, gains.ki, gains.kd, period, gains.integral_limit)

    def reset(self):
        self.integral = 0.0
        self.prev_error = 0.0
        self.first_update = True

    def calculate(self, measurement: float, setpoint: float) -> float:
        error = setpoint - measurement

        self.integral += error * self.period
        if self.integral_limit is not None:
            self.integral = float(np.clip(self.integral, -self.integral_limit, self.integral_limit))

        if self.first_update:
            derivative = 0.0
            self.first_update = False
        else:
            derivative = (error - self.prev_error) / self.period
        self.prev_error = error

        return self.kp * error + self.ki * self.integral + self.kd * derivative


@dataclass
class ProfileState:
    position: float = 0.0
    velocity: float = 0.0


class TrapezoidProfile:
    """Velocity and acceleration limited motion profile toward a goal at rest."""

    def __init__(self, max_velocity: float, max_acceleration: float):
        self.max_velocity = max_velocity
        self.max_acceleration = max_acceleration

    def calculate(self, t: float, current: ProfileState, goal: ProfileState) -> ProfileState:
        """
        Returns where the profile should be t seconds after `current`.
        """
        flip = current.position > goal.position
        sign = -1.0 if flip else 1.0
        current = ProfileState(sign * current.position, sign * current.velocity)
        goal = ProfileState(sign * goal.position, sign * goal.velocity)

        max_v = self.max_velocity
        max_a = self.max_acceleration
        current.velocity = min(current.velocity, max_v)

        cutoff_begin = current.velocity / max_a
        cutoff_dist_begin = cutoff_begin ** 2 * max_a / 2.0
        cutoff_end = goal.velocity / max_a
        cutoff_dist_end = cutoff_end ** 2 * max_a / 2.0

        full_trap_dist = max(cutoff_dist_begin + (goal.position - current.position) + cutoff_dist_end, 0.0)
        accel_time = max_v / max_a
        full_speed_dist = full_trap_dist - accel_time ** 2 * max_a
        if full_speed_dist < 0:
            accel_time = math.sqrt(full_trap_dist / max_a)
            full_speed_dist = 0.0

        end_accel = accel_time - cutoff_begin
        end_full_speed = end_accel + full_speed_dist / max_v
        end_decel = end_full_speed + accel_time - cutoff_end

        result = ProfileState(current.position, current.velocity)
        if t < end_accel:
            result.velocity += t * max_a
            result.position += (current.velocity + t * max_a / 2.0) * t
        elif t < end_full_speed:
            result.velocity = max_v
            result.position += (current.velocity + end_accel * max_a / 2.0) * end_accel + max_v * (t - end_accel)
        elif t <= end_decel:
            time_left = end_decel - t
            result.velocity = goal.velocity + time_left * max_a
            result.position = goal.position - (goal.velocity + time_left * max_a / 2.0) * time_left
        else:
            result = ProfileState(goal.position, goal.velocity)

        return ProfileState(sign * result.position, sign * result.velocity)


class ProfiledPIDController:
    def __init__(self, gains: PIDGains, max_velocity: float, max_acceleration: float, period: float):
        self.pid = PIDController.from_gains(gains, period)
        self.profile = TrapezoidProfile(max_velocity, max_acceleration)
        self.period = period
        self.setpoint = ProfileState()

    def reset(self, measured_position: float, measured_velocity: float = 0.0):
        self.setpoint = ProfileState(measured_position, measured_velocity)
        self.pid.reset()

    def calculate(self, measurement: float, goal: float) -> float:
        self.setpoint = self.profile.calculate(self.period, self.setpoint, ProfileState(goal, 0.0))
        return self.pid.calculate(measurement, self.setpoint.position)


class ArmFeedforward:
    def __init__(self, ks: float, kg: float, kv: float):
        self.ks = ks
        self.kg = kg
        self.kv = kv

    def calculate(self, position: float, velocity: float) -> float:
        return float(self.ks * np.sign(velocity) + self.kg * np.cos(position) + self.kv * velocity)


class SimpleMotorFeedforward:
    def __init__(self, ks: float, kv: float):
        self.ks = ks
        self.kv = kv

    def calculate(self, velocity: float) -> float:
        return float(self.ks * np.sign(velocity) + self.kv * velocity)


class Debouncer:
    """
    Reports True once `expected` has been sampled continuously for the whole
    window. One sample of the opposite value restarts the count.
    """

    def __init__(self, window_seconds: float, period_seconds: float, expected: bool = False):
        self.expected = expected
        # round() absorbs float noise such as 0.1 / 0.02 == 5.000000000000001
        self.required_samples = max(1, math.ceil(round(window_seconds / period_seconds, 9)))
        self.count = 0

    def reset(self):
        self.count = 0

    def calculate(self, value: bool) -> bool:
        if value == self.expected:
            self.count += 1
        else:
            self.count = 0
        return self.count >= self.required_samples
