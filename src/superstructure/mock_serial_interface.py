import math
import re
from collections import deque
from dataclasses import dataclass
from typing import Optional, Callable, Dict, Iterable, Tuple
from .serial_interface import ReplyStatus
from .exceptions import CommandError

_CHANNEL_RE = re.compile(r"C(\d+)")
_VOLTS_RE = re.compile(r"V([-+]?\d*\.?\d+)")


@dataclass
class SimulatedMotor:
    volts: float = 0.0
    position: float = 0.0
    velocity: float = 0.0
    # volts per rad/s at steady state
    kv: float = 0.021
    time_constant: float = 0.1
    # gravity load in volts at horizontal, 0 for rollers and flywheels
    kg: float = 0.0
    resistance: float = 0.5
    min_position: float = -math.inf
    max_position: float = math.inf

    @property
    def current(self) -> float:
        return (self.volts - self.kv * self.velocity) / self.resistance

    def step(self, dt: float):
        target_velocity = (self.volts - self.kg * math.cos(self.position)) / self.kv
        self.velocity += (target_velocity - self.velocity) * min(1.0, dt / self.time_constant)
        self.position += self.velocity * dt
        if self.position < self.min_position or self.position > self.max_position:
            self.position = min(max(self.position, self.min_position), self.max_position)
            self.velocity = 0.0


class MockSerialInterface:
    """
    Stand-in for the motor-controller board. Answers the same command set as
    the firmware and integrates a first-order model of each motor, advancing
    a channel by one `dt` every time its status is read.
    """

    def __init__(self, port: str = "mock", baud_rate: int = 921600,
                 log_msg_callback: Optional[Callable] = None,
                 unsolicited_msg_callback: Optional[Callable] = None,
                 reconnect_timeout: float = 5,
                 dt: float = 0.02,
                 arm_channels: Iterable[int] = (),
                 arm_kg: float = 0.45,
                 arm_kv: float = 1.8):
        self.port = port
        self.baud_rate = baud_rate
        self.log_msg_callback = log_msg_callback
        self.unsolicited_msg_callback = unsolicited_msg_callback
        self.dt = dt
        self.is_open = False
        self.firmware_version = "v1.2.0"

        self.motors: Dict[int, SimulatedMotor] = {}
        self.digital_inputs: Dict[int, bool] = {}
        self.arm_channels = set(arm_channels)
        self.arm_kg = arm_kg
        self.arm_kv = arm_kv
        self.commands = deque(maxlen=1000)
        self.connect(reconnect_timeout)

    def connect(self, timeout: float) -> bool:
        self.is_open = True
        return True

    def close(self):
        self.is_open = False

    def motor(self, channel: int) -> SimulatedMotor:
        if channel not in self.motors:
            if channel in self.arm_channels:
                self.motors[channel] = SimulatedMotor(kv=self.arm_kv, kg=self.arm_kg, time_constant=0.05,
                                                      min_position=-0.1, max_position=1.8)
            else:
                self.motors[channel] = SimulatedMotor()
        return self.motors[channel]

    def set_digital_input(self, channel: int, value: bool):
        self.digital_inputs[channel] = value

    def send_command(self, cmd: str, timeout: float = 0.05) -> Tuple[ReplyStatus, str]:
        if not self.is_open:
            raise CommandError("Serial not open")

        cmd = cmd.strip()
        self.commands.append(cmd)

        response_status = ReplyStatus.OK
        response_content = ""

        channel_match = _CHANNEL_RE.search(cmd)
        channel = int(channel_match.group(1)) if channel_match else None

        if cmd.startswith("M58"):
            response_content = self.firmware_version
        elif cmd.startswith("M3"):
            volts_match = _VOLTS_RE.search(cmd)
            if channel is None or volts_match is None:
                raise CommandError(f"Malformed command '{cmd}'")
            self.motor(channel).volts = float(volts_match.group(1))
        elif cmd.startswith("M50"):
            if channel is None:
                raise CommandError(f"Malformed command '{cmd}'")
            m = self.motor(channel)
            m.step(self.dt)
            response_content = f"V{m.volts:.4f} I{m.current:.4f} P{m.position:.6f} W{m.velocity:.6f}"
        elif cmd.startswith("M52"):
            if channel is None:
                raise CommandError(f"Malformed command '{cmd}'")
            response_content = "1" if self.digital_inputs.get(channel, False) else "0"
        elif cmd.startswith("M18"):
            for m in self.motors.values():
                m.volts = 0.0
        else:
            raise CommandError(f"Unknown command '{cmd}'")

        return response_status, response_content
