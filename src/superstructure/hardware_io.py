import re
import logging
from typing import Tuple

from .exceptions import CommandError, CommandTimeoutError
from .io import ArmIO, RollerIO, ShooterIO
from .serial_interface import ReplyStatus
from .types import ArmInputs, RollerInputs, ShooterInputs

logger = logging.getLogger(__name__)

MIN_FIRMWARE_VERSION = (1, 2, 0)
MAX_VOLTAGE = 12.0

_STATUS_RE = re.compile(
    r"V([-+]?\d*\.?\d+)\s*I([-+]?\d*\.?\d+)\s*P([-+]?\d*\.?\d+)\s*W([-+]?\d*\.?\d+)"
)


class MotorBoard:
    """Command set of the motor-controller board, on top of a SerialInterface or MockSerialInterface."""

    def __init__(self, link):
        self.link = link

    def read_firmware_version(self) -> Tuple[int, int, int]:
        res, response = self.link.send_command("M58")
        match = re.match(r'v(\d+)\.(\d+)\.(\d+)', response.strip())
        if res != ReplyStatus.OK or match is None:
            return 0, 0, 0
        major, minor, patch = map(int, match.groups())
        return major, minor, patch

    def check_firmware(self) -> bool:
        version = self.read_firmware_version()
        version_str = "v{}.{}.{}".format(*version)
        if version < MIN_FIRMWARE_VERSION:
            logger.error(f"Motor board firmware {version_str} incompatible. "
                         "At least v{}.{}.{} required".format(*MIN_FIRMWARE_VERSION))
            return False
        logger.info(f"Motor board firmware version: {version_str}")
        return True

    def set_voltage(self, channel: int, volts: float) -> ReplyStatus:
        volts = max(-MAX_VOLTAGE, min(MAX_VOLTAGE, volts))
        res, _ = self.link.send_command(f"M3 C{channel} V{volts:.4f}")
        return res

    def read_status(self, channel: int) -> Tuple[float, float, float, float]:
        """
        Reads the applied voltage, current, position and velocity of a channel.
        :raises CommandError: if the reply cannot be parsed
        """
        res, response = self.link.send_command(f"M50 C{channel}")
        match = _STATUS_RE.search(response)
        if res != ReplyStatus.OK or match is None:
            raise CommandError(f"Invalid status reply for channel {channel}: {response.strip()!r}")
        volts, amps, position, velocity = map(float, match.groups())
        return volts, amps, position, velocity

    def read_digital_input(self, channel: int) -> bool:
        res, response = self.link.send_command(f"M52 C{channel}")
        if res != ReplyStatus.OK:
            raise CommandError(f"Digital input {channel} not readable ({res.name})")
        return response.strip() == "1"

    def stop_all(self) -> ReplyStatus:
        res, _ = self.link.send_command("M18")
        return res

    def close(self):
        self.link.close()


class SerialRollerIO(RollerIO):
    def __init__(self, board: MotorBoard, channel: int):
        self.board = board
        self.channel = channel

    def set_voltage(self, volts: float) -> None:
        try:
            self.board.set_voltage(self.channel, volts)
        except (CommandError, CommandTimeoutError) as e:
            logger.warning(f"Roller channel {self.channel} write failed: {e}")

    def update_inputs(self, inputs: RollerInputs) -> None:
        try:
            volts, amps, _, _ = self.board.read_status(self.channel)
        except (CommandError, CommandTimeoutError) as e:
            logger.warning(f"Roller channel {self.channel} read failed, keeping last sample: {e}")
            return
        inputs.applied_voltage = volts
        inputs.current_amps = amps


class SerialArmIO(ArmIO):
    """Arm driven by a lead motor; the follower is slaved to it on the board."""

    def __init__(self, board: MotorBoard, lead_channel: int, follow_channel: int):
        self.board = board
        self.lead_channel = lead_channel
        self.follow_channel = follow_channel

    def set_voltage(self, volts: float) -> None:
        try:
            self.board.set_voltage(self.lead_channel, volts)
        except (CommandError, CommandTimeoutError) as e:
            logger.warning(f"Arm write failed: {e}")

    def update_inputs(self, inputs: ArmInputs) -> None:
        try:
            volts, lead_amps, position, velocity = self.board.read_status(self.lead_channel)
            _, follow_amps, _, _ = self.board.read_status(self.follow_channel)
        except (CommandError, CommandTimeoutError) as e:
            logger.warning(f"Arm read failed, keeping last sample: {e}")
            return
        inputs.applied_voltage = volts
        inputs.lead_current_amps = lead_amps
        inputs.follow_current_amps = follow_amps
        inputs.position_radians = position
        inputs.velocity_radians_per_second = velocity


class SerialShooterIO(ShooterIO):
    def __init__(self, board: MotorBoard, left_channel: int, right_channel: int):
        self.board = board
        self.left_channel = left_channel
        self.right_channel = right_channel

    def set_voltage(self, left_volts: float, right_volts: float) -> None:
        try:
            self.board.set_voltage(self.left_channel, left_volts)
            self.board.set_voltage(self.right_channel, right_volts)
        except (CommandError, CommandTimeoutError) as e:
            logger.warning(f"Shooter write failed: {e}")

    def update_inputs(self, inputs: ShooterInputs) -> None:
        try:
            left = self.board.read_status(self.left_channel)
            right = self.board.read_status(self.right_channel)
        except (CommandError, CommandTimeoutError) as e:
            logger.warning(f"Shooter read failed, keeping last sample: {e}")
            return
        inputs.left_applied_voltage, inputs.left_current_amps, _, inputs.left_velocity_rad_per_sec = left
        inputs.right_applied_voltage, inputs.right_current_amps, _, inputs.right_velocity_rad_per_sec = right


class SerialObjectSensor:
    """Beam break on a digital input of the board. Calling it polls the board."""

    def __init__(self, board: MotorBoard, channel: int, inverted: bool = False):
        self.board = board
        self.channel = channel
        self.inverted = inverted
        self._last = False

    def __call__(self) -> bool:
        try:
            broken = self.board.read_digital_input(self.channel) != self.inverted
        except (CommandError, CommandTimeoutError) as e:
            logger.warning(f"Object sensor read failed, keeping last value: {e}")
            return self._last
        self._last = broken
        return broken
