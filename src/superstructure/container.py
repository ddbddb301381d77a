import logging
from typing import Callable, Optional

from .arm import ArmLoop
from .config import RobotConfig, RobotMode
from .coordinator import Superstructure
from .exceptions import DeviceNotFoundError
from .hardware_io import MotorBoard, SerialArmIO, SerialObjectSensor, SerialRollerIO, SerialShooterIO
from .io import DisabledArmIO, DisabledRollerIO, DisabledShooterIO
from .mock_serial_interface import MockSerialInterface
from .rollers import RollerLoop
from .serial_interface import SerialInterface
from .shooter import ShooterLoop

logger = logging.getLogger(__name__)


class RobotContainer:
    """
    Builds the actuator loops and the coordinator for the configured mode:
    REAL talks to the motor board over serial, SIM to the simulated board,
    DISABLED to IO that drives nothing.
    """

    def __init__(self, config: Optional[RobotConfig] = None,
                 has_object_source: Optional[Callable[[], bool]] = None):
        self.config = config if config is not None else RobotConfig()
        self.board: Optional[MotorBoard] = None
        self.closed = False
        period = self.config.superstructure.period_seconds

        if self.config.mode == RobotMode.DISABLED:
            arm_io, intake_io, conveyor_io, shooter_io = (
                DisabledArmIO(), DisabledRollerIO(), DisabledRollerIO(), DisabledShooterIO())
            sensor = has_object_source if has_object_source is not None else (lambda: False)
        else:
            self.board = MotorBoard(self._open_link())
            arm_io = SerialArmIO(self.board, self.config.arm.lead_channel, self.config.arm.follow_channel)
            intake_io = SerialRollerIO(self.board, self.config.intake.channel)
            conveyor_io = SerialRollerIO(self.board, self.config.conveyor.channel)
            shooter_io = SerialShooterIO(self.board, self.config.shooter.left_channel,
                                         self.config.shooter.right_channel)
            sensor = has_object_source
            if sensor is None:
                sensor = SerialObjectSensor(self.board, self.config.superstructure.object_sensor_channel,
                                            self.config.superstructure.object_sensor_inverted)

        self.arm = ArmLoop(arm_io, self.config.arm, period)
        self.intake = RollerLoop("intake", intake_io, self.config.intake)
        self.conveyor = RollerLoop("conveyor", conveyor_io, self.config.conveyor)
        self.shooter = ShooterLoop(shooter_io, self.config.shooter, period)

        self.superstructure = Superstructure(self.arm, self.intake, self.conveyor, self.shooter,
                                             sensor, self.config)
        logger.info(f"Superstructure ready (mode={self.config.mode.value}, period={period}s)")

    def _open_link(self):
        cfg = self.config
        if cfg.mode == RobotMode.SIM:
            link = MockSerialInterface(cfg.port, cfg.baud_rate, dt=cfg.superstructure.period_seconds,
                                       arm_channels=(cfg.arm.lead_channel,), arm_kg=cfg.arm.kg, arm_kv=cfg.arm.kv)
        else:
            link = SerialInterface(cfg.port, cfg.baud_rate, log_msg_callback=self._board_log)

        compatible = False
        try:
            compatible = MotorBoard(link).check_firmware()
        finally:
            if not compatible:
                link.close()
        if not compatible:
            raise DeviceNotFoundError(f"Motor board on {cfg.port} runs incompatible firmware")
        return link

    @staticmethod
    def _board_log(level, msg: str):
        levels = {'debug': logging.DEBUG, 'info': logging.INFO, 'warning': logging.WARNING, 'error': logging.ERROR}
        logger.log(levels.get(level.value, logging.INFO), f"[board] {msg}")

    def close(self):
        """Cancels all actions, zeroes every motor and closes the board link."""
        if self.closed:
            return
        self.closed = True
        self.superstructure.scheduler.cancel_all()
        self.shooter.stop()
        self.intake.stop()
        self.conveyor.stop()
        self.arm.stop_position_hold()
        self.arm.io.set_voltage(0.0)
        board, self.board = self.board, None
        if board is not None:
            try:
                board.stop_all()
            finally:
                board.close()
