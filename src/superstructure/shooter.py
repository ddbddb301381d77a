import logging
from dataclasses import asdict

from .actions import InstantAction, RunAction
from .config import ShooterConfig
from .control import PIDController, SimpleMotorFeedforward
from .io import ShooterIO
from .types import ShooterInputs, ShooterLoopState

logger = logging.getLogger(__name__)


class ShooterLoop:
    """
    Two flywheels with independent velocity loops and one shared enable flag.

    While enabled the control law always runs, including for zero targets,
    which actively brakes the wheels. stop() is the only way to coast: it
    zeroes both outputs and disables the loops.
    """

    def __init__(self, io: ShooterIO, config: ShooterConfig, period: float):
        self.io = io
        self.config = config
        self.inputs = ShooterInputs()

        self.left_controller = PIDController.from_gains(config.left_pid, period)
        self.right_controller = PIDController.from_gains(config.right_pid, period)
        self.feedforward = SimpleMotorFeedforward(config.ks, config.kv)

        self.enabled = False
        self.left_target = 0.0
        self.right_target = 0.0
        self.left_output = 0.0
        self.right_output = 0.0

    def set_targets(self, left_rad_per_sec: float, right_rad_per_sec: float):
        """Stores new targets without enabling the loops."""
        self.left_target = left_rad_per_sec
        self.right_target = right_rad_per_sec

    def set_enabled(self, enabled: bool):
        if enabled != self.enabled:
            logger.debug(f"Shooter velocity loops {'enabled' if enabled else 'disabled'}")
        if enabled and not self.enabled:
            self.left_controller.reset()
            self.right_controller.reset()
        self.enabled = enabled

    def set_voltage(self, left_volts: float, right_volts: float):
        self.left_output = left_volts
        self.right_output = right_volts
        self.io.set_voltage(left_volts, right_volts)

    def stop(self):
        self.set_enabled(False)
        self.set_voltage(0.0, 0.0)

    def start_velocity_hold(self, left_rad_per_sec: float, right_rad_per_sec: float):
        self.set_targets(left_rad_per_sec, right_rad_per_sec)
        self.set_enabled(True)

    def drive_open_loop(self, left_volts: float, right_volts: float):
        self.set_enabled(False)
        self.set_voltage(left_volts, right_volts)

    def at_targets(self, tolerance_rad_per_sec: float) -> bool:
        return (abs(self.left_target - self.inputs.left_velocity_rad_per_sec) < tolerance_rad_per_sec and
                abs(self.right_target - self.inputs.right_velocity_rad_per_sec) < tolerance_rad_per_sec)

    def periodic(self):
        self.io.update_inputs(self.inputs)

        if self.enabled:
            left = (self.left_controller.calculate(self.inputs.left_velocity_rad_per_sec, self.left_target)
                    + self.feedforward.calculate(self.left_target))
            right = (self.right_controller.calculate(self.inputs.right_velocity_rad_per_sec, self.right_target)
                     + self.feedforward.calculate(self.right_target))
            self.set_voltage(left, right)

    def start_hold(self, left_rad_per_sec: float, right_rad_per_sec: float) -> InstantAction:
        return InstantAction(lambda: self.start_velocity_hold(left_rad_per_sec, right_rad_per_sec), [self],
                             name=f"shooter.start_hold({left_rad_per_sec}, {right_rad_per_sec})")

    def stop_hold(self) -> InstantAction:
        return InstantAction(self.stop, [self], name="shooter.stop")

    def run_volts_while_held(self, left_volts: float, right_volts: float) -> RunAction:
        return RunAction(lambda: self.drive_open_loop(left_volts, right_volts), [self],
                         on_end=self.stop, name=f"shooter.manual({left_volts}, {right_volts})")

    def loop_state(self) -> ShooterLoopState:
        return ShooterLoopState(
            enabled=self.enabled,
            left_target_rad_per_sec=self.left_target,
            right_target_rad_per_sec=self.right_target,
        )

    def status(self) -> dict:
        status = asdict(self.loop_state())
        status.update(asdict(self.inputs))
        status['left_output_voltage'] = self.left_output
        status['right_output_voltage'] = self.right_output
        return status

    def __repr__(self):
        return "ShooterLoop()"
