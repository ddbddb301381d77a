import logging
from dataclasses import asdict
from typing import Optional

from .actions import InstantAction, RunAction
from .config import ArmConfig
from .control import ArmFeedforward, ProfiledPIDController
from .io import ArmIO
from .types import ArmInputs, ArmLoopState

logger = logging.getLogger(__name__)


class ArmLoop:
    """
    Arm pivot with profiled position control and gravity feedforward.

    Idle: voltages come straight from set_voltage().
    Holding: every tick the profiled PID output is routed through
    set_voltage(), so feedforward and the soft limits apply the same way in
    both modes. Positions are radians from the mechanical zero.
    """

    def __init__(self, io: ArmIO, config: ArmConfig, period: float):
        self.io = io
        self.config = config
        self.inputs = ArmInputs()

        self.controller = ProfiledPIDController(
            config.pid,
            config.max_velocity_rad_per_sec,
            config.max_acceleration_rad_per_sec2,
            period,
        )
        self.feedforward = ArmFeedforward(config.ks, config.kg, config.kv)

        self.holding = False
        self.target = 0.0
        self.output_voltage = 0.0
        self.limited = False

    @property
    def position(self) -> float:
        return self.inputs.position_radians

    @property
    def velocity(self) -> float:
        return self.inputs.velocity_radians_per_second

    def set_voltage(self, volts: float):
        """
        Adds feedforward to the requested voltage and applies one-way soft
        stops: above the max bound the arm may only be driven down, below the
        min bound only up.
        :param volts: requested voltage before feedforward
        """
        output = volts + self.feedforward.calculate(self.position, self.velocity)

        self.limited = False
        if self.position > self.config.max_position_radians and (volts > 0 or output > 0):
            output = 0.0
            self.limited = True
        elif self.position < self.config.min_position_radians and (volts < 0 or output < 0):
            output = 0.0
            self.limited = True

        self.output_voltage = output
        self.io.set_voltage(output)

    def start_position_hold(self, target_radians: float):
        # Restart the profile from where the arm is now, not from a stale setpoint
        self.controller.reset(self.position)
        self.target = target_radians
        self.holding = True
        logger.debug(f"Arm hold {target_radians:.3f} rad from {self.position:.3f} rad")

    def stop_position_hold(self):
        self.holding = False

    def drive_open_loop(self, volts: float):
        self.holding = False
        self.set_voltage(volts)

    def within_tolerance(self, tolerance_radians: Optional[float] = None) -> bool:
        if tolerance_radians is None:
            tolerance_radians = self.config.tolerance_radians
        return abs(self.target - self.position) < tolerance_radians

    def periodic(self):
        self.io.update_inputs(self.inputs)

        if self.holding:
            self.set_voltage(self.controller.calculate(self.position, self.target))

    def start_hold(self, target_radians: float) -> InstantAction:
        return InstantAction(lambda: self.start_position_hold(target_radians), [self],
                             name=f"arm.start_hold({target_radians})")

    def stop_hold(self) -> InstantAction:
        return InstantAction(self.stop_position_hold, [self], name="arm.stop_hold")

    def run_volts(self, volts: float) -> InstantAction:
        return InstantAction(lambda: self.drive_open_loop(volts), [self], name=f"arm.run_volts({volts})")

    def run_volts_while_held(self, volts: float) -> RunAction:
        """Drives the arm open loop every tick; on release only the feedforward is left."""
        return RunAction(lambda: self.drive_open_loop(volts), [self],
                         on_end=lambda: self.set_voltage(0.0), name=f"arm.manual({volts})")

    def loop_state(self) -> ArmLoopState:
        return ArmLoopState(
            holding=self.holding,
            target_radians=self.target,
            setpoint_position=self.controller.setpoint.position,
            setpoint_velocity=self.controller.setpoint.velocity,
        )

    def status(self) -> dict:
        status = asdict(self.loop_state())
        status.update(asdict(self.inputs))
        status['output_voltage'] = self.output_voltage
        status['soft_limited'] = self.limited
        return status

    def __repr__(self):
        return "ArmLoop()"
