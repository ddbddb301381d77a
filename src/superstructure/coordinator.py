"""
The superstructure coordinator.

Owns the four actuator loops, the current mechanism state and the object
sensor, and builds the multi-actuator actions (automatic cycles, presets and
manual overrides). Actions are handed to the ActionScheduler, which gives
every actuator a single owner: a new action preempts whatever was using the
actuators it needs.
"""

import logging
from typing import Callable, Optional, Union

import numpy as np

from .actions import (
    Action, ActionScheduler, DebouncedWaitAction, DeferredAction, InstantAction,
    ParallelAction, SequentialAction, WaitForRisingEdgeAction,
)
from .arm import ArmLoop
from .config import RobotConfig
from .rollers import RollerLoop
from .shooter import ShooterLoop
from .states import MechanismState, fire_state_for, is_fire_state, presets_by_arm_angle, preset_by_name
from .strategies import all_parallel, arm_first, no_arm_move

logger = logging.getLogger(__name__)


class CoordinatorState:
    """The commanded mechanism state plus a live view of the object sensor."""

    def __init__(self, has_object_source: Callable[[], bool],
                 initial_state: MechanismState = MechanismState.HOME):
        self._mechanism_state = initial_state
        self._has_object = has_object_source

    @property
    def mechanism_state(self) -> MechanismState:
        return self._mechanism_state

    def set_mechanism_state(self, state: MechanismState):
        if state != self._mechanism_state:
            logger.info(f"Mechanism state {self._mechanism_state} -> {state}")
        self._mechanism_state = state

    def has_object(self) -> bool:
        # polled on every call, never cached
        return bool(self._has_object())


class Superstructure:
    def __init__(self, arm: ArmLoop, intake: RollerLoop, conveyor: RollerLoop, shooter: ShooterLoop,
                 has_object_source: Callable[[], bool], config: RobotConfig,
                 scheduler: Optional[ActionScheduler] = None):
        self.arm = arm
        self.intake = intake
        self.conveyor = conveyor
        self.shooter = shooter
        self.config = config

        self.super_state = CoordinatorState(has_object_source)

        self.scheduler = scheduler if scheduler is not None else ActionScheduler()
        self.scheduler.register(arm, intake, conveyor, shooter)

    @property
    def mechanism_state(self) -> MechanismState:
        return self.super_state.mechanism_state

    def has_object(self) -> bool:
        return self.super_state.has_object()

    def schedule(self, action: Action) -> Action:
        return self.scheduler.schedule(action)

    def tick(self):
        self.scheduler.tick()

    # Presets

    def go_home(self) -> Action:
        return all_parallel(self, MechanismState.HOME)

    def go_preset(self, preset: Union[str, MechanismState]) -> Action:
        """
        Moves every mechanism to a ready preset at once.
        :param preset: preset or its name, e.g. 'amp'
        :raises UnknownStateError: if it is not a ready preset
        """
        return all_parallel(self, preset_by_name(preset))

    def subwoofer(self) -> Action:
        return self.go_preset(MechanismState.SUBWOOFER)

    def mid_low(self) -> Action:
        return self.go_preset(MechanismState.MID_LOW)

    def mid_high(self) -> Action:
        return self.go_preset(MechanismState.MID_HIGH)

    def amp(self) -> Action:
        return self.go_preset(MechanismState.AMP)

    # Automatic cycles

    def intake_cycle(self) -> Action:
        """
        Lowers the arm to the intake position before running the rollers,
        then moves to the configured ready preset once an object arrives.
        Waits for the object indefinitely.
        """
        return SequentialAction(
            arm_first(self, MechanismState.INTAKE),
            WaitForRisingEdgeAction(self.super_state.has_object, name="wait(object acquired)"),
            all_parallel(self, self.config.superstructure.intake_ready_state),
            name="intake_cycle",
        )

    def fire_cycle(self) -> Action:
        """
        Feeds the object into the shooter without moving the arm, then goes
        home once the sensor has read empty for the whole debounce window.
        """
        sup = self.config.superstructure
        return SequentialAction(
            DeferredAction(lambda: no_arm_move(self, self.resolve_fire_state()),
                           [self.intake, self.conveyor, self.shooter], name="fire"),
            DebouncedWaitAction(self.super_state.has_object, False, sup.fire_debounce_seconds,
                                sup.period_seconds, name="wait(object released)"),
            self.go_home(),
            name="fire_cycle",
        )

    def resolve_fire_state(self) -> MechanismState:
        current = self.mechanism_state
        if is_fire_state(current):
            return current

        fire_state = fire_state_for(current)
        if fire_state is None:
            fire_state = self.config.superstructure.default_fire_state
            logger.warning(f"Fire requested from {current}, which is not a ready preset; using {fire_state}")
        return fire_state

    # State detection

    def detect_and_snap_state(self) -> MechanismState:
        """
        Re-derives the mechanism state after manual control: HOME without an
        object, otherwise the ready preset whose arm angle bracket contains
        the measured arm position.
        """
        if not self.has_object():
            state = MechanismState.HOME
        else:
            presets = presets_by_arm_angle()
            angles = np.array([p.arm_position_radians for p in presets])
            midpoints = (angles[:-1] + angles[1:]) / 2.0
            state = presets[int(np.searchsorted(midpoints, self.arm.position, side='right'))]

        self.super_state.set_mechanism_state(state)
        return state

    def detect_mechanism_state(self) -> Action:
        return InstantAction(self.detect_and_snap_state, name="detect_mechanism_state")

    # Manual overrides, follow with detect_mechanism_state() on release

    def arm_up_manual(self) -> Action:
        return self.arm.run_volts_while_held(self.config.arm.manual_voltage).with_name("arm_up_manual")

    def arm_down_manual(self) -> Action:
        return self.arm.run_volts_while_held(-self.config.arm.manual_voltage).with_name("arm_down_manual")

    def _force_rollers(self, direction: float, name: str) -> Action:
        cfg = self.config
        return ParallelAction(
            self.intake.run_volts_while_held(direction * cfg.intake.manual_voltage),
            self.conveyor.run_volts_while_held(direction * cfg.conveyor.manual_voltage),
            self.shooter.run_volts_while_held(direction * cfg.shooter.left_manual_voltage,
                                              direction * cfg.shooter.right_manual_voltage),
            name=name,
        )

    def force_forward(self) -> Action:
        return self._force_rollers(1.0, "force_forward")

    def force_backward(self) -> Action:
        return self._force_rollers(-1.0, "force_backward")

    def status(self) -> dict:
        return {
            'mechanism_state': str(self.mechanism_state),
            'has_object': self.has_object(),
            'arm': self.arm.status(),
            'shooter': self.shooter.status(),
            'intake': self.intake.status(),
            'conveyor': self.conveyor.status(),
            'active_actions': [action.name for action in self.scheduler.active_actions],
        }
