"""
Ways of applying a MechanismState to the four actuators.

Each function builds a composite action. When that action starts it first
records the target state on the coordinator, so the reported state is the
commanded one even before the mechanisms get there.
"""

from .actions import Action, InstantAction, ParallelAction, SequentialAction, WaitUntilAction
from .states import MechanismState


def record_state(superstructure, state: MechanismState) -> InstantAction:
    return InstantAction(lambda: superstructure.super_state.set_mechanism_state(state),
                         name=f"record({state})")


def _rollers_and_shooter(superstructure, state: MechanismState):
    return (
        superstructure.intake.run_volts(state.intake_volts),
        superstructure.conveyor.run_volts(state.conveyor_volts),
        superstructure.shooter.start_hold(state.shooter_left_rad_per_sec, state.shooter_right_rad_per_sec),
    )


def arm_first(superstructure, state: MechanismState) -> Action:
    """
    Moves the arm, waits until it is within tolerance of the target, then
    starts the rollers and shooter. The rollers and shooter are stopped
    while the arm travels.
    """
    arm = superstructure.arm
    tolerance = superstructure.config.arm.tolerance_radians
    return SequentialAction(
        ParallelAction(
            record_state(superstructure, state),
            arm.start_hold(state.arm_position_radians),
            InstantAction(superstructure.intake.stop, [superstructure.intake]),
            InstantAction(superstructure.conveyor.stop, [superstructure.conveyor]),
            superstructure.shooter.stop_hold(),
        ),
        WaitUntilAction(lambda: arm.within_tolerance(tolerance), name="wait(arm in tolerance)"),
        ParallelAction(*_rollers_and_shooter(superstructure, state)),
        name=f"arm_first({state})",
    )


def all_parallel(superstructure, state: MechanismState) -> Action:
    """Issues all four setpoints in the same tick."""
    return ParallelAction(
        record_state(superstructure, state),
        superstructure.arm.start_hold(state.arm_position_radians),
        *_rollers_and_shooter(superstructure, state),
        name=f"all_parallel({state})",
    )


def no_arm_move(superstructure, state: MechanismState) -> Action:
    """Applies the roller and shooter setpoints; the arm target and hold flag are left alone."""
    return ParallelAction(
        record_state(superstructure, state),
        *_rollers_and_shooter(superstructure, state),
        name=f"no_arm_move({state})",
    )
