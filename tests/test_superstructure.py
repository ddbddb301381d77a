import unittest
from dataclasses import replace

from superstructure.states import MechanismState
from superstructure.strategies import all_parallel, arm_first, no_arm_move

from fakes import Rig


class TestStrategies(unittest.TestCase):
    def setUp(self):
        self.rig = Rig(arm_position=0.5)
        self.sup = self.rig.superstructure

    def test_arm_first_waits_for_arm(self):
        self.rig.intake.set_voltage(2.0)
        self.rig.shooter.start_velocity_hold(100.0, 100.0)

        self.rig.schedule(arm_first(self.sup, MechanismState.INTAKE))
        self.assertEqual(self.rig.state, MechanismState.INTAKE)
        self.assertTrue(self.rig.arm.holding)
        self.assertEqual(self.rig.arm.target, 0.12)
        self.assertEqual(self.rig.intake.commanded_voltage, 0.0)
        self.assertFalse(self.rig.shooter.enabled)

        self.rig.tick(5)
        self.assertEqual(self.rig.intake.commanded_voltage, 0.0)
        self.assertEqual(self.rig.conveyor.commanded_voltage, 0.0)
        self.assertFalse(self.rig.shooter.enabled)

        self.rig.move_arm_to(0.12)
        self.rig.tick()
        self.assertEqual(self.rig.intake.commanded_voltage, 6.0)
        self.assertEqual(self.rig.conveyor.commanded_voltage, 3.0)
        self.assertTrue(self.rig.shooter.enabled)
        self.assertEqual((self.rig.shooter.left_target, self.rig.shooter.right_target), (0.0, 0.0))
        self.assertEqual(self.sup.scheduler.active_actions, [])

    def test_all_parallel_applies_everything_at_once(self):
        self.rig.schedule(all_parallel(self.sup, MechanismState.AMP))
        self.assertEqual(self.rig.state, MechanismState.AMP)
        self.assertEqual(self.rig.arm.target, 1.55)
        self.assertTrue(self.rig.arm.holding)
        self.assertEqual(self.rig.intake.commanded_voltage, 0.0)
        self.assertEqual(self.rig.conveyor.commanded_voltage, 0.0)
        self.assertTrue(self.rig.shooter.enabled)
        self.assertEqual((self.rig.shooter.left_target, self.rig.shooter.right_target), (120.0, 120.0))
        self.assertEqual(self.sup.scheduler.active_actions, [])

    def test_no_arm_move_leaves_arm_alone(self):
        self.rig.arm.start_position_hold(0.6)
        self.rig.schedule(no_arm_move(self.sup, MechanismState.SHOOT_MID_LOW))
        self.assertEqual(self.rig.state, MechanismState.SHOOT_MID_LOW)
        self.assertEqual(self.rig.arm.target, 0.6)
        self.assertTrue(self.rig.arm.holding)
        self.assertEqual(self.rig.conveyor.commanded_voltage, 6.0)
        self.assertEqual((self.rig.shooter.left_target, self.rig.shooter.right_target), (400.0, 350.0))

    def test_no_arm_move_does_not_start_hold(self):
        writes = self.rig.arm_io.writes
        self.rig.schedule(no_arm_move(self.sup, MechanismState.SHOOT_AMP))
        self.assertFalse(self.rig.arm.holding)
        self.assertEqual(self.rig.arm.target, 0.0)
        self.assertEqual(self.rig.arm_io.writes, writes)

    def test_state_recorded_when_started(self):
        action = all_parallel(self.sup, MechanismState.MID_HIGH)
        self.assertEqual(self.rig.state, MechanismState.HOME)
        self.rig.schedule(action)
        self.assertEqual(self.rig.state, MechanismState.MID_HIGH)


class TestIntakeCycle(unittest.TestCase):
    def setUp(self):
        self.rig = Rig()
        self.sup = self.rig.superstructure

    def test_intake_then_ready(self):
        self.rig.schedule(self.sup.intake_cycle())
        self.assertEqual(self.rig.state, MechanismState.INTAKE)
        self.rig.tick(3)
        self.assertEqual(self.rig.intake.commanded_voltage, 0.0)

        self.rig.move_arm_to(0.12)
        self.rig.tick()
        self.assertEqual(self.rig.intake.commanded_voltage, 6.0)
        self.assertEqual(self.rig.conveyor.commanded_voltage, 3.0)

        self.rig.tick(10)
        self.assertEqual(self.rig.state, MechanismState.INTAKE)

        self.rig.sensor.value = True
        self.rig.tick()
        self.assertEqual(self.rig.state, MechanismState.SUBWOOFER)
        self.assertEqual(self.rig.arm.target, 0.35)
        self.assertEqual(self.rig.intake.commanded_voltage, 0.0)
        self.assertEqual(self.rig.conveyor.commanded_voltage, 0.0)
        self.assertEqual((self.rig.shooter.left_target, self.rig.shooter.right_target), (300.0, 250.0))
        self.assertEqual(self.sup.scheduler.active_actions, [])

        # a sensor that stays high does not trigger anything further
        self.rig.tick(20)
        self.assertEqual(self.rig.state, MechanismState.SUBWOOFER)

    def test_object_already_present_needs_new_edge(self):
        self.rig.sensor.value = True
        self.rig.schedule(self.sup.intake_cycle())
        self.rig.move_arm_to(0.12)
        self.rig.tick(10)
        self.assertEqual(self.rig.state, MechanismState.INTAKE)

        self.rig.sensor.value = False
        self.rig.tick()
        self.rig.sensor.value = True
        self.rig.tick()
        self.assertEqual(self.rig.state, MechanismState.SUBWOOFER)

    def test_preset_cancels_pending_intake(self):
        cycle = self.rig.schedule(self.sup.intake_cycle())
        self.rig.move_arm_to(0.12)
        self.rig.tick()
        self.rig.schedule(self.sup.go_preset('amp'))
        self.assertFalse(self.sup.scheduler.is_scheduled(cycle))
        self.assertEqual(self.rig.state, MechanismState.AMP)
        self.assertEqual(self.rig.intake.commanded_voltage, 0.0)

        self.rig.sensor.value = True
        self.rig.tick(3)
        self.assertEqual(self.rig.state, MechanismState.AMP)

    def test_configured_ready_state(self):
        config = replace(self.rig.config, superstructure=replace(
            self.rig.config.superstructure, intake_ready_state=MechanismState.MID_HIGH))
        rig = Rig(config=config)
        rig.schedule(rig.superstructure.intake_cycle())
        rig.move_arm_to(0.12)
        rig.tick()
        rig.sensor.value = True
        rig.tick()
        self.assertEqual(rig.state, MechanismState.MID_HIGH)


class TestFireCycle(unittest.TestCase):
    def setUp(self):
        self.rig = Rig(has_object=True)
        self.sup = self.rig.superstructure
        # 0.25 s window at 0.02 s per tick
        self.window_ticks = 13

    def test_fire_from_preset_then_home(self):
        self.rig.schedule(self.sup.mid_low())
        self.rig.move_arm_to(0.6)
        self.rig.tick()

        self.rig.schedule(self.sup.fire_cycle())
        self.assertEqual(self.rig.state, MechanismState.SHOOT_MID_LOW)
        self.assertEqual(self.rig.conveyor.commanded_voltage, 6.0)
        self.assertEqual(self.rig.arm.target, 0.6)
        self.assertEqual((self.rig.shooter.left_target, self.rig.shooter.right_target), (400.0, 350.0))

        self.rig.tick(5)
        self.assertEqual(self.rig.state, MechanismState.SHOOT_MID_LOW)

        self.rig.sensor.value = False
        self.rig.tick(self.window_ticks - 1)
        self.assertEqual(self.rig.state, MechanismState.SHOOT_MID_LOW)
        self.rig.tick()
        self.assertEqual(self.rig.state, MechanismState.HOME)
        self.assertEqual(self.rig.arm.target, 0.0)
        self.assertEqual(self.rig.conveyor.commanded_voltage, 0.0)
        self.assertEqual(self.rig.intake.commanded_voltage, 0.0)
        self.assertEqual((self.rig.shooter.left_target, self.rig.shooter.right_target), (0.0, 0.0))
        self.assertEqual(self.sup.scheduler.active_actions, [])

    def test_sensor_blip_restarts_window(self):
        self.rig.schedule(self.sup.subwoofer())
        self.rig.schedule(self.sup.fire_cycle())
        self.rig.sensor.value = False
        self.rig.tick(5)
        self.rig.sensor.value = True
        self.rig.tick()
        self.rig.sensor.value = False
        self.rig.tick(self.window_ticks - 1)
        self.assertEqual(self.rig.state, MechanismState.SHOOT_SUBWOOFER)
        self.rig.tick()
        self.assertEqual(self.rig.state, MechanismState.HOME)

    def test_fire_from_fire_state_reuses_it(self):
        self.sup.super_state.set_mechanism_state(MechanismState.SHOOT_AMP)
        self.rig.schedule(self.sup.fire_cycle())
        self.assertEqual(self.rig.state, MechanismState.SHOOT_AMP)

    def test_fire_from_other_state_uses_default(self):
        with self.assertLogs('superstructure.coordinator', level='WARNING') as logs:
            self.rig.schedule(self.sup.fire_cycle())
        self.assertEqual(self.rig.state, MechanismState.SHOOT_MID_HIGH)
        self.assertIn("HOME", logs.output[0])

    def test_fire_state_resolved_when_started(self):
        cycle = self.sup.fire_cycle()
        self.rig.schedule(self.sup.amp())
        self.rig.schedule(cycle)
        self.assertEqual(self.rig.state, MechanismState.SHOOT_AMP)


class TestStateDetection(unittest.TestCase):
    def setUp(self):
        self.rig = Rig()
        self.sup = self.rig.superstructure

    def detect_at(self, position):
        self.rig.move_arm_to(position)
        self.rig.tick()
        return self.sup.detect_and_snap_state()

    def test_home_without_object(self):
        self.rig.schedule(self.sup.amp())
        self.assertEqual(self.detect_at(1.55), MechanismState.HOME)
        self.assertEqual(self.rig.state, MechanismState.HOME)

    def test_brackets(self):
        self.rig.sensor.value = True
        expected = [
            (-0.5, MechanismState.SUBWOOFER),
            (0.0, MechanismState.SUBWOOFER),
            (0.35, MechanismState.SUBWOOFER),
            (0.5, MechanismState.MID_LOW),
            (0.6, MechanismState.MID_LOW),
            (0.8, MechanismState.MID_HIGH),
            (1.1, MechanismState.MID_HIGH),
            (1.3, MechanismState.AMP),
            (2.0, MechanismState.AMP),
        ]
        for position, state in expected:
            self.assertEqual(self.detect_at(position), state, f"arm at {position}")

    def test_idempotent(self):
        self.rig.sensor.value = True
        first = self.detect_at(0.8)
        self.assertEqual(self.sup.detect_and_snap_state(), first)
        self.assertEqual(self.rig.state, first)

    def test_detect_action(self):
        self.rig.sensor.value = True
        self.rig.move_arm_to(0.6)
        self.rig.tick()
        self.rig.schedule(self.sup.detect_mechanism_state())
        self.assertEqual(self.rig.state, MechanismState.MID_LOW)

    def test_sensor_polled_every_time(self):
        reads = self.rig.sensor.reads
        self.sup.has_object()
        self.sup.has_object()
        self.assertEqual(self.rig.sensor.reads, reads + 2)


class TestManualOverrides(unittest.TestCase):
    def setUp(self):
        self.rig = Rig(arm_position=0.5)
        self.sup = self.rig.superstructure

    def test_arm_manual(self):
        self.rig.arm.start_position_hold(1.0)
        up = self.rig.schedule(self.sup.arm_up_manual())
        self.assertFalse(self.rig.arm.holding)
        self.assertEqual(self.rig.arm_io.voltage_target, 2.0)
        self.rig.tick()
        self.assertEqual(self.rig.arm_io.voltage_target, 2.0)
        self.sup.scheduler.cancel(up)
        self.assertEqual(self.rig.arm_io.voltage_target, 0.0)

        down = self.rig.schedule(self.sup.arm_down_manual())
        self.assertEqual(self.rig.arm_io.voltage_target, -2.0)
        self.sup.scheduler.cancel(down)

    def test_force_forward_and_backward(self):
        forward = self.rig.schedule(self.sup.force_forward())
        self.assertEqual(self.rig.intake_io.voltage_target, 6.0)
        self.assertEqual(self.rig.conveyor_io.voltage_target, 4.0)
        self.assertEqual((self.rig.shooter_io.left_voltage_target, self.rig.shooter_io.right_voltage_target),
                         (4.0, 4.0))
        self.assertFalse(self.rig.shooter.enabled)
        self.rig.tick(3)
        self.assertEqual(self.rig.intake_io.voltage_target, 6.0)

        backward = self.rig.schedule(self.sup.force_backward())
        self.assertFalse(self.sup.scheduler.is_scheduled(forward))
        self.assertEqual(self.rig.intake_io.voltage_target, -6.0)
        self.assertEqual(self.rig.conveyor_io.voltage_target, -4.0)
        self.assertEqual(self.rig.shooter_io.left_voltage_target, -4.0)

        self.sup.scheduler.cancel(backward)
        self.rig.tick()
        self.assertEqual(self.rig.intake_io.voltage_target, 0.0)
        self.assertEqual(self.rig.conveyor_io.voltage_target, 0.0)
        self.assertEqual((self.rig.shooter_io.left_voltage_target, self.rig.shooter_io.right_voltage_target),
                         (0.0, 0.0))

    def test_manual_preempts_cycle_then_detect(self):
        cycle = self.rig.schedule(self.sup.intake_cycle())
        self.rig.schedule(self.sup.force_forward())
        self.assertFalse(self.sup.scheduler.is_scheduled(cycle))
        self.assertEqual(self.rig.state, MechanismState.INTAKE)

        self.rig.sensor.value = True
        self.sup.scheduler.cancel_all()
        self.rig.schedule(self.sup.detect_mechanism_state())
        self.assertEqual(self.rig.state, MechanismState.MID_LOW)

    def test_status(self):
        self.rig.schedule(self.sup.amp())
        status = self.sup.status()
        self.assertEqual(status['mechanism_state'], "AMP")
        self.assertFalse(status['has_object'])
        self.assertEqual(status['arm']['target_radians'], 1.55)
        self.assertEqual(status['active_actions'], [])


if __name__ == '__main__':
    unittest.main()
