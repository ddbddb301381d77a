import json
import os
import tempfile
import unittest

from superstructure.config import ArmConfig, RobotConfig, RobotMode, SuperstructureConfig, load_config
from superstructure.exceptions import ConfigError, UnknownStateError
from superstructure.states import (
    FIRE_STATES, READY_PRESETS, MechanismState, fire_state_for, is_fire_state, is_ready_preset,
    preset_by_name, presets_by_arm_angle, state_by_name,
)


class TestStates(unittest.TestCase):
    def test_every_preset_has_one_fire_state(self):
        self.assertEqual(set(FIRE_STATES), set(READY_PRESETS))
        self.assertEqual(len(set(FIRE_STATES.values())), len(READY_PRESETS))

    def test_fire_state_keeps_preset_arm_and_shooter(self):
        for preset, fire in FIRE_STATES.items():
            self.assertEqual(fire.arm_position_radians, preset.arm_position_radians)
            self.assertEqual(fire.shooter_left_rad_per_sec, preset.shooter_left_rad_per_sec)
            self.assertEqual(fire.shooter_right_rad_per_sec, preset.shooter_right_rad_per_sec)
            self.assertGreater(fire.conveyor_volts, 0.0)

    def test_fire_state_for(self):
        self.assertEqual(fire_state_for(MechanismState.AMP), MechanismState.SHOOT_AMP)
        self.assertIsNone(fire_state_for(MechanismState.HOME))
        self.assertIsNone(fire_state_for(MechanismState.SHOOT_AMP))

    def test_classification(self):
        self.assertTrue(is_ready_preset(MechanismState.MID_LOW))
        self.assertFalse(is_ready_preset(MechanismState.INTAKE))
        self.assertTrue(is_fire_state(MechanismState.SHOOT_MID_LOW))
        self.assertFalse(is_fire_state(MechanismState.MID_LOW))

    def test_home_is_all_zero(self):
        home = MechanismState.HOME
        self.assertEqual((home.intake_volts, home.conveyor_volts, home.arm_position_radians,
                          home.shooter_left_rad_per_sec, home.shooter_right_rad_per_sec), (0, 0, 0, 0, 0))

    def test_presets_sorted_by_arm_angle(self):
        angles = [p.arm_position_radians for p in presets_by_arm_angle()]
        self.assertEqual(angles, sorted(angles))

    def test_lookup_by_name(self):
        self.assertEqual(state_by_name("shoot_amp"), MechanismState.SHOOT_AMP)
        self.assertEqual(preset_by_name(" Mid_High "), MechanismState.MID_HIGH)
        self.assertEqual(str(MechanismState.INTAKE), "INTAKE")
        with self.assertRaises(UnknownStateError):
            state_by_name("trap")
        with self.assertRaises(UnknownStateError):
            preset_by_name("intake")


class TestConfig(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmpdir.cleanup()

    def write(self, content):
        path = os.path.join(self.tmpdir.name, "robot.json")
        with open(path, 'w') as f:
            if isinstance(content, str):
                f.write(content)
            else:
                json.dump(content, f)
        return path

    def test_package_exports(self):
        import superstructure
        self.assertIs(superstructure.RobotConfig, RobotConfig)
        self.assertIs(superstructure.MechanismState, MechanismState)
        self.assertIs(superstructure.load_config, load_config)

    def test_defaults(self):
        config = load_config()
        self.assertEqual(config.mode, RobotMode.SIM)
        self.assertEqual(config.superstructure.period_seconds, 0.02)
        self.assertEqual(config.superstructure.intake_ready_state, MechanismState.SUBWOOFER)

    def test_overrides(self):
        config = load_config(self.write({
            "mode": "disabled",
            "arm": {"max_position_radians": 1.6, "pid": {"kp": 9}},
            "superstructure": {"fire_debounce_seconds": 0.3, "intake_ready_state": "amp"},
        }))
        self.assertEqual(config.mode, RobotMode.DISABLED)
        self.assertEqual(config.arm.max_position_radians, 1.6)
        self.assertEqual(config.arm.pid.kp, 9.0)
        self.assertEqual(config.arm.pid.kd, ArmConfig().pid.kd)
        self.assertEqual(config.superstructure.fire_debounce_seconds, 0.3)
        self.assertEqual(config.superstructure.intake_ready_state, MechanismState.AMP)

    def test_unknown_key(self):
        with self.assertRaises(ConfigError):
            load_config(self.write({"arm": {"max_angle": 1.0}}))

    def test_wrong_type(self):
        with self.assertRaises(ConfigError):
            load_config(self.write({"arm": {"tolerance_radians": "small"}}))
        with self.assertRaises(ConfigError):
            load_config(self.write({"superstructure": {"object_sensor_inverted": 1}}))

    def test_bad_state_name(self):
        with self.assertRaises(ConfigError):
            load_config(self.write({"superstructure": {"default_fire_state": "trap"}}))

    def test_missing_or_malformed_file(self):
        with self.assertRaises(ConfigError):
            load_config(os.path.join(self.tmpdir.name, "missing.json"))
        with self.assertRaises(ConfigError):
            load_config(self.write("{not json"))

    def test_validation(self):
        with self.assertRaises(ConfigError):
            RobotConfig(arm=ArmConfig(min_position_radians=1.0, max_position_radians=0.5))
        with self.assertRaises(ConfigError):
            RobotConfig(superstructure=SuperstructureConfig(intake_ready_state=MechanismState.INTAKE))
        with self.assertRaises(ConfigError):
            RobotConfig(superstructure=SuperstructureConfig(default_fire_state=MechanismState.AMP))
        with self.assertRaises(ConfigError):
            RobotConfig(arm=ArmConfig(lead_channel=5))


if __name__ == '__main__':
    unittest.main()
