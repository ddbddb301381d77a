"""
Hardware abstraction for each actuator.

Every loop talks to its motors only through one of these interfaces: it
calls update_inputs() once per tick before computing and set_voltage() after.
The Disabled variants drive nothing and echo the last command back as the
applied voltage.
"""

from abc import ABC, abstractmethod

from .types import ArmInputs, RollerInputs, ShooterInputs


class RollerIO(ABC):
    @abstractmethod
    def set_voltage(self, volts: float) -> None:
        pass

    @abstractmethod
    def update_inputs(self, inputs: RollerInputs) -> None:
        pass


class ArmIO(ABC):
    @abstractmethod
    def set_voltage(self, volts: float) -> None:
        pass

    @abstractmethod
    def update_inputs(self, inputs: ArmInputs) -> None:
        pass


class ShooterIO(ABC):
    @abstractmethod
    def set_voltage(self, left_volts: float, right_volts: float) -> None:
        pass

    @abstractmethod
    def update_inputs(self, inputs: ShooterInputs) -> None:
        pass


class DisabledRollerIO(RollerIO):
    def __init__(self):
        self.voltage_target = 0.0

    def set_voltage(self, volts: float) -> None:
        self.voltage_target = volts

    def update_inputs(self, inputs: RollerInputs) -> None:
        inputs.applied_voltage = self.voltage_target


class DisabledArmIO(ArmIO):
    def __init__(self):
        self.voltage_target = 0.0

    def set_voltage(self, volts: float) -> None:
        self.voltage_target = volts

    def update_inputs(self, inputs: ArmInputs) -> None:
        inputs.applied_voltage = self.voltage_target


class DisabledShooterIO(ShooterIO):
    def __init__(self):
        self.left_voltage_target = 0.0
        self.right_voltage_target = 0.0

    def set_voltage(self, left_volts: float, right_volts: float) -> None:
        self.left_voltage_target = left_volts
        self.right_voltage_target = right_volts

    def update_inputs(self, inputs: ShooterInputs) -> None:
        inputs.left_applied_voltage = self.left_voltage_target
        inputs.right_applied_voltage = self.right_voltage_target
