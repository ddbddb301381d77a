from .actions import InstantAction, RunAction
from .config import RollerConfig
from .io import RollerIO
from .types import RollerInputs


class RollerLoop:
    """
    Open-loop roller (intake or conveyor). The last commanded voltage is
    latched and written again on every tick until something replaces it.
    """

    def __init__(self, name: str, io: RollerIO, config: RollerConfig):
        self.name = name
        self.io = io
        self.config = config
        self.inputs = RollerInputs()
        self.commanded_voltage = 0.0

    def set_voltage(self, volts: float):
        self.commanded_voltage = volts
        self.io.set_voltage(volts)

    def stop(self):
        self.set_voltage(0.0)

    def periodic(self):
        self.io.update_inputs(self.inputs)
        self.io.set_voltage(self.commanded_voltage)

    def run_volts(self, volts: float) -> InstantAction:
        """Action that latches a voltage on the roller."""
        return InstantAction(lambda: self.set_voltage(volts), [self], name=f"{self.name}.run_volts({volts})")

    def run_volts_while_held(self, volts: float) -> RunAction:
        return RunAction(lambda: self.set_voltage(volts), [self], on_end=self.stop,
                         name=f"{self.name}.manual({volts})")

    def status(self) -> dict:
        return {
            'commanded_voltage': self.commanded_voltage,
            'applied_voltage': self.inputs.applied_voltage,
            'current_amps': self.inputs.current_amps,
        }

    def __repr__(self):
        return f"RollerLoop({self.name})"
