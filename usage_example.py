import logging
from superstructure import RobotConfig, RobotContainer, RobotMode
from superstructure.config import SuperstructureConfig

logging.basicConfig(level=logging.INFO)

# Use RobotMode.REAL and the board's port to drive the real mechanism
config = RobotConfig(mode=RobotMode.SIM, superstructure=SuperstructureConfig(period_seconds=0.02))
robot = RobotContainer(config)
superstructure = robot.superstructure
board = robot.board.link  # the simulated board, so the beam break can be toggled below
sensor_channel = config.superstructure.object_sensor_channel


def run(ticks):
    for _ in range(ticks):
        superstructure.tick()


# intake: arm goes down first, rollers start once it is there
superstructure.schedule(superstructure.intake_cycle())
run(100)
print(superstructure.status()['arm'])

# an object breaks the beam, the cycle moves on to the ready preset
board.set_digital_input(sensor_channel, True)
run(100)
print(f"State after intake: {superstructure.mechanism_state}")

# fire, the object leaves, home once the sensor stayed clear long enough
superstructure.schedule(superstructure.fire_cycle())
run(10)
board.set_digital_input(sensor_channel, False)
run(50)
print(f"State after firing: {superstructure.mechanism_state}")

robot.close()
