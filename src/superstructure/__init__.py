from .config import RobotConfig, RobotMode, load_config
from .container import RobotContainer
from .states import MechanismState
