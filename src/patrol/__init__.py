# Patrol robot simulation
from .robot import Robot, RobotMode
from .session import SimulationSession
from .simulator import PatrolSimulator

__all__ = ["Robot", "RobotMode", "PatrolSimulator", "SimulationSession"]
