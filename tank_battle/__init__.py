"""
tank_battle - tile-based tank battle simulation with pygame rendering,
a gymnasium environment and ppo agents.
"""

from .game import Game, GameCallbacks, GameConfig, Outcome
from .runner import SimulationHandle, start_session

__version__ = "0.1.0"
