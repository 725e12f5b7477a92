"""
agent.py - ppo agents that drive the player tank

models are named after the level and map they were trained on
(tank_battle_level{n}_{map}). a level n run on a map starts from that
map's level n-1 model when one has been saved, so agents can be trained
up in stages.
"""

import logging
import os

import torch
from stable_baselines3 import PPO
from stable_baselines3.common.callbacks import CheckpointCallback
from stable_baselines3.common.monitor import Monitor
from stable_baselines3.common.vec_env import DummyVecEnv

logger = logging.getLogger(__name__)

# passed straight through to PPO(); anything else is rejected
PPO_HYPERPARAMETERS = {
    "learning_rate": 3e-4,
    "n_steps": 2048,
    "batch_size": 64,
    "gamma": 0.99,
    "ent_coef": 0.01,
}


def get_safe_device(requested_device):
    """
    pick the torch device to train on.

    cpu when asked for. otherwise cuda only if a tiny tensor operation
    actually succeeds on the gpu; some drivers report cuda as available
    and then fail at the first kernel launch.
    """
    if requested_device == "cpu":
        return "cpu"

    if not torch.cuda.is_available():
        if requested_device == "cuda":
            logger.warning("cuda requested but not available, using cpu")
        return "cpu"

    try:
        probe = torch.ones(1, device="cuda") * 2
        probe.cpu()
    except RuntimeError as err:
        logger.warning("gpu failed a test operation (%s), using cpu", err)
        return "cpu"

    logger.info("gpu verified: %s", torch.cuda.get_device_name(0))
    return "cuda"


def model_name(level, map_style):
    return f"tank_battle_level{level}_{map_style.lower()}"


class TankAgent:
    """
    one ppo policy for the player tank, tied to a level and a map style.

    everything it writes lives under root_dir: models/ for finished
    policies, checkpoints/ for periodic saves during training and logs/
    for monitor and tensorboard output.
    """

    def __init__(self, level=0, map_style="Classic", device="auto", verbose=1, root_dir=".", **hyperparameters):
        """
        args:
            level: int, stage of this agent; part of the model name
            map_style: str, map the agent plays on; part of the model name
            device: "auto", "cpu" or "cuda"
            verbose: stable-baselines3 verbosity (0, 1 or 2)
            root_dir: where models/, checkpoints/ and logs/ are created
            **hyperparameters: overrides for PPO_HYPERPARAMETERS

        raises:
            ValueError: a hyperparameter this agent does not know
        """
        unknown = set(hyperparameters) - set(PPO_HYPERPARAMETERS)
        if unknown:
            raise ValueError(f"unknown ppo settings: {sorted(unknown)}")

        self.level = level
        self.map_style = map_style
        self.device = device
        self.verbose = verbose
        self.hyperparameters = {**PPO_HYPERPARAMETERS, **hyperparameters}

        self.models_dir = os.path.join(root_dir, "models")
        self.checkpoint_dir = os.path.join(root_dir, "checkpoints")
        self.log_dir = os.path.join(root_dir, "logs")

        self.model = None

    @property
    def name(self):
        return model_name(self.level, self.map_style)

    @property
    def model_path(self):
        """where save() writes, without the .zip suffix."""
        return os.path.join(self.models_dir, self.name)

    def exists(self):
        return os.path.exists(self.model_path + ".zip")

    def warm_start_path(self):
        """the previous level's saved model for this map, or None."""
        if self.level <= 0:
            return None
        path = os.path.join(self.models_dir, model_name(self.level - 1, self.map_style))
        return path if os.path.exists(path + ".zip") else None

    def train(self, env, timesteps, continue_from=None, checkpoint_freq=50000):
        """
        run ppo on a TankBattleEnv.

        the starting point is continue_from when given, else the previous
        level's model, else a fresh MlpPolicy.

        args:
            env: gymnasium environment (not yet wrapped)
            timesteps: int, total environment steps to learn from
            continue_from: path of a saved model (without .zip) or None
            checkpoint_freq: int, steps between checkpoint saves

        returns:
            self
        """
        if continue_from is not None and not os.path.exists(continue_from + ".zip"):
            raise FileNotFoundError(f"model not found: {continue_from}.zip")

        for folder in (self.models_dir, self.checkpoint_dir, self.log_dir):
            os.makedirs(folder, exist_ok=True)

        vec_env = DummyVecEnv([lambda: Monitor(env, self.log_dir)])
        device = get_safe_device(self.device)

        start = continue_from or self.warm_start_path()
        if start is not None:
            logger.info("continuing from %s", start)
            self.model = PPO.load(start, env=vec_env, device=device)
        else:
            if self.level > 0:
                logger.warning("no level %d model for map %s, starting from scratch", self.level - 1, self.map_style)
            self.model = PPO(
                "MlpPolicy",
                vec_env,
                verbose=self.verbose,
                tensorboard_log=self.log_dir,
                device=device,
                **self.hyperparameters
            )

        logger.info("training %s for %d timesteps on %s (%s)", self.name, timesteps, device, self.hyperparameters)
        self.model.learn(
            total_timesteps=timesteps,
            callback=CheckpointCallback(
                save_freq=checkpoint_freq,
                save_path=self.checkpoint_dir,
                name_prefix=self.name
            ),
            tb_log_name=f"PPO_{self.name}"
        )
        return self

    def save(self):
        """
        returns:
            str: the path written, without .zip
        """
        if self.model is None:
            raise RuntimeError(f"{self.name} has no model yet; train() or load() first")

        os.makedirs(self.models_dir, exist_ok=True)
        self.model.save(self.model_path)
        logger.info("saved %s.zip", self.model_path)
        return self.model_path

    def load(self, path=None):
        path = path if path is not None else self.model_path
        if not os.path.exists(path + ".zip"):
            raise FileNotFoundError(f"model not found: {path}.zip")

        self.model = PPO.load(path, device=get_safe_device(self.device))
        logger.info("loaded %s.zip", path)
        return self

    def act(self, obs, deterministic=True):
        """the environment action for one observation."""
        if self.model is None:
            raise RuntimeError(f"{self.name} has no model yet; train() or load() first")

        action, _ = self.model.predict(obs, deterministic=deterministic)
        return action


def get_agent_defaults():
    """
    defaults for the interactive train prompts.
    """
    return {
        "level": 0,
        "learning_rate": PPO_HYPERPARAMETERS["learning_rate"],
        "n_steps": PPO_HYPERPARAMETERS["n_steps"],
        "batch_size": PPO_HYPERPARAMETERS["batch_size"],
        "verbose": 1,
        "timesteps": 500000,
        "continue_from": None,
        "device": "auto",
    }


def get_agent_options():
    """
    what each agent setting accepts, for the interactive prompts.
    """
    return {
        "level": {
            "type": "int",
            "range": [0, 99],
            "description": "stage number; level n starts from the level n-1 model"
        },
        "learning_rate": {
            "type": "float",
            "range": [1e-6, 1e-1],
            "description": "step size of each policy update"
        },
        "n_steps": {
            "type": "int",
            "range": [64, 8192],
            "description": "environment steps gathered between updates"
        },
        "batch_size": {
            "type": "int",
            "range": [8, 512],
            "description": "minibatch size within an update"
        },
        "verbose": {
            "type": "int",
            "choices": [0, 1, 2],
            "descriptions": {
                0: "silent",
                1: "progress tables",
                2: "everything stable-baselines3 prints"
            }
        },
        "timesteps": {
            "type": "int",
            "range": [1000, 10000000],
            "description": "environment steps to train for"
        },
        "continue_from": {
            "type": "str",
            "description": "saved model to resume (without .zip), or 'auto' for the previous level"
        },
        "device": {
            "type": "str",
            "choices": ["auto", "cpu", "cuda"],
            "descriptions": {
                "auto": "gpu if it works, otherwise cpu",
                "cpu": "always cpu",
                "cuda": "nvidia gpu"
            }
        }
    }
