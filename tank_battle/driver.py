"""
driver.py - main driver for the tank battle project

Features:
- Play Mode (human vs enemy tanks, keyboard)
- Train Mode (PPO agent plays the player tank)
- Watch Mode (watch a trained agent play)
- Record Mode (save agent gameplay to MP4)
- Interactive text menu when started without --action
"""

import argparse
import logging
import os

import imageio
import pygame

from .agent import TankAgent, get_agent_defaults, get_agent_options
from .constants import CANVAS_HEIGHT, CANVAS_WIDTH, FPS
from .controls import PressedKeys
from .environment import create_environment, get_environment_defaults, get_environment_options
from .game import GameCallbacks, GameConfig, get_game_defaults, get_game_options
from .renderer import Renderer
from .runner import start_session

logger = logging.getLogger(__name__)


# =============================================================================
# 1. HUMAN PLAY
# =============================================================================

def wait_for_restart(clock):
    """block until the player asks for another round (r/enter) or quits (esc)."""
    while True:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False
            if event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    return False
                if event.key in (pygame.K_r, pygame.K_RETURN):
                    return True
        clock.tick(30)


def run_human_play(config):
    print("\n" + "=" * 50)
    print("human play mode")
    print("=" * 50)
    print("\ncontrols:")
    print("  arrows / wasd: move tank")
    print("  space / enter / j: fire")
    print("  escape: quit")
    print("=" * 50)

    pygame.init()
    window = pygame.display.set_mode((CANVAS_WIDTH, CANVAS_HEIGHT))
    clock = pygame.time.Clock()
    renderer = Renderer()
    canvas = renderer.create_surface()
    keys = PressedKeys()

    hud = {"score": 0, "lives": config.starting_lives, "best": 0}

    def refresh_caption():
        pygame.display.set_caption(
            f"Tank Battle  |  score {hud['score']}  lives {hud['lives']}  best {hud['best']}"
        )

    def on_score_changed(score):
        hud["score"] = score
        refresh_caption()

    def on_lives_changed(lives):
        hud["lives"] = lives
        refresh_caption()

    def on_game_over(score, outcome):
        hud["best"] = max(hud["best"], score)
        refresh_caption()
        print(f"game over ({outcome.value}) - score: {score}  best: {hud['best']}")
        print("press r or enter to play again, escape to quit")

    callbacks = GameCallbacks(
        on_score_changed=on_score_changed,
        on_lives_changed=on_lives_changed,
        on_game_over=on_game_over,
    )

    def present():
        window.blit(canvas, (0, 0))
        pygame.display.flip()

    handle = None
    try:
        while True:
            hud["score"], hud["lives"] = 0, config.starting_lives
            refresh_caption()

            handle = start_session(
                callbacks=callbacks,
                config=config,
                keys=keys,
                renderer=renderer,
                surface=canvas,
                replacing=handle,
            )
            outcome = handle.run(fps=FPS, clock=clock, on_frame=present)
            if outcome is None or not wait_for_restart(clock):
                break
    finally:
        if handle is not None:
            handle.stop()
        pygame.quit()


# =============================================================================
# 2. TRAINING
# =============================================================================

def run_training(params):
    env = create_environment(
        render_mode=params["render_mode"],
        map_style=params["map_style"],
        max_steps=params["max_steps"],
    )
    agent = TankAgent(
        level=params["level"],
        map_style=params["map_style"],
        device=params["device"],
        verbose=params["verbose"],
        learning_rate=params["learning_rate"],
        n_steps=params["n_steps"],
        batch_size=params["batch_size"],
    )

    continue_from = params["continue_from"]
    if continue_from in ("auto", "none", ""):
        continue_from = None

    print("\n" + "=" * 50)
    print(f"training {agent.name} on {params['map_style']} for {params['timesteps']} timesteps")
    print("ctrl+c stops early")
    print("=" * 50)

    try:
        agent.train(env, params["timesteps"], continue_from=continue_from)
    except KeyboardInterrupt:
        print("\ntraining stopped early")
        if agent.model is None:
            return
        if input("keep the partly trained model? [y]/n: ").strip().lower() in ("n", "no"):
            print("model discarded")
            return
    finally:
        env.close()

    print(f"model saved to: {agent.save()}.zip")


# =============================================================================
# 3. WATCH MODE
# =============================================================================

def _load_agent(params):
    model_path = params["continue_from"]
    if not model_path or model_path == "auto" or not os.path.exists(model_path + ".zip"):
        print(f"error: could not find model at {model_path}.zip")
        return None

    agent = TankAgent(map_style=params["map_style"], device=params["device"])
    agent.load(model_path)
    return agent


def run_watch(params):
    agent = _load_agent(params)
    if agent is None:
        return

    env = create_environment(render_mode="human", map_style=params["map_style"])
    try:
        for episode in range(params.get("episodes", 5)):
            obs, info = env.reset()
            terminated = truncated = False
            print(f"match {episode + 1} started...")

            while not (terminated or truncated):
                for event in pygame.event.get():
                    if event.type == pygame.QUIT:
                        return
                    if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                        return

                action = agent.act(obs)
                obs, reward, terminated, truncated, info = env.step(action)

            print(f"match finished! score: {info['score']}  outcome: {info['outcome']}")
    finally:
        env.close()


# =============================================================================
# 4. RECORD MODE
# =============================================================================

def run_record(params):
    agent = _load_agent(params)
    if agent is None:
        return

    folder = "recordings"
    os.makedirs(folder, exist_ok=True)
    video_path = os.path.join(folder, params.get("record_filename", "tank_battle.mp4"))
    print(f"recording to: {video_path}")

    env = create_environment(render_mode="rgb_array", map_style=params["map_style"])
    writer = imageio.get_writer(video_path, fps=FPS)
    try:
        for episode in range(params.get("episodes", 3)):
            obs, _ = env.reset()
            terminated = truncated = False
            print(f"recording match {episode + 1}...")

            writer.append_data(env.render())
            while not (terminated or truncated):
                action = agent.act(obs)
                obs, reward, terminated, truncated, info = env.step(action)
                writer.append_data(env.render())
    finally:
        writer.close()
        env.close()

    print(f"video saved to {video_path}")


# =============================================================================
# INTERACTIVE CLI TOOLS
# =============================================================================

def parse_option(text, options_info, default_value):
    """typed text -> option value; anything unusable keeps the default."""
    text = text.strip()
    if not text:
        return default_value

    convert = {"int": int, "float": float}.get(options_info.get("type"))
    if convert is not None:
        try:
            value = convert(text)
        except ValueError:
            return default_value
        low, high = options_info.get("range", (value, value))
        return value if low <= value <= high else default_value

    if "choices" not in options_info:
        return text
    # choices may be typed as any prefix, in any case
    for choice in options_info["choices"]:
        if str(choice).lower().startswith(text.lower()):
            return choice
    return default_value


def prompt_with_options(prompt_text, options_info, default_value):
    print(f"\n{prompt_text}\n" + "-" * 40)
    descriptions = options_info.get("descriptions", {})
    for choice in options_info.get("choices", ()):
        print(f"  {choice}: {descriptions[choice]}" if choice in descriptions else f"  {choice}")
    if "range" in options_info:
        print("range: {} to {}".format(*options_info["range"]))
    if "description" in options_info:
        print(options_info["description"])
    print(f"default: {default_value}")

    return parse_option(input("value (enter keeps the default): "), options_info, default_value)


MENU = (
    ("p", "play", "play against the enemy tanks"),
    ("t", "train", "train a ppo agent to play"),
    ("w", "watch", "watch a trained agent play"),
    ("r", "record", "record a trained agent to mp4"),
)


def interactive_select_action():
    print("=" * 50)
    print("tank battle")
    print("=" * 50)
    for key, action, text in MENU:
        print(f"  [{key}]{action[1:]}: {text}")

    typed = input("action: ").strip().lower()
    for key, action, _ in MENU:
        if typed.startswith(key):
            return action
    return "play"


def interactive_play():
    defaults = get_game_defaults()
    options = get_game_options()
    return {
        key: prompt_with_options(key.replace("_", " "), options[key], defaults[key])
        for key in ("map_style", "spawn_interval", "max_enemies", "starting_lives")
    }


def interactive_train():
    env_defaults = get_environment_defaults()
    env_options = get_environment_options()
    agent_defaults = get_agent_defaults()
    agent_options = get_agent_options()

    print("\n-- environment --")
    map_style = prompt_with_options("map style", env_options["map_style"], env_defaults["map_style"])
    render_mode = prompt_with_options("render mode", env_options["render_mode"], "none")
    max_steps = prompt_with_options("max steps", env_options["max_steps"], env_defaults["max_steps"])

    print("\n-- agent --")
    params = {
        "map_style": map_style,
        "render_mode": None if render_mode == "none" else render_mode,
        "max_steps": max_steps,
    }
    for key in ("level", "learning_rate", "n_steps", "batch_size", "verbose", "timesteps", "device"):
        params[key] = prompt_with_options(key.replace("_", " "), agent_options[key], agent_defaults[key])
    params["continue_from"] = prompt_with_options("continue from", agent_options["continue_from"], "auto")
    return params


def interactive_watch_or_record():
    env_options = get_environment_options()
    agent_options = get_agent_options()
    return {
        "map_style": prompt_with_options("map style", env_options["map_style"], "Classic"),
        "continue_from": prompt_with_options("model path (REQUIRED)", agent_options["continue_from"], ""),
        "device": prompt_with_options("device", agent_options["device"], "auto"),
        "record_filename": "tank_battle.mp4",
    }


# =============================================================================
# ARGUMENT PARSING & MAIN
# =============================================================================

def parse_args(argv=None):
    env_defaults = get_environment_defaults()
    agent_defaults = get_agent_defaults()
    game_defaults = get_game_defaults()

    parser = argparse.ArgumentParser(description="tank battle")
    parser.add_argument("--action", type=str, help="action to perform (play/train/watch/record)")
    parser.add_argument("--log-level", type=str, default="INFO", help="logging level")

    # shared args
    parser.add_argument("--map-style", type=str, default=game_defaults["map_style"], help="map style")

    # play args
    parser.add_argument("--spawn-interval", type=int, default=game_defaults["spawn_interval"])
    parser.add_argument("--max-enemies", type=int, default=game_defaults["max_enemies"])
    parser.add_argument("--lives", type=int, default=game_defaults["starting_lives"])
    parser.add_argument("--seed", type=int, default=None)

    # train args
    parser.add_argument("--render-mode", type=str, default="none", help="render mode")
    parser.add_argument("--max-steps", type=int, default=env_defaults["max_steps"])
    parser.add_argument("--level", type=int, default=agent_defaults["level"])
    parser.add_argument("--learning-rate", type=float, default=agent_defaults["learning_rate"])
    parser.add_argument("--n-steps", type=int, default=agent_defaults["n_steps"])
    parser.add_argument("--batch-size", type=int, default=agent_defaults["batch_size"])
    parser.add_argument("--verbose", type=int, default=agent_defaults["verbose"])
    parser.add_argument("--timesteps", type=int, default=agent_defaults["timesteps"])
    parser.add_argument("--continue-from", type=str, default="auto", help="model path")
    parser.add_argument("--device", type=str, default=agent_defaults["device"])

    # record args
    parser.add_argument("--record-filename", type=str, default="tank_battle.mp4")

    args = parser.parse_args(argv)
    action = args.action.lower() if args.action else None
    return action, args


def game_config_from(params):
    return GameConfig(
        map_style=params["map_style"],
        spawn_interval=params["spawn_interval"],
        max_enemies=params["max_enemies"],
        starting_lives=params["starting_lives"],
        seed=params.get("seed"),
    )


def main(argv=None):
    action, args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # interactive mode (if no action provided)
    if action is None:
        action = interactive_select_action()
        if action == "play":
            run_human_play(game_config_from(interactive_play()))
        elif action == "train":
            params = interactive_train()
            if input("\nstart training? [y]/n: ").lower() not in ["n", "no"]:
                run_training(params)
        elif action == "watch":
            run_watch(interactive_watch_or_record())
        elif action == "record":
            run_record(interactive_watch_or_record())
        return

    # cli mode
    if action == "play":
        try:
            config = game_config_from({
                "map_style": args.map_style,
                "spawn_interval": args.spawn_interval,
                "max_enemies": args.max_enemies,
                "starting_lives": args.lives,
                "seed": args.seed,
            })
        except ValueError as err:
            print(f"invalid game settings: {err}")
            return
        run_human_play(config)

    elif action == "train":
        run_training({
            "map_style": args.map_style,
            "render_mode": None if args.render_mode == "none" else args.render_mode,
            "max_steps": args.max_steps,
            "level": args.level,
            "learning_rate": args.learning_rate,
            "n_steps": args.n_steps,
            "batch_size": args.batch_size,
            "verbose": args.verbose,
            "timesteps": args.timesteps,
            "continue_from": args.continue_from,
            "device": args.device,
        })

    elif action in ("watch", "record"):
        params = {
            "map_style": args.map_style,
            "continue_from": args.continue_from,
            "device": args.device,
            "record_filename": args.record_filename,
        }
        if action == "watch":
            run_watch(params)
        else:
            run_record(params)

    else:
        print(f"unknown action: {action} (expected play/train/watch/record)")


if __name__ == "__main__":
    main()
