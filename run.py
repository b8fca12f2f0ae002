"""Headless CHIP-8 runner.

Example:
    python run.py rom=games/PONG cycles=6000 quirks.shift_uses_vy=true
"""

import os
import sys

os.environ["XLA_PYTHON_CLIENT_PREALLOCATE"] = "false"

import hydra
import jax
from omegaconf import DictConfig, OmegaConf

from chip8vm import create_state, load_rom, run_cycles, Chip8Error
from chip8vm.logging import MachineLogger


@hydra.main(version_base=None, config_path="conf", config_name="config")
def main(cfg: DictConfig) -> None:
    cfg = OmegaConf.to_container(cfg)
    logger = MachineLogger(log_level=cfg["log_level"])

    quirks = cfg.get("quirks", {})
    state = create_state(jax.random.PRNGKey(cfg["seed"]), **quirks)
    logger.log_quirks(quirks)

    rom_path = hydra.utils.to_absolute_path(cfg["rom"])
    try:
        state = load_rom(state, rom_path)
    except (OSError, Chip8Error) as e:
        logger.error(f"Could not load {rom_path}: {e}")
        sys.exit(1)
    logger.log_program_loaded(rom_path, os.path.getsize(rom_path))

    try:
        state = run_cycles(state, cfg["cycles"], progress=cfg["progress"])
    except Chip8Error as e:
        logger.log_fault(e)
        sys.exit(1)

    logger.log_cycles(cfg["cycles"])
    logger.log_registers(state, level="INFO")


if __name__ == "__main__":
    main()
