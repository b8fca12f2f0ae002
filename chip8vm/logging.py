"""Console logging utilities for running CHIP-8 programs.

Provides a small leveled console logger, a machine-aware subclass that
formats register dumps and faults, and real-time progress bars for scanned
cycle loops using io_callback.
"""

import time
import sys
from typing import Any, Callable, Optional, Tuple

import jax
from jax.experimental import io_callback

from tqdm import tqdm

from chip8vm.decode import disassemble


class ConsoleLogger:
    """Console logger with levels, colors and elapsed-time stamps."""

    def __init__(
        self,
        name: str = "chip8vm",
        log_level: str = "INFO",
        use_colors: bool = True,
        show_timestamps: bool = True,
    ):
        self.name = name
        self.log_level = log_level.upper()
        self.use_colors = (
            use_colors and hasattr(sys.stdout, "isatty") and sys.stdout.isatty()
        )
        self.show_timestamps = show_timestamps
        self.start_time = time.time()

        self.colors = (
            {
                "DEBUG": "\033[36m",
                "INFO": "\033[32m",
                "WARNING": "\033[33m",
                "ERROR": "\033[31m",
                "CRITICAL": "\033[35m",
                "RESET": "\033[0m"
            }
            if self.use_colors
            else {
                k: ""
                for k in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "RESET"]
            }
        )

        self.level_order = {
            "DEBUG": 0,
            "INFO": 1,
            "WARNING": 2,
            "ERROR": 3,
            "CRITICAL": 4,
        }

    def _should_log(self, level: str) -> bool:
        """Check if message should be logged based on current log level."""
        return self.level_order.get(level.upper(), 1) >= self.level_order.get(
            self.log_level, 1
        )

    def _format_message(self, level: str, message: str) -> str:
        """Format log message with timestamp, level, and colors."""
        timestamp = (
            f"[{time.time() - self.start_time:8.2f}s]" if self.show_timestamps else ""
        )
        level_str = f"[{level:>8s}]"
        name_str = f"[{self.name}]"

        if self.use_colors:
            color = self.colors.get(level.upper(), "")
            reset = self.colors["RESET"]
            level_str = f"{color}{level_str}{reset}"

        return f"{timestamp}{level_str}{name_str} {message}"

    def log(self, level: str, message: str):
        """Log a message at the specified level."""
        if self._should_log(level):
            formatted = self._format_message(level, message)
            print(formatted, flush=True)

    def debug(self, message: str):
        self.log("DEBUG", message)

    def info(self, message: str):
        self.log("INFO", message)

    def warning(self, message: str):
        self.log("WARNING", message)

    def error(self, message: str):
        self.log("ERROR", message)

    def critical(self, message: str):
        self.log("CRITICAL", message)


class MachineLogger(ConsoleLogger):
    """Logger for emulator runs: program loading, register dumps and faults."""

    def __init__(self, name: str = "chip8vm", **kwargs):
        super().__init__(name, **kwargs)
        self.cycles_run = 0

    def log_program_loaded(self, source: str, size: int):
        self.info(f"Loaded {source} ({size} bytes at 0x200)")

    def log_quirks(self, quirks: dict):
        enabled = [name for name, value in quirks.items() if value]
        self.info(f"Quirks: {', '.join(enabled) if enabled else 'none'}")

    def log_registers(self, state: Any, level: str = "DEBUG"):
        """Dump PC, I, stack depth, timers and V0-VF."""
        pc = int(state.pc)
        instruction = (int(state.memory[pc]) << 8 | int(state.memory[pc + 1])) if pc + 1 < len(state.memory) else None
        next_str = disassemble(instruction) if instruction is not None else "<out of memory>"
        self.log(
            level,
            f"PC=0x{pc:03X} ({next_str}) I=0x{int(state.I):03X} "
            f"SP={int(state.stack.pointer)} DT={int(state.delay_timer)} ST={int(state.sound_timer)}",
        )
        for row in range(0, 16, 8):
            registers = " ".join(f"V{i:X}={int(state.V[i]):02X}" for i in range(row, row + 8))
            self.log(level, f"  {registers}")

    def log_cycles(self, n: int):
        self.cycles_run += n
        elapsed = time.time() - self.start_time
        self.info(f"Ran {n:,} cycles ({self.cycles_run:,} total, {elapsed:.2f}s elapsed)")

    def log_fault(self, error: Exception, state: Optional[Any] = None):
        """Log an error reported by the machine, with the instruction it stopped on."""
        opcode = getattr(error, "opcode", None)
        if opcode is not None:
            self.error(f"{type(error).__name__}: {error} [{disassemble(opcode)}]")
        else:
            self.error(f"{type(error).__name__}: {error}")
        if state is not None:
            self.log_registers(state, level="ERROR")


def build_tqdm_progress_bar(
    n: int,
    print_rate: Optional[int] = None,
    desc: str = None,
    **kwargs,
) -> Tuple[Callable, Callable]:
    """Build real-time tqdm progress bar for JAX computations."""
    if desc is None:
        desc = f"Running ({n:,} cycles)"

    for kwarg in ("total", "mininterval", "maxinterval", "miniters"):
        kwargs.pop(kwarg, None)

    tqdm_bars = {}

    if print_rate is None:
        print_rate = max(1, min(n // 20, 50))
    else:
        print_rate = max(1, min(print_rate, n))

    remainder = n % print_rate

    def _define_tqdm():
        tqdm_bars[0] = tqdm(total=n, desc=desc, unit="cycle", **kwargs)

    def _update_tqdm(steps):
        if 0 in tqdm_bars:
            tqdm_bars[0].update(int(steps))

    def _close_tqdm():
        if 0 in tqdm_bars:
            tqdm_bars[0].close()

    def _update_progress_bar(iter_num):
        _ = jax.lax.cond(
            iter_num == 0,
            lambda _: io_callback(_define_tqdm, None, ordered=True),
            lambda _: None,
            operand=None,
        )

        # Counts completed iterations, so the bar reaches n on the last one
        _ = jax.lax.cond(
            (iter_num + 1) % print_rate == 0,
            lambda _: io_callback(_update_tqdm, None, print_rate, ordered=True),
            lambda _: None,
            operand=None,
        )

        if remainder:
            _ = jax.lax.cond(
                iter_num == n - 1,
                lambda _: io_callback(_update_tqdm, None, remainder, ordered=True),
                lambda _: None,
                operand=None,
            )

    def close_progress_bar(result, iter_num):
        _ = jax.lax.cond(
            iter_num == n - 1,
            lambda _: io_callback(_close_tqdm, None, ordered=True),
            lambda _: None,
            operand=None,
        )
        return result

    return _update_progress_bar, close_progress_bar


def scan_with_progress(
    n: int,
    print_rate: Optional[int] = None,
    desc: str = None,
    **tqdm_kwargs,
) -> Callable:
    """Decorator to add real-time progress bar to JAX scan operations.

    The scanned ``xs`` must be the iteration number (or a tuple starting with it).
    """
    _update_progress_bar, close_progress_bar = build_tqdm_progress_bar(
        n, print_rate, desc, **tqdm_kwargs
    )

    def _scan_progress_decorator(func):
        def wrapper_with_progress(carry, x):
            if isinstance(x, tuple):
                iter_num = x[0]
            else:
                iter_num = x

            _update_progress_bar(iter_num)

            result = func(carry, x)

            return close_progress_bar(result, iter_num)

        return wrapper_with_progress

    return _scan_progress_decorator
