"""Runtime configuration for loss construction.

Settings are read from the environment (and a ``.env`` file, if present)
once, then passed explicitly to the code that needs them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

# Set to "1" to rewrite integer powers regardless of the parameter device
GPU_POWER_REWRITE_ENV = "PDEFORGE_GPU_POWER_REWRITE"


@dataclass(frozen=True)
class RewriteSettings:
    """Power rewrite configuration."""

    force_power_rewrite: bool = False  # Rewrite even when parameters are on CPU

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> RewriteSettings:
        """Build settings from environment variables.

        Only the literal value "1" enables the override. Variables already set
        take precedence over a .env file found from the working directory.
        """
        if load_dotenv_file:
            load_dotenv(find_dotenv(usecwd=True))
        return cls(
            force_power_rewrite=os.environ.get(GPU_POWER_REWRITE_ENV, "0") == "1",
        )
