"""Run the aquarium simulation headless until interrupted.

Usage:
    python -m aquarium_backend [--data-dir DIR] [--log-level LEVEL]
"""

import argparse
import asyncio
import logging
from dataclasses import replace
from pathlib import Path

from aquarium_backend.logging_config import configure_logging
from aquarium_backend.settings import RuntimeSettings
from aquarium_backend.simulation import AquariumSimulation

logger = logging.getLogger(__name__)


async def run(settings: RuntimeSettings) -> None:
    simulation = AquariumSimulation(settings)
    await simulation.start()
    try:
        await asyncio.Event().wait()
    finally:
        await simulation.stop()


def main():
    """Parse command-line arguments and run the simulation."""
    parser = argparse.ArgumentParser(description="Calm Aquarium simulation")
    parser.add_argument("--data-dir", type=Path, default=None, help="Directory holding app_state.json")
    parser.add_argument("--log-level", default=None, help="Log level (default: AQUARIUM_LOG_LEVEL or INFO)")
    args = parser.parse_args()

    settings = RuntimeSettings.from_env()
    if args.data_dir is not None:
        settings = replace(settings, data_dir=args.data_dir)
    configure_logging(level=args.log_level or settings.log_level)

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
