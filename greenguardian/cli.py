"""
Command-line entry point for AI Mode.

Usage:
    greenguardian evaluate --temperature 30 --humidity 80 --soil 20 --light 2000
    greenguardian evaluate --soil 45 --pump on          # dead band keeps the pump on
    greenguardian watch                                 # run automation against the configured store
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from typing import Optional, Sequence

from .core.config import settings
from .core.timeutil import now_utc
from .domain.controller import ThresholdConfig, ThresholdController
from .domain.models import Actuator, ActuatorState, ControlMode, RootSnapshot, SensorSnapshot


def _state(value: Optional[str]) -> Optional[ActuatorState]:
    if value is None:
        return None
    return ActuatorState.ON if value == "on" else ActuatorState.OFF


def evaluate(args: argparse.Namespace) -> int:
    controller = ThresholdController(ThresholdConfig.from_settings(settings))
    snapshot = RootSnapshot(
        ts_utc=now_utc(),
        sensors=SensorSnapshot(
            temperature=args.temperature,
            humidity=args.humidity,
            soil_moisture=args.soil,
            light_intensity=args.light,
        ),
        actuators={a: _state(getattr(args, a.value)) for a in Actuator},
        mode=ControlMode.MANUAL if args.manual else ControlMode.AUTOMATIC,
    )

    if snapshot.mode is ControlMode.MANUAL:
        print("Manual mode: no commands")
        return 0

    decisions, commands = controller.plan(snapshot)
    for actuator, d in decisions.items():
        current = snapshot.actuators.get(actuator)
        print(
            f"{actuator.label:<11} {current.value if current else '?':>3} -> "
            f"{d.desired.value:<3}  {d.reason}"
        )
    print(f"{len(commands)} command(s)")
    return 0


async def _watch() -> None:
    # Imported here so `evaluate` works without touching the store or database
    from .main import automation, repo, store

    log = logging.getLogger("greenguardian.watch")
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass

    await repo.init()
    await store.start()
    await automation.start()
    log.info("Watching store (mode=%s); Ctrl+C to stop", settings.store_mode)
    try:
        await stop.wait()
    finally:
        await automation.stop()
        await store.stop()
        log.info("Shutting down")


def main(argv: Optional[Sequence[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="greenguardian", description="Greenhouse AI Mode controller")
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    ev = sub.add_parser("evaluate", help="Show what AI Mode would do for one snapshot")
    ev.add_argument("--temperature", type=float, help="Temperature in °C")
    ev.add_argument("--humidity", type=float, help="Relative humidity in %%")
    ev.add_argument("--soil", type=float, help="Soil moisture in %%")
    ev.add_argument("--light", type=float, help="Light intensity in lux")
    for a in Actuator:
        ev.add_argument(f"--{a.value}", choices=["on", "off"], help=f"Current {a.label} state")
    ev.add_argument("--manual", action="store_true", help="Evaluate with Manual mode")

    sub.add_parser("watch", help="Run automation against the configured store")

    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-5s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.command == "evaluate":
        return evaluate(args)

    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
