#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Compass pipeline demo

Runs the whole pipeline against the simulated sensor platform:
SimulatedSensorPlatform -> SensorAdapter -> EventBus -> CompassOrchestrator

Modes:
- replay (default): deterministic run on a ManualDispatcher with a virtual
  clock, as fast as the CPU allows
- realtime (--realtime): platform thread plus ThreadedDispatcher, wall clock

Usage:
    python -m compass.main --seconds 30
    python -m compass.main --realtime --deny
    compass-demo --last-calibration-days 45 --calibrate
"""

import argparse
import signal
import time
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import List, Optional

from compass.core.events.dispatcher import Dispatcher, ManualDispatcher, ThreadedDispatcher
from compass.core.events.event_bus import EventBus
from compass.core.models import CalibrationState, PermissionState
from compass.core.orchestrator import CompassOrchestrator
from compass.core.sensors.mock_platform import SimulatedSensorPlatform
from compass.core.sensors.sensor_adapter import SensorAdapter
from compass.core.services.calibration_store import (
    CalibrationStore,
    InMemoryCalibrationStore,
    JsonCalibrationStore,
)
from compass.core.services.haptic_service import LoggingHapticService
from compass.core.services.settings_service import SettingsService
from compass.core.state.calibration_state_machine import CalibrationStateMachine
from compass.core.state.permission_state_machine import PermissionStateMachine
from compass.core.telemetry.loggers.compass_logger import get_compass_logger
from compass.utils.config import Config
from compass.utils.config_sections import load_simulation_config


class ShutdownRequest:
    """
    Ctrl+C or SIGTERM ends the session loop instead of killing the process,
    so the runner still stops the sensor stream and drains the dispatcher.
    """

    def __init__(self, signals=(signal.SIGINT, signal.SIGTERM)):
        self.should_stop = False
        self.reason: Optional[str] = None
        self._previous = {}
        for sig in signals:
            self._previous[sig] = signal.signal(sig, self._signal_handler)

    def _signal_handler(self, sig, frame):
        name = signal.Signals(sig).name
        if not self.should_stop:
            print(f"\n[INFO] {name} received, stopping compass session...")
        self.should_stop = True
        self.reason = name

    def restore(self) -> None:
        """Put back the handlers that were installed before the session."""
        for sig, handler in self._previous.items():
            if handler is not None:
                signal.signal(sig, handler)
        self._previous.clear()


def build_pipeline(
    platform: SimulatedSensorPlatform,
    dispatcher: Dispatcher,
    store: CalibrationStore,
    haptics_enabled: bool = True,
) -> SimpleNamespace:
    """Wire every component around ``platform`` and ``dispatcher``."""
    bus = EventBus()
    permission_machine = PermissionStateMachine()
    calibration_machine = CalibrationStateMachine(store=store, clock=dispatcher.now)
    settings = SettingsService(haptic_enabled=haptics_enabled)
    haptics = LoggingHapticService()

    adapter = SensorAdapter(platform, permission_machine, calibration_machine, bus, dispatcher)
    orchestrator = CompassOrchestrator(
        adapter,
        permission_machine,
        calibration_machine,
        settings,
        haptics,
        bus,
        dispatcher,
    )
    return SimpleNamespace(
        bus=bus,
        permission_machine=permission_machine,
        calibration_machine=calibration_machine,
        settings=settings,
        haptics=haptics,
        adapter=adapter,
        orchestrator=orchestrator,
    )


def make_store(args, now: float) -> CalibrationStore:
    if args.store:
        return JsonCalibrationStore(args.store)
    if args.last_calibration_days is None:
        return InMemoryCalibrationStore()
    last = datetime.fromtimestamp(now, tz=timezone.utc) - timedelta(days=args.last_calibration_days)
    return InMemoryCalibrationStore(last_calibration=last)


def print_status(orchestrator: CompassOrchestrator, elapsed: float) -> None:
    status = orchestrator.get_status()
    print(
        f"[INFO] t={elapsed:5.1f}s  {status['heading']:>5} {status['cardinal']:<3} "
        f"accuracy={status['accuracy']:<7} calibration={status['calibration']:<11} "
        f"permission={status['permission']}"
    )
    if orchestrator.snapshot.show_location_detail:
        print(f"[INFO]            {status['coordinates']}  {status['altitude']}")
    if status["permission_needed"]:
        print("[WARN]            Location access needed: enable it in system settings")


def calibration_schedule(args) -> List[float]:
    # Start at a third of the run, stop a few seconds later
    if not args.calibrate:
        return []
    start = args.seconds / 3.0
    return [start, min(args.seconds, start + 3.0)]


def run_replay(args, shutdown: ShutdownRequest) -> SimpleNamespace:
    dispatcher = ManualDispatcher(start_time=time.time())
    config = load_simulation_config()
    config.rate_hz = args.rate
    initial = PermissionState.DENIED if args.deny else PermissionState.UNDETERMINED
    platform = SimulatedSensorPlatform(config=config, initial_status=initial, clock=dispatcher.now)
    pipeline = build_pipeline(platform, dispatcher, make_store(args, dispatcher.now()), not args.no_haptics)
    orchestrator = pipeline.orchestrator

    orchestrator.begin_session()
    orchestrator.toggle_location_detail()
    schedule = calibration_schedule(args)

    dt = 1.0 / config.rate_hz
    steps = int(round(args.seconds * config.rate_hz))
    next_print = 0.0
    for step in range(1, steps + 1):
        if shutdown.should_stop:
            break
        platform.step(dt)
        dispatcher.advance(dt)
        elapsed = step * dt

        if schedule and elapsed >= schedule[0]:
            schedule.pop(0)
            if orchestrator.snapshot.calibration_state == CalibrationState.IN_PROGRESS:
                orchestrator.stop_calibration()
                print("[INFO] Calibration completed")
            else:
                orchestrator.start_calibration()
                print("[INFO] Calibration started")

        if elapsed >= next_print:
            print_status(orchestrator, elapsed)
            next_print += 1.0

    orchestrator.stop()
    orchestrator.close()
    return pipeline


def run_realtime(args, shutdown: ShutdownRequest) -> SimpleNamespace:
    dispatcher = ThreadedDispatcher()
    config = load_simulation_config()
    config.rate_hz = args.rate
    initial = PermissionState.DENIED if args.deny else PermissionState.UNDETERMINED
    platform = SimulatedSensorPlatform(config=config, initial_status=initial)
    pipeline = build_pipeline(platform, dispatcher, make_store(args, time.time()), not args.no_haptics)
    orchestrator = pipeline.orchestrator

    dispatcher.start()
    try:
        # Intents run on the consumer context, never on this thread
        dispatcher.post(orchestrator.begin_session)
        dispatcher.post(orchestrator.toggle_location_detail)
        platform.start_stream()

        schedule = calibration_schedule(args)
        start = time.time()
        while not shutdown.should_stop:
            elapsed = time.time() - start
            if elapsed >= args.seconds:
                break
            if schedule and elapsed >= schedule[0]:
                intent = orchestrator.start_calibration if len(schedule) == 2 else orchestrator.stop_calibration
                schedule.pop(0)
                dispatcher.post(intent)
            print_status(orchestrator, elapsed)
            time.sleep(1.0)
    finally:
        platform.stop_stream()
        dispatcher.post(orchestrator.stop)
        dispatcher.post(orchestrator.close)
        dispatcher.stop()
    return pipeline


def print_summary(pipeline: SimpleNamespace) -> None:
    stats = pipeline.adapter.get_stats()
    status = pipeline.orchestrator.get_status()
    print("\n" + "=" * 60)
    print("COMPASS SESSION SUMMARY")
    print("=" * 60)
    print(f"  Headings published: {stats['headings_published']}")
    print(f"  Positions published: {stats['positions_published']}")
    print(f"  Readings dropped: {stats['readings_dropped']}")
    print(f"  Failures seen: {stats['failures_seen']}")
    print(f"  Cardinal crossings: {status['crossings_detected']}")
    print(f"  Haptic pulses: {dict(pipeline.haptics.counts)}")
    print(f"  Final calibration state: {status['calibration']}")
    print("=" * 60)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Compass pipeline demo on a simulated sensor platform")
    ap.add_argument("--seconds", type=float, default=20.0, help="Duration of the run")
    ap.add_argument("--rate", type=float, default=Config.SIM_HEADING_RATE_HZ, help="Heading samples per second")
    ap.add_argument("--deny", action="store_true", help="Start with location access denied")
    ap.add_argument("--no-haptics", action="store_true", help="Disable haptic feedback")
    ap.add_argument(
        "--last-calibration-days",
        type=float,
        default=None,
        help="Days since the last calibration (default: never calibrated)",
    )
    ap.add_argument("--store", default=None, help="JSON calibration store path (default: in memory)")
    ap.add_argument("--calibrate", action="store_true", help="Run a calibration during the session")
    ap.add_argument("--log-dir", default=None, help="Session log directory")
    ap.add_argument("--console-level", default=Config.LOG_CONSOLE_LEVEL, help="Console log level")
    ap.add_argument("--realtime", action="store_true", help="Run on the wall clock with background threads")
    return ap.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.rate <= 0:
        print("[ERROR] --rate must be positive")
        return 2

    print("=" * 60)
    print("Compass Pipeline - simulated sensor platform")
    print("=" * 60)

    compass_logger = get_compass_logger(session_dir=args.log_dir, console_level=args.console_level)
    print(f"[INFO] Logs: {compass_logger.log_dir}")
    shutdown = ShutdownRequest()

    try:
        runner = run_realtime if args.realtime else run_replay
        pipeline = runner(args, shutdown)
        print_summary(pipeline)
        if shutdown.reason:
            print(f"[INFO] Session ended early by {shutdown.reason}")
    finally:
        shutdown.restore()
        compass_logger.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
