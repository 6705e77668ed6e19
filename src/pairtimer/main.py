#!/usr/bin/env python3

import argparse
import logging
import os
import shlex
import signal
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from pairtimer.config import AppConfig
from pairtimer.models.segment_log import SegmentLogRecord
from pairtimer.services.countdown_service import CountdownService
from pairtimer.services.notifier import ConsoleNotifier
from pairtimer.services.redis_service import RedisConfig, RedisService
from pairtimer.services.timer_controller import PairTimerController
from pairtimer.utils.preferences import PreferenceStore

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)

HELP_TEXT = """Commands:
  id <NAME>              set your user ID
  partner <NAME>         link with your partner
  disconnect             unlink your partner
  logout                 forget both IDs
  start | pause | stop   control the shared timer
  mode focus|break       switch mode
  settings <FOCUS> <BREAK>  durations in minutes
  status                 show the timer
  log                    show the shared journal
  quit                   exit"""


def format_clock(seconds: int) -> str:
    minutes, secs = divmod(max(0, seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


def format_log_entry(record: SegmentLogRecord) -> str:
    when = record.recorded_at.astimezone().strftime("%b %d, %Y at %I:%M %p")
    return f"{when}  {record.segmentKind.value:<5}  {record.durationMinutes} min"


class PairTimerApp:

    def __init__(self, config: AppConfig, redis_config: RedisConfig):
        self.config = config
        self.redis_config = redis_config
        self.redis_service: Optional[RedisService] = None
        self.controller: Optional[PairTimerController] = None
        self.countdown: Optional[CountdownService] = None
        self.running = False

    def start(self):
        if self.running:
            return

        self.redis_service = RedisService(config=self.redis_config)
        self.controller = PairTimerController(
            self.redis_service,
            PreferenceStore(self.config.preferences_dir),
            ConsoleNotifier(),
            elect_completion_writer=self.config.elect_completion_writer,
            background=True,
            listen_interval=self.config.listen_interval,
        )
        self.controller.restore()
        self.countdown = CountdownService(
            on_tick=self.controller.tick,
            interval=self.config.tick_interval,
            auto_start=True,
        )
        self.running = True
        logger.info(
            f"PairTimer connected to Redis at {self.redis_config.host}:{self.redis_config.port}")

    def stop(self):
        if not self.running:
            return

        self.running = False

        if self.countdown:
            self.countdown.stop()

        if self.controller:
            self.controller.close()

        if self.redis_service:
            self.redis_service.close()

        print("PairTimer stopped")

    def status_line(self) -> str:
        controller = self.controller
        if controller.is_paired:
            pairing = f"paired as {controller.pairing_key}"
        else:
            pairing = f"not paired (you: {controller.self_id or '-'}, partner: {controller.partner_id or '-'})"
        return (
            f"{controller.active_mode.label} {format_clock(controller.remaining_seconds)} "
            f"[{controller.run_state.value}] {pairing}"
        )

    def handle_command(self, line: str) -> bool:
        try:
            parts = shlex.split(line)
        except ValueError as e:
            print(f"Could not parse command: {e}")
            return True
        if not parts:
            return True

        command, args = parts[0].lower(), parts[1:]
        controller = self.controller

        if command in ("quit", "exit"):
            return False
        if command == "help":
            print(HELP_TEXT)
        elif command == "id" and len(args) == 1:
            controller.set_self_id(args[0])
        elif command == "partner" and len(args) == 1:
            controller.set_partner_id(args[0])
        elif command == "disconnect":
            controller.disconnect_partner()
        elif command == "logout":
            controller.logout()
        elif command == "start":
            controller.start()
        elif command == "pause":
            controller.pause()
        elif command == "stop":
            controller.stop()
        elif command == "mode" and len(args) == 1:
            controller.switch_mode(args[0].lower())
        elif command == "settings" and len(args) == 2:
            controller.apply_settings(args[0], args[1])
        elif command == "status":
            print(self.status_line())
        elif command == "log":
            entries = controller.log_entries
            if not entries:
                print("No sessions logged yet.")
            for record in entries:
                print(format_log_entry(record))
        else:
            print(f"Unknown command: {line.strip()!r} (try 'help')")
        return True

    def run_forever(self):
        self.start()
        print(self.status_line())
        print("Type 'help' for commands")

        try:
            for line in sys.stdin:
                if not self.handle_command(line):
                    break
        except KeyboardInterrupt:
            print("\nStopping...")
        finally:
            self.stop()


def positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not a number") from None
    if not parsed > 0:
        raise argparse.ArgumentTypeError(f"{value!r} must be greater than 0")
    return parsed


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="PairTimer - focus/break timer shared with your partner"
    )

    parser.add_argument(
        "--redis-uri",
        type=str,
        default=os.getenv("REDIS_URI"),
        help="Redis URI, e.g. redis://localhost:6379/0 (default: REDIS_* environment)"
    )

    parser.add_argument(
        "--prefs-dir",
        type=Path,
        default=None,
        help="Directory for device-local preferences (default: ~/.pairtimer)"
    )

    parser.add_argument(
        "-t", "--tick-interval",
        type=positive_float,
        default=None,
        help="Seconds between countdown ticks (default: 1.0)"
    )

    parser.add_argument(
        "--elect-completion-writer",
        action="store_true",
        help="Only the partner whose ID sorts first logs and syncs finished segments"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose debug logging"
    )

    return parser.parse_args(argv)


def main():
    args = parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = AppConfig.from_env()
    if args.prefs_dir:
        config = replace(config, preferences_dir=args.prefs_dir)
    if args.tick_interval:
        config = replace(config, tick_interval=args.tick_interval)
    if args.elect_completion_writer:
        config = replace(config, elect_completion_writer=True)

    try:
        redis_config = RedisConfig.from_uri(args.redis_uri) if args.redis_uri else RedisConfig.from_env()
    except ValueError as e:
        logger.error(f"Invalid Redis configuration: {e}")
        sys.exit(2)

    app = PairTimerApp(config, redis_config)

    def signal_handler(signum, frame):
        app.stop()
        sys.exit(0)

    signal.signal(signal.SIGTERM, signal_handler)

    try:
        app.run_forever()
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
