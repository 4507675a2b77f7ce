#!/usr/bin/env python3
"""
Show Clock on Panels

Runs a live 12-hour clock on the enabled panels, optionally with the
weekday and the current temperature stacked above it.
"""

import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from matrix_hopper.config import load_config
from matrix_hopper.core import build_controller, setup_logging
from matrix_hopper.errors import InvalidRequest
from matrix_hopper.sessions import ClockRequest


async def main():
    """Main entry point."""
    config = load_config()
    setup_logging(config.log_level)

    color = "white"
    duration = 60.0
    for i, arg in enumerate(sys.argv):
        if arg == "--color" and i + 1 < len(sys.argv):
            color = sys.argv[i + 1]
        if arg == "--duration" and i + 1 < len(sys.argv):
            duration = float(sys.argv[i + 1])

    request = ClockRequest(
        color=color,
        show_seconds="--seconds" in sys.argv,
        show_ampm="--no-ampm" not in sys.argv,
        show_date="--date" in sys.argv,
        show_weather="--weather" in sys.argv,
    )

    print("\n" + "=" * 50)
    print("   Matrix Hopper - Clock")
    print("=" * 50)

    if not config.get_enabled_panels():
        print("❌ No enabled panels found.")
        print("Run 'python cli/setup.py' to configure panels.")
        return

    controller = build_controller(config)
    try:
        results = await controller.render("all", request)
        for mac, success, message in results:
            panel = config.get_panel_by_mac(mac)
            name = panel.name if panel else mac
            print(f"  ✓ {name}" if success else f"  ❌ {name}: {message}")

        print(f"\nRunning for {duration:g} seconds (Ctrl+C to stop)...")
        await asyncio.sleep(duration)
    except InvalidRequest as e:
        print(f"❌ {e}")
    finally:
        controller.shutdown()


def print_usage():
    print("""
Matrix Hopper - Clock

Usage:
    python show_clock.py [options]

Options:
    --color <name>      Clock color (default: white)
    --seconds           Show seconds
    --no-ampm           Hide the AM/PM suffix
    --date              Show the weekday above the time
    --weather           Show the current temperature above the time
    --duration <sec>    How long to run (default: 60)
    --help              Show this help

Examples:
    python show_clock.py
    python show_clock.py --date --weather --color amber
""")


if __name__ == "__main__":
    if "--help" in sys.argv:
        print_usage()
    else:
        try:
            asyncio.run(main())
        except KeyboardInterrupt:
            print("\nStopped.")
