#!/usr/bin/env python3
"""
Send Text to Panels

Display text on LED panels in the dot-matrix bitmap font.
Text wider than a panel scrolls from right to left.
"""

import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from matrix_hopper.config import load_config
from matrix_hopper.core import build_controller, setup_logging
from matrix_hopper.errors import InvalidRequest
from matrix_hopper.sessions import TextRequest


def get_option(name: str, default: str) -> str:
    if name in sys.argv:
        idx = sys.argv.index(name)
        if idx + 1 < len(sys.argv):
            return sys.argv[idx + 1]
    return default


async def send_text(text: str, panel_name: str, alignment: str, color: str, duration: float):
    """Show text on one panel by name, or on all enabled panels."""
    config = load_config()

    if panel_name:
        panel = config.get_panel_by_name(panel_name)
        if not panel:
            print(f"❌ Panel '{panel_name}' not found.")
            return
        selection = [panel.mac]
    else:
        if not config.get_enabled_panels():
            print("❌ No enabled panels found.")
            print("Run 'python cli/setup.py' to configure panels.")
            return
        selection = "all"

    controller = build_controller(config)
    try:
        results = await controller.render(selection, TextRequest(text, alignment, color))
    except InvalidRequest as e:
        print(f"❌ {e}")
        controller.shutdown()
        return

    print("\nResults:")
    success_count = 0
    for mac, success, message in results:
        panel = config.get_panel_by_mac(mac)
        name = panel.name if panel else mac
        if success:
            print(f"  ✓ {name}")
            success_count += 1
        else:
            print(f"  ❌ {name}: {message}")

    print(f"\n{success_count}/{len(results)} panels updated.")

    if success_count:
        print(f"Showing for {duration:g} seconds (Ctrl+C to stop)...")
        try:
            await asyncio.sleep(duration)
        finally:
            controller.shutdown()
    else:
        controller.shutdown()


async def main():
    """Main entry point."""
    config = load_config()
    setup_logging(config.log_level)

    if len(sys.argv) < 2 or sys.argv[1].startswith("--"):
        text = input("\nEnter text to display: ").strip()
        if not text:
            print("No text entered.")
            return
    else:
        text = sys.argv[1]

    color = get_option("--color", "orange")
    alignment = get_option("--align", "center")
    panel_name = get_option("--panel", "")
    duration = float(get_option("--duration", "30"))

    print("\n" + "=" * 50)
    print("   Matrix Hopper - Send Text")
    print("=" * 50)
    print(f"\nText: '{text}'")
    print(f"Color: {color}")
    print(f"Alignment: {alignment}")

    await send_text(text, panel_name, alignment, color, duration)


def print_usage():
    print("""
Matrix Hopper - Send Text

Usage:
    python send_text.py [text] [options]

Options:
    --panel <name>      Send to specific panel (default: all enabled)
    --color <name>      Text color (orange, amber, green, red, blue, #rrggbb)
    --align <where>     top, center or bottom
    --duration <sec>    How long to keep the text running (default: 30)
    --help              Show this help

Without a text argument, asks for the text.

Examples:
    python send_text.py "HOP"
    python send_text.py "HELLO WORLD" --align top
    python send_text.py "OK" --panel simon --color green
""")


if __name__ == "__main__":
    if "--help" in sys.argv:
        print_usage()
    else:
        try:
            asyncio.run(main())
        except KeyboardInterrupt:
            print("\nStopped.")
