#!/usr/bin/env python3
"""
Interactive Panel Setup

Registers panels one by one (MAC, name, geometry and output), shows each
panel's number on it so it can be identified, and saves the configuration.
"""

import asyncio
import re
import sys
from pathlib import Path
from typing import Optional

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from matrix_hopper.config import OUTPUTS, load_config, save_config
from matrix_hopper.core import MatrixController, setup_logging
from matrix_hopper.errors import MatrixError
from matrix_hopper.fonts import FontLoader
from matrix_hopper.sinks import create_sink

MAC_PATTERN = re.compile(r"^([0-9A-Fa-f]{2}:){5}[0-9A-Fa-f]{2}$")


def ask_geometry() -> tuple[int, int]:
    """Ask for columns x rows, e.g. 64x32."""
    while True:
        value = input("Geometry as COLUMNSxROWS [32x32]: ").strip().lower() or "32x32"
        try:
            columns, rows = (int(part) for part in value.split("x"))
        except ValueError:
            print("Please enter something like 32x32 or 64x32.")
            continue
        if columns > 0 and rows > 0:
            return columns, rows
        print("Columns and rows must be positive.")


async def identify_panel(panel, number: int, preview_dir: str, font_path: Optional[str] = None) -> bool:
    """Show the panel's number on it, using the configured font."""
    controller = MatrixController(FontLoader(font_path), max_fps=0)
    renderer = controller.add_device(create_sink(panel, preview_dir), panel.name)
    try:
        await renderer.render_text(str(number), color="orange")
        return True
    except MatrixError as e:
        print(f"❌ {e}")
        return False
    finally:
        controller.shutdown()


async def main():
    """Interactive panel setup."""
    setup_logging()

    print("\n" + "=" * 50)
    print("   Matrix Hopper - Interactive Setup")
    print("=" * 50)

    config = load_config()
    if config.panels:
        print(f"\nCurrently configured: {len(config.panels)} panel(s)")
        for p in sorted(config.panels.values(), key=lambda x: x.order):
            print(f"  {p.name} ({p.mac}) {p.columns}x{p.rows} -> {p.output}")

    print("\nEnter each panel's MAC address. Leave empty when done.\n")

    number = len(config.panels)
    while True:
        mac = input("MAC address: ").strip().upper()
        if not mac:
            break
        if not MAC_PATTERN.match(mac):
            print("⚠️  Expected a MAC like AA:BB:CC:DD:EE:FF")
            continue

        existing = config.get_panel_by_mac(mac)
        if existing:
            print(f"Current name: {existing.name}")
            update = input("Update this panel? (y/N): ").strip().lower()
            if update != 'y':
                print("Skipped.")
                continue

        while True:
            name = input("Name for this panel: ").strip()
            if not name:
                print("Please enter a name.")
                continue
            existing_name = config.get_panel_by_name(name)
            if existing_name and existing_name.mac != mac:
                print(f"⚠️  Name '{name}' already used for another panel.")
                continue
            break

        columns, rows = ask_geometry()
        output = input(f"Output ({'/'.join(OUTPUTS)}) [preview]: ").strip().lower() or "preview"
        if output not in OUTPUTS:
            print(f"⚠️  Unknown output '{output}', using preview.")
            output = "preview"

        number += 1
        panel = config.add_panel(mac, name, columns, rows)
        panel.output = output
        panel.order = number

        print(f"\nDisplaying '{number}' on {name}...")
        if await identify_panel(panel, number, config.preview_dir, config.font_path):
            print(f"✓ Saved as '{name}'\n")

    save_config(config)

    print("\n" + "=" * 50)
    print("   Setup Complete!")
    print("=" * 50)
    print(f"\nConfigured {len(config.panels)} panel(s)")

    print("\nYou can now use:")
    print("  python cli/send_image.py <url>")
    print("  python cli/send_text.py <text>")
    print("  python cli/show_clock.py")
    print("  python web/server.py")


if __name__ == "__main__":
    asyncio.run(main())
