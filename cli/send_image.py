#!/usr/bin/env python3
"""
Send Image to Panels

Show an image or animated GIF on one or more LED panels.
The source can be an http(s) URL or a local file.
"""

import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from matrix_hopper.config import load_config
from matrix_hopper.core import build_controller, setup_logging
from matrix_hopper.errors import InvalidRequest
from matrix_hopper.sessions import media_request
from matrix_hopper.sources import is_gif


def get_option(name: str, default):
    if name in sys.argv:
        idx = sys.argv.index(name)
        if idx + 1 < len(sys.argv):
            return sys.argv[idx + 1]
    return default


async def send_image(url: str, panel_name: str, fill_color, scale_mode: str, duration: float):
    """Show an image on one panel by name, or on all enabled panels."""
    config = load_config()

    if panel_name:
        panel = config.get_panel_by_name(panel_name)
        if not panel:
            print(f"❌ Panel '{panel_name}' not found.")
            print("\nAvailable panels:")
            for p in config.panels.values():
                print(f"  • {p.name} ({p.mac})")
            return
        selection = [panel.mac]
    else:
        if not config.get_enabled_panels():
            print("❌ No enabled panels found.")
            print("Run 'python cli/setup.py' to configure panels.")
            return
        selection = "all"

    gif = await asyncio.to_thread(is_gif, url)
    print(f"Type: {'animated GIF' if gif else 'still image'}")

    controller = build_controller(config)
    try:
        request = media_request(url, gif, fill_color, scale_mode)
        results = await controller.render(selection, request)
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

    # Still images need no draw loop; GIFs keep playing until the duration ends
    if success_count and gif:
        print(f"Playing for {duration:g} seconds (Ctrl+C to stop)...")
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
        print_usage()
        return

    url = sys.argv[1]
    if "://" not in url and not Path(url).exists():
        print(f"❌ Image not found: {url}")
        return

    print("\n" + "=" * 50)
    print("   Matrix Hopper - Send Image")
    print("=" * 50)
    print(f"\nImage: {url}")

    await send_image(
        url,
        get_option("--panel", ""),
        get_option("--fill", None),
        get_option("--scale", "zoom"),
        float(get_option("--duration", "30")),
    )


def print_usage():
    print("""
Matrix Hopper - Send Image

Usage:
    python send_image.py <url-or-file> [options]

Options:
    --panel <name>      Send to specific panel by name (default: all enabled)
    --fill <color>      Background color behind transparent pixels
    --scale <mode>      GIF scaling: zoom (cover) or fit (stretch)
    --duration <sec>    How long to keep a GIF playing (default: 30)
    --help              Show this help

Examples:
    python send_image.py https://example.com/logo.png
    python send_image.py fire.gif --panel simon --scale fit
    python send_image.py icon.png --fill navy
""")


if __name__ == "__main__":
    if "--help" in sys.argv:
        print_usage()
    else:
        try:
            asyncio.run(main())
        except KeyboardInterrupt:
            print("\nStopped.")
