#!/usr/bin/env python3
"""
Matrix Hopper - Web Server

A minimalist FastAPI control plane for the render engine: list panels,
start text, image, GIF and clock sessions, and look at live previews.

Run with: python web/server.py
Or: uvicorn web.server:app --reload
"""

import asyncio
import os
import sys
from collections import deque
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Form, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
import uvicorn

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from matrix_hopper.config import load_config
from matrix_hopper.core import MatrixController, build_controller, setup_logging
from matrix_hopper.errors import InvalidRequest, UnknownDeviceError
from matrix_hopper.graphics import render_led_preview, to_png_bytes
from matrix_hopper.sessions import ClockRequest, RenderRequest, TextRequest, media_request
from matrix_hopper.sources import is_gif, is_remote_url

# =============================================================================
# Configuration
# =============================================================================

CONFIG_FILE = Path(os.environ.get("MATRIX_CONFIG", "matrix.json"))

# Live log buffer
LOG_BUFFER = deque(maxlen=100)

# Set by the lifespan handler
CONTROLLER: Optional[MatrixController] = None


def add_log(message: str, level: str = "info"):
    """Add a message to the log buffer."""
    timestamp = datetime.now().strftime("%H:%M:%S")
    LOG_BUFFER.append({
        "time": timestamp,
        "level": level,
        "message": message
    })


def get_controller() -> MatrixController:
    if CONTROLLER is None:
        raise HTTPException(503, "Controller not running")
    return CONTROLLER


# =============================================================================
# FastAPI App
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    global CONTROLLER
    config = load_config(CONFIG_FILE)
    CONTROLLER = build_controller(config)
    add_log(f"Controller started with {len(CONTROLLER.renderers)} panel(s)", "info")
    try:
        yield
    finally:
        CONTROLLER.shutdown()
        CONTROLLER = None


app = FastAPI(
    title="Matrix Hopper",
    description="LED Matrix Render Engine",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Device Endpoints
# =============================================================================

@app.get("/api/devices")
async def list_devices():
    """List all connected panels and what they are showing."""
    return {"devices": get_controller().devices()}


@app.get("/api/devices/{device_id}/preview")
async def device_preview(device_id: str, scale: int = 4):
    """LED-style PNG of the panel's current canvas."""
    try:
        renderer = get_controller().get_renderer(device_id)
    except UnknownDeviceError as e:
        raise HTTPException(404, str(e))

    scale = max(1, min(scale, 16))
    preview = render_led_preview(renderer.canvas.snapshot(), scale=scale)
    return Response(content=to_png_bytes(preview), media_type="image/png")


# =============================================================================
# Display Endpoints
# =============================================================================

async def start_render(devices: str, request: RenderRequest, label: str) -> dict:
    """Run a render request and turn the per-device results into a response."""
    controller = get_controller()
    try:
        results = await controller.render(devices, request)
    except UnknownDeviceError as e:
        add_log(f"✗ {label}: {e}", "error")
        raise HTTPException(404, str(e))
    except InvalidRequest as e:
        add_log(f"✗ {label}: {e}", "error")
        raise HTTPException(400, str(e))

    for device_id, success, message in results:
        if success:
            add_log(f"✓ {device_id}: {label}", "success")
        else:
            add_log(f"✗ {device_id}: {message}", "error")

    succeeded = sum(1 for _, success, _ in results if success)
    if succeeded == 0:
        raise HTTPException(502, results[0][2])

    return {
        "status": "ok" if succeeded == len(results) else "partial",
        "results": [
            {"device": device_id, "success": success, "message": message}
            for device_id, success, message in results
        ],
    }


@app.post("/api/display/text")
async def display_text(
    text: str = Form(...),
    devices: str = Form("all"),
    alignment: str = Form("center"),
    color: str = Form("white"),
):
    """Show (scrolling) text on the selected panels."""
    request = TextRequest(text=text, alignment=alignment, color=color)
    return await start_render(devices, request, f"text '{text}'")


@app.post("/api/display/image")
async def display_image(
    url: str = Form(...),
    devices: str = Form("all"),
    fill_color: Optional[str] = Form(None),
    scale_mode: str = Form("zoom"),
):
    """Show an image or animated GIF from a URL; GIFs are detected automatically."""
    if not is_remote_url(url):
        raise HTTPException(400, "Only http and https URLs are accepted")
    gif = await asyncio.to_thread(is_gif, url)
    try:
        request = media_request(url, gif, fill_color or None, scale_mode)
    except InvalidRequest as e:
        raise HTTPException(400, str(e))
    return await start_render(devices, request, f"{'gif' if gif else 'image'} {url}")


@app.post("/api/display/clock")
async def display_clock(
    devices: str = Form("all"),
    color: str = Form("white"),
    show_seconds: bool = Form(False),
    show_ampm: bool = Form(True),
    show_date: bool = Form(False),
    show_weather: bool = Form(False),
):
    """Show a live clock on the selected panels."""
    request = ClockRequest(
        color=color,
        show_seconds=show_seconds,
        show_ampm=show_ampm,
        show_date=show_date,
        show_weather=show_weather,
    )
    return await start_render(devices, request, "clock")


@app.post("/api/display/clear")
async def display_clear(devices: str = Form("all")):
    """Blank the selected panels."""
    try:
        cleared = get_controller().clear(devices)
    except UnknownDeviceError as e:
        raise HTTPException(404, str(e))
    except InvalidRequest as e:
        raise HTTPException(400, str(e))

    add_log(f"Cleared {len(cleared)} panel(s)", "info")
    return {"status": "ok", "devices": cleared}


# =============================================================================
# Log Endpoint
# =============================================================================

@app.get("/api/logs")
async def get_logs(since: int = 0):
    """Get recent log entries."""
    return {"logs": list(LOG_BUFFER)[since:]}


# =============================================================================
# Entry Point
# =============================================================================

def main():
    """Run the web server."""
    import argparse

    config = load_config(CONFIG_FILE)

    parser = argparse.ArgumentParser(description="Matrix Hopper Web Server")
    parser.add_argument("--host", default=config.server_host, help="Host to bind to")
    parser.add_argument("--port", type=int, default=config.server_port, help="Port to listen on")
    parser.add_argument("--reload", action="store_true", help="Auto-reload on changes")
    args = parser.parse_args()

    setup_logging(config.log_level)

    print("\n" + "=" * 50)
    print("   Matrix Hopper - Web Interface")
    print("=" * 50)
    print(f"\n   URL: http://localhost:{args.port}")
    print(f"   Network: http://{args.host}:{args.port}")
    print("\n   Press Ctrl+C to stop\n")

    uvicorn.run(
        "web.server:app" if args.reload else app,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info"
    )


if __name__ == "__main__":
    main()
