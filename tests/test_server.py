#!/usr/bin/env python3
"""
Test Web Server

Test the FastAPI control plane against in-memory panels.
"""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Add project root and src to path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from matrix_hopper.config import MatrixConfig, save_config
from matrix_hopper.errors import AssetLoadError
from matrix_hopper.graphics import to_png_bytes
from web import server

LEFT = "AA:BB:CC:DD:EE:01"
RIGHT = "AA:BB:CC:DD:EE:02"


@pytest.fixture
def client(tmp_path, monkeypatch):
    config = MatrixConfig(weather_enabled=False, max_fps=0, preview_dir=str(tmp_path / "previews"))
    config.add_panel(LEFT, "left", columns=32, rows=8).output = "memory"
    config.add_panel(RIGHT, "right", columns=64, rows=32).output = "memory"
    path = tmp_path / "matrix.json"
    save_config(config, path)

    monkeypatch.setattr(server, "CONFIG_FILE", path)
    server.LOG_BUFFER.clear()
    with TestClient(server.app) as test_client:
        yield test_client


def test_list_devices(client):
    """Test the device listing."""
    print("\n[1] Testing /api/devices...")

    response = client.get("/api/devices")
    assert response.status_code == 200
    devices = response.json()["devices"]
    assert [d["id"] for d in devices] == [LEFT, RIGHT]
    assert devices[0]["columns"] == 32 and devices[0]["rows"] == 8
    print(f"  ✓ {len(devices)} devices listed")


def test_display_text(client):
    """Test text requests and their error mapping."""
    print("\n[2] Testing /api/display/text...")

    response = client.post("/api/display/text", data={"text": "HI", "devices": LEFT, "color": "amber"})
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    modes = {d["id"]: d["mode"] for d in client.get("/api/devices").json()["devices"]}
    assert modes == {LEFT: "text", RIGHT: None}

    response = client.post("/api/display/text", data={"text": "HI", "devices": "CC:00"})
    assert response.status_code == 404

    response = client.post("/api/display/text", data={"text": "HI", "alignment": "sideways"})
    assert response.status_code == 400

    response = client.post("/api/display/text", data={"text": "HI", "color": "nope"})
    assert response.status_code == 400
    print("  ✓ Unknown device 404, bad options 400")


def test_display_image(client, monkeypatch):
    """Test image requests, fetch failures and refused local paths."""
    print("\n[3] Testing /api/display/image...")

    assets = {"http://example.com/red.png": to_png_bytes(Image.new('RGBA', (8, 8), (255, 0, 0, 255)))}

    def fetcher(url, timeout):
        if url not in assets:
            raise AssetLoadError(f"Failed to fetch {url}: 404")
        return assets[url]

    monkeypatch.setattr(server, "is_gif", lambda url: url.endswith(".gif"))
    for renderer in server.CONTROLLER.renderers.values():
        renderer.fetcher = fetcher

    response = client.post("/api/display/image", data={"url": "http://example.com/red.png", "devices": "all"})
    assert response.status_code == 200
    assert all(r["success"] for r in response.json()["results"])

    response = client.post("/api/display/image", data={"url": "http://example.com/missing.png"})
    assert response.status_code == 502

    response = client.post("/api/display/image", data={"url": "http://example.com/x.gif", "scale_mode": "crop"})
    assert response.status_code == 400
    print("  ✓ Fetch failures map to 502")

    for url in ("/etc/hostname", "file:///etc/hostname", "red.png"):
        response = client.post("/api/display/image", data={"url": url})
        assert response.status_code == 400, url
    print("  ✓ Local paths refused")


def test_clock_preview_and_clear(client):
    """Test clock, preview PNG and clear."""
    print("\n[4] Testing clock, preview and clear...")

    response = client.post("/api/display/clock", data={"devices": RIGHT, "show_date": "true"})
    assert response.status_code == 200

    response = client.get(f"/api/devices/{RIGHT}/preview?scale=2")
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content[:8] == b'\x89PNG\r\n\x1a\n'

    assert client.get("/api/devices/CC:00/preview").status_code == 404

    response = client.post("/api/display/clear", data={"devices": "all"})
    assert response.status_code == 200
    assert response.json()["devices"] == [LEFT, RIGHT]
    assert all(d["mode"] is None for d in client.get("/api/devices").json()["devices"])

    logs = client.get("/api/logs").json()["logs"]
    assert any("clock" in entry["message"] for entry in logs)
    print("  ✓ Preview is a PNG, clear blanks every panel")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
