import base64
import json

import pytest

from viewer import main as viewer_main
from viewer.main import ViewerWorker


@pytest.fixture
def viewer(tmp_path) -> ViewerWorker:
    return ViewerWorker(url="ws://relay.invalid/ws", output_dir=str(tmp_path / "frames"))


def test_inline_frame_written_to_disk(viewer):
    frame = b"\xff\xd8jpeg\xff\xd9"

    viewer.handle(json.dumps({"type": "image", "data": base64.b64encode(frame).decode()}))
    viewer.handle(json.dumps({"type": "image", "data": base64.b64encode(b"next").decode()}))

    assert viewer.latest_frame_path.read_bytes() == b"next"
    assert viewer.stats["frames"] == 2
    assert viewer.stats["bytes"] == len(frame) + 4


def test_reference_frame_recorded(viewer):
    viewer.handle('{"type": "image", "url": "/images/latest.jpg?v=7"}')

    assert viewer.last_reference == "/images/latest.jpg?v=7"
    assert viewer.stats["references"] == 1
    assert not viewer.latest_frame_path.exists()


def test_relay_error_counted(viewer):
    viewer.handle('{"type": "error", "message": "unknown client type"}')

    assert viewer.stats["relay_errors"] == 1


def test_bad_image_data_raises(viewer):
    with pytest.raises(ValueError):
        viewer.handle('{"type": "image", "data": "***not base64***"}')
    assert viewer.stats["frames"] == 0


def test_other_messages_ignored(viewer):
    viewer.handle("[1, 2, 3]")
    viewer.handle('{"type": "status"}')

    assert viewer.stats["frames"] == 0
    assert viewer.stats["relay_errors"] == 0


@pytest.mark.asyncio
async def test_reconnect_backoff_doubles_and_caps(viewer, monkeypatch):
    delays = []

    async def refused():
        raise ConnectionRefusedError("relay down")

    async def fake_sleep(seconds):
        delays.append(seconds)
        if len(delays) == 8:
            viewer._running = False

    monkeypatch.setattr(viewer, "_stream", refused)
    monkeypatch.setattr(viewer_main.asyncio, "sleep", fake_sleep)
    viewer._running = True

    await viewer._connect_loop()

    assert delays == [1, 2, 4, 8, 16, 32, 60, 60]
    assert viewer.stats["errors"] == 8
    assert viewer.stats["status"].startswith("disconnected")
