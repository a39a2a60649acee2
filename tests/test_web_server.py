import json
from io import BytesIO

import pytest
from fastapi.testclient import TestClient

from anim2spritesheet.web.server import RecordRequest, SheetRequest, create_app

from conftest import make_frame


@pytest.fixture
def client(tmp_path):
    return TestClient(create_app(tmp_path / "artifacts"))


def _png(image):
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def test_sheet_request_defaults_and_bounds():
    req = SheetRequest.model_validate({"animation_name": "", "optimize": True})
    assert (req.columns, req.cell_width, req.cell_height) == (4, 256, 256)
    assert req.animation_name == "animation"
    assert req.optimize is True
    with pytest.raises(ValueError):
        SheetRequest.model_validate({"columns": 0})
    assert RecordRequest.model_validate({}).frame_count == 16


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_compose_endpoint_returns_descriptor(client, tmp_path):
    files = [
        ("frames", (f"f{i}.png", _png(make_frame((40, 40), box=(i, i, 20 + i, 30))), "image/png"))
        for i in range(3)
    ]
    settings = {"columns": 2, "cell_width": 40, "cell_height": 40, "optimize": True, "animation_name": "Wave Hi"}
    response = client.post("/api/compose", files=files, data={"settings": json.dumps(settings)})

    assert response.status_code == 200
    body = response.json()
    assert (body["width"], body["height"]) == (80, 80)
    assert body["descriptor"]["frames"] == 3
    assert body["descriptor"]["animationName"] == "Wave_Hi"
    assert body["descriptor"]["optimizationInfo"]["maintainsExactDimensions"] is True
    assert body["spritesheet_url"].endswith("Wave_Hi_spritesheet.png")
    assert client.get(body["manifest_url"]).json()["rows"] == 2

    gif = client.post(
        "/api/export-gif",
        json={"spritesheet": body["spritesheet_url"], "manifest": body["manifest_url"], "fps": 8},
    )
    assert gif.status_code == 200
    assert gif.json()["gif_url"].endswith(".gif")


def test_compose_rejects_bad_settings(client):
    files = [("frames", ("f.png", _png(make_frame((8, 8))), "image/png"))]
    assert client.post("/api/compose", files=files, data={"settings": "{nope"}).status_code == 400
    assert client.post("/api/compose", files=files, data={"settings": '{"columns": 0}'}).status_code == 422


def test_compose_rejects_non_image(client):
    files = [("frames", ("f.png", b"definitely not a png", "image/png"))]
    assert client.post("/api/compose", files=files).status_code == 400


def test_record_endpoint_uses_demo_scene(client):
    settings = {"frame_count": 4, "columns": 2, "cell_width": 128, "cell_height": 128, "animation_name": "Idle"}
    response = client.post("/api/record", data={"settings": json.dumps(settings)})
    assert response.status_code == 200
    descriptor = response.json()["descriptor"]
    assert (descriptor["frames"], descriptor["rows"], descriptor["animationName"]) == (4, 2, "Idle")


def test_record_endpoint_unknown_animation(client):
    response = client.post("/api/record", data={"settings": json.dumps({"animation_name": "Dance"})})
    assert response.status_code == 400


def test_sheet_request_caps_columns():
    with pytest.raises(ValueError):
        SheetRequest.model_validate({"columns": 10**7})


def test_compose_rejects_sheet_over_size_limit(client):
    files = [("frames", ("f.png", _png(make_frame((8, 8))), "image/png"))]
    settings = {"columns": 60, "cell_width": 4096, "cell_height": 4096}
    response = client.post("/api/compose", files=files, data={"settings": json.dumps(settings)})
    assert response.status_code == 400
    assert "exceeds" in response.json()["detail"]


def test_export_gif_rejects_incomplete_manifest(client, tmp_path):
    artifacts = tmp_path / "artifacts"
    make_frame((16, 16)).save(artifacts / "sheet.png")
    (artifacts / "sheet.json").write_text(json.dumps({"frames": 1}), encoding="utf-8")
    response = client.post("/api/export-gif", json={"spritesheet": "sheet.png", "manifest": "sheet.json"})
    assert response.status_code == 400
    assert "missing keys" in response.json()["detail"]
