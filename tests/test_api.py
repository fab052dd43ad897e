import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.main import create_app
from core import state

TRIANGLE = [[40.0, 40.0], [60.0, 40.0], [50.0, 60.0]]


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setenv("ENABLE_CAMERA", "false")
    with TestClient(create_app()) as c:
        yield c


@pytest.fixture
def payload(make_face):
    def build(nx=0.0, ny=0.0):
        return [{"x": x, "y": y, "z": z} for x, y, z in make_face(nx, ny)]

    return build


def test_health(client):
    body = client.get("/health").json()
    assert body["ok"] is True
    assert body["camera_enabled"] is False
    assert body["has_snapshot"] is False


def test_get_default_template(client):
    body = client.get("/templates/XX").json()
    assert body["morphology"] == "XX"
    assert "nasal" in body["zones"]
    assert len(body["mask"]) == 24


def test_unknown_morphology_rejected(client):
    assert client.get("/templates/ZZ").status_code == 422


def test_put_degenerate_template_rejected(client):
    body = client.get("/templates/XX").json()
    body["zones"]["nasal"] = [[1.0, 1.0], [2.0, 2.0]]
    res = client.put("/templates/XX", json=body)
    assert res.status_code == 422
    assert res.json()["target"] == "nasal"


def test_draft_editing_then_save(client, tmp_path):
    for point in ([10.0, 10.0], [20.0, 10.0], [15.0, 20.0]):
        res = client.post(
            "/templates/XY/points", json={"action": "add", "target": "scar", "point": point}
        )
        assert res.status_code == 200
    assert len(res.json()["zones"]["scar"]) == 3
    assert "scar" not in client.get("/templates/XY").json()["zones"]
    assert client.post("/templates/XY/save").status_code == 200
    assert "scar" in client.get("/templates/XY").json()["zones"]
    assert (tmp_path / "templates" / "template_xy.json").exists()


def test_point_edit_needs_index(client):
    res = client.post("/templates/XX/points", json={"action": "move", "target": "nasal", "point": [1, 1]})
    assert res.status_code == 422


def test_compute_with_landmarks(client, payload):
    res = client.post(
        "/zones/compute",
        json={"morphology": "XX", "session_id": "s", "photo_id": "p", "landmarks": payload()},
    )
    assert res.status_code == 200
    zones = res.json()
    assert len(zones) == 11
    assert {z["source"] for z in zones} == {"adapted"}
    # the detection is cached for the photo
    cached = client.post("/zones/compute", json={"morphology": "XX", "session_id": "s", "photo_id": "p"})
    assert {z["source"] for z in cached.json()} == {"adapted"}


def test_compute_without_any_landmarks_uses_template(client):
    zones = client.post("/zones/compute", json={"morphology": "XY", "pose": "profile_right"}).json()
    assert {z["source"] for z in zones} == {"template"}
    assert not any(z["zone_id"].endswith("_left") for z in zones)


def test_compute_with_short_detection_is_unavailable(client, payload):
    res = client.post("/zones/compute", json={"morphology": "XX", "landmarks": payload()[:10]})
    assert res.status_code == 409
    assert res.json()["status"] == "detection_unavailable"


def test_override_lifecycle(client):
    url = "/overrides/s/p/nasal"
    assert client.get(url).status_code == 404
    assert client.put(url, json={"points": TRIANGLE}).status_code == 200
    zones = client.post("/zones/compute", json={"morphology": "XX", "session_id": "s", "photo_id": "p"}).json()
    nasal = next(z for z in zones if z["zone_id"] == "nasal")
    assert nasal["source"] == "override"
    assert client.get("/overrides/s/p").json() == {"nasal": TRIANGLE}
    assert client.delete(url).json() == {"removed": True}
    assert client.get(url).status_code == 404


def test_degenerate_override_rejected(client):
    res = client.put("/overrides/s/p/nasal", json={"points": TRIANGLE[:2]})
    assert res.status_code == 422


def test_auto_fit_without_snapshot_is_unavailable(client):
    res = client.post("/mask-fits/auto", json={"session_id": "s", "photo_id": "p", "morphology": "XX"})
    assert res.status_code == 409
    assert res.json()["status"] == "detection_unavailable"


def test_auto_fit_save_and_adjust(client, payload):
    res = client.post(
        "/mask-fits/auto",
        json={"session_id": "s", "photo_id": "p", "morphology": "XX", "landmarks": payload(), "save": True},
    )
    assert res.status_code == 200
    fit = res.json()
    assert fit["model"] == "XX"
    assert fit["scale"] > 0
    stored = client.get("/mask-fits/s/p/XX").json()
    assert stored["scale"] == pytest.approx(fit["scale"])
    adjusted = client.post("/mask-fits/s/p/XX/adjust", json={"dx": 1.5, "scale": 0.9}).json()
    assert adjusted["offset_x"] == pytest.approx(fit["offset_x"] + 1.5)
    assert adjusted["scale"] == 0.9


def test_put_mask_fit(client):
    res = client.put(
        "/mask-fits",
        json={"session_id": "s", "photo_id": "p", "model": "XY", "scale": 0.8, "offset_x": 1, "offset_y": 2},
    )
    assert res.status_code == 200
    assert client.get("/mask-fits/s/p/XY").json()["offset_y"] == 2
    assert client.get("/mask-fits/s/p/XX").status_code == 404


def test_calibration_flow(client, payload):
    assert client.post("/calibration/capture", json={}).status_code == 409
    offsets = [(0, 0), (-0.2, 0), (0.2, 0), (0, -0.2), (0, 0.2)]
    for i, (nx, ny) in enumerate(offsets):
        res = client.post("/calibration/frame", json={"landmarks": payload(nx, ny), "now": float(i)})
        assert res.json()["status"] == "ok"
    body = client.get("/calibration").json()
    assert body["calibration"]["complete"] is True
    res = client.post("/calibration/capture", json={})
    assert res.status_code == 200
    assert res.json()["captured"] == "face"
    assert res.json()["current_step"] == "three_quarter_left"
    events = client.get("/events", params={"type": "calibration"}).json()
    assert {e["direction"] for e in events} == {"center", "left", "right", "up", "down"}


def test_calibration_frame_without_face(client):
    res = client.post("/calibration/frame", json={"landmarks": None, "now": 0.0})
    assert res.json()["status"] == "detection_unavailable"


def test_selection_change_resets_calibration(client, payload):
    client.post("/calibration/reset", json={"selection": "patient-1"})
    client.post("/calibration/frame", json={"landmarks": payload(), "now": 0.0})
    assert client.get("/calibration").json()["calibration"]["center"] is True
    body = client.post("/calibration/reset", json={"selection": "patient-2"}).json()
    assert body["calibration"]["center"] is False
    assert body["selection"] == "patient-2"


def test_ws_rejects_unknown_origin(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws", headers={"origin": "http://evil.example"}) as ws:
            ws.receive_text()


def test_compute_survives_unwritable_landmark_cache(client, payload, tmp_path):
    blocked = tmp_path / "blocked"
    blocked.mkdir()
    state.landmark_records.path = blocked
    res = client.post(
        "/zones/compute",
        json={"morphology": "XX", "session_id": "s", "photo_id": "p", "landmarks": payload()},
    )
    assert res.status_code == 200
    assert len(res.json()) == 11


def test_out_of_order_capture_rejected(client, payload):
    offsets = [(0, 0), (-0.2, 0), (0.2, 0), (0, -0.2), (0, 0.2)]
    for i, (nx, ny) in enumerate(offsets):
        client.post("/calibration/frame", json={"landmarks": payload(nx, ny), "now": float(i)})
    res = client.post("/calibration/capture", json={"step": "profile_right"})
    assert res.status_code == 409
    assert client.get("/calibration").json()["current_step"] == "face"
