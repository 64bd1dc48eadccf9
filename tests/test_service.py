import json
import socket
import urllib.error
import urllib.request

import pytest

from rams_engine.knowledge_base import load_knowledge_base
from rams_engine.service import EngineService, aggregate_payload

KB = load_knowledge_base()


@pytest.fixture
def service():
    service = EngineService(KB)
    service.start("127.0.0.1", 0)
    yield service
    service.stop()


def _url(service: EngineService, path: str) -> str:
    host, port = service.address
    return f"http://{host}:{port}{path}"


def _post(service: EngineService, path: str, body: bytes) -> tuple[int, dict]:
    request = urllib.request.Request(
        _url(service, path), data=body, headers={"Content-Type": "application/json"}, method="POST"
    )
    try:
        with urllib.request.urlopen(request, timeout=5) as response:
            return response.status, json.loads(response.read())
    except urllib.error.HTTPError as exc:
        return exc.code, json.loads(exc.read())


def test_aggregate_payload() -> None:
    payload = aggregate_payload(KB, ["distribution_board"])
    assert payload["hazard_codes"] == ["electric_shock_direct", "arc_flash", "electrical_fire"]
    assert payload["permits"] == []
    assert [risk["residual_score"] for risk in payload["risks"]] == [4, 3, 6]
    assert payload["summary"] == {"total": 3, "high": 0, "medium": 1, "low": 2}


def test_health_and_listing_endpoints(service: EngineService) -> None:
    with urllib.request.urlopen(_url(service, "/health"), timeout=5) as response:
        assert json.loads(response.read()) == {"ok": True, "activities": 70}
    with urllib.request.urlopen(_url(service, "/hazards"), timeout=5) as response:
        hazards = json.loads(response.read())
    assert hazards[0]["code"] == "electric_shock_direct"
    assert len(hazards) == 14


def test_post_aggregate(service: EngineService) -> None:
    status, payload = _post(service, "/aggregate", json.dumps({"activity_codes": ["live_working"]}).encode())
    assert status == 200
    assert payload["permits"] == ["Live Working Permit"]
    assert payload["hazard_codes"] == ["electric_shock_direct", "arc_flash", "electric_burn"]


def test_post_aggregate_rejects_bad_bodies(service: EngineService) -> None:
    status, payload = _post(service, "/aggregate", b"{not json")
    assert status == 400
    assert payload["error"] == "invalid JSON"
    status, _ = _post(service, "/aggregate", json.dumps({"activity_codes": "live_working"}).encode())
    assert status == 400


def test_unknown_path_is_404(service: EngineService) -> None:
    with pytest.raises(urllib.error.HTTPError) as excinfo:
        urllib.request.urlopen(_url(service, "/nothing"), timeout=5)
    assert excinfo.value.code == 404
    status, _ = _post(service, "/nothing", b"{}")
    assert status == 404


def test_stop_clears_address() -> None:
    service = EngineService(KB)
    service.start("127.0.0.1", 0)
    assert service.address is not None
    service.stop()
    assert service.address is None


def test_post_aggregate_rejects_undecodable_body(service: EngineService) -> None:
    status, payload = _post(service, "/aggregate", b'{"activity_codes": ["\xff\xfe"]}')
    assert status == 400
    assert payload["error"] == "invalid JSON"


def _raw_post(service: EngineService, content_length: str) -> bytes:
    host, port = service.address
    request = (
        "POST /aggregate HTTP/1.1\r\n"
        f"Host: {host}\r\n"
        f"Content-Length: {content_length}\r\n"
        "Connection: close\r\n"
        "\r\n"
    ).encode()
    with socket.create_connection((host, port), timeout=5) as conn:
        conn.sendall(request)
        chunks = []
        while True:
            chunk = conn.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


@pytest.mark.parametrize("content_length", ["abc", "-1"])
def test_post_aggregate_rejects_bad_content_length(service: EngineService, content_length: str) -> None:
    response = _raw_post(service, content_length)
    assert response.startswith(b"HTTP/1.0 400") or response.startswith(b"HTTP/1.1 400")
    assert b"invalid Content-Length" in response
