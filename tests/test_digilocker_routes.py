try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import io
import json
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from PIL import Image

from docverify.clients import (
    AuthSessionStore,
    ResultSessionStore,
    SQLiteStore,
    UserRecordRepository,
)
from docverify.core.config import OAuthSettings
from docverify.core.errors import UpstreamError
from docverify.main import app
from docverify.models.user import UserRecord
from docverify.services import (
    DigiLockerFlowController,
    LockerTokenCipher,
    OcrVerificationService,
    VerificationStatusAggregator,
)


class FakeDigiLockerClient:
    def __init__(self) -> None:
        self.issued: list[dict] = [
            {"doctype": "DRVLC", "uri": "in.gov.transport-DRVLC-MH1420110001234"}
        ]
        self.exchange_error: UpstreamError | None = None
        self.passthrough_error: UpstreamError | None = None
        self.tokens: list[str] = []

    def build_authorization_url(self, *, state: str, code_challenge: str) -> str:
        return f"https://provider.example.com/authorize?state={state}&code_challenge={code_challenge}"

    async def exchange_authorization_code(self, *, code: str, code_verifier: str) -> str:
        if self.exchange_error:
            raise self.exchange_error
        return "access-token-1"

    async def fetch_profile(self, access_token: str) -> dict:
        return {"name": "RAVI PATIL"}

    async def fetch_issued_documents(self, access_token: str) -> list:
        return self.issued

    async def fetch_issued_files_raw(self, access_token: str) -> dict:
        self.tokens.append(access_token)
        if self.passthrough_error:
            raise self.passthrough_error
        return {"items": self.issued}

    async def fetch_eaadhaar(self, access_token: str) -> str:
        self.tokens.append(access_token)
        if self.passthrough_error:
            raise self.passthrough_error
        return "<Certificate/>"


class StubOcrEngine:
    async def transcribe_document(self, image_bytes: bytes, *, mime_type: str) -> str:
        return "Licence No. : MH14 20110001234\nName: Ravi Patil"


def _png() -> bytes:
    buffer = io.BytesIO()
    Image.effect_noise((64, 64), 64).convert("RGB").save(buffer, format="PNG")
    return buffer.getvalue()


pytestmark = pytest.mark.anyio("asyncio")


@pytest.fixture()
def overrides(db_path):
    from docverify import dependencies

    users = UserRecordRepository(SQLiteStore(db_path))
    users.save(UserRecord(user_id="user-1", license_number="MH1420110001234"))
    client = FakeDigiLockerClient()
    controller = DigiLockerFlowController(
        client=client,
        auth_sessions=AuthSessionStore(db_path, ttl_seconds=900),
        result_sessions=ResultSessionStore(db_path, ttl_seconds=300),
        users=users,
        token_cipher=LockerTokenCipher(secret="test-secret"),
        oauth_settings=OAuthSettings(deep_link_url="driivera://digilocker"),
    )

    app.dependency_overrides.clear()
    app.dependency_overrides.update(
        {
            dependencies.get_flow_controller: lambda: controller,
            dependencies.get_digilocker_client: lambda: client,
            dependencies.get_ocr_verification_service: lambda: OcrVerificationService(
                StubOcrEngine()
            ),
            dependencies.get_status_aggregator: lambda: VerificationStatusAggregator(users),
        }
    )

    yield client, users

    app.dependency_overrides.clear()


@pytest.fixture()
async def client(overrides):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as test_client:
        yield test_client


def _query(location: str) -> dict:
    return {key: values[0] for key, values in parse_qs(urlsplit(location).query).items()}


async def _initiate(client, **params) -> str:
    response = await client.get(
        "/api/digilocker/initiate", params={"userId": "user-1", **params}
    )
    assert response.status_code == 200
    return _query(response.json()["authUrl"])["state"]


async def test_healthcheck(client):
    response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_initiate_requires_user_id(client):
    response = await client.get("/api/digilocker/initiate")

    assert response.status_code == 400


async def test_full_flow_redirects_and_delivers_session_once(client):
    state = await _initiate(client)

    response = await client.get(
        "/api/digilocker/callback", params={"code": "code-1", "state": state}
    )

    assert response.status_code == 302
    location = response.headers["location"]
    assert location.startswith("driivera://digilocker?")
    params = _query(location)
    assert params["status"] == "success"

    session = await client.get(f"/api/digilocker/session/{params['sessionId']}")
    assert session.status_code == 200
    body = session.json()
    assert body["access_token"] == "access-token-1"
    assert set(body) == {"success", "access_token", "extractedData"}
    assert body["extractedData"]["documents"][0] == {
        "document_type": "DL",
        "number": "MH1420110001234",
        "name": None,
        "date_of_birth": None,
    }

    again = await client.get(f"/api/digilocker/session/{params['sessionId']}")
    assert again.status_code == 404


async def test_callback_uses_client_supplied_deep_link(client):
    state = await _initiate(client, callbackUrl="driivera://digilocker/resume")

    response = await client.get(
        "/api/digilocker/callback", params={"code": "code-1", "state": state}
    )

    assert response.headers["location"].startswith("driivera://digilocker/resume?")


@pytest.mark.parametrize(
    "callback_url",
    [
        "https://attacker.example/steal",
        "http://127.0.0.1:8081/--/digilocker",
        "otherapp://digilocker",
    ],
)
async def test_initiate_rejects_foreign_callback_url(client, callback_url):
    response = await client.get(
        "/api/digilocker/initiate",
        params={"userId": "user-1", "callbackUrl": callback_url},
    )

    assert response.status_code == 400
    assert "authUrl" not in response.json()


async def test_callback_replay_redirects_with_session_expired(client):
    state = await _initiate(client)
    await client.get("/api/digilocker/callback", params={"code": "c", "state": state})

    response = await client.get(
        "/api/digilocker/callback", params={"code": "c", "state": state}
    )

    params = _query(response.headers["location"])
    assert params["status"] == "error"
    assert params["error"] == "session_expired"
    assert "sessionId" not in params


async def test_callback_forwards_provider_error(client):
    response = await client.get(
        "/api/digilocker/callback",
        params={"error": "access_denied", "error_description": "User cancelled"},
    )

    assert response.status_code == 302
    assert _query(response.headers["location"]) == {
        "status": "error",
        "error": "access_denied",
        "message": "User cancelled",
    }


async def test_callback_without_code_reports_missing_params(client):
    response = await client.get("/api/digilocker/callback", params={"state": "s"})

    assert _query(response.headers["location"])["error"] == "missing_params"


async def test_callback_token_exchange_failure(client, overrides):
    fake, _ = overrides
    fake.exchange_error = UpstreamError("invalid_grant", status_code=400)
    state = await _initiate(client)

    response = await client.get(
        "/api/digilocker/callback", params={"code": "c", "state": state}
    )

    assert _query(response.headers["location"])["error"] == "token_exchange_failed"


async def test_empty_locker_reports_retry_then_manual(client, overrides):
    fake, users = overrides
    fake.issued = []

    first = await client.get(
        "/api/digilocker/callback", params={"code": "c", "state": await _initiate(client)}
    )
    second = await client.get(
        "/api/digilocker/callback", params={"code": "c", "state": await _initiate(client)}
    )

    assert _query(first.headers["location"])["status"] == "retry_required"
    assert _query(second.headers["location"])["status"] == "manual_required"
    assert users.get("user-1").locker_status.value == "MANUAL_UPLOAD"


async def test_exchange_token_endpoint(client, overrides):
    fake, _ = overrides
    state = await _initiate(client)

    response = await client.post(
        "/api/digilocker/exchange-token", json={"code": "c", "state": state}
    )
    replay = await client.post(
        "/api/digilocker/exchange-token", json={"code": "c", "state": state}
    )

    assert response.status_code == 200
    assert response.json()["status"] == "success"
    assert response.json()["session_id"]
    assert replay.status_code == 404

    fake.exchange_error = UpstreamError("invalid_grant", status_code=400)
    failed = await client.post(
        "/api/digilocker/exchange-token",
        json={"code": "c", "state": await _initiate(client)},
    )
    assert failed.status_code == 502


async def test_verify_match(client):
    response = await client.post(
        "/api/digilocker/verify-match",
        json={
            "userId": "user-1",
            "snapshot": {
                "documents": [{"document_type": "DL", "number": "MH14-2011-0001234"}]
            },
        },
    )

    assert response.status_code == 200
    assert response.json()["dl_matched"] is True

    unknown = await client.post(
        "/api/digilocker/verify-match", json={"userId": "ghost", "snapshot": {}}
    )
    assert unknown.status_code == 400


async def test_verify_ocr(client):
    response = await client.post(
        "/api/digilocker/verify-ocr",
        files={"documentImage": ("licence.png", _png(), "image/png")},
        data={
            "docType": "DL",
            "digilockerData": json.dumps({"licenseNumber": "MH1420110001234"}),
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "VERIFIED"
    assert body["ocr_data"]["number"] == "MH1420110001234"


async def test_verify_ocr_accepts_session_extracted_data(client):
    state = await _initiate(client)
    redirect = await client.get(
        "/api/digilocker/callback", params={"code": "code-1", "state": state}
    )
    session = await client.get(
        f"/api/digilocker/session/{_query(redirect.headers['location'])['sessionId']}"
    )
    extracted = session.json()["extractedData"]

    response = await client.post(
        "/api/digilocker/verify-ocr",
        files={"documentImage": ("licence.png", _png(), "image/png")},
        data={"docType": "DL", "digilockerData": json.dumps(extracted)},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "VERIFIED"


async def test_verify_ocr_rejects_empty_upload(client):
    response = await client.post(
        "/api/digilocker/verify-ocr",
        files={"documentImage": ("licence.jpg", b"", "image/jpeg")},
        data={"docType": "DL", "digilockerData": json.dumps({"number": "X"})},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "FAILED"
    assert "Empty" in response.json()["reason"]


@pytest.mark.parametrize(
    ("doc_type", "payload"),
    [("PASSPORT", "{}"), ("DL", "not-json"), ("PAN", "[1, 2]")],
)
async def test_verify_ocr_rejects_bad_form_fields(client, doc_type, payload):
    response = await client.post(
        "/api/digilocker/verify-ocr",
        files={"documentImage": ("doc.png", _png(), "image/png")},
        data={"docType": doc_type, "digilockerData": payload},
    )

    assert response.status_code == 400


async def test_finalize_verification(client, overrides):
    _, users = overrides

    response = await client.post(
        "/api/digilocker/finalize-verification",
        json={
            "userId": "user-1",
            "status": "VERIFIED",
            "detailedStatus": {"dl": True, "pan": True, "aadhar": False},
        },
    )

    assert response.status_code == 200
    assert response.json()["approved"] is True
    assert users.get("user-1").is_approved is True


async def test_issued_files_passthrough(client, overrides):
    fake, _ = overrides

    missing = await client.get("/api/digilocker/issued-files")
    ok = await client.get(
        "/api/digilocker/issued-files", headers={"Authorization": "Bearer token-9"}
    )

    assert missing.status_code == 401
    assert ok.status_code == 200
    assert ok.json()["items"][0]["doctype"] == "DRVLC"
    assert fake.tokens == ["token-9"]


async def test_passthrough_relays_provider_status(client, overrides):
    fake, _ = overrides
    fake.passthrough_error = UpstreamError("expired", status_code=401)

    files = await client.get(
        "/api/digilocker/issued-files", headers={"Authorization": "Bearer old"}
    )
    aadhaar = await client.get(
        "/api/digilocker/eaadhaar", headers={"Authorization": "Bearer old"}
    )

    assert files.status_code == 401
    assert aadhaar.status_code == 401


async def test_eaadhaar_returns_xml(client):
    response = await client.get(
        "/api/digilocker/eaadhaar", headers={"Authorization": "Bearer token-9"}
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    assert response.text == "<Certificate/>"
