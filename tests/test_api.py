import json
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from ecolens.core.config import settings
from ecolens.core.email import Mailer, build_mail_config
from ecolens.main import app
from ecolens.services.authority_resolver import AuthorityResolver
from ecolens.services.classifier import ViolationClassifier
from ecolens.services.container import PipelineServices, ServiceStatus
from ecolens.services.local_laws import LocalLawAdvisor
from ecolens.services.model_adapter import ModelInvoker
from ecolens.services.report_assembler import ReportAssembler

from fakes import FakeNotifier, FakePoiClient, RecordingSleep, ScriptedProvider, failing


HELMET_VERDICT = json.dumps({
    "violation_detected": True,
    "evidence_sufficient": True,
    "category": "Traffic",
    "title": "Riding without helmet",
    "applicable_law": "Motor Vehicles Act, Section 129",
    "estimated_fine": "₹1000",
    "severity": "Medium",
})

LOCAL_RULES = json.dumps({
    "traffic": [{"title": "Helmet Rule", "desc": "Helmet mandatory. Fine ₹1000."}],
    "eco": [{"title": "No Open Burning", "desc": "Burning waste is banned. Fine ₹5000."}],
})

REPORT_FORM = {
    "violation_detected": "true",
    "category": "Traffic",
    "severity": "Medium",
    "title": "Riding without helmet",
    "applicable_law": "Motor Vehicles Act, Section 129",
    "estimated_fine": "₹1000",
    "place": "Kochi",
    "latitude": "9.93",
    "longitude": "76.26",
}


class FakeGeocoder:
    async def resolve_place(self, place, latitude, longitude):
        return place or "Unknown Location"


def _services(tmp_path, model_reply=HELMET_VERDICT, providers=None, poi=None, notifier=None):
    invoker = ModelInvoker(providers or [ScriptedProvider("m1", reply=model_reply)], sleep=RecordingSleep())
    resolver = AuthorityResolver(
        poi or FakePoiClient({"Traffic Police Station Kochi": ["Kochi Traffic Police Station"]})
    )
    return PipelineServices(
        classifier=ViolationClassifier(invoker),
        resolver=resolver,
        report_assembler=ReportAssembler(resolver, notifier or FakeNotifier(), tmp_path / "media"),
        law_advisor=LocalLawAdvisor(ModelInvoker([ScriptedProvider("m1", reply=LOCAL_RULES)])),
        geocoder=FakeGeocoder(),
        mailer=Mailer(build_mail_config(settings), settings.AUTHORITY_ALERT_RECIPIENT),
        status={"database": ServiceStatus.ONLINE, "models": ServiceStatus.ONLINE},
    )


@pytest.fixture
def client(tmp_path):
    with TestClient(app) as test_client:
        app.state.services = _services(tmp_path)
        yield test_client


def _auth_headers(client: TestClient) -> dict:
    email = f"reporter-{uuid4().hex[:8]}@mail.com"
    response = client.post(
        "/api/v1/auth/signup",
        json={"name": "Asha", "email": email, "password": "secret123"},
    )
    assert response.status_code == 201
    token = client.post(
        "/api/v1/auth/token",
        data={"username": email, "password": "secret123"},
    ).json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


def _image(jpeg_bytes):
    return {"image": ("photo.jpg", jpeg_bytes, "image/jpeg")}


def test_health(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "online"
    assert body["components"]["models"] == "online"


def test_signup_rejects_duplicate_email(client):
    payload = {"name": "Ravi", "email": f"dup-{uuid4().hex[:8]}@mail.com", "password": "secret123"}
    assert client.post("/api/v1/auth/signup", json=payload).status_code == 201
    assert client.post("/api/v1/auth/signup", json=payload).status_code == 400


def test_login_with_wrong_password(client):
    email = f"wrong-{uuid4().hex[:8]}@mail.com"
    client.post("/api/v1/auth/signup", json={"name": "Ravi", "email": email, "password": "secret123"})
    response = client.post("/api/v1/auth/token", data={"username": email, "password": "nope"})
    assert response.status_code == 401


def test_users_me(client):
    headers = _auth_headers(client)
    response = client.get("/api/v1/auth/users/me", headers=headers)
    assert response.status_code == 200
    assert response.json()["name"] == "Asha"


def test_analyze_violation(client, jpeg_bytes):
    response = client.post("/api/v1/analysis/violation", files=_image(jpeg_bytes), data={"place": "Kochi"})

    assert response.status_code == 200
    body = response.json()
    assert body["category"] == "Traffic"
    assert body["outcome"] == "violation"
    assert body["is_actionable"] is True


def test_analyze_rejects_non_image(client):
    response = client.post(
        "/api/v1/analysis/violation",
        files={"image": ("photo.jpg", b"plain text, not a photo", "image/jpeg")},
    )
    assert response.status_code == 422
    assert response.json()["error"] == "INVALID_IMAGE"


def test_analyze_reports_model_unavailable(client, tmp_path, jpeg_bytes):
    app.state.services = _services(tmp_path, providers=[failing("m1"), failing("m2")])

    response = client.post("/api/v1/analysis/violation", files=_image(jpeg_bytes), data={"place": "Kochi"})

    assert response.status_code == 503
    body = response.json()
    assert body["error"] == "MODEL_UNAVAILABLE"
    assert body["recoverable"] is True


def test_local_laws(client):
    response = client.post("/api/v1/analysis/local-laws", json={"location": "Kochi"})
    assert response.status_code == 200
    body = response.json()
    assert body["traffic"][0]["title"] == "Helmet Rule"
    assert body["parse_error"] is False


def test_report_requires_reporter(client, tmp_path, jpeg_bytes):
    poi = FakePoiClient()
    notifier = FakeNotifier()
    app.state.services = _services(tmp_path, poi=poi, notifier=notifier)

    response = client.post("/api/v1/reports", files=_image(jpeg_bytes), data=REPORT_FORM)

    assert response.status_code == 401
    assert response.json()["error"] == "UNAUTHORIZED"
    assert poi.queries == []
    assert notifier.sent == []


def test_report_with_bad_token(client, jpeg_bytes):
    response = client.post(
        "/api/v1/reports",
        files=_image(jpeg_bytes),
        data=REPORT_FORM,
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


def test_file_list_and_fetch_report(client, jpeg_bytes):
    headers = _auth_headers(client)

    response = client.post("/api/v1/reports", files=_image(jpeg_bytes), data=REPORT_FORM, headers=headers)
    assert response.status_code == 201
    body = response.json()
    assert body["forwarded_to"] == "Kochi Traffic Police Station"
    assert body["source_confidence"] == "Verified"
    assert body["report"]["status"] == "Forwarded"
    assert len(body["reference"]) == 6

    mine = client.get("/api/v1/reports/mine", headers=headers).json()
    assert [r["id"] for r in mine] == [body["report"]["id"]]

    evidence = client.get(f"/api/v1/reports/{body['report']['id']}/evidence", headers=headers)
    assert evidence.status_code == 200
    assert evidence.content == jpeg_bytes


def test_reports_are_listed_newest_first(client, jpeg_bytes):
    headers = _auth_headers(client)
    first = client.post("/api/v1/reports", files=_image(jpeg_bytes), data=REPORT_FORM, headers=headers).json()
    second = client.post("/api/v1/reports", files=_image(jpeg_bytes), data=REPORT_FORM, headers=headers).json()

    mine = client.get("/api/v1/reports/mine", headers=headers).json()
    assert [r["id"] for r in mine] == [second["report"]["id"], first["report"]["id"]]


def test_evidence_is_private_to_reporter(client, jpeg_bytes):
    owner = _auth_headers(client)
    other = _auth_headers(client)
    report_id = client.post(
        "/api/v1/reports", files=_image(jpeg_bytes), data=REPORT_FORM, headers=owner
    ).json()["report"]["id"]

    assert client.get(f"/api/v1/reports/{report_id}/evidence", headers=other).status_code == 403
    assert client.get(f"/api/v1/reports/{uuid4()}/evidence", headers=owner).status_code == 404


def test_non_actionable_verdict_is_not_filed(client, jpeg_bytes):
    headers = _auth_headers(client)
    form = dict(REPORT_FORM, violation_detected="false", category="None")

    response = client.post("/api/v1/reports", files=_image(jpeg_bytes), data=form, headers=headers)

    assert response.status_code == 422
    assert response.json()["error"] == "NON_ACTIONABLE_VERDICT"
    assert client.get("/api/v1/reports/mine", headers=headers).json() == []


def test_notification_failure_does_not_fail_submission(client, tmp_path, jpeg_bytes):
    app.state.services = _services(tmp_path, notifier=FakeNotifier(error=RuntimeError("smtp down")))
    headers = _auth_headers(client)

    response = client.post("/api/v1/reports", files=_image(jpeg_bytes), data=REPORT_FORM, headers=headers)

    assert response.status_code == 201
