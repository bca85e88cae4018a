"""Integration tests for Automation API endpoints."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from app.api.v1.automation import get_automation_engine
from app.core.automation.action_executor import ActionExecutor
from app.core.automation.engine import AutomationEngine
from app.core.automation.types import DeliveryResult
from app.main import app
from app.repositories.automation_repository import AutomationRepository
from tests.helpers import sms_action

RULES_URL = "/api/v1/automations/rules"


@pytest.fixture
def rule_payload():
    return {
        "name": "Reply to STOP",
        "description": "Confirm unsubscribes",
        "trigger_type": "sms_received",
        "trigger_value": "stop",
        "actions": [sms_action(template="You are unsubscribed.")],
    }


@pytest.fixture
def created_rule(client, tenant_headers, rule_payload):
    response = client.post(RULES_URL, json=rule_payload, headers=tenant_headers)
    assert response.status_code == 201
    return response.json()["data"]


def test_create_rule(created_rule, tenant_id):
    assert created_rule["name"] == "Reply to STOP"
    assert created_rule["tenant_id"] == str(tenant_id)
    assert created_rule["is_active"] is True
    assert created_rule["run_count"] == 0
    assert created_rule["actions"] == [sms_action(template="You are unsubscribed.")]


def test_create_rule_with_unknown_trigger_type(client, tenant_headers, rule_payload):
    rule_payload["trigger_type"] = "fax_received"

    response = client.post(RULES_URL, json=rule_payload, headers=tenant_headers)

    assert response.status_code == 400
    body = response.json()
    assert body["error"]["code"] == "AUTOMATION_RULE_INVALID"
    assert body["data"] is None


def test_create_rule_with_unknown_action_type(client, tenant_headers, rule_payload):
    rule_payload["actions"] = [{"type": "notify_team", "config": {}}]

    response = client.post(RULES_URL, json=rule_payload, headers=tenant_headers)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "AUTOMATION_RULE_INVALID"


def test_create_rule_without_actions_fails_validation(client, tenant_headers, rule_payload):
    rule_payload["actions"] = []

    response = client.post(RULES_URL, json=rule_payload, headers=tenant_headers)

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.parametrize("headers", [{}, {"X-Tenant-ID": "not-a-uuid"}])
def test_tenant_header_is_required(client, headers):
    response = client.get(RULES_URL, headers=headers)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "TENANT_HEADER_INVALID"


def test_list_rules_is_tenant_scoped(client, tenant_headers, created_rule):
    response = client.get(RULES_URL, headers=tenant_headers)
    other = client.get(RULES_URL, headers={"X-Tenant-ID": str(uuid4())})

    assert response.status_code == 200
    body = response.json()
    assert [rule["id"] for rule in body["data"]] == [created_rule["id"]]
    assert body["meta"] == {"total": 1, "page": 1, "page_size": 20, "total_pages": 1}
    assert other.json()["data"] == []


def test_get_rule(client, tenant_headers, created_rule):
    response = client.get(f"{RULES_URL}/{created_rule['id']}", headers=tenant_headers)

    assert response.status_code == 200
    assert response.json()["data"]["trigger_value"] == "stop"


def test_get_missing_rule(client, tenant_headers):
    missing_id = uuid4()
    response = client.get(f"{RULES_URL}/{missing_id}", headers=tenant_headers)

    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "AUTOMATION_RULE_NOT_FOUND"
    assert error["message"] == f"Automation rule not found (ID: {missing_id})"


def test_update_rule_keeps_unsent_fields(client, tenant_headers, created_rule):
    response = client.put(
        f"{RULES_URL}/{created_rule['id']}",
        json={"name": "Unsubscribe", "trigger_value": "cancel"},
        headers=tenant_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "Unsubscribe"
    assert data["trigger_value"] == "cancel"
    assert data["description"] == "Confirm unsubscribes"
    assert data["actions"] == created_rule["actions"]


def test_update_rule_with_invalid_trigger(client, tenant_headers, created_rule):
    response = client.put(
        f"{RULES_URL}/{created_rule['id']}",
        json={"trigger_type": "fax_received"},
        headers=tenant_headers,
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "AUTOMATION_RULE_INVALID"


def test_toggle_rule(client, tenant_headers, created_rule):
    url = f"{RULES_URL}/{created_rule['id']}/toggle"

    first = client.post(url, headers=tenant_headers)
    second = client.post(url, headers=tenant_headers)

    assert first.json()["data"]["is_active"] is False
    assert second.json()["data"]["is_active"] is True


def test_delete_rule(client, tenant_headers, created_rule):
    url = f"{RULES_URL}/{created_rule['id']}"

    assert client.delete(url, headers=tenant_headers).status_code == 204
    assert client.get(url, headers=tenant_headers).status_code == 404
    assert client.delete(url, headers=tenant_headers).status_code == 404


@pytest.fixture
def sms_sender():
    sender = AsyncMock()
    sender.send_sms.return_value = DeliveryResult(success=True, message_id="SM1")
    return sender


@pytest.fixture
def engine_override(db_session, sms_sender):
    repository = AutomationRepository(db_session)
    engine = AutomationEngine(
        rule_store=repository,
        action_executor=ActionExecutor(sms_sender=sms_sender, execution_log=repository),
    )
    app.dependency_overrides[get_automation_engine] = lambda: engine
    return engine


def test_process_event_runs_matching_rules(
    client, tenant_headers, created_rule, engine_override, sms_sender
):
    response = client.post(
        "/api/v1/automations/events",
        json={
            "type": "sms_received",
            "data": {"fromNumber": "+15551234567", "smsBody": "STOP", "contactId": "c1"},
        },
        headers=tenant_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["meta"] == {"matched_actions": 1}
    assert body["data"][0]["success"] is True
    assert body["data"][0]["message"] == "SMS sent to +15551234567"
    sms_sender.send_sms.assert_awaited_once()

    logs = client.get(f"{RULES_URL}/{created_rule['id']}/logs", headers=tenant_headers)
    assert logs.status_code == 200
    assert logs.json()["meta"]["total"] == 1
    assert logs.json()["data"][0]["status"] == "success"
    assert logs.json()["data"][0]["entity_id"] == "c1"


def test_process_event_reports_failures_with_200(
    client, tenant_headers, created_rule, engine_override, sms_sender
):
    sms_sender.send_sms.return_value = DeliveryResult(success=False, error="Carrier rejected")

    response = client.post(
        "/api/v1/automations/events",
        json={"type": "sms_received", "data": {"fromNumber": "+15551234567", "smsBody": "stop"}},
        headers=tenant_headers,
    )

    assert response.status_code == 200
    assert response.json()["data"][0]["success"] is False
    assert response.json()["data"][0]["error"] == "Carrier rejected"


def test_process_event_without_matching_rules(client, tenant_headers, engine_override):
    response = client.post(
        "/api/v1/automations/events",
        json={"type": "deal_won", "data": {"dealId": "d1"}},
        headers=tenant_headers,
    )

    assert response.status_code == 200
    assert response.json()["data"] == []


def test_process_queue_without_secret_configured(client):
    response = client.post("/api/v1/automations/queue/process")

    assert response.status_code == 200
    assert response.json()["data"] == {"processed": 0, "failed": 0}


def test_process_queue_checks_cron_secret(client, settings_override):
    settings_override(AUTOMATION_CRON_SECRET="s3cret")

    denied = client.post("/api/v1/automations/queue/process", headers={"X-Cron-Secret": "nope"})
    missing = client.post("/api/v1/automations/queue/process")
    allowed = client.post(
        "/api/v1/automations/queue/process", headers={"X-Cron-Secret": "s3cret"}
    )

    assert denied.status_code == 401
    assert denied.json()["error"]["code"] == "CRON_UNAUTHORIZED"
    assert missing.status_code == 401
    assert allowed.status_code == 200


def test_queue_status_probe(client):
    response = client.get("/api/v1/automations/queue/process")

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "ok"


def test_healthz(client):
    assert client.get("/healthz").json()["status"] == "ok"
