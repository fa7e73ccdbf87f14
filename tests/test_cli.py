from __future__ import annotations

import json
import os

import httpx
import pytest
from typer.testing import CliRunner

from n8n_inspector import __main__ as cli
from n8n_inspector.client import N8nClient
from n8n_inspector.config import get_settings

runner = CliRunner()

EXECUTION = {
    "id": "12",
    "workflowId": "wf-1",
    "status": "error",
    "startedAt": "2024-01-01T00:00:00.000Z",
    "stoppedAt": "2024-01-01T00:00:07.000Z",
    "data": {
        "resultData": {
            "runData": {
                "Webhook": [
                    {"executionStatus": "success", "startTime": 1_700_000_000_000, "executionTime": 2,
                     "data": {"main": [[{"json": {"body": {"q": "hello"}}}]]}}
                ],
                "OpenAI Chat Model": [
                    {"executionStatus": "success", "startTime": 1_700_000_000_100, "executionTime": 900,
                     "data": {"ai_languageModel": [[{"json": {
                         "tokenUsage": {"promptTokens": 10, "completionTokens": 5, "totalTokens": 15},
                         "response": {"generations": [[{"text": "hi"}]]},
                     }}]]}}
                ],
                "Send Reply": [
                    {"executionStatus": "error", "startTime": 1_700_000_000_200, "executionTime": 30,
                     "source": [{"previousNode": "OpenAI Chat Model"}],
                     "error": {"message": "SMTP refused"}}
                ],
            }
        }
    },
}

WORKFLOWS = {
    "wf-1": {
        "id": "wf-1",
        "name": "Support",
        "active": True,
        "nodes": [
            {"name": "Webhook", "type": "n8n-nodes-base.webhook", "parameters": {"path": "a"}},
            {"name": "Format", "type": "n8n-nodes-base.code", "parameters": {"jsCode": "return items;"},
             "credentials": None},
            {"name": "Mailer", "type": "n8n-nodes-base.emailSend", "parameters": {},
             "credentials": {"smtp": {"id": "4", "name": "SMTP"}}},
        ],
        "connections": {},
        "settings": {"executionOrder": "v1"},
    },
    "wf-2": {
        "id": "wf-2",
        "name": "Support (staging)",
        "nodes": [
            {"name": "Webhook", "type": "n8n-nodes-base.webhook", "parameters": {"path": "b"}},
            {"name": "Slack", "type": "n8n-nodes-base.slack", "parameters": {}},
        ],
        "connections": {},
    },
}


class FakeN8n:
    """In-memory n8n API behind an httpx.MockTransport."""

    def __init__(self):
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api/v1")
        if path == "/executions/12":
            return httpx.Response(200, json=EXECUTION)
        if path == "/executions":
            return httpx.Response(200, json={"data": [
                {"id": "12", "status": "error", "startedAt": "2024-01-01T00:00:00Z", "customData": {"ticket": "T-1"}},
                {"id": "11", "status": "success", "startedAt": "2023-12-31T00:00:00Z"},
            ]})
        if path == "/workflows":
            return httpx.Response(200, json={"data": list(WORKFLOWS.values()), "nextCursor": None})
        if path.startswith("/workflows/"):
            wf_id = path.rsplit("/", 1)[-1]
            if wf_id not in WORKFLOWS:
                return httpx.Response(404, text='{"message":"Not Found"}')
            if request.method == "PUT":
                return httpx.Response(200, json={"id": wf_id, **json.loads(request.content)})
            return httpx.Response(200, json=WORKFLOWS[wf_id])
        return httpx.Response(404, text="unknown route")

    def put_bodies(self):
        return [json.loads(r.content) for r in self.requests if r.method == "PUT"]


@pytest.fixture
def fake_n8n(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("N8N_BASE_URL", "https://n8n.example.com")
    monkeypatch.setenv("N8N_API_KEY", "k")
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "out"))
    get_settings.cache_clear()
    fake = FakeN8n()
    monkeypatch.setattr(
        cli,
        "_make_client",
        lambda settings: N8nClient.from_settings(settings, transport=httpx.MockTransport(fake)),
    )
    yield fake
    get_settings.cache_clear()


def _written_path(output: str, marker: str) -> str:
    line = next(line for line in output.splitlines() if line.startswith(marker))
    return line[len(marker):].strip()


def test_execution_compact_summary(fake_n8n):
    result = runner.invoke(cli.app, ["execution", "12"])
    assert result.exit_code == 0, result.output
    assert "Execution: 12 | error | 7s" in result.output
    assert "Total: 3 nodes" in result.output
    assert fake_n8n.requests[0].url.params["includeData"] == "true"


def test_execution_errors_only_and_node_filter(fake_n8n):
    result = runner.invoke(cli.app, ["execution", "12", "--errors-only", "--verbose"])
    assert result.exit_code == 0, result.output
    assert "Send Reply" in result.output
    assert "Error: SMTP refused" in result.output
    assert "Webhook (run 1)" not in result.output

    result = runner.invoke(cli.app, ["execution", "12", "--node", "nothing"])
    assert result.exit_code == 0
    assert 'No nodes matching "nothing" found.' in result.output

    result = runner.invoke(cli.app, ["execution", "12", "--node", "webhook", "--errors-only"])
    assert result.exit_code == 0
    assert "No failed nodes in this execution." in result.output


def test_execution_json_artifact(fake_n8n, tmp_path):
    result = runner.invoke(cli.app, ["execution", "12", "--json"])
    assert result.exit_code == 0, result.output
    path = _written_path(result.output, "JSON written to:")
    assert path.startswith(str(tmp_path / "out"))
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    assert data["executionId"] == "12"
    assert [n["name"] for n in data["nodes"]] == ["Webhook", "OpenAI Chat Model", "Send Reply"]
    assert data["nodes"][2]["input"] == ["OpenAI Chat Model"]


def test_execution_ai_report(fake_n8n):
    result = runner.invoke(cli.app, ["execution", "12", "--ai"])
    assert result.exit_code == 0, result.output
    assert "AI EXCHANGES (1 calls)" in result.output
    assert "[OpenAI Chat Model] Run 1" in result.output
    assert "Total tokens:      15" in result.output


def test_tokens_command(fake_n8n):
    result = runner.invoke(cli.app, ["tokens", "12"])
    assert result.exit_code == 0, result.output
    assert "OpenAI Chat Model (unknown):" in result.output
    assert "Total tokens:      15" in result.output


def test_executions_listing_and_custom_filter(fake_n8n):
    result = runner.invoke(cli.app, ["executions", "wf-1", "--limit", "2"])
    assert result.exit_code == 0, result.output
    assert "12\terror" in result.output
    params = fake_n8n.requests[0].url.params
    assert params["workflowId"] == "wf-1"
    assert params["limit"] == "2"

    result = runner.invoke(cli.app, ["executions", "wf-1", "--filter", "ticket=T-9"])
    assert result.exit_code == 0
    assert 'No executions found with customData.ticket="T-9"' in result.output


def test_workflow_diff_with_json(fake_n8n):
    result = runner.invoke(cli.app, ["workflow", "diff", "wf-1", "wf-2", "--json"])
    assert result.exit_code == 0, result.output
    assert "Added in [2] (1):\n  + Slack" in result.output
    assert "Removed in [2] (2):\n  - Format\n  - Mailer" in result.output
    assert "Modified (1):\n  ~ Webhook" in result.output
    path = _written_path(result.output, "Full diff written to:")
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    assert data["details"]["modified"][0]["after"]["parameters"] == {"path": "b"}


def test_workflow_update_from_file_preserves_credentials(fake_n8n, tmp_path):
    edited = json.loads(json.dumps(WORKFLOWS["wf-1"]))
    del edited["nodes"][2]["credentials"]
    edited["nodes"][0]["parameters"]["path"] = "renamed"
    file = tmp_path / "wf.json"
    file.write_text(json.dumps(edited), encoding="utf-8")

    result = runner.invoke(cli.app, ["workflow", "update", "wf-1", str(file)])
    assert result.exit_code == 0, result.output
    assert "Workflow updated: Support (ID: wf-1)" in result.output
    (body,) = fake_n8n.put_bodies()
    assert "active" not in body
    assert body["nodes"][2]["credentials"] == {"smtp": {"id": "4", "name": "SMTP"}}
    assert body["nodes"][0]["parameters"] == {"path": "renamed"}


def test_workflow_update_rejects_invalid_json(fake_n8n, tmp_path):
    file = tmp_path / "broken.json"
    file.write_text("{not json", encoding="utf-8")
    result = runner.invoke(cli.app, ["workflow", "update", "wf-1", str(file)])
    assert result.exit_code == 1
    assert "is not valid JSON" in result.output
    assert fake_n8n.put_bodies() == []


def test_workflow_set_code(fake_n8n, tmp_path):
    code = tmp_path / "format.js"
    code.write_text("return items.map(i => i);", encoding="utf-8")
    result = runner.invoke(cli.app, ["workflow", "set-code", "wf-1", "Format", str(code)])
    assert result.exit_code == 0, result.output
    assert 'Updated code in "Format" node of workflow "Support"' in result.output
    (body,) = fake_n8n.put_bodies()
    assert body["nodes"][1]["parameters"]["jsCode"] == "return items.map(i => i);"
    assert body["nodes"][2]["credentials"] == {"smtp": {"id": "4", "name": "SMTP"}}


def test_workflow_set_code_on_wrong_node_fails(fake_n8n, tmp_path):
    code = tmp_path / "x.js"
    code.write_text("return [];", encoding="utf-8")
    result = runner.invoke(cli.app, ["workflow", "set-code", "wf-1", "Mailer", str(code)])
    assert result.exit_code == 1
    assert 'Node "Mailer" is not a code node' in result.output
    assert fake_n8n.put_bodies() == []


def test_workflow_set_setting(fake_n8n):
    result = runner.invoke(cli.app, ["workflow", "set-setting", "wf-1", "errorWorkflow", "wf-err"])
    assert result.exit_code == 0, result.output
    assert 'Set errorWorkflow=wf-err on workflow "Support"' in result.output
    (body,) = fake_n8n.put_bodies()
    assert body["settings"] == {"executionOrder": "v1", "errorWorkflow": "wf-err"}


def test_api_error_exits_with_status_one(fake_n8n):
    result = runner.invoke(cli.app, ["workflow", "diff", "wf-1", "missing"])
    assert result.exit_code == 1
    assert "n8n API error (404)" in result.output


def test_missing_configuration_exits_with_status_one(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("N8N_BASE_URL", raising=False)
    monkeypatch.delenv("N8N_API_KEY", raising=False)
    get_settings.cache_clear()
    try:
        result = runner.invoke(cli.app, ["tokens", "1"])
    finally:
        get_settings.cache_clear()
    assert result.exit_code == 1
    assert "Missing required configuration" in result.output
    assert not os.path.exists(tmp_path / "out")


def test_errors_lists_failed_executions_across_workflows(fake_n8n):
    result = runner.invoke(cli.app, ["errors", "--limit", "3"])
    assert result.exit_code == 0, result.output
    assert "Recent failed executions:" in result.output
    assert "ID\tWORKFLOW\tSTARTED\tERROR" in result.output
    params = fake_n8n.requests[0].url.params
    assert params["status"] == "error"
    assert params["limit"] == "3"
    assert "workflowId" not in params


def test_workflows_lists_all_workflows(fake_n8n):
    result = runner.invoke(cli.app, ["workflows"])
    assert result.exit_code == 0, result.output
    assert "wf-1\tSupport\tactive" in result.output
    assert "wf-2\tSupport (staging)\tinactive" in result.output

    result = runner.invoke(cli.app, ["workflows", "--json"])
    assert result.exit_code == 0, result.output
    with open(_written_path(result.output, "JSON written to:"), encoding="utf-8") as f:
        assert [wf["id"] for wf in json.load(f)] == ["wf-1", "wf-2"]


def test_workflow_update_with_nameless_node_reports_error(fake_n8n, tmp_path):
    file = tmp_path / "wf.json"
    file.write_text(
        json.dumps({"name": "Support", "nodes": [{"type": "n8n-nodes-base.set", "parameters": None}]}),
        encoding="utf-8",
    )
    result = runner.invoke(cli.app, ["workflow", "update", "wf-1", str(file)])
    assert result.exit_code == 1
    assert "Invalid node #1 in workflow: missing node name" in result.output
    assert fake_n8n.put_bodies() == []
