import json
import os
import sys

import httpx
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from sql_metrics.datadog_client import DATADOG_API, DatadogClient, build_payload
from sql_metrics.deadline import Deadline
from sql_metrics.errors import DispatchErrorKind, DispatchFailed


def _client(handler, **kwargs):
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return DatadogClient(api_key="secret-key", http_client=http, **kwargs)


def test_build_payload():
    payload = build_payload("m", 1.5, ["env:test"], "server-01", timestamp=1700000000.0)
    assert payload == {
        "series": [
            {
                "metric": "m",
                "points": [[1700000000.0, 1.5]],
                "type": "gauge",
                "tags": ["env:test"],
                "host": "server-01",
            }
        ]
    }


def test_build_payload_omits_empty_tags_and_host():
    series = build_payload("m", 0.0, [], "")["series"][0]
    assert "tags" not in series
    assert "host" not in series


def test_send_posts_series():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["key"] = request.headers["DD-API-KEY"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(202, json={"status": "ok"})

    with _client(handler) as client:
        client.send(Deadline(5), "custom.metric.api_calls", 10.0, ["env:test"], "server-01")

    assert seen["url"] == DATADOG_API
    assert seen["key"] == "secret-key"
    series = seen["body"]["series"][0]
    assert series["metric"] == "custom.metric.api_calls"
    assert series["points"][0][1] == 10.0


def test_non_202_is_non_success_response():
    client = _client(lambda request: httpx.Response(403, json={"errors": ["Forbidden"]}))
    with pytest.raises(DispatchFailed) as exc:
        client.send(Deadline(5), "m", 1.0, [], "")
    assert exc.value.kind is DispatchErrorKind.NON_SUCCESS_RESPONSE
    assert exc.value.status_code == 403


def test_connect_error_is_transport_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(DispatchFailed) as exc:
        _client(handler).send(Deadline(5), "m", 1.0, [], "")
    assert exc.value.kind is DispatchErrorKind.TRANSPORT_FAILURE


def test_timeout_is_distinct():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(DispatchFailed) as exc:
        _client(handler).send(Deadline(5), "m", 1.0, [], "")
    assert exc.value.kind is DispatchErrorKind.TIMEOUT


def test_cancelled_deadline_skips_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(202)

    d = Deadline()
    d.cancel()
    with pytest.raises(DispatchFailed) as exc:
        _client(handler).send(d, "m", 1.0, [], "")
    assert exc.value.kind is DispatchErrorKind.TIMEOUT
    assert calls == []


def test_dry_run_sends_nothing():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(202)

    _client(handler, dry_run=True).send(Deadline(5), "m", 1.0, ["a:b"], "h")
    assert calls == []
