"""Tests for the httpx request layer."""

import json

import httpx
import pytest

from hosted_index.config import Config
from hosted_index.errors import ApiError, TransportError
from hosted_index.options import RequestOptions
from hosted_index.transport import ApiWrapper, HttpApiWrapper


def _wrapper(handler, **config_overrides):
    settings = {"app_id": "APP", "api_key": "KEY", "read_retries": 3, "retry_backoff": 0}
    settings.update(config_overrides)
    client = httpx.Client(base_url="https://test.invalid", transport=httpx.MockTransport(handler))
    return HttpApiWrapper(Config(**settings), client=client)


class Recorder:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


class TestRead:
    def test_get_with_query(self):
        recorder = Recorder(httpx.Response(200, json={"status": "published"}))
        wrapper = _wrapper(recorder)

        result = wrapper.read("GET", "/1/indexes/p/task/1", RequestOptions(query={"getVersion": 2}))

        assert result == {"status": "published"}
        request = recorder.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/1/indexes/p/task/1"
        assert request.url.params["getVersion"] == "2"
        assert request.content == b""

    def test_post_body_from_options(self):
        recorder = Recorder(httpx.Response(200, json={"hits": []}))
        _wrapper(recorder).read("POST", "/1/indexes/p/query", RequestOptions(body={"query": "lamp"}))
        assert json.loads(recorder.requests[0].content) == {"query": "lamp"}

    def test_boolean_query_parameter(self):
        recorder = Recorder(httpx.Response(200, json={}))
        _wrapper(recorder).read("GET", "/x", RequestOptions(query={"forwardToReplicas": True}))
        assert recorder.requests[0].url.params["forwardToReplicas"] == "true"

    def test_extra_headers(self):
        recorder = Recorder(httpx.Response(200, json={}))
        _wrapper(recorder).read("GET", "/x", RequestOptions(headers={"X-Forwarded-For": "1.2.3.4"}))
        assert recorder.requests[0].headers["X-Forwarded-For"] == "1.2.3.4"

    def test_retries_transport_errors(self):
        recorder = Recorder(
            httpx.ConnectError("refused"),
            httpx.Response(200, json={"ok": True}),
        )
        assert _wrapper(recorder).read("GET", "/x") == {"ok": True}
        assert len(recorder.requests) == 2

    def test_retries_server_errors(self):
        recorder = Recorder(
            httpx.Response(503, json={"message": "unavailable"}),
            httpx.Response(200, json={"ok": True}),
        )
        assert _wrapper(recorder).read("GET", "/x") == {"ok": True}

    def test_gives_up_after_read_retries(self):
        recorder = Recorder(httpx.ConnectError("refused"))
        with pytest.raises(TransportError):
            _wrapper(recorder, read_retries=2).read("GET", "/x")
        assert len(recorder.requests) == 2

    def test_client_errors_not_retried(self):
        recorder = Recorder(httpx.Response(404, json={"message": "Index does not exist"}))
        with pytest.raises(ApiError) as excinfo:
            _wrapper(recorder).read("GET", "/x")
        assert excinfo.value.status_code == 404
        assert excinfo.value.message == "Index does not exist"
        assert len(recorder.requests) == 1

    def test_empty_response_body(self):
        recorder = Recorder(httpx.Response(200, content=b""))
        assert _wrapper(recorder).read("GET", "/x") == {}

    def test_undecodable_body_is_api_error(self):
        recorder = Recorder(httpx.Response(200, content=b'{"status": "\xff"}'))
        with pytest.raises(ApiError) as excinfo:
            _wrapper(recorder).read("GET", "/x")
        assert excinfo.value.status_code == 200
        assert isinstance(excinfo.value.__cause__, UnicodeDecodeError)

    def test_server_error_with_undecodable_body_is_retried(self):
        recorder = Recorder(
            httpx.Response(503, content=b"\xff\xfe oops"),
            httpx.Response(200, json={"ok": True}),
        )
        assert _wrapper(recorder).read("GET", "/x") == {"ok": True}
        assert len(recorder.requests) == 2

    @pytest.mark.parametrize("content", [b"null", b"[1, 2]", b'"published"'])
    def test_non_object_json_is_api_error(self, content):
        recorder = Recorder(httpx.Response(200, content=content))
        with pytest.raises(ApiError, match="Expected a JSON object"):
            _wrapper(recorder).read("GET", "/1/indexes/p/task/1")
        assert len(recorder.requests) == 1


class TestWrite:
    def test_mapping_body_merged_with_options(self):
        recorder = Recorder(httpx.Response(200, json={"taskID": 3}))
        result = _wrapper(recorder).write(
            "POST",
            "/1/indexes/p/batch",
            {"requests": []},
            RequestOptions(body={"extra": 1}),
        )
        assert result == {"taskID": 3}
        assert json.loads(recorder.requests[0].content) == {"requests": [], "extra": 1}

    def test_list_body_sent_as_is(self):
        recorder = Recorder(httpx.Response(200, json={"taskID": 3}))
        _wrapper(recorder).write("POST", "/1/indexes/p/rules/batch", [{"objectID": "r1"}])
        assert json.loads(recorder.requests[0].content) == [{"objectID": "r1"}]

    def test_single_attempt_on_server_error(self):
        recorder = Recorder(httpx.Response(500, json={"message": "boom"}))
        with pytest.raises(ApiError):
            _wrapper(recorder).write("POST", "/x", {})
        assert len(recorder.requests) == 1

    def test_single_attempt_on_transport_error(self):
        recorder = Recorder(httpx.ReadTimeout("slow"))
        with pytest.raises(TransportError) as excinfo:
            _wrapper(recorder).write("POST", "/x", {})
        assert isinstance(excinfo.value.__cause__, httpx.ReadTimeout)
        assert len(recorder.requests) == 1

    def test_non_json_error_body(self):
        recorder = Recorder(httpx.Response(502, text="Bad gateway"))
        with pytest.raises(ApiError, match="Bad gateway"):
            _wrapper(recorder).write("POST", "/x", {})

    def test_undecodable_error_body_keeps_status(self):
        recorder = Recorder(httpx.Response(500, content=b"\xff\xfe oops"))
        with pytest.raises(ApiError) as excinfo:
            _wrapper(recorder).write("POST", "/x", {})
        assert excinfo.value.status_code == 500
        assert excinfo.value.message == "Internal Server Error"
        assert len(recorder.requests) == 1

    def test_headers_set_on_options(self):
        recorder = Recorder(httpx.Response(200, json={"taskID": 4}))
        options = RequestOptions().set_header("X-Algolia-UserToken", "user-42")
        _wrapper(recorder).write("POST", "/x", {}, options)
        assert recorder.requests[0].headers["X-Algolia-UserToken"] == "user-42"


class TestDefaultClient:
    def test_sends_credentials(self):
        wrapper = HttpApiWrapper(Config(app_id="APP", api_key="KEY", base_url=None))
        client = wrapper._client
        assert client.base_url.host == "app.algolia.net"
        assert client.headers["X-Algolia-Application-Id"] == "APP"
        assert client.headers["X-Algolia-API-Key"] == "KEY"
        wrapper.close()

    def test_satisfies_protocol(self):
        wrapper = _wrapper(Recorder(httpx.Response(200, json={})))
        assert isinstance(wrapper, ApiWrapper)
