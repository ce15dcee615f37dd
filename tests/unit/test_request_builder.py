# Assumptions:
# - Using pytest for testing framework
# - Testing fluent request assembly and form/JSON/query encoding

import io
import json
from urllib.parse import parse_qs

import pytest

from backoff_http.http.errors import RequestBuildError
from backoff_http.http.request import CONTENT_TYPE_FORM, Request, RequestBuilder


class TestRequestBuilder:
    """Test cases for RequestBuilder"""

    def test_build_basic_get(self):
        """Test method, URL and headers are carried over"""
        request = (
            RequestBuilder()
            .method("get")
            .url("https://api.example.com/users")
            .header("Accept", "application/json")
            .user_agent("backoff-http/1.0")
            .build()
        )

        assert request.method == "GET"
        assert request.url == "https://api.example.com/users"
        assert request.headers["Accept"] == "application/json"
        assert request.headers["User-Agent"] == "backoff-http/1.0"
        assert request.content is None

    def test_post_form_round_trip(self):
        """Test form data produces a form-encoded POST"""
        request = (
            RequestBuilder()
            .method("PUT")
            .url("https://api.example.com/form")
            .content_type("application/json")
            .post_form({"a": "1", "b": "2"})
            .build()
        )

        assert request.method == "POST"
        assert request.headers["Content-Type"] == CONTENT_TYPE_FORM
        assert parse_qs(request.content.decode()) == {"a": ["1"], "b": ["2"]}

    def test_form_overrides_header_case_insensitively(self):
        """Test a lowercase content-type header is replaced by the form type"""
        request = (
            RequestBuilder()
            .method("POST")
            .url("https://api.example.com/form")
            .header("content-type", "text/plain")
            .post_form({"a": "1"})
            .build()
        )

        content_types = [key for key in request.headers if key.lower() == "content-type"]
        assert content_types == ["Content-Type"]

    def test_query_params_merge_with_url(self):
        """Test builder query params are added to the URL query"""
        request = (
            RequestBuilder()
            .method("GET")
            .url("https://api.example.com/search?page=2")
            .query_param("tag", "a")
            .query_param("tag", "b")
            .query({"sort": "desc"})
            .build()
        )

        assert request.url.startswith("https://api.example.com/search?")
        assert parse_qs(request.url.split("?", 1)[1]) == {"page": ["2"], "tag": ["a", "b"], "sort": ["desc"]}

    def test_query_replaces_existing_key(self):
        """Test query() replaces a parameter already present"""
        request = RequestBuilder().method("GET").url("https://api.example.com/?page=1").query({"page": "3"}).build()

        assert request.url == "https://api.example.com/?page=3"

    def test_body_json(self):
        """Test JSON body encoding"""
        request = RequestBuilder().method("POST").url("https://api.example.com").body_json({"id": 1}).build()

        assert json.loads(request.content) == {"id": 1}

    def test_body_json_unserializable(self):
        """Test unserializable JSON input is rejected"""
        with pytest.raises(RequestBuildError):
            RequestBuilder().body_json({"value": object()})

    @pytest.mark.parametrize(
        "body",
        [b"payload", "payload", io.BytesIO(b"payload"), io.StringIO("payload"), iter([b"pay", b"load"])],
    )
    def test_body_inputs_are_buffered(self, body):
        """Test every body input is buffered to bytes"""
        request = RequestBuilder().method("POST").url("https://api.example.com").body(body).build()

        assert request.content == b"payload"

    def test_body_string_and_bytes(self):
        """Test the typed body setters"""
        builder = RequestBuilder().method("POST").url("https://api.example.com")

        assert builder.body_string("héllo").build().content == "héllo".encode()
        assert builder.body_bytes(b"\x00\x01").build().content == b"\x00\x01"

    def test_headers_last_writer_wins(self):
        """Test later headers replace earlier ones regardless of case"""
        request = (
            RequestBuilder()
            .method("GET")
            .url("https://api.example.com")
            .headers({"x-token": "old"})
            .headers({"X-Token": "new"})
            .headers(None)
            .build()
        )

        assert dict(request.headers) == {"X-Token": "new"}

    @pytest.mark.parametrize("url", ["not a url", "/relative/path", "http://", "http://example.com:abc"])
    def test_malformed_url(self, url):
        """Test URLs without scheme and host are rejected"""
        with pytest.raises(RequestBuildError):
            RequestBuilder().method("GET").url(url).build()

    def test_missing_method(self):
        """Test the method is required"""
        with pytest.raises(RequestBuildError, match="method"):
            RequestBuilder().url("https://api.example.com").build()

    def test_missing_url(self):
        """Test the URL is required"""
        with pytest.raises(RequestBuildError, match="URL"):
            RequestBuilder().method("GET").build()


class TestRequest:
    """Test cases for the Request value"""

    def test_request_is_immutable(self):
        """Test requests cannot be changed after build"""
        request = Request(method="GET", url="https://api.example.com", headers={"A": "1"})

        with pytest.raises(AttributeError):
            request.method = "POST"
        with pytest.raises(TypeError):
            request.headers["A"] = "2"

    def test_to_httpx_creates_fresh_requests(self):
        """Test each attempt gets its own transport request with the same body"""
        request = Request(method="POST", url="https://api.example.com/x", headers={"A": "1"}, content=b"body")

        first = request.to_httpx()
        second = request.to_httpx()

        assert first is not second
        assert first.method == "POST"
        assert first.headers["A"] == "1"
        assert first.read() == b"body"
        assert second.read() == b"body"

    def test_equal_requests_hash_equal(self):
        """Test requests are usable as set members and dict keys"""
        first = RequestBuilder().method("GET").url("https://api.example.com/x").header("A", "1").build()
        second = RequestBuilder().method("GET").url("https://api.example.com/x").header("A", "1").build()
        other = RequestBuilder().method("GET").url("https://api.example.com/x").header("A", "2").build()

        assert first == second
        assert hash(first) == hash(second)
        assert len({first, second, other}) == 2
