import asyncio
import json

import azure.functions as func

from hellofn.handler import Response
from hellofn.host import main, request_from_http, response_to_http


def make_request(params=None, body=b"", method="GET"):
    return func.HttpRequest(
        method=method,
        url="http://localhost/api/HelloWorld",
        headers={},
        params=params or {},
        route_params={},
        body=body,
    )


def test_main_returns_greeting_from_query():
    resp = asyncio.run(main(make_request({"name": "John"})))
    print(f"[host] status={resp.status_code} body={resp.get_body()!r}")
    assert isinstance(resp, func.HttpResponse)
    assert resp.status_code == 200
    assert resp.get_body().decode() == "Hello, John. This HTTP triggered function executed successfully."
    assert resp.headers["X-Function-Name"] == "HelloWorld"
    assert resp.mimetype == "text/plain"


def test_main_reads_name_from_json_body():
    body = json.dumps({"name": "Jane"}).encode()
    resp = asyncio.run(main(make_request(body=body, method="POST")))
    assert resp.get_body().decode() == "Hello, Jane. This HTTP triggered function executed successfully."


def test_invalid_or_empty_body_is_treated_as_empty():
    assert dict(request_from_http(make_request(body=b"")).body) == {}
    assert dict(request_from_http(make_request(body=b"not json", method="POST")).body) == {}
    assert dict(request_from_http(make_request(body=b"[1, 2]", method="POST")).body) == {}
    resp = asyncio.run(main(make_request(body=b"not json", method="POST")))
    assert resp.get_body().decode() == "Hello, World. This HTTP triggered function executed successfully."


def test_empty_query_parameter_wins():
    body = json.dumps({"name": "B"}).encode()
    resp = asyncio.run(main(make_request({"name": ""}, body=body, method="POST")))
    assert resp.get_body().decode() == "Hello, . This HTTP triggered function executed successfully."


def test_response_to_http_keeps_status_and_headers():
    resp = response_to_http(Response(status=200, body="hi", headers={"Content-Type": "text/plain", "X-Function-Name": "HelloWorld"}))
    assert resp.status_code == 200
    assert resp.get_body() == b"hi"
    assert resp.headers["Content-Type"] == "text/plain"
