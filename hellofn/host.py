"""Azure Functions entry point for the HelloWorld HTTP trigger."""

from typing import Any, Dict

import azure.functions as func

from .handler import Request, Response, handle


def request_from_http(req: func.HttpRequest) -> Request:
    try:
        body: Any = req.get_json()
    except ValueError:
        # empty or non-JSON payload
        body = {}
    return Request(query=dict(req.params), body=body)


def response_to_http(response: Response) -> func.HttpResponse:
    headers: Dict[str, str] = dict(response.headers)
    return func.HttpResponse(
        response.body,
        status_code=response.status,
        headers=headers,
        mimetype=headers.get("Content-Type", "text/plain"),
    )


async def main(req: func.HttpRequest) -> func.HttpResponse:
    response = await handle(request_from_http(req))
    return response_to_http(response)
