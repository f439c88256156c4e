import json
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional


LOG_MESSAGE = "JavaScript HTTP trigger function processed a request."
DEFAULT_SUBJECT = "World"
GREETING = "Hello, {subject}. This HTTP triggered function executed successfully."
FUNCTION_NAME = "HelloWorld"

logger = logging.getLogger(__name__)


def _as_mapping(value: Any) -> Mapping[str, Any]:
    # read-only copy; absent or non-object payloads become an empty mapping
    if isinstance(value, Mapping):
        return MappingProxyType(dict(value))
    return MappingProxyType({})


@dataclass(frozen=True)
class Request:
    query: Mapping[str, str] = field(default_factory=dict)
    body: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "query", _as_mapping(self.query))
        object.__setattr__(self, "body", _as_mapping(self.body))


@dataclass
class Response:
    status: int
    body: str
    headers: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "body": self.body, "headers": dict(self.headers)}


def resolve_subject(request: Request) -> str:
    """
    Pick the name to greet.

    The query string wins over the body, and the body wins over the default.
    A key that is present counts even when its value is the empty string;
    only a missing key or a null value falls through. Non-string values are
    rendered as JSON text.
    """
    for source in (request.query, request.body):
        value = source.get("name")
        if value is not None:
            return value if isinstance(value, str) else json.dumps(value)
    return DEFAULT_SUBJECT


async def handle(request: Request, log: Optional[Callable[[str], Any]] = None) -> Response:
    (log or logger.info)(LOG_MESSAGE)
    subject = resolve_subject(request)
    return Response(
        status=200,
        body=GREETING.format(subject=subject),
        headers={
            "Content-Type": "text/plain",
            "X-Function-Name": FUNCTION_NAME,
        },
    )
