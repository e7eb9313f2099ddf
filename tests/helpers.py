import base64
import json
import time
from typing import Any, Dict, List, Optional


def make_token(exp_offset: int = 3600, sub: str = "user-1") -> str:
    def _segment(payload: Dict[str, Any]) -> str:
        raw = json.dumps(payload).encode("utf-8")
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")

    header = _segment({"alg": "HS256", "typ": "JWT"})
    payload = _segment({"sub": sub, "exp": int(time.time()) + exp_offset})
    return f"{header}.{payload}.signature"


class FakeResponse:
    def __init__(self, data: Any) -> None:
        self.data = data


class FakeQuery:
    """Chainable stand-in for a PostgREST request builder."""

    def __init__(self, client: "FakePostgrestClient", table: str) -> None:
        self.client = client
        self.table = table
        self.calls: List[tuple] = []

    def __getattr__(self, name: str):
        def _record(*args: Any, **kwargs: Any) -> "FakeQuery":
            self.calls.append((name, args, kwargs))
            return self

        return _record

    def execute(self) -> FakeResponse:
        self.client.queries.append(self)
        result = self.client.results[self.table].pop(0)
        if isinstance(result, Exception):
            raise result
        return FakeResponse(result)


class FakePostgrestClient:
    def __init__(self, results: Optional[Dict[str, List[Any]]] = None) -> None:
        self.results = results or {}
        self.queries: List[FakeQuery] = []

    def __enter__(self) -> "FakePostgrestClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        return None

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)
