import httpx
import pytest

from sbwsz_mcp.api import SbwszClient

BASE_URL = "https://sbwsz.test/api/v1"


@pytest.fixture
def anyio_backend():
    return "asyncio"


class RecordingApi:
    """Fake SBWSZ API: records requests and answers with a canned response."""

    def __init__(self, status_code=200, json=None, content=None, headers=None, exc=None):
        self.requests: list[httpx.Request] = []
        self.status_code = status_code
        self.json = json
        self.content = content
        self.headers = headers
        self.exc = exc

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc(f"simulated failure for {request.url}", request=request)
        if self.content is not None:
            return httpx.Response(self.status_code, content=self.content, headers=self.headers)
        return httpx.Response(self.status_code, json=self.json, headers=self.headers)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def client(self) -> SbwszClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(self))
        return SbwszClient(base_url=BASE_URL, http_client=http)


@pytest.fixture
def api():
    return RecordingApi(json={"ok": True})


@pytest.fixture
def client(api):
    return api.client()
