import httpx
import pytest

from docchat.core.errors import FetchError
from docchat.core.fetch.downloader import Downloader

URL = "https://files.example.com/f/key-1"


def _downloader(handler) -> Downloader:
    return Downloader(client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_fetch_returns_body():
    downloader = _downloader(lambda request: httpx.Response(200, content=b"%PDF-1.7 body"))

    assert downloader.fetch(URL) == b"%PDF-1.7 body"


def test_non_200_is_a_fetch_error():
    downloader = _downloader(lambda request: httpx.Response(404, content=b"missing"))

    with pytest.raises(FetchError, match="404"):
        downloader.fetch(URL)


def test_empty_body_is_a_fetch_error():
    downloader = _downloader(lambda request: httpx.Response(200, content=b""))

    with pytest.raises(FetchError):
        downloader.fetch(URL)


def test_transport_failure_is_a_fetch_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FetchError):
        _downloader(handler).fetch(URL)


def test_oversized_body_is_rejected():
    downloader = _downloader(lambda request: httpx.Response(200, content=b"x" * 64))
    downloader.config = downloader.config.model_copy(update={"max_bytes": 16})

    with pytest.raises(FetchError, match="exceeds"):
        downloader.fetch(URL)
