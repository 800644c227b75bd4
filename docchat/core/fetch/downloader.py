import logging
import httpx
from docchat.core.errors import FetchError
from docchat.config.settings import settings

logger = logging.getLogger(__name__)

class Downloader:
    """Retrieves raw document bytes from the file storage service."""

    def __init__(self, client: httpx.Client | None = None):
        self.config = settings.fetch
        self.client = client

    def fetch(self, url: str) -> bytes:
        try:
            if self.client is not None:
                data = self._read(self.client, url)
            else:
                with httpx.Client(timeout=self.config.timeout, follow_redirects=True) as client:
                    data = self._read(client, url)
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch file: {e}") from e

        if not data:
            raise FetchError("Downloaded file is empty")

        logger.info(f"Fetched {len(data)} bytes from {url}")
        return data

    def _read(self, client: httpx.Client, url: str) -> bytes:
        with client.stream("GET", url) as response:
            if response.status_code != 200:
                raise FetchError(f"Failed to fetch file: HTTP {response.status_code}")

            buf = bytearray()
            for chunk in response.iter_bytes():
                buf.extend(chunk)
                if len(buf) > self.config.max_bytes:
                    raise FetchError(f"File exceeds {self.config.max_bytes} bytes")
            return bytes(buf)
