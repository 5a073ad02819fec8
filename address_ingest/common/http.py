"""HTTP client for streamed archive downloads."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import TracebackType

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from address_ingest.common.constants import USER_AGENT
from address_ingest.common.errors import FetchError
from address_ingest.common.fs import ensure_dir

CHUNK_SIZE = 1024 * 128


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 20.0
    read: float = 120.0


@dataclass(frozen=True)
class RetryConfig:
    # One attempt means no retries; retry policy is owned by whoever runs the pipeline.
    max_attempts: int = 1
    multiplier: float = 1.0
    max_wait: float = 30.0


class HttpRequestError(FetchError):
    error_code = "HTTP_ERROR"


class HttpClient:
    def __init__(
        self,
        *,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
    ) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self.session = requests.Session()

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": USER_AGENT, "Accept": "*/*"}

    def _download(self, url: str, target_path: Path) -> int:
        ensure_dir(target_path.parent)
        try:
            with self.session.get(
                url,
                headers=self._headers(),
                timeout=(self.timeout.connect, self.timeout.read),
                stream=True,
            ) as response:
                if response.status_code >= 400:
                    raise HttpRequestError(f"HTTP status {response.status_code} for {url}")
                written = 0
                with target_path.open("wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                            written += len(chunk)
                return written
        except requests.RequestException as exc:
            raise HttpRequestError(f"Download failed for {url}: {exc}") from exc
        except OSError as exc:
            raise FetchError(f"Could not write {target_path}: {exc}") from exc

    def download_to_file(self, url: str, target_path: Path) -> int:
        """Stream ``url`` into ``target_path`` and return the byte count."""

        @retry(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.retry.multiplier,
                max=self.retry.max_wait,
                jitter=1.0,
            ),
            retry=retry_if_exception_type(HttpRequestError),
            reraise=True,
        )
        def _wrapped() -> int:
            return self._download(url, target_path)

        return _wrapped()
