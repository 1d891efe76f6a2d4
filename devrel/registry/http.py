"""HTTP client abstraction for registry lookups.

- HttpClient: protocol, injectable for tests
- UrllibHttpClient: real implementation using urllib
- MockHttpClient: canned responses keyed by URL
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from devrel import __version__
from devrel.core.result import Err, Ok, Result
from devrel.core.structured import StrDict, as_str_dict

__all__ = ["HttpClient", "HttpError", "MockHttpClient", "UrllibHttpClient"]


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP failure. ``status`` is 0 for network-level errors."""

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@runtime_checkable
class HttpClient(Protocol):
    def get_json(self, url: str) -> Result[StrDict, HttpError]:
        """Fetch ``url`` and decode a JSON object."""
        ...


class UrllibHttpClient:
    """HttpClient using urllib with the system trust store."""

    def __init__(self, timeout: float = 30.0, user_agent: str = f"devrel/{__version__}") -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def _request(self, url: str) -> Result[bytes, HttpError]:
        req = urllib.request.Request(
            url,
            headers={"User-Agent": self.user_agent, "Accept": "application/json"},
        )
        try:
            with urllib.request.urlopen(
                req, timeout=self.timeout, context=self._ssl_context
            ) as response:
                return Ok(response.read())
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except (ValueError, OSError) as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

    def get_json(self, url: str) -> Result[StrDict, HttpError]:
        result = self._request(url)
        if isinstance(result, Err):
            return result
        try:
            data_obj: object = json.loads(result.value.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(HttpError(url=url, status=0, message=f"JSON parse error: {e}"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(HttpError(url=url, status=0, message="Expected JSON object"))
        return Ok(data)


class MockHttpClient:
    """HttpClient returning preset responses; unknown URLs answer 404.

    Usage:
        client = MockHttpClient()
        client.set_json("https://registry.example/pkg", {"dist-tags": {}})
    """

    def __init__(self) -> None:
        self._responses: dict[str, StrDict | HttpError] = {}
        self.calls: list[str] = []

    def set_json(self, url: str, response: StrDict | HttpError) -> None:
        self._responses[url] = response

    def get_json(self, url: str) -> Result[StrDict, HttpError]:
        self.calls.append(url)
        response = self._responses.get(url)
        if response is None:
            return Err(HttpError(url=url, status=404, message="Not found (mock)"))
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)
