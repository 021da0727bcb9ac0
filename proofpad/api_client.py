"""API client — talks to a LanguageTool server over HTTP."""
import logging
import threading
from typing import Callable, Optional, List

import requests

from proofpad.matches import Match, parse_matches

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """The client is missing required configuration."""


class AnalysisError(Exception):
    """An analysis request failed; the caller should fall back."""


class ServiceUnavailable(AnalysisError):
    """Transport failure, timeout or non-success HTTP status."""


class MalformedResponse(AnalysisError):
    """The service answered, but not with a usable match payload."""


class RequestCancelled(Exception):
    """The request was superseded. Expected, never reported to the user."""


class CancelToken:
    """Cancellation handle passed along with a single request.

    Callbacks registered with ``on_cancel`` run once, on the thread that
    calls ``cancel``; registering on an already-cancelled token runs the
    callback immediately.
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self):
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for cb in callbacks:
            try:
                cb()
            except Exception as e:
                logger.debug("Cancel callback failed: %s", e)

    def on_cancel(self, callback: Callable[[], None]):
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise RequestCancelled()


def normalize_base_url(raw: str) -> str:
    """Strip trailing slashes and make sure the URL ends with ``/v2``.

    e.g. https://api.languagetool.org → https://api.languagetool.org/v2
    """
    base = (raw or "").strip().rstrip("/")
    if not base:
        raise ConfigError("LanguageTool base URL is not set")
    return base if base.endswith("/v2") else f"{base}/v2"


class LanguageToolClient:
    """Client for the LanguageTool /v2 HTTP API."""

    def __init__(self, base_url: str, timeout_ms: int = 10000,
                 username: str = "", api_key: str = "",
                 session_factory: Callable[[], requests.Session] = requests.Session):
        self.api_url = normalize_base_url(base_url)
        self.timeout_sec = timeout_ms / 1000.0
        self.username = username
        self.api_key = api_key
        self._session_factory = session_factory

    def check(self, text: str, language: str = "auto",
              cancel: Optional[CancelToken] = None) -> List[Match]:
        """POST /v2/check and return the decoded matches.

        Raises ServiceUnavailable / MalformedResponse on failure and
        RequestCancelled if ``cancel`` fired before the answer was used.
        Closing the session on cancel aborts the connection where the
        transport allows it.
        """
        cancel = cancel or CancelToken()
        cancel.raise_if_cancelled()

        form = {"text": text, "language": language or "auto"}
        # Premium API auth (LanguageTool Plus)
        if self.username and self.api_key:
            form["username"] = self.username
            form["apiKey"] = self.api_key

        url = f"{self.api_url}/check"
        session = self._session_factory()
        cancel.on_cancel(session.close)
        try:
            resp = session.post(
                url,
                data=form,
                headers={"Accept": "application/json"},
                timeout=self.timeout_sec,
            )
        except requests.Timeout:
            cancel.raise_if_cancelled()
            logger.debug("Check timed out after %.1fs", self.timeout_sec)
            raise ServiceUnavailable("LanguageTool request timed out")
        except requests.ConnectionError as e:
            cancel.raise_if_cancelled()
            logger.debug("Check connection error — is the server reachable? URL: %s", url)
            raise ServiceUnavailable(f"Cannot reach LanguageTool: {e}")
        except requests.RequestException as e:
            cancel.raise_if_cancelled()
            raise ServiceUnavailable(f"LanguageTool request failed: {e}")
        finally:
            session.close()

        cancel.raise_if_cancelled()

        if not resp.ok:
            raise ServiceUnavailable(f"LanguageTool error {resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            raise MalformedResponse("LanguageTool returned invalid JSON")

        try:
            return parse_matches(data, text)
        except ValueError as e:
            raise MalformedResponse(str(e))

    def probe(self) -> bool:
        """Lightweight reachability check (GET /v2/languages)."""
        url = f"{self.api_url}/languages"
        try:
            resp = requests.get(url, headers={"Accept": "application/json"},
                                timeout=min(self.timeout_sec, 5.0))
            if not resp.ok:
                logger.debug("Health probe got HTTP %d from %s", resp.status_code, url)
            return resp.ok
        except requests.Timeout:
            logger.debug("Health probe timed out at %s", url)
        except requests.ConnectionError:
            logger.debug("Health probe connection error at %s", url)
        except Exception as e:
            logger.debug("Health probe error: %s", e)
        return False

    def fetch_languages(self) -> List[dict]:
        """Fetch supported languages.

        Returns dicts with at least 'code' and 'name', e.g.:
            [{"name": "English (US)", "code": "en", "longCode": "en-US"}, ...]

        Returns empty list on failure.
        """
        url = f"{self.api_url}/languages"
        try:
            resp = requests.get(url, headers={"Accept": "application/json"},
                                timeout=max(self.timeout_sec, 3.0))
            resp.raise_for_status()
            data = resp.json()

            if isinstance(data, list):
                return [lang for lang in data
                        if isinstance(lang, dict) and 'code' in lang and 'name' in lang]

            logger.debug("Unexpected languages response format: %s", type(data))
            return []

        except requests.Timeout:
            logger.debug("Languages request timed out at %s", url)
        except requests.ConnectionError:
            logger.debug("Languages connection error — is the server running? URL: %s", url)
        except Exception as e:
            logger.debug("Languages request error: %s", e)

        return []
