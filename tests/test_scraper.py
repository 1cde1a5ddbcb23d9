"""scraper モジュールのユニットテスト."""

from unittest.mock import MagicMock

import pytest
import requests

from price_checker.config import BROWSER_HEADERS, REQUEST_TIMEOUT
from price_checker.errors import TransportError
from price_checker.scraper import HttpFetcher

URL = "https://www.amazon.com/dp/B08N5WRWNW"


def _session(status_code: int = 200, text: str = "<html></html>", reason: str = "OK"):
    session = MagicMock()
    session.get.return_value = MagicMock(status_code=status_code, text=text, reason=reason)
    return session


class TestFetchHtml:
    """HttpFetcher.fetch_html のテスト."""

    def test_success(self):
        session = _session(text="<html><body>ok</body></html>")
        page = HttpFetcher(session=session).fetch_html(URL)

        assert page.html == "<html><body>ok</body></html>"
        assert page.status_code == 200
        session.get.assert_called_once_with(URL, headers=BROWSER_HEADERS, timeout=REQUEST_TIMEOUT)

    def test_empty_body_is_success(self):
        """本文が空でも 2xx なら成功として返すこと."""
        page = HttpFetcher(session=_session(text="")).fetch_html(URL)
        assert page.html == ""

    def test_non_2xx(self):
        session = _session(status_code=503, reason="Service Unavailable")

        with pytest.raises(TransportError) as exc_info:
            HttpFetcher(session=session).fetch_html(URL)

        assert exc_info.value.status_code == 503
        assert "HTTP 503" in str(exc_info.value)

    def test_connection_error(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("connection reset")

        with pytest.raises(TransportError) as exc_info:
            HttpFetcher(session=session).fetch_html(URL)

        assert exc_info.value.status_code is None

    def test_custom_headers(self):
        session = _session()
        HttpFetcher(session=session, headers={"User-Agent": "test"}, timeout=3).fetch_html(URL)

        session.get.assert_called_once_with(URL, headers={"User-Agent": "test"}, timeout=3)
