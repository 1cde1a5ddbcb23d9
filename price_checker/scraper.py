"""商品ページの取得モジュール.

リトライは行わない。通信エラー・非 2xx 応答はすべて TransportError として送出し、
呼び出し側（オーケストレータ）が結果レコードに記録する。
"""

from __future__ import annotations

import logging

import requests

from price_checker.config import BROWSER_HEADERS, REQUEST_TIMEOUT
from price_checker.errors import TransportError
from price_checker.models import FetchedPage

logger = logging.getLogger(__name__)


class HttpFetcher:
    """requests.Session でブラウザ相当のヘッダを付けてページを取得する."""

    def __init__(
        self,
        session: requests.Session | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self._session = session or requests.Session()
        self._headers = dict(headers or BROWSER_HEADERS)
        self._timeout = timeout

    def fetch_html(self, url: str) -> FetchedPage:
        """商品ページの HTML を取得する.

        Args:
            url: 正規化済みの商品 URL

        Returns:
            FetchedPage（HTML とステータスコード）

        Raises:
            TransportError: 通信失敗または非 2xx 応答
        """
        try:
            resp = self._session.get(url, headers=self._headers, timeout=self._timeout)
        except requests.RequestException as e:
            logger.error("商品ページ取得失敗: url=%s, error=%s", url, e)
            raise TransportError(f"Request failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            logger.error("商品ページ取得失敗: url=%s, status=%d", url, resp.status_code)
            raise TransportError(
                f"HTTP {resp.status_code}: {resp.reason}", status_code=resp.status_code
            )

        return FetchedPage(html=resp.text, status_code=resp.status_code)
