"""例外定義.

商品単位のエラー（TransportError / BlockedError / StructuralParseError）は
オーケストレータが捕捉して結果レコードに記録する。
ValidationError はバッチ開始前に送出され、バッチは開始されない。
"""

from __future__ import annotations


class PriceCheckerError(Exception):
    """全例外の基底クラス."""


class TransportError(PriceCheckerError):
    """ページ取得の失敗（通信エラー・非 2xx 応答）."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BlockedError(PriceCheckerError):
    """ボット確認ページが返された."""


class StructuralParseError(PriceCheckerError):
    """取得は成功したがタイトル・価格・在庫のいずれも見つからない."""


class ValidationError(PriceCheckerError):
    """入力が不正（URL 0 件・上限超過など）."""


class BatchStateError(PriceCheckerError):
    """現在のバッチ状態では実行できない操作."""
