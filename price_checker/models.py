"""データモデル定義."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum


class ResultStatus(str, Enum):
    """結果レコードの処理状態."""

    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    BLOCKED = "blocked"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ResultStatus.SUCCESS, ResultStatus.BLOCKED, ResultStatus.ERROR)


# 許可される状態遷移（前進のみ）
_TRANSITIONS = {
    ResultStatus.PENDING: {ResultStatus.PROCESSING},
    ResultStatus.PROCESSING: {ResultStatus.SUCCESS, ResultStatus.BLOCKED, ResultStatus.ERROR},
}


@dataclass(frozen=True)
class ProductRequest:
    """チェック対象の1商品."""

    url: str  # 正規化済み URL（クエリ・フラグメントなし）
    saved_price: float | None = None  # 参照価格


@dataclass
class FetchedPage:
    """取得した商品ページ."""

    html: str
    status_code: int


@dataclass
class ExtractedFields:
    """商品ページから抽出した項目."""

    price: str | None = None  # 表示文字列のまま
    availability: str | None = None
    delivery_date: str | None = None  # YYYY-MM-DD
    title: str | None = None
    blocked: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.title and not self.price and not self.availability


@dataclass
class PriceAnalysis:
    """参照価格と現在価格の比較結果."""

    current_price: str | None
    price_change: float | None
    price_change_percent: float | None


@dataclass
class ResultRecord:
    """1商品の処理結果. バッチ進行に合わせてその場で更新される."""

    id: str
    url: str
    saved_price: float | None = None
    current_price: str | None = None
    price_change: float | None = None
    price_change_percent: float | None = None
    availability: str | None = None
    delivery_date: str | None = None
    title: str | None = None
    status: ResultStatus = ResultStatus.PENDING
    error_message: str | None = None

    def transition(self, status: ResultStatus) -> None:
        """状態を前進させる. 逆行・スキップは ValueError."""
        if status not in _TRANSITIONS.get(self.status, set()):
            raise ValueError(f"不正な状態遷移: {self.status.value} -> {status.value}")
        self.status = status

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> ResultRecord:
        return cls(
            id=data["id"],
            url=data["url"],
            saved_price=data.get("saved_price"),
            current_price=data.get("current_price"),
            price_change=data.get("price_change"),
            price_change_percent=data.get("price_change_percent"),
            availability=data.get("availability"),
            delivery_date=data.get("delivery_date"),
            title=data.get("title"),
            status=ResultStatus(data.get("status", ResultStatus.PENDING.value)),
            error_message=data.get("error_message"),
        )


@dataclass
class BatchStats:
    """バッチ全体の集計."""

    total: int = 0
    processed: int = 0
    success: int = 0
    failed: int = 0
    blocked: int = 0


@dataclass
class EnhancedStats:
    """派生シグナルの集計（毎回全件から再計算）."""

    out_of_stock: int = 0
    late_delivery: int = 0
    price_increased: int = 0
    low_stock: int = 0


@dataclass
class Snapshot:
    """永続化するオーケストレータ状態の全体."""

    results: list[ResultRecord] = field(default_factory=list)
    stats: BatchStats = field(default_factory=BatchStats)
    enhanced_stats: EnhancedStats = field(default_factory=EnhancedStats)
    is_processing: bool = False
    input_mode: str = "simple"  # "simple" or "spreadsheet"
    input_text: str = ""
    spreadsheet_data: list[dict] = field(default_factory=list)  # [{"url", "price"}, ...]
    pending_urls: list[dict] = field(default_factory=list)  # [{"url", "saved_price"}, ...]
    timestamp: int = 0  # epoch ミリ秒

    def to_dict(self) -> dict:
        return {
            "results": [r.to_dict() for r in self.results],
            "stats": asdict(self.stats),
            "enhanced_stats": asdict(self.enhanced_stats),
            "is_processing": self.is_processing,
            "input_mode": self.input_mode,
            "input_text": self.input_text,
            "spreadsheet_data": [dict(row) for row in self.spreadsheet_data],
            "pending_urls": [dict(p) for p in self.pending_urls],
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Snapshot:
        return cls(
            results=[ResultRecord.from_dict(r) for r in data.get("results") or []],
            stats=BatchStats(**(data.get("stats") or {})),
            enhanced_stats=EnhancedStats(**(data.get("enhanced_stats") or {})),
            is_processing=bool(data.get("is_processing", False)),
            input_mode=data.get("input_mode") or "simple",
            input_text=data.get("input_text") or "",
            spreadsheet_data=list(data.get("spreadsheet_data") or []),
            pending_urls=list(data.get("pending_urls") or []),
            timestamp=int(data.get("timestamp") or 0),
        )
