"""結果の出力モジュール（クリップボード用 TSV・CSV・HTML レポート）."""

from __future__ import annotations

import csv
import html
import io
from datetime import date, datetime
from urllib.parse import quote

from price_checker.analysis import NOT_AVAILABLE, days_until
from price_checker.models import ResultRecord, ResultStatus, Snapshot

CLIPBOARD_HEADERS = [
    "#", "URL", "Your Price", "Current Price", "Price Change",
    "Availability", "Delivery", "Status",
]
CSV_HEADERS = [
    "#", "URL", "Your Price", "Current Price", "Price Change", "Price Change %",
    "Availability", "Delivery Date", "Status",
]


def status_text(record: ResultRecord) -> str:
    if record.status is ResultStatus.SUCCESS:
        return "Success"
    if record.status is ResultStatus.PROCESSING:
        return "Processing..."
    if record.status is ResultStatus.BLOCKED:
        return "Blocked"
    if record.error_message:
        return record.error_message
    return "Pending"


def format_price_change(change: float | None, change_percent: float | None) -> str:
    """'↗️ +$20.00 (+20.0%)' 形式. 変化なし・不明は N/A."""
    if not change or not change_percent:
        return NOT_AVAILABLE
    sign = "+" if change > 0 else ""
    arrow = "↗️" if change > 0 else "↘️"
    return f"{arrow} {sign}${change:.2f} ({sign}{change_percent:.1f}%)"


def format_delivery_date(delivery_date: str | None, reference_now: datetime) -> str:
    """'Jul 15 (12 days)' 形式."""
    if not delivery_date or delivery_date == NOT_AVAILABLE:
        return NOT_AVAILABLE
    days = days_until(delivery_date, reference_now)
    if days is None:
        return delivery_date
    d = date.fromisoformat(delivery_date)
    return f"{d.strftime('%b')} {d.day} ({days} days)"


def _saved_price_text(saved_price: float | None, currency: str = "$") -> str:
    return f"{currency}{saved_price:.2f}" if saved_price else NOT_AVAILABLE


def to_clipboard_text(results: list[ResultRecord], reference_now: datetime) -> str:
    """タブ区切りの表（8 列）を返す."""
    rows = [CLIPBOARD_HEADERS]
    for i, r in enumerate(results, start=1):
        rows.append([
            str(i),
            r.url,
            _saved_price_text(r.saved_price),
            r.current_price or NOT_AVAILABLE,
            format_price_change(r.price_change, r.price_change_percent),
            r.availability or NOT_AVAILABLE,
            format_delivery_date(r.delivery_date, reference_now),
            status_text(r),
        ])
    return "\n".join("\t".join(row) for row in rows)


def to_csv(results: list[ResultRecord]) -> str:
    """全セルをダブルクォートで囲んだ CSV（9 列）を返す."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for i, r in enumerate(results, start=1):
        writer.writerow([
            i,
            r.url,
            _saved_price_text(r.saved_price, currency=""),
            r.current_price or NOT_AVAILABLE,
            f"{r.price_change:.2f}" if r.price_change else NOT_AVAILABLE,
            f"{r.price_change_percent:.1f}%" if r.price_change_percent else NOT_AVAILABLE,
            r.availability or NOT_AVAILABLE,
            r.delivery_date or NOT_AVAILABLE,
            status_text(r),
        ])
    return buf.getvalue().rstrip("\n")


def csv_filename(today: date) -> str:
    return f"amazon-price-comparison-{today.isoformat()}.csv"


_REPORT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Amazon Price Comparison Results</title>
<style>
body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; margin: 24px; }}
table {{ border-collapse: collapse; width: 100%; font-size: 13px; }}
th, td {{ border: 1px solid #e5e7eb; padding: 6px 8px; text-align: left; }}
th {{ background: #f3f4f6; }}
.summary span {{ display: inline-block; margin-right: 16px; }}
.increase {{ color: #dc2626; }}
.decrease {{ color: #16a34a; }}
</style>
</head>
<body>
<h1>Amazon Price Comparison Results</h1>
<p>Generated {generated}</p>
<div class="summary">
<span>Total: {total}</span>
<span>Processed: {processed}</span>
<span>Success: {success}</span>
<span>Failed: {failed}</span>
<span>Blocked: {blocked}</span>
</div>
<div class="summary">
<span>Out of stock: {out_of_stock}</span>
<span>Late delivery: {late_delivery}</span>
<span>Price increased: {price_increased}</span>
<span>Low stock: {low_stock}</span>
</div>
<p><a href="data:text/csv;charset=utf-8,{csv_data}" download="{csv_name}">Download CSV</a></p>
<table>
<thead><tr>{header_cells}</tr></thead>
<tbody>
{body_rows}
</tbody>
</table>
</body>
</html>
"""


def _price_change_class(change_percent: float | None) -> str:
    if not change_percent:
        return "no-change"
    if change_percent >= 15:
        return "increase"
    if change_percent <= -15:
        return "decrease"
    return "no-change"


def to_html_report(snapshot: Snapshot, reference_now: datetime) -> str:
    """集計と結果表、CSV ダウンロードを埋め込んだ単体の HTML を返す."""
    rows = []
    for i, r in enumerate(snapshot.results, start=1):
        url = html.escape(r.url)
        cells = [
            str(i),
            f'<a href="{url}" target="_blank">{url}</a>',
            html.escape(_saved_price_text(r.saved_price)),
            html.escape(r.current_price or NOT_AVAILABLE),
            '<span class="{}">{}</span>'.format(
                _price_change_class(r.price_change_percent),
                html.escape(format_price_change(r.price_change, r.price_change_percent)),
            ),
            html.escape(r.availability or NOT_AVAILABLE),
            html.escape(format_delivery_date(r.delivery_date, reference_now)),
            html.escape(status_text(r)),
        ]
        rows.append("<tr>" + "".join(f"<td>{c}</td>" for c in cells) + "</tr>")

    stats = snapshot.stats
    enhanced = snapshot.enhanced_stats
    return _REPORT_TEMPLATE.format(
        generated=html.escape(reference_now.strftime("%Y-%m-%d %H:%M")),
        total=stats.total,
        processed=stats.processed,
        success=stats.success,
        failed=stats.failed,
        blocked=stats.blocked,
        out_of_stock=enhanced.out_of_stock,
        late_delivery=enhanced.late_delivery,
        price_increased=enhanced.price_increased,
        low_stock=enhanced.low_stock,
        csv_data=quote(to_csv(snapshot.results)),
        csv_name=csv_filename(reference_now.date()),
        header_cells="".join(f"<th>{h}</th>" for h in CLIPBOARD_HEADERS),
        body_rows="\n".join(rows),
    )
