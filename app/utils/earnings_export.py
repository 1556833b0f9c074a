# app/utils/earnings_export.py
# 收入紀錄匯出格式 (CSV / JSON)
import csv
import io
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from pydantic import TypeAdapter

from app.models.earnings import Earnings
from app.schemas.earnings_schema import EarningsExportOut

CSV_HEADERS = ["Project", "Client", "Amount", "Date", "Status"]

# 期間 -> 往回推的天數
PERIOD_DAYS = {
    "week": 7,
    "month": 30,
    "year": 365,
}


def period_start(period: Optional[str], now: datetime) -> Optional[datetime]:
    """'all' 或未指定時不限制起始日"""
    if not period or period == "all":
        return None
    days = PERIOD_DAYS.get(period)
    if days is None:
        return None
    return now - timedelta(days=days)


def format_earnings_csv(earnings: Iterable[Earnings]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for item in earnings:
        writer.writerow([
            item.project.title if item.project else item.project_id,
            item.client.name if item.client else item.client_id,
            item.amount,
            item.date.strftime("%Y-%m-%d"),
            item.status.value,
        ])
    return buffer.getvalue()


_export_adapter = TypeAdapter(List[EarningsExportOut])


def format_earnings_json(earnings: Iterable[Earnings]) -> str:
    rows = [EarningsExportOut.model_validate(item) for item in earnings]
    return _export_adapter.dump_json(rows, indent=2).decode("utf-8")
