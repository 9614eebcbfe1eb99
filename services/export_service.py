"""
services/export_service.py
---------------------------
Generates CSV and Excel exports of a month's collected payments.
"""

import io
from datetime import date
from typing import Optional

import pandas as pd

from repositories.payment_repo import PaymentRepository
from services.stats_service import UNKNOWN_COLLECTOR
from utils.dates import month_end, month_start
from utils.logger import get_logger

logger = get_logger(__name__)

_COLUMNS = ["Date", "Subscriber", "Amount", "Recorded by", "Payment #"]


class ExportService:
    """Generates downloadable payment reports in CSV and Excel formats."""

    def __init__(self, repo: Optional[PaymentRepository] = None):
        self.repo = repo or PaymentRepository()

    def _month_frame(self, reference_month: date) -> pd.DataFrame:
        payments = self.repo.get_by_date_range(
            month_start(reference_month), month_end(reference_month)
        )
        data = [
            {
                "Date": p.payment_date.isoformat(),
                "Subscriber": p.subscriber_name or UNKNOWN_COLLECTOR,
                "Amount": float(p.amount),
                "Recorded by": p.recorded_by_username or UNKNOWN_COLLECTOR,
                "Payment #": p.id,
            }
            for p in payments
        ]
        return pd.DataFrame(data, columns=_COLUMNS)

    def export_month_csv(self, reference_month: date) -> io.BytesIO:
        """
        Export a month's payments as a CSV file.

        Args:
            reference_month: Any date inside the month to export.

        Returns:
            A BytesIO buffer containing the CSV data.
        """
        df = self._month_frame(reference_month)
        buffer = io.BytesIO()
        df.to_csv(buffer, index=False, encoding="utf-8-sig")
        buffer.seek(0)
        logger.info(f"Exported {len(df)} payments as CSV for {reference_month:%Y-%m}")
        return buffer

    def export_month_excel(self, reference_month: date) -> io.BytesIO:
        """
        Export a month's payments as an Excel (.xlsx) file, with a second
        sheet summarising how much each operator collected.
        """
        df = self._month_frame(reference_month)

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="Payments", index=False)

            if not df.empty:
                summary = (
                    df.groupby("Recorded by")["Amount"]
                    .agg(["sum", "count"])
                    .reset_index()
                    .sort_values("sum", ascending=False)
                )
                summary.columns = ["Collector", "Total", "Payments"]
                summary.to_excel(writer, sheet_name="Collections", index=False)

        buffer.seek(0)
        logger.info(f"Exported {len(df)} payments as Excel for {reference_month:%Y-%m}")
        return buffer
