"""
Sales reporting: daily summary and Excel export of closed transactions
"""

import io
from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Optional

import pandas as pd
from sqlalchemy.orm import Session

from restopos.schemas.transaction import DailyReport, TransactionResponse
from restopos.services.table_service import line_total, to_money
from restopos.services.transaction_service import TransactionService

class ReportService:
    """Service for sales reports"""

    TRANSACTION_COLUMNS = ['Completed At', 'Table', 'Total', 'Opened By', 'Closed By', 'Items']
    ITEM_COLUMNS = ['Product', 'Quantity', 'Revenue']

    @staticmethod
    def day_bounds(day: date):
        return datetime.combine(day, time.min), datetime.combine(day, time.max)

    @staticmethod
    def daily_report(db: Session, day: Optional[date] = None) -> DailyReport:
        """Total sales, number of closed tables and average check for a day"""
        day = day or datetime.utcnow().date()
        start, end = ReportService.day_bounds(day)
        transactions = TransactionService.list_transactions(db, start, end)

        total_sales = to_money(sum((t.total_amount for t in transactions), Decimal("0")))
        count = len(transactions)
        average_check = to_money(total_sales / count) if count else Decimal("0.00")

        return DailyReport(
            day=day,
            total_sales=total_sales,
            transaction_count=count,
            average_check=average_check,
            transactions=transactions
        )

    @staticmethod
    def transactions_frame(transactions: List[TransactionResponse]) -> pd.DataFrame:
        """One row per closed transaction"""
        data = []
        for transaction in transactions:
            data.append({
                'Completed At': transaction.completed_at.strftime('%Y-%m-%d %H:%M') if transaction.completed_at else '',
                'Table': transaction.table_name,
                'Total': float(transaction.total_amount),
                'Opened By': transaction.opened_by or '',
                'Closed By': transaction.closed_by or '',
                'Items': ', '.join(f"{item.quantity}x {item.name}" for item in transaction.items)
            })
        return pd.DataFrame(data, columns=ReportService.TRANSACTION_COLUMNS)

    @staticmethod
    def items_frame(transactions: List[TransactionResponse]) -> pd.DataFrame:
        """Quantity and revenue per product name, best sellers first"""
        rows = [
            {
                'Product': item.name,
                'Quantity': item.quantity,
                'Revenue': float(line_total(item.price, item.quantity))
            }
            for transaction in transactions
            for item in transaction.items
        ]
        if not rows:
            return pd.DataFrame(columns=ReportService.ITEM_COLUMNS)

        df = pd.DataFrame(rows)
        df = df.groupby('Product', as_index=False)[['Quantity', 'Revenue']].sum()
        df['Revenue'] = df['Revenue'].round(2)
        return df.sort_values(['Quantity', 'Product'], ascending=[False, True]).reset_index(drop=True)

    @staticmethod
    def export_transactions(db: Session, start: datetime, end: datetime) -> bytes:
        """Export closed transactions in a range to Excel"""
        transactions = TransactionService.list_transactions(db, start, end)

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            ReportService.transactions_frame(transactions).to_excel(writer, index=False, sheet_name='Transactions')
            ReportService.items_frame(transactions).to_excel(writer, index=False, sheet_name='Items Sold')

        return buffer.getvalue()
