import json
import logging

from exceptions import StoreError
from models import CaseRecord, Order, QueryLogEntry

logger = logging.getLogger(__name__)


def record_to_row(record):
    return {
        'id': record.id,
        'case_number': record.case_number,
        'case_type': record.case_type,
        'filing_year': record.filing_year,
        'petitioner': record.petitioner,
        'respondent': record.respondent,
        'filing_date': record.filing_date,
        'next_hearing_date': record.next_hearing_date,
        'status': record.status,
        'orders_json': json.dumps([order.to_dict() for order in record.orders]),
        'last_updated': record.last_updated,
    }


def row_to_record(row):
    try:
        orders = json.loads(row.get('orders_json') or '[]')
    except (ValueError, TypeError):
        orders = []

    return CaseRecord(
        case_type=row['case_type'],
        case_number=row['case_number'],
        filing_year=row['filing_year'],
        petitioner=row.get('petitioner') or '',
        respondent=row.get('respondent') or '',
        filing_date=row.get('filing_date') or '',
        next_hearing_date=row.get('next_hearing_date') or '',
        status=row.get('status') or '',
        orders=[Order.from_dict(order) for order in orders if isinstance(order, dict)],
        last_updated=row['last_updated'],
    )


def row_to_log_entry(row):
    return QueryLogEntry(
        id=row['id'],
        case_type=row['case_type'],
        case_number=row['case_number'],
        filing_year=row['filing_year'],
        timestamp=row['timestamp'],
        success=bool(row['success']),
        raw_response=row.get('raw_response'),
        error_message=row.get('error_message'),
        response_time_ms=row.get('response_time_ms'),
    )


class CaseCache:
    """Reads and writes case records and the query log through a CourtDatabase."""

    def __init__(self, database):
        self.database = database

    def lookup(self, case_type, case_number, filing_year):
        row = self.database.get_case(case_type, case_number, filing_year)
        return row_to_record(row) if row else None

    def save(self, record):
        self.database.upsert_case(record_to_row(record))
        logger.info(f"Cached case {record.id}")

    def log_attempt(self, case_type, case_number, filing_year, success, detail,
                    latency_ms, timestamp=None):
        """Append one query log entry. Store failures are logged and swallowed."""
        try:
            self.database.append_query(
                case_type,
                case_number,
                filing_year,
                success,
                raw_response=detail if success else None,
                error_message=None if success else detail,
                response_time_ms=latency_ms,
                timestamp=timestamp
            )
        except StoreError as e:
            logger.error(f"Error logging query for {case_type}-{case_number}-{filing_year}: {e}")

    def history(self, limit=50):
        return [row_to_log_entry(row) for row in self.database.recent_queries(limit)]
