from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional


def utcnow():
    return datetime.now(timezone.utc)


def isoformat(value):
    """Render an aware datetime the way timestamps are stored: UTC with a Z suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_timestamp(value):
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except (ValueError, TypeError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def make_case_id(case_type, case_number, filing_year):
    return f"{case_type}-{case_number}-{filing_year}"


@dataclass
class Order:
    date: str
    title: str
    pdf_url: str = ''

    def to_dict(self):
        return {'date': self.date, 'title': self.title, 'pdfUrl': self.pdf_url}

    @classmethod
    def from_dict(cls, data):
        return cls(
            date=data.get('date', ''),
            title=data.get('title', ''),
            pdf_url=data.get('pdfUrl') or data.get('pdf_url') or ''
        )


@dataclass
class CaseRecord:
    case_type: str
    case_number: str
    filing_year: str
    petitioner: str = ''
    respondent: str = ''
    filing_date: str = ''
    next_hearing_date: str = ''
    status: str = ''
    orders: List[Order] = field(default_factory=list)
    last_updated: str = ''

    @property
    def id(self):
        return make_case_id(self.case_type, self.case_number, self.filing_year)

    def to_dict(self):
        return {
            'id': self.id,
            'caseNumber': self.case_number,
            'caseType': self.case_type,
            'filingYear': self.filing_year,
            'parties': {
                'petitioner': self.petitioner,
                'respondent': self.respondent,
            },
            'filingDate': self.filing_date,
            'nextHearingDate': self.next_hearing_date,
            'status': self.status,
            'orders': [order.to_dict() for order in self.orders],
            'lastUpdated': self.last_updated,
        }


@dataclass
class QueryLogEntry:
    id: int
    case_type: str
    case_number: str
    filing_year: str
    timestamp: str
    success: bool
    raw_response: Optional[str] = None
    error_message: Optional[str] = None
    response_time_ms: Optional[int] = None

    @property
    def detail(self):
        return self.raw_response if self.success else self.error_message

    def to_dict(self):
        return {
            'id': self.id,
            'caseType': self.case_type,
            'caseNumber': self.case_number,
            'filingYear': self.filing_year,
            'timestamp': self.timestamp,
            'success': self.success,
            'detail': self.detail,
            'responseTimeMs': self.response_time_ms,
        }


@dataclass
class Court:
    id: int
    name: str
    url: str
    location: str
    type: str
    active: bool = True

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'url': self.url,
            'location': self.location,
            'type': self.type,
            'active': self.active,
        }


@dataclass
class CaseType:
    id: int
    court_id: int
    type_name: str
    type_code: str
    description: str = ''
    active: bool = True

    def to_dict(self):
        return {
            'id': self.id,
            'courtId': self.court_id,
            'typeName': self.type_name,
            'typeCode': self.type_code,
            'description': self.description,
            'active': self.active,
        }
