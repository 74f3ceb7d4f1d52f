import json
import time
import logging
from collections import namedtuple
from datetime import timedelta

from exceptions import CourtDataError, StoreError, ValidationError
from models import isoformat, parse_timestamp, utcnow

logger = logging.getLogger(__name__)

FRESHNESS_WINDOW = timedelta(hours=24)
CACHE_HIT_DETAIL = 'Returned from cache'

FetchResult = namedtuple('FetchResult', ['record', 'from_cache', 'response_time_ms'])


def _clean(value):
    return str(value).strip() if value is not None else ''


def _elapsed_ms(started):
    return int(round((time.monotonic() - started) * 1000))


class CaseFetcher:
    """Serves case records from the cache while fresh, otherwise from the scraper.

    Every call leaves exactly one entry in the query log. A failed fetch is
    never cached and never falls back to a stale record.
    """

    def __init__(self, cache, scraper, clock=None):
        self.cache = cache
        self.scraper = scraper
        self.clock = clock or utcnow

    def is_fresh(self, record, now=None):
        updated = parse_timestamp(record.last_updated)
        if updated is None:
            return False
        return (now or self.clock()) - updated < FRESHNESS_WINDOW

    def fetch_case(self, case_type, case_number, filing_year):
        case_type, case_number, filing_year = (
            _clean(case_type), _clean(case_number), _clean(filing_year))
        if not all([case_type, case_number, filing_year]):
            raise ValidationError('Missing required fields')

        started = time.monotonic()

        cached = self.cache.lookup(case_type, case_number, filing_year)
        if cached is not None and self.is_fresh(cached):
            elapsed = _elapsed_ms(started)
            self.cache.log_attempt(case_type, case_number, filing_year, True,
                                   CACHE_HIT_DETAIL, elapsed, timestamp=isoformat(self.clock()))
            logger.info(f"Cache hit for {cached.id}")
            return FetchResult(cached, True, elapsed)

        try:
            record = self.scraper.fetch(case_type, case_number, filing_year)
        except Exception as e:
            elapsed = _elapsed_ms(started)
            message = e.message if isinstance(e, CourtDataError) else (str(e) or 'Unknown error')
            self.cache.log_attempt(case_type, case_number, filing_year, False,
                                   message, elapsed, timestamp=isoformat(self.clock()))
            logger.warning(f"Fetch failed for {case_type}-{case_number}-{filing_year}: {message}")
            raise

        try:
            self.cache.save(record)
        except StoreError as e:
            self.cache.log_attempt(case_type, case_number, filing_year, False,
                                   e.message, _elapsed_ms(started), timestamp=isoformat(self.clock()))
            raise
        elapsed = _elapsed_ms(started)
        self.cache.log_attempt(case_type, case_number, filing_year, True,
                               json.dumps(record.to_dict()), elapsed, timestamp=isoformat(self.clock()))
        logger.info(f"Fetched {record.id} in {elapsed}ms")
        return FetchResult(record, False, elapsed)
