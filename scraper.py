import re
import time
import random
import logging
import requests
from datetime import MAXYEAR, MINYEAR, datetime, timedelta, timezone
from urllib.parse import urljoin
from bs4 import BeautifulSoup
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from exceptions import CaseNotFound, SourceUnavailable
from models import CaseRecord, Order, isoformat, utcnow

logger = logging.getLogger(__name__)

# Case numbers the mock source always fails on
NOT_FOUND_CASE_NUMBER = '9999'
UNAVAILABLE_CASE_NUMBER = '0000'


class CourtScraper:
    """Contract for court data sources.

    ``fetch`` returns a CaseRecord for the identity triple, raising
    CaseNotFound when the court has no such case and SourceUnavailable when
    the court website cannot be reached.
    """

    name = 'base'

    def fetch(self, case_type, case_number, filing_year):
        raise NotImplementedError


class MockCourtScraper(CourtScraper):
    """Synthetic court data, seeded by case id so repeat fetches agree."""

    name = 'mock'

    def __init__(self, delay=2.0, clock=None):
        self.delay = delay
        self.clock = clock or utcnow

    def fetch(self, case_type, case_number, filing_year):
        if self.delay:
            time.sleep(self.delay)

        if case_number == NOT_FOUND_CASE_NUMBER:
            raise CaseNotFound('Case not found')

        if case_number == UNAVAILABLE_CASE_NUMBER:
            raise SourceUnavailable('Court website unavailable')

        now = self.clock()
        record = CaseRecord(case_type=case_type, case_number=case_number, filing_year=filing_year)
        rng = random.Random(record.id)

        year = int(filing_year) if str(filing_year).isdecimal() else now.year
        if not MINYEAR <= year <= MAXYEAR:
            year = now.year
        filing_date = datetime(year, rng.randint(1, 12), rng.randint(1, 28), tzinfo=timezone.utc)
        next_hearing = now + timedelta(days=rng.random() * 30)

        record.petitioner = f"Petitioner Name for Case {case_number}"
        record.respondent = f"Respondent Name for Case {case_number}"
        record.filing_date = isoformat(filing_date)
        record.next_hearing_date = isoformat(next_hearing)
        record.status = 'Active' if rng.random() > 0.3 else 'Disposed'
        record.orders = [
            Order(
                date=isoformat(now - timedelta(days=rng.random() * 30)),
                title=f"Order dated {now.strftime('%d/%m/%Y')}",
                pdf_url=f"https://delhihighcourt.nic.in/orders/{case_number}_order.pdf"
            ),
            Order(
                date=isoformat(now - timedelta(days=rng.random() * 60)),
                title=f"Notice dated {(now - timedelta(days=15)).strftime('%d/%m/%Y')}",
                pdf_url=f"https://delhihighcourt.nic.in/notices/{case_number}_notice.pdf"
            ),
        ]
        record.last_updated = isoformat(now)

        logger.info(f"Generated mock data for {record.id}")
        return record


class DelhiHighCourtScraper(CourtScraper):
    """Case status lookups against the Delhi High Court website."""

    name = 'delhi'

    case_types = {
        "Civil Appeal": "CA",
        "Criminal Appeal": "CRL.A.",
        "Writ Petition": "W.P.(C)",
        "Civil Suit": "CS(OS)",
        "Criminal Case": "CRL.M.C.",
        "Company Petition": "CO.PET.",
        "Arbitration Petition": "ARB.P.",
        "Contempt Petition": "CONT.CAS(C)",
        "Criminal Writ": "W.P.(CRL)",
        "Bail Application": "BAIL APPLN.",
    }

    def __init__(self, timeout=30, clock=None):
        self.base_url = "https://delhihighcourt.nic.in"
        self.main_page_url = f"{self.base_url}/app"
        self.search_url = f"{self.base_url}/app/get-case-type-status"
        self.timeout = timeout
        self.clock = clock or utcnow

        self.session = requests.Session()
        self.session.headers.update({
            'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
            'Accept-Language': 'en-US,en;q=0.5',
            'DNT': '1',
            'Connection': 'keep-alive',
            'Upgrade-Insecure-Requests': '1',
        })

        retry_strategy = Retry(
            total=3,
            status_forcelist=[429, 500, 502, 503, 504],
            backoff_factor=1,
            allowed_methods=["HEAD", "GET", "OPTIONS", "POST"]
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def get_session_data(self):
        """Return the ``randomid`` form value and CSRF token from the case status page."""
        try:
            response = self.session.get(self.main_page_url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Could not load {self.main_page_url}: {e}")
            return None, None

        if response.status_code != 200:
            logger.warning(f"Case status page returned {response.status_code}")
            return None, None

        soup = BeautifulSoup(response.content, 'html.parser')

        randomid_input = soup.find('input', {'name': 'randomid'})
        randomid = randomid_input.get('value') if randomid_input else None

        csrf_token = None
        for script in soup.find_all('script'):
            if script.string and '_token' in script.string:
                match = re.search(r'"_token":\s*"([^"]+)"', script.string)
                if match:
                    csrf_token = match.group(1)
                    break

        if not csrf_token:
            token_input = soup.find('input', {'name': '_token'})
            csrf_token = token_input.get('value') if token_input else None

        return randomid, csrf_token

    def fetch(self, case_type, case_number, filing_year):
        randomid, csrf_token = self.get_session_data()
        if not randomid or not csrf_token:
            raise SourceUnavailable('Court website unavailable')

        search_data = {
            'case_type': self.case_types.get(case_type, case_type),
            'case_number': case_number,
            'case_year': filing_year,
            'randomid': randomid,
            '_token': csrf_token
        }
        headers = {
            'Content-Type': 'application/x-www-form-urlencoded',
            'X-Requested-With': 'XMLHttpRequest',
            'Referer': self.main_page_url
        }

        logger.info(f"Searching Delhi High Court for {search_data['case_type']} {case_number}/{filing_year}")
        try:
            response = self.session.post(self.search_url, data=search_data, headers=headers,
                                         timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Search request failed: {e}")
            raise SourceUnavailable('Court website unavailable') from e

        if response.status_code != 200:
            raise SourceUnavailable(f"Court website unavailable (status {response.status_code})")

        record = self.parse_response(response.text, case_type, case_number, filing_year)
        if record is None:
            raise CaseNotFound('Case not found')
        return record

    def parse_response(self, html_content, case_type, case_number, filing_year):
        """Build a CaseRecord from the result table row matching ``case_number/filing_year``."""
        soup = BeautifulSoup(html_content, 'html.parser')
        pattern = re.compile(rf'(?<!\d){re.escape(case_number)}\s*/\s*{re.escape(filing_year)}(?!\d)')

        for row in soup.find_all('tr'):
            cells = row.find_all('td')
            if len(cells) < 3:
                continue

            case_text = cells[1].get_text(' ', strip=True)
            if not pattern.search(case_text):
                continue

            status_match = re.search(r'\[\s*([A-Za-z ]+?)\s*\]', case_text)
            status = status_match.group(1).title() if status_match else 'Pending'

            parties = re.split(r'\s+VS\.?\s+', cells[2].get_text(' ', strip=True), maxsplit=1,
                               flags=re.IGNORECASE)
            petitioner = parties[0].strip()
            respondent = parties[1].strip() if len(parties) > 1 else ''

            listing_text = cells[3].get_text(' ', strip=True) if len(cells) > 3 else ''
            next_date = re.search(r'NEXT DATE:\s*(\d{2}/\d{2}/\d{4})', listing_text, re.IGNORECASE)
            filing_date = re.search(r'FILING DATE:\s*(\d{2}/\d{2}/\d{4})', row.get_text(' '), re.IGNORECASE)

            orders = []
            for link in row.find_all('a', href=True):
                link_text = link.get_text(' ', strip=True)
                order_date = re.search(r'\d{2}/\d{2}/\d{4}', link_text)
                orders.append(Order(
                    date=_to_iso_date(order_date.group(0)) if order_date else '',
                    title=link_text or 'Order',
                    pdf_url=urljoin(self.base_url, link['href'])
                ))

            return CaseRecord(
                case_type=case_type,
                case_number=case_number,
                filing_year=filing_year,
                petitioner=petitioner,
                respondent=respondent,
                filing_date=_to_iso_date(filing_date.group(1)) if filing_date else '',
                next_hearing_date=_to_iso_date(next_date.group(1)) if next_date else '',
                status=status,
                orders=orders,
                last_updated=isoformat(self.clock())
            )

        return None


def _to_iso_date(value):
    try:
        return datetime.strptime(value, '%d/%m/%Y').date().isoformat()
    except ValueError:
        return value


SCRAPERS = {
    MockCourtScraper.name: MockCourtScraper,
    DelhiHighCourtScraper.name: DelhiHighCourtScraper,
}


def create_scraper(mode='mock', delay=2.0, timeout=30, clock=None):
    if mode == MockCourtScraper.name:
        return MockCourtScraper(delay=delay, clock=clock)
    if mode == DelhiHighCourtScraper.name:
        return DelhiHighCourtScraper(timeout=timeout, clock=clock)
    raise ValueError(f"Unknown scraper mode: {mode}. Expected one of {', '.join(SCRAPERS)}")
