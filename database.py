import os
import sqlite3
import logging
import threading
from contextlib import contextmanager
from datetime import datetime

from exceptions import StoreError, ValidationError
from models import Court, CaseType, isoformat, utcnow

logger = logging.getLogger(__name__)

SCHEMA = '''
    CREATE TABLE IF NOT EXISTS queries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        case_type TEXT NOT NULL,
        case_number TEXT NOT NULL,
        filing_year TEXT NOT NULL,
        timestamp TEXT NOT NULL,
        success BOOLEAN NOT NULL DEFAULT 0,
        raw_response TEXT,
        error_message TEXT,
        response_time_ms INTEGER,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS cases (
        id TEXT PRIMARY KEY,
        case_number TEXT NOT NULL,
        case_type TEXT NOT NULL,
        filing_year TEXT NOT NULL,
        petitioner TEXT,
        respondent TEXT,
        filing_date TEXT,
        next_hearing_date TEXT,
        status TEXT,
        orders_json TEXT,
        last_updated TEXT NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(case_type, case_number, filing_year)
    );

    CREATE TABLE IF NOT EXISTS courts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        url TEXT NOT NULL,
        location TEXT,
        type TEXT,
        active BOOLEAN DEFAULT 1,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS case_types (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        court_id INTEGER,
        type_name TEXT NOT NULL,
        type_code TEXT,
        description TEXT,
        active BOOLEAN DEFAULT 1,
        FOREIGN KEY (court_id) REFERENCES courts (id),
        UNIQUE(court_id, type_name)
    );

    CREATE INDEX IF NOT EXISTS idx_queries_timestamp ON queries(timestamp);
    CREATE INDEX IF NOT EXISTS idx_queries_case ON queries(case_type, case_number, filing_year);
    CREATE INDEX IF NOT EXISTS idx_queries_success ON queries(success);

    CREATE INDEX IF NOT EXISTS idx_cases_case_info ON cases(case_type, case_number, filing_year);
    CREATE INDEX IF NOT EXISTS idx_cases_last_updated ON cases(last_updated);
    CREATE INDEX IF NOT EXISTS idx_cases_status ON cases(status);

    CREATE INDEX IF NOT EXISTS idx_case_types_court ON case_types(court_id);
    CREATE INDEX IF NOT EXISTS idx_courts_active ON courts(active);
'''

COURTS = [
    ('Delhi High Court', 'https://delhihighcourt.nic.in/', 'New Delhi', 'High Court'),
    ('Supreme Court of India', 'https://main.sci.gov.in/', 'New Delhi', 'Supreme Court'),
    ('Bombay High Court', 'https://bombayhighcourt.nic.in/', 'Mumbai', 'High Court'),
    ('Madras High Court', 'https://hcmadras.tn.nic.in/', 'Chennai', 'High Court'),
    ('Calcutta High Court', 'https://calcuttahighcourt.nic.in/', 'Kolkata', 'High Court'),
]

DELHI_CASE_TYPES = [
    ('Civil Appeal', 'CA', 'Civil Appeals'),
    ('Criminal Appeal', 'CRL.A', 'Criminal Appeals'),
    ('Writ Petition', 'W.P.(C)', 'Writ Petitions (Civil)'),
    ('Civil Suit', 'CS(OS)', 'Civil Suits (Original Side)'),
    ('Criminal Case', 'CRL.M.C', 'Criminal Miscellaneous Cases'),
    ('Company Petition', 'CP', 'Company Petitions'),
    ('Arbitration Petition', 'ARB.P', 'Arbitration Petitions'),
    ('Contempt Petition', 'CONT.CAS(C)', 'Contempt Cases (Civil)'),
    ('Criminal Writ', 'W.P.(CRL)', 'Writ Petitions (Criminal)'),
    ('Bail Application', 'BAIL APPLN', 'Bail Applications'),
]

CLEARABLE_TABLES = ('queries', 'cases')


class CourtDatabase:
    """SQLite store for cached cases, the query log and court reference data.

    The connection is opened on first use. One connection is shared by every
    caller and all statements run under a single lock, so writers never
    interleave.
    """

    def __init__(self, path):
        self.path = path
        self._conn = None
        self._lock = threading.RLock()

    @property
    def connection(self):
        with self._lock:
            if self._conn is None:
                self._conn = self._open()
            return self._conn

    def _open(self):
        in_memory = self.path == ':memory:'
        if not in_memory:
            directory = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(directory, exist_ok=True)

        conn = sqlite3.connect(self.path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            if not in_memory:
                conn.execute('PRAGMA journal_mode = WAL')
                conn.execute('PRAGMA synchronous = NORMAL')
            conn.execute('PRAGMA foreign_keys = ON')
            conn.executescript(SCHEMA)
            self._seed(conn)
            conn.commit()
        except sqlite3.Error:
            conn.close()
            raise

        logger.info(f"Database initialized at {self.path}")
        return conn

    def _seed(self, conn):
        count = conn.execute('SELECT COUNT(*) FROM courts').fetchone()[0]
        if count > 0:
            return

        conn.executemany(
            'INSERT INTO courts (name, url, location, type, active) VALUES (?, ?, ?, ?, 1)',
            COURTS
        )
        delhi_id = conn.execute(
            'SELECT id FROM courts WHERE name = ?', ('Delhi High Court',)
        ).fetchone()[0]
        conn.executemany(
            'INSERT INTO case_types (court_id, type_name, type_code, description, active) '
            'VALUES (?, ?, ?, ?, 1)',
            [(delhi_id, name, code, description) for name, code, description in DELHI_CASE_TYPES]
        )
        logger.info(f"Seeded {len(COURTS)} courts and {len(DELHI_CASE_TYPES)} case types")

    @contextmanager
    def _cursor(self, commit=False):
        with self._lock:
            try:
                conn = self.connection
                cursor = conn.cursor()
                yield cursor
                if commit:
                    conn.commit()
            except (sqlite3.Error, OSError) as e:
                if self._conn is not None:
                    self._conn.rollback()
                logger.error(f"Database error: {e}")
                raise StoreError(f"Database error: {e}") from e

    def upsert_case(self, row):
        with self._cursor(commit=True) as cursor:
            cursor.execute('''
                INSERT OR REPLACE INTO cases (
                    id, case_number, case_type, filing_year, petitioner, respondent,
                    filing_date, next_hearing_date, status, orders_json, last_updated
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                row['id'],
                row['case_number'],
                row['case_type'],
                row['filing_year'],
                row.get('petitioner'),
                row.get('respondent'),
                row.get('filing_date'),
                row.get('next_hearing_date'),
                row.get('status'),
                row.get('orders_json'),
                row['last_updated']
            ))

    def get_case(self, case_type, case_number, filing_year):
        with self._cursor() as cursor:
            cursor.execute('''
                SELECT * FROM cases
                WHERE case_type = ? AND case_number = ? AND filing_year = ?
            ''', (case_type, case_number, filing_year))
            row = cursor.fetchone()
        return dict(row) if row else None

    def append_query(self, case_type, case_number, filing_year, success,
                     raw_response=None, error_message=None, response_time_ms=0, timestamp=None):
        with self._cursor(commit=True) as cursor:
            cursor.execute('''
                INSERT INTO queries (
                    case_type, case_number, filing_year, timestamp, success,
                    raw_response, error_message, response_time_ms
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                case_type,
                case_number,
                filing_year,
                timestamp or isoformat(utcnow()),
                bool(success),
                raw_response,
                error_message,
                response_time_ms
            ))
            return cursor.lastrowid

    def recent_queries(self, limit=50):
        with self._cursor() as cursor:
            cursor.execute('''
                SELECT id, case_type, case_number, filing_year, timestamp, success,
                    raw_response, error_message, response_time_ms
                FROM queries
                ORDER BY timestamp DESC, id DESC
                LIMIT ?
            ''', (limit,))
            return [dict(row) for row in cursor.fetchall()]

    def clear_table(self, table):
        if table not in CLEARABLE_TABLES:
            raise ValidationError(f"Table cannot be cleared: {table}")

        with self._cursor(commit=True) as cursor:
            cursor.execute(f'DELETE FROM {table}')
            removed = cursor.rowcount
        logger.info(f"Cleared {removed} rows from {table}")
        return removed

    def get_stats(self):
        with self._cursor() as cursor:
            cursor.execute('SELECT COUNT(*) FROM queries')
            total = cursor.fetchone()[0]

            cursor.execute('SELECT COUNT(*) FROM queries WHERE success = 1')
            successful = cursor.fetchone()[0]

            cursor.execute('SELECT COUNT(*) FROM cases')
            cached = cursor.fetchone()[0]

            cursor.execute('SELECT AVG(response_time_ms) FROM queries WHERE response_time_ms > 0')
            avg_response = cursor.fetchone()[0]

        return {
            'totalQueries': total,
            'successfulQueries': successful,
            'failedQueries': total - successful,
            'cachedCases': cached,
            'successRate': round(successful / total * 100, 1) if total > 0 else 0,
            'avgResponseTimeMs': round(avg_response) if avg_response else 0
        }

    def get_courts(self):
        with self._cursor() as cursor:
            cursor.execute('SELECT * FROM courts WHERE active = 1 ORDER BY name')
            rows = cursor.fetchall()

        return [
            Court(
                id=row['id'],
                name=row['name'],
                url=row['url'],
                location=row['location'],
                type=row['type'],
                active=bool(row['active'])
            )
            for row in rows
        ]

    def get_case_types(self, court_id):
        with self._cursor() as cursor:
            cursor.execute(
                'SELECT * FROM case_types WHERE court_id = ? AND active = 1 ORDER BY type_name',
                (court_id,)
            )
            rows = cursor.fetchall()

        return [
            CaseType(
                id=row['id'],
                court_id=row['court_id'],
                type_name=row['type_name'],
                type_code=row['type_code'],
                description=row['description'] or '',
                active=bool(row['active'])
            )
            for row in rows
        ]

    def export_all(self, query_limit=1000):
        with self._cursor() as cursor:
            cursor.execute('SELECT * FROM queries ORDER BY timestamp DESC, id DESC LIMIT ?', (query_limit,))
            queries = [dict(row) for row in cursor.fetchall()]

            cursor.execute('SELECT * FROM cases ORDER BY created_at DESC')
            cases = [dict(row) for row in cursor.fetchall()]

        return {
            'queries': queries,
            'cases': cases,
            'exportedAt': isoformat(utcnow())
        }

    def backup(self, directory):
        backup_path = os.path.join(
            directory, f"backup-{datetime.now().strftime('%Y%m%d-%H%M%S-%f')}.db"
        )

        with self._lock:
            try:
                os.makedirs(directory, exist_ok=True)
                target = sqlite3.connect(backup_path)
                try:
                    self.connection.backup(target)
                finally:
                    target.close()
            except (sqlite3.Error, OSError) as e:
                logger.error(f"Backup failed: {e}")
                raise StoreError(f"Backup failed: {e}") from e

        logger.info(f"Database backed up to {backup_path}")
        return backup_path

    def close(self):
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
