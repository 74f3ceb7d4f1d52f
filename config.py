import os
import logging
from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')

    DATABASE_PATH = os.getenv('DATABASE_PATH', os.path.join('data', 'court_data.db'))
    BACKUP_DIR = os.getenv('BACKUP_DIR', 'backups')

    # 'mock' or 'delhi'
    SCRAPER_MODE = os.getenv('SCRAPER_MODE', 'mock')
    MOCK_SCRAPER_DELAY = float(os.getenv('MOCK_SCRAPER_DELAY', '2.0'))
    SCRAPER_TIMEOUT = int(os.getenv('SCRAPER_TIMEOUT', '30'))
    DOCUMENT_TIMEOUT = int(os.getenv('DOCUMENT_TIMEOUT', '30'))

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', 'court_data.log')

    RATELIMIT_ENABLED = os.getenv('RATELIMIT_ENABLED', 'true').lower() == 'true'
    RATELIMIT_DEFAULT = os.getenv('RATELIMIT_DEFAULT', '100 per hour')
    RATELIMIT_FETCH = os.getenv('RATELIMIT_FETCH', '10 per minute')
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')


def configure_logging(level='INFO', log_file=None):
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers
    )
