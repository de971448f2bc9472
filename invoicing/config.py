# invoicing/config.py

import os
import logging

# --- Database Configuration ---
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__))) # invoicing/ -> project root
DATA_DIR = os.path.join(BASE_DIR, "data")
DB_NAME = "invoicing_data.db"
DATABASE_PATH = os.getenv("INVOICING_DB_PATH", os.path.join(DATA_DIR, DB_NAME))
DB_TIMEOUT_SECONDS = 10.0  # wait on SQLite's writer lock before giving up

# --- Logging Configuration ---
LOGS_DIR = os.getenv("INVOICING_LOG_DIR", os.path.join(BASE_DIR, "logs"))
LOG_FILE_NAME = "app.log"
LOG_FILE_PATH = os.path.join(LOGS_DIR, LOG_FILE_NAME)

LOGGING_CONFIG = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'standard': {
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(module)s.%(funcName)s:%(lineno)d - %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'standard',
            'level': logging.DEBUG,
        },
        'file': {
            'class': 'logging.handlers.RotatingFileHandler',
            'formatter': 'standard',
            'filename': LOG_FILE_PATH,
            'maxBytes': 1024*1024*5,  # 5 MB
            'backupCount': 5,
            'level': logging.INFO,
            'encoding': 'utf-8',
        },
    },
    'root': {
        'handlers': ['console', 'file'],
        'level': logging.DEBUG,
    },
}

LOG_LEVEL = logging.DEBUG
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s.%(funcName)s:%(lineno)d - %(message)s'

# --- Invoicing Rules ---
INVOICE_NUMBER_START = 1001
MAX_INVOICE_NUMBER_ATTEMPTS = 3
LOW_STOCK_THRESHOLD = 5
# Overselling leaves a negative quantity; set to False to refuse such sales instead.
ALLOW_NEGATIVE_STOCK = True

DEFAULT_TOP_PRODUCTS_LIMIT = 5
DEFAULT_RECENT_INVOICES_LIMIT = 5
