import os
from dotenv import load_dotenv

# This module is loaded by ConfigResolver, possibly as a freestanding file,
# so it must not import anything from its own package.

# Load environment variables from .env file
load_dotenv()

# Specialist URLs
PAYROLL_AGENT_URL = os.getenv("PAYROLL_AGENT_URL", "http://localhost:8101/invoke")
BENEFITS_AGENT_URL = os.getenv("BENEFITS_AGENT_URL", "http://localhost:8102/invoke")
GENERAL_AGENT_URL = os.getenv("GENERAL_AGENT_URL", "http://localhost:8103/invoke")

DEFAULT_SPECIALIST = os.getenv("DEFAULT_SPECIALIST", "general")

# Specialist Invocation Parameters
SPECIALIST_TIMEOUT = float(os.getenv("SPECIALIST_TIMEOUT", 30.0))  # per attempt
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", 120.0))  # whole invocation, retries included
SPECIALIST_MAX_RETRIES = int(os.getenv("SPECIALIST_MAX_RETRIES", 3))
SPECIALIST_BACKOFF_FACTOR = float(os.getenv("SPECIALIST_BACKOFF_FACTOR", 0.5))
SPECIALIST_FAILURE_THRESHOLD = int(os.getenv("SPECIALIST_FAILURE_THRESHOLD", 5))
SPECIALIST_COOLDOWN_PERIOD = int(os.getenv("SPECIALIST_COOLDOWN_PERIOD", 30))

# Status reported when a specialist's text reply is not a structured record ("ok" or "error")
PARSE_FAILURE_STATUS = os.getenv("PARSE_FAILURE_STATUS", "ok").lower()

# Logging
LOG_FILE = os.getenv("LOG_FILE", "coordinator_history.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

SPECIALISTS = {
    "payroll": {
        "url": PAYROLL_AGENT_URL,
        "description": "Answers questions about salary, pay slips, deductions and taxes.",
        "keywords": ["salary", "pay", "payslip", "payroll", "gross", "net", "tax", "deduction", "bonus", "wage"],
    },
    "benefits": {
        "url": BENEFITS_AGENT_URL,
        "description": "Answers questions about leave, insurance, pension and other employee benefits.",
        "keywords": ["leave", "vacation", "holiday", "insurance", "pension", "benefit", "sick", "health"],
    },
    "general": {
        "url": GENERAL_AGENT_URL,
        "description": "Handles any question no other specialist covers.",
        "keywords": [],
    },
}

COORDINATOR_CONFIG = {
    "specialists": SPECIALISTS,
    "default_specialist": DEFAULT_SPECIALIST,
    "specialist_timeout": SPECIALIST_TIMEOUT,
    "request_timeout": REQUEST_TIMEOUT,
    "specialist_max_retries": SPECIALIST_MAX_RETRIES,
    "specialist_backoff_factor": SPECIALIST_BACKOFF_FACTOR,
    "specialist_failure_threshold": SPECIALIST_FAILURE_THRESHOLD,
    "specialist_cooldown_period": SPECIALIST_COOLDOWN_PERIOD,
    "parse_failure_status": PARSE_FAILURE_STATUS,
    "log_file": LOG_FILE,
    "log_level": LOG_LEVEL,
}
