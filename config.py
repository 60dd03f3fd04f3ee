# config.py
"""
Environment configuration for the workshop invoicing backend.

Values are read once from the process environment (and a local .env file
when present). Import the module-level constants instead of calling
os.getenv all over the codebase.
"""
import os
from decimal import Decimal

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Database (MS SQL Server through pymssql unless DATABASE_URL is set)
DB_SERVER = os.getenv("DB_SERVER")
DB_PORT = os.getenv("DB_PORT", "1433")
DB_USER = os.getenv("DB_USER")
DB_PASS = os.getenv("DB_PASS")
DB_NAME = os.getenv("DB_NAME")
DATABASE_URL = os.getenv("DATABASE_URL")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

# Auth
JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# API
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Invoicing
INVOICE_DEFAULT_SERIES = os.getenv("INVOICE_DEFAULT_SERIES", "001")
INVOICE_DEFAULT_TAX_RATE = Decimal(os.getenv("INVOICE_DEFAULT_TAX_RATE", "21.00"))
CHAIN_MAX_ATTEMPTS = int(os.getenv("CHAIN_MAX_ATTEMPTS", "3"))

# Issuer data printed on fiscal records
ISSUER_NAME = os.getenv("ISSUER_NAME", "")
ISSUER_TAX_ID = os.getenv("ISSUER_TAX_ID", "")
ISSUER_ADDRESS = os.getenv("ISSUER_ADDRESS", "")
