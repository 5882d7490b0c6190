"""
Demo Banking

A small banking web application: signup/login with capped sessions,
account opening, card and bank funding, and transaction history.
All monetary values use Decimal.
"""

__version__ = "1.0.0"
