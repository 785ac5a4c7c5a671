"""
Record Store - uniform data access across storage backends

Collections of identifiable records with interchangeable in-memory,
SQLite and JSON-file backends, a join/projection query builder and
compensation-based transactions.
"""

__version__ = "0.1.0"
__author__ = "Systems Engineering Portfolio"
