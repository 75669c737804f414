"""
Health cover management: subscriptions, insured members and reimbursement claims.
"""

__version__ = "1.0.0"
