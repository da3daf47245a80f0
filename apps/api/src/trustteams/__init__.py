"""
TrustTeams API - Opportunities and applications platform for students,
universities and industry partners.
"""

__version__ = "0.1.0"
