"""
Security concerns shared by every router: response headers and rate limits.
"""
