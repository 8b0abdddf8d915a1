"""
Cross-cutting pieces used by the exchange context and the app factory:
error translation, security headers, rate limits and logging setup.
"""
