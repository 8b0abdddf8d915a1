"""
Exchange bounded context, domain layer.

This module contains all domain logic for the exchange context:
- Request signing
- Credentials and their capabilities
- Remote orders and executions mirrored locally
- Portfolio valuation
"""
