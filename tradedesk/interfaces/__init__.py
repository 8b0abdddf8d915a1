"""
HTTP surface of TradeDesk.

Routers resolve the calling owner, build commands from validated
request bodies and hand them to application use cases.
"""
