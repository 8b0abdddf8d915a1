"""
Error translation for the HTTP layer.

Domain and application errors raised anywhere under the exchange
context are turned into JSON error bodies by the handlers module.
"""
