"""
Adapters behind the domain ports: the signed HTTP gateway, the
Binance-style exchange adapter, the Fernet credential cipher and the
SQLAlchemy Core repositories.
"""
