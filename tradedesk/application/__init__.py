"""
Use cases of the exchange context.

Each class takes its ports in the constructor and exposes ``execute``.
Nothing here imports httpx, SQLAlchemy or FastAPI.
"""
