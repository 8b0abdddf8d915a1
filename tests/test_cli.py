"""
Tests for the command line entry point.
"""

from unittest.mock import patch

from sqlalchemy import create_engine, inspect
from sqlalchemy.pool import StaticPool

from tradedesk import cli


class TestCli:
    def test_serve_runs_uvicorn(self) -> None:
        with patch("uvicorn.run") as run:
            cli.main(["serve", "--port", "9001"])

        run.assert_called_once_with(
            "tradedesk.main:app", host="0.0.0.0", port=9001, reload=False
        )

    def test_init_db_creates_tables(self) -> None:
        """init-db creates the ledger tables on the configured engine."""
        engine = create_engine("sqlite://", poolclass=StaticPool)
        with patch(
            "tradedesk.interfaces.exchange.dependencies.get_engine", return_value=engine
        ):
            cli.main(["init-db"])

        assert {"credentials", "remote_orders", "remote_executions"} <= set(
            inspect(engine).get_table_names()
        )
        engine.dispose()
