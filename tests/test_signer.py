"""
Tests for request signing.

Pure function, no IO.
"""

import hashlib
import hmac

import pytest

from tradedesk.domain.exchange.errors import SigningError
from tradedesk.domain.exchange.signer import sign

QUERY = "symbol=BTCUSDT&limit=10&timestamp=1700000000000"
SECRET = "NhqPtmdSJYdKjVHjA7PZj4Mge3R5YNiP1e3UZjInClVN65XAbvqqM6A7H5fATj0j"


class TestSign:
    """Tests for sign()."""

    def test_matches_hmac_sha256_hexdigest(self) -> None:
        """The signature is the lowercase hex HMAC-SHA256 of the query."""
        expected = hmac.new(SECRET.encode(), QUERY.encode(), hashlib.sha256).hexdigest()
        assert sign(QUERY, SECRET) == expected

    def test_known_vector(self) -> None:
        """Matches the exchange's documented example signature."""
        query = (
            "symbol=LTCBTC&side=BUY&type=LIMIT&timeInForce=GTC&quantity=1"
            "&price=0.1&recvWindow=5000&timestamp=1499827319559"
        )
        assert sign(query, SECRET) == (
            "c8db56825ae71d6d79447849e617115f4a920fa2acdcab2b053c4b2838bd6b71"
        )

    def test_is_deterministic(self) -> None:
        """Same inputs always give the same digest."""
        assert sign(QUERY, SECRET) == sign(QUERY, SECRET)

    def test_output_is_lowercase_hex(self) -> None:
        digest = sign(QUERY, SECRET)
        assert len(digest) == 64
        assert digest == digest.lower()
        int(digest, 16)

    def test_changing_query_changes_digest(self) -> None:
        """One changed character of the query changes the digest."""
        assert sign(QUERY, SECRET) != sign(QUERY.replace("10", "11"), SECRET)

    def test_changing_secret_changes_digest(self) -> None:
        assert sign(QUERY, SECRET) != sign(QUERY, SECRET[:-1] + "k")

    def test_missing_secret_raises(self) -> None:
        """An empty secret is fatal."""
        with pytest.raises(SigningError):
            sign(QUERY, "")
