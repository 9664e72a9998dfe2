"""Unit tests for OraclePool."""

import pytest

from flight_oracle.src.OraclePool import OracleIdentity, OraclePool


class TestOracleIdentity:
    """Test OracleIdentity validation."""

    def test_requires_indexes(self) -> None:
        """An identity without indexes is never valid."""
        with pytest.raises(ValueError, match="no assigned indexes"):
            OracleIdentity("0x01", ())

    def test_requires_identifier(self) -> None:
        with pytest.raises(ValueError, match="must not be empty"):
            OracleIdentity("", (1, 2, 3))

    def test_is_eligible(self) -> None:
        identity = OracleIdentity("0x01", (1, 4, 7))
        assert identity.is_eligible(4)
        assert not identity.is_eligible(5)


class TestOraclePool:
    """Test pool lookup and invariants."""

    def setup_method(self) -> None:
        self.members = [
            OracleIdentity("0xAbC1", (0, 1, 2)),
            OracleIdentity("0xAbC2", (2, 3, 4)),
            OracleIdentity("0xAbC3", (5, 6, 7)),
        ]
        self.pool = OraclePool(self.members)

    def test_order_preserved(self) -> None:
        assert list(self.pool) == self.members
        assert self.pool.identifiers == ["0xAbC1", "0xAbC2", "0xAbC3"]

    def test_len(self) -> None:
        assert len(self.pool) == 3
        assert len(OraclePool()) == 0

    def test_duplicates_rejected(self) -> None:
        """The same address twice (any case) should raise ValueError."""
        with pytest.raises(ValueError, match="Duplicate oracle identity"):
            OraclePool([OracleIdentity("0xabc1", (1, 2, 3)), OracleIdentity("0xABC1", (4, 5, 6))])

    def test_lookup_case_insensitive(self) -> None:
        assert self.pool.get("0xabc2") is self.members[1]
        assert "0xABC3" in self.pool
        assert self.pool.get("0xdead") is None
        assert 42 not in self.pool

    def test_eligible_for(self) -> None:
        """Members are selected by assigned index."""
        assert [m.identifier for m in self.pool.eligible_for(2)] == ["0xAbC1", "0xAbC2"]
        assert self.pool.eligible_for(9) == []

    def test_to_list(self) -> None:
        assert self.pool.to_list()[1] == {"identifier": "0xAbC2", "indexes": [2, 3, 4]}
