"""Tests for the staleness-checked oracle."""

import logging

import pytest

from src.data.constants import ORACLE_TIMEOUT_SECONDS, WETH
from src.data.interfaces import RoundData
from src.data.static_params import MockAggregator
from src.protocol.errors import OracleStale, TokenNotAllowed
from src.protocol.oracle import StalenessCheckedOracle, checked_price, is_round_stale
from tests.conftest import START_TIME, FakeClock


def _round(**overrides) -> RoundData:
    fields = dict(
        round_id=5,
        answer=2000 * 10**8,
        started_at=START_TIME,
        updated_at=START_TIME,
        answered_in_round=5,
    )
    fields.update(overrides)
    return RoundData(**fields)


class TestIsRoundStale:
    def test_fresh(self) -> None:
        assert not is_round_stale(_round(), START_TIME + 60)

    def test_exactly_at_timeout_is_fresh(self) -> None:
        assert not is_round_stale(_round(), START_TIME + ORACLE_TIMEOUT_SECONDS)

    def test_past_timeout(self) -> None:
        assert is_round_stale(_round(), START_TIME + ORACLE_TIMEOUT_SECONDS + 1)

    def test_never_updated(self) -> None:
        assert is_round_stale(_round(updated_at=0), START_TIME)

    def test_carried_over_answer(self) -> None:
        assert is_round_stale(_round(answered_in_round=4), START_TIME)

    def test_custom_timeout(self) -> None:
        assert is_round_stale(_round(), START_TIME + 61, timeout=60)


class TestStalenessCheckedOracle:
    @pytest.fixture
    def clock(self) -> FakeClock:
        return FakeClock()

    @pytest.fixture
    def feed(self, clock: FakeClock) -> MockAggregator:
        return MockAggregator(8, 2000 * 10**8, clock=clock)

    @pytest.fixture
    def oracle(self, feed: MockAggregator, clock: FakeClock) -> StalenessCheckedOracle:
        return StalenessCheckedOracle({WETH: feed}, clock=clock)

    def test_quote(self, oracle: StalenessCheckedOracle) -> None:
        quote = oracle.latest_price(WETH)
        assert quote.price == 2000 * 10**8
        assert quote.decimals == 8
        assert not quote.is_stale

    def test_unknown_asset(self, oracle: StalenessCheckedOracle) -> None:
        with pytest.raises(TokenNotAllowed):
            oracle.latest_price("RAN")
        with pytest.raises(TokenNotAllowed):
            oracle.price_feed("RAN")

    def test_goes_stale_over_time(
        self,
        oracle: StalenessCheckedOracle,
        clock: FakeClock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        clock.advance(ORACLE_TIMEOUT_SECONDS + 1)
        with caplog.at_level(logging.WARNING, logger="src.protocol.oracle"):
            quote = oracle.latest_price(WETH)
        assert quote.is_stale
        assert "Stale round" in caplog.text

    def test_update_refreshes(
        self, oracle: StalenessCheckedOracle, feed: MockAggregator, clock: FakeClock
    ) -> None:
        clock.advance(ORACLE_TIMEOUT_SECONDS + 1)
        feed.update_answer(2100 * 10**8)
        quote = oracle.latest_price(WETH)
        assert not quote.is_stale
        assert quote.price == 2100 * 10**8


class TestCheckedPrice:
    @pytest.fixture
    def clock(self) -> FakeClock:
        return FakeClock()

    def test_passes_fresh_positive(self, clock: FakeClock) -> None:
        oracle = StalenessCheckedOracle({WETH: MockAggregator(8, 1, clock=clock)}, clock=clock)
        assert checked_price(oracle, WETH).price == 1

    @pytest.mark.parametrize("answer", [0, -5])
    def test_rejects_non_positive(self, clock: FakeClock, answer: int) -> None:
        oracle = StalenessCheckedOracle(
            {WETH: MockAggregator(8, answer, clock=clock)}, clock=clock
        )
        with pytest.raises(OracleStale) as exc:
            checked_price(oracle, WETH)
        assert exc.value.asset == WETH

    def test_rejects_stale(self, clock: FakeClock) -> None:
        oracle = StalenessCheckedOracle(
            {WETH: MockAggregator(8, 2000 * 10**8, clock=clock)}, clock=clock, timeout=60
        )
        clock.advance(61)
        with pytest.raises(OracleStale):
            checked_price(oracle, WETH)
