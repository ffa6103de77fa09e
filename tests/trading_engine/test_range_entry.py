"""
Tests for okxauto/trading_engine/range_entry.py

Covers:
- RangeEntryRule: one signal per dwell inside the band, re-arm on exit
- RangeEntryRules: long/short bundling and signal fields
"""

import pytest

from okxauto.trading_engine.range_entry import RangeEntryRules, RuleState
from okxauto.trading_engine.signals import BUY, SELL, Tick

SYMBOL = "BTC-USDT-SWAP"
LIMITS = {"take_profit": 0.05, "stop_loss": 0.03}


@pytest.fixture
def range_config(config_factory):
    return config_factory(
        long_position={"enabled": True, "entry_range": {"min": 30000, "max": 30100}, "position_size": 2, **LIMITS},
        short_position={"enabled": True, "entry_range": {"min": 32000, "max": 32100}, "position_size": 3, **LIMITS},
    )


def _run(rules, prices):
    signals = []
    for price in prices:
        signals.extend(rules.evaluate(Tick(symbol=SYMBOL, price=price)))
    return signals


class TestRangeEntryRules:
    """Tests for edge-triggered range entry"""

    def test_hysteresis(self, range_config):
        """Happy path: 30050, 30050, 29900, 30050 -> exactly two buys."""
        rules = RangeEntryRules(SYMBOL, range_config)

        signals = _run(rules, [30050, 30050, 29900, 30050])

        assert [s.action for s in signals] == [BUY, BUY]
        assert all(s.strategy == "LongPosition" for s in signals)

    def test_signal_fields(self, range_config):
        rules = RangeEntryRules(SYMBOL, range_config)

        signal = rules.evaluate(Tick(symbol=SYMBOL, price=30050, timestamp=1700000000))[0]

        assert signal.symbol == SYMBOL
        assert signal.price == 30050
        assert signal.amount == 2.0
        assert signal.timestamp == 1700000000

    def test_band_edges_inclusive(self, range_config):
        """Edge case: min and max both count as inside."""
        assert len(RangeEntryRules(SYMBOL, range_config).evaluate(Tick(symbol=SYMBOL, price=30000))) == 1
        assert len(RangeEntryRules(SYMBOL, range_config).evaluate(Tick(symbol=SYMBOL, price=30100))) == 1

    def test_short_side_sells(self, range_config):
        rules = RangeEntryRules(SYMBOL, range_config)

        signals = _run(rules, [32050])

        assert len(signals) == 1
        assert signals[0].action == SELL
        assert signals[0].strategy == "ShortPosition"
        assert signals[0].amount == 3.0

    def test_state_transitions(self, range_config):
        rules = RangeEntryRules(SYMBOL, range_config)
        assert rules.long.state == RuleState.ARMED

        _run(rules, [30050])
        assert rules.long.state == RuleState.TRIGGERED

        _run(rules, [30200])
        assert rules.long.state == RuleState.ARMED

    def test_disabled_side_never_signals(self, config_factory):
        config = config_factory(
            long_position={"enabled": False, "entry_range": {"min": 30000, "max": 30100}, "position_size": 1}
        )
        rules = RangeEntryRules(SYMBOL, config)

        assert _run(rules, [30050, 29000, 30050]) == []

    def test_reset_rearms(self, range_config):
        rules = RangeEntryRules(SYMBOL, range_config)
        _run(rules, [30050])

        rules.reset()

        assert len(_run(rules, [30050])) == 1
