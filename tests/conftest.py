# tests/conftest.py
"""Shared pytest fixtures for Edgelab tests."""

from pathlib import Path

import pytest

from edgelab.core.models import ChallengeConfig, EdgeConfig, PhaseRule
from edgelab.core.random_source import RandomVariates, SequenceRandomSource


@pytest.fixture
def variates() -> RandomVariates:
    """Seeded variates for reproducible stochastic tests."""
    return RandomVariates.seeded(12345)


@pytest.fixture
def always_win() -> RandomVariates:
    """Variates whose every Bernoulli draw is a win (for p > 0)."""
    return RandomVariates(SequenceRandomSource([0.0]))


@pytest.fixture
def balanced_edge() -> EdgeConfig:
    """50% win rate, 2R reward, 1% risk."""
    return EdgeConfig(win_rate=50.0, reward_to_risk=2.0, risk_per_trade_pct=1.0)


@pytest.fixture
def one_step_challenge() -> ChallengeConfig:
    """Standard one-step challenge: 10% target, 10% total DD, 5% daily DD."""
    return ChallengeConfig(
        account_size=100000.0,
        phases=(PhaseRule(10.0, 10.0, 5.0),),
        win_rate=45.0,
        reward_to_risk=2.0,
        risk_per_trade_pct=1.0,
        trades_per_week=15.0,
    )


@pytest.fixture
def generic_csv_text() -> str:
    """Comma-separated export with a currency-formatted profit column."""
    return (
        "Ticket,Open Date,Symbol,Profit\n"
        "1,2024.01.02 10:00,EURUSD,$100.00\n"
        "2,2024.01.03 11:30,EURUSD,-50\n"
        "\n"
        "3,2024.01.09 09:15,GBPUSD,100\n"
    )


@pytest.fixture
def mt4_report_html() -> str:
    """Trimmed MT4 detailed statement."""
    return """<html><body><table>
<tr><td>Ticket</td><td>Open Time</td><td>Type</td><td>Size</td><td>Item</td>
<td>Close Time</td><td>Profit</td></tr>
<tr><td>1001</td><td>2024.03.01 09:00</td><td>buy</td><td>1.00</td><td>eurusd</td>
<td>2024.03.01 12:00</td><td>1 250.00</td></tr>
<tr><td>1002</td><td>2024.03.04 10:00</td><td>sell</td><td>1.00</td><td>gbpusd</td>
<td>2024.03.05 16:30</td><td>-300.50</td></tr>
<tr><td>1003</td><td>2024.03.06 08:00</td><td>balance</td><td>Deposit</td><td></td>
<td></td><td>10000.00</td></tr>
<tr><td colspan="4">Closed P/L:</td><td>949.50</td></tr>
</table></body></html>"""


@pytest.fixture
def ctrader_html() -> str:
    """cTrader history table with a totals row."""
    return """<html><body>
<table><tr><td>Account summary</td></tr></table>
<table>
<tr><th>ID</th><th>Symbol</th><th>Closing Time</th><th>Net USD</th></tr>
<tr><td>1</td><td>XAUUSD</td><td>05/02/2024 14:30:12.345</td><td>9 755.09</td></tr>
<tr><td>2</td><td>XAUUSD</td><td>06/02/2024 09:05:00</td><td>-1 200.50</td></tr>
<tr><td>Total</td><td></td><td></td><td>8 554.59</td></tr>
</table></body></html>"""


@pytest.fixture
def write_file(tmp_path: Path):
    """Write text to a file under tmp_path and return its path."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write
