"""Trade-log normalization for broker report exports.

Three report families are supported: a generic delimited text export, the
MT4/MT5 HTML statement and cTrader history (HTML or CSV). Every parser returns
a list of ``ParsedTrade`` starting with the index-0 starting point, with
equity accumulated from ``start_balance``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from html.parser import HTMLParser
from typing import Sequence

import pandas as pd

from edgelab.core.exceptions import TradeLogError
from edgelab.core.models import ParsedTrade

logger = logging.getLogger(__name__)


class TradeLogFormat(str, Enum):
    """Supported report formats."""

    GENERIC_CSV = "generic_csv"
    MT4_MT5 = "mt4_mt5"
    CTRADER = "ctrader"


CANDIDATE_SEPARATORS = (",", "\t", ";", "|")
SNIFF_LINES = 10

_MT4_DATE = re.compile(r"^\d{4}\.\d{2}\.\d{2}")
_MT4_DATE_ANYWHERE = re.compile(r"\d{4}\.\d{2}\.\d{2}")
_DMY_DATE = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_NUMBER_PREFIX = re.compile(r"^[-+]?(\d+\.?\d*|\.\d+)")
_DIGITS = re.compile(r"\d+")


def _leading_int(text: str) -> int:
    match = _DIGITS.match(text)
    return int(match.group()) if match else 0


def _parse_number(text: str) -> float | None:
    """Parse the leading number of ``text``; None when there is none."""
    match = _NUMBER_PREFIX.match(text.strip())
    if match is None:
        return None
    return float(match.group())


def _clean_amount(text: str) -> float | None:
    """Strip currency symbols, thousands separators and spaces, keep sign."""
    return _parse_number(_NON_NUMERIC.sub("", text))


def parse_date_string(text: str | None) -> datetime | None:
    """Parse a report timestamp.

    Tries ``YYYY.MM.DD[ HH:MM[:SS]]`` (MT4), then ``DD/MM/YYYY[ HH:MM[:SS]]``
    (cTrader/European), then free-form formats such as ``Nov 10, 2025``.

    Returns:
        Naive datetime, or None when the text is not a date.
    """
    if not text:
        return None
    clean = text.strip()

    try:
        if _MT4_DATE.match(clean):
            parts = [p for p in re.split(r"[. :]", clean) if p]
            if len(parts) >= 3:
                y, m, d = (_leading_int(p) for p in parts[:3])
                h = _leading_int(parts[3]) if len(parts) > 3 else 0
                minute = _leading_int(parts[4]) if len(parts) > 4 else 0
                s = _leading_int(parts[5]) if len(parts) > 5 else 0
                return datetime(y, m, d, h, minute, s)

        if _DMY_DATE.match(clean):
            parts = [p for p in re.split(r"[/ :]", clean) if p]
            if len(parts) >= 3:
                d, m, y = (_leading_int(p) for p in parts[:3])
                h = _leading_int(parts[3]) if len(parts) > 3 else 0
                minute = _leading_int(parts[4]) if len(parts) > 4 else 0
                s = _leading_int(parts[5]) if len(parts) > 5 else 0
                return datetime(y, m, d, h, minute, s)
    except ValueError:
        # Out-of-range fields such as month 13
        return None

    if not re.search(r"\d", clean):
        return None
    ts = pd.to_datetime(clean, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert(None)
    return ts.to_pydatetime()


class _TradeAccumulator:
    """Build the ParsedTrade list with running equity."""

    def __init__(self, start_balance: float) -> None:
        self.equity = start_balance
        self.trades = [ParsedTrade(index=0, pnl=0.0, equity=start_balance)]

    def add(self, pnl: float, timestamp: datetime | None) -> None:
        self.equity += pnl
        self.trades.append(
            ParsedTrade(index=len(self.trades), pnl=pnl, equity=self.equity, timestamp=timestamp)
        )

    @property
    def count(self) -> int:
        return len(self.trades) - 1


def _non_blank_lines(text: str) -> list[str]:
    return [line for line in text.split("\n") if line.strip()]


def sniff_separator(lines: Sequence[str]) -> str:
    """Pick the separator that splits the most of the first lines.

    Ties go to the earlier entry in ``CANDIDATE_SEPARATORS``; comma is the
    fallback when nothing splits.
    """
    scores = {sep: 0 for sep in CANDIDATE_SEPARATORS}
    for line in lines[:SNIFF_LINES]:
        for sep in CANDIDATE_SEPARATORS:
            if len(line.split(sep)) > 1:
                scores[sep] += 1
    best = max(CANDIDATE_SEPARATORS, key=lambda sep: scores[sep])
    return best if scores[best] > 0 else ","


def _find_column(header: list[str], predicate) -> int:
    for i, name in enumerate(header):
        if predicate(name):
            return i
    return -1


def _parse_delimited_rows(
    lines: list[str],
    separator: str,
    pnl_index: int,
    time_index: int,
    start_balance: float,
) -> _TradeAccumulator:
    acc = _TradeAccumulator(start_balance)
    for line in lines[1:]:
        cols = line.strip().split(separator)
        if len(cols) <= pnl_index:
            continue
        pnl = _clean_amount(cols[pnl_index])
        if pnl is None:
            continue
        timestamp = None
        if time_index != -1 and len(cols) > time_index:
            timestamp = parse_date_string(cols[time_index])
        acc.add(pnl, timestamp)
    return acc


def parse_generic_csv(text: str, start_balance: float = 0.0) -> list[ParsedTrade]:
    """Parse a delimited export with a P&L column.

    The P&L column is the first header containing ``pnl``, ``profit`` or
    ``net``; the time column the first containing ``date`` or ``time``.

    Raises:
        TradeLogError: If there is no data row or no P&L column.
    """
    lines = _non_blank_lines(text)
    if len(lines) < 2:
        raise TradeLogError("The file contains no trade rows.")

    separator = sniff_separator(lines)
    header = [h.strip() for h in lines[0].lower().split(separator)]
    pnl_index = _find_column(header, lambda h: "pnl" in h or "profit" in h or "net" in h)
    time_index = _find_column(header, lambda h: "date" in h or "time" in h)
    if pnl_index == -1:
        raise TradeLogError("Could not find a 'PnL', 'Profit' or 'Net Profit' column.")

    acc = _parse_delimited_rows(lines, separator, pnl_index, time_index, start_balance)
    logger.info("Parsed %d trades from generic CSV (separator=%r)", acc.count, separator)
    return acc.trades


@dataclass
class _Cell:
    tag: str
    text: str


@dataclass
class _Table:
    rows: list[list[_Cell]] = field(default_factory=list)


class _TableExtractor(HTMLParser):
    """Collect the text of every table cell, grouped by table and row."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.tables: list[_Table] = []
        self._table_stack: list[_Table] = []
        self._row: list[_Cell] | None = None
        self._cell: _Cell | None = None
        self._loose_rows: _Table = _Table()

    def handle_starttag(self, tag: str, attrs) -> None:
        if tag == "table":
            table = _Table()
            self.tables.append(table)
            self._table_stack.append(table)
        elif tag == "tr":
            self._close_row()
            self._row = []
        elif tag in ("td", "th"):
            self._close_cell()
            if self._row is None:
                self._row = []
            self._cell = _Cell(tag=tag, text="")

    def handle_endtag(self, tag: str) -> None:
        if tag in ("td", "th"):
            self._close_cell()
        elif tag == "tr":
            self._close_row()
        elif tag == "table":
            self._close_row()
            if self._table_stack:
                self._table_stack.pop()

    def handle_data(self, data: str) -> None:
        if self._cell is not None:
            self._cell.text += data

    def _close_cell(self) -> None:
        if self._cell is not None and self._row is not None:
            self._cell.text = " ".join(self._cell.text.split())
            self._row.append(self._cell)
        self._cell = None

    def _close_row(self) -> None:
        self._close_cell()
        if self._row is not None:
            target = self._table_stack[-1] if self._table_stack else self._loose_rows
            target.rows.append(self._row)
        self._row = None

    def close(self) -> None:
        super().close()
        self._close_row()

    @property
    def all_rows(self) -> list[list[_Cell]]:
        rows = list(self._loose_rows.rows)
        for table in self.tables:
            rows.extend(table.rows)
        return rows


def _extract_tables(html: str) -> _TableExtractor:
    extractor = _TableExtractor()
    extractor.feed(html)
    extractor.close()
    return extractor


def parse_mt4_report(html: str, start_balance: float = 0.0) -> list[ParsedTrade]:
    """Parse an MT4/MT5 HTML statement.

    Trade rows have at least five ``td`` cells and mention ``buy`` or
    ``sell``; balance and credit rows are skipped. Profit comes from the last
    cell, close time from the nearest preceding ``YYYY.MM.DD`` cell.

    Raises:
        TradeLogError: If no trade row is found.
    """
    acc = _TradeAccumulator(start_balance)
    for row in _extract_tables(html).all_rows:
        cells = [c for c in row if c.tag == "td"]
        if len(cells) < 5:
            continue
        row_text = " ".join(c.text for c in row).lower()
        if "buy" not in row_text and "sell" not in row_text:
            continue
        if "balance" in row_text or "credit" in row_text:
            continue

        profit = _parse_number(cells[-1].text.replace(" ", ""))
        close_time = None
        for cell in reversed(cells[:-1]):
            if _MT4_DATE_ANYWHERE.search(cell.text):
                close_time = parse_date_string(cell.text)
                break

        if profit is not None:
            acc.add(profit, close_time)

    if acc.count == 0:
        raise TradeLogError("Could not parse MT4/5 Report. Ensure it is the standard HTML Export.")
    logger.info("Parsed %d trades from MT4/MT5 report", acc.count)
    return acc.trades


def _is_ctrader_pnl_header(h: str) -> bool:
    return h == "net $" or h.startswith("net ") or ("profit" in h and "gross" not in h)


def _parse_ctrader_html(text: str, start_balance: float) -> list[ParsedTrade] | None:
    for table in _extract_tables(text).tables:
        header_index = -1
        pnl_index = -1
        time_index = -1
        for i, row in enumerate(table.rows):
            names = [c.text.strip().lower() for c in row]
            pnl_index = _find_column(names, _is_ctrader_pnl_header)
            if pnl_index != -1:
                header_index = i
                time_index = _find_column(
                    names, lambda h: "closing time" in h or "time" in h or h == "date"
                )
                break
        if header_index == -1:
            continue

        acc = _TradeAccumulator(start_balance)
        for row in table.rows[header_index + 1 :]:
            cells = [c for c in row if c.tag == "td"]
            if len(cells) <= pnl_index:
                continue
            pnl = _clean_amount(cells[pnl_index].text)
            if pnl is None:
                continue
            timestamp = None
            if time_index != -1 and len(cells) > time_index and cells[time_index].text:
                timestamp = parse_date_string(cells[time_index].text)
            # Real trades always carry a closing time; totals rows do not
            if time_index != -1 and timestamp is None:
                continue
            acc.add(pnl, timestamp)

        if acc.count > 0:
            return acc.trades
    return None


def parse_ctrader(text: str, start_balance: float = 0.0) -> list[ParsedTrade]:
    """Parse a cTrader history export, HTML first, then delimited text.

    Raises:
        TradeLogError: If neither form yields a trade.
    """
    lowered = text.lower()
    if "<html" in lowered or "<table" in lowered:
        trades = _parse_ctrader_html(text, start_balance)
        if trades is not None:
            logger.info("Parsed %d trades from cTrader HTML", len(trades) - 1)
            return trades
        logger.debug("No cTrader trade table found, trying delimited text")

    error = "Could not parse cTrader file. Ensure it contains a 'Net', 'Net $' or 'Net [Currency]' column."
    lines = _non_blank_lines(text)
    if len(lines) < 2:
        raise TradeLogError(error)

    first = lines[0]
    separator = "\t" if "\t" in first else ";" if ";" in first else ","
    header = [h.strip() for h in first.lower().split(separator)]
    pnl_index = _find_column(
        header, lambda h: h in ("net $", "net profit", "profit") or h.startswith("net ")
    )
    time_index = _find_column(header, lambda h: "closing time" in h or "time" in h)
    if pnl_index == -1:
        raise TradeLogError(error)

    acc = _parse_delimited_rows(lines, separator, pnl_index, time_index, start_balance)
    if acc.count == 0:
        raise TradeLogError(error)
    logger.info("Parsed %d trades from cTrader text export", acc.count)
    return acc.trades


_PARSERS = {
    TradeLogFormat.GENERIC_CSV: parse_generic_csv,
    TradeLogFormat.MT4_MT5: parse_mt4_report,
    TradeLogFormat.CTRADER: parse_ctrader,
}


def parse_trade_log(
    text: str, fmt: TradeLogFormat, start_balance: float = 0.0
) -> list[ParsedTrade]:
    """Parse ``text`` with the parser for ``fmt``."""
    return _PARSERS[TradeLogFormat(fmt)](text, start_balance)


def trades_to_frame(trades: Sequence[ParsedTrade]) -> pd.DataFrame:
    """DataFrame view of parsed trades.

    Returns:
        DataFrame with columns: index, pnl, equity, timestamp
    """
    return pd.DataFrame(
        {
            "index": [t.index for t in trades],
            "pnl": [t.pnl for t in trades],
            "equity": [t.equity for t in trades],
            "timestamp": pd.to_datetime([t.timestamp for t in trades]),
        }
    )
