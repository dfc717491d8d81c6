"""File loading for broker trade-log exports."""

import logging
from pathlib import Path

from edgelab.core.exceptions import FileLoadError
from edgelab.core.models import ParsedTrade
from edgelab.core.trade_log import TradeLogFormat, parse_trade_log

logger = logging.getLogger(__name__)


class TradeLogLoader:
    """Read report files from disk and normalize them into trades."""

    SUPPORTED_EXTENSIONS: dict[TradeLogFormat, set[str]] = {
        TradeLogFormat.GENERIC_CSV: {".csv", ".txt"},
        TradeLogFormat.MT4_MT5: {".htm", ".html"},
        TradeLogFormat.CTRADER: {".csv", ".htm", ".html", ".xlsx"},
    }

    def read_text(self, path: Path) -> str:
        """Read a report as text.

        Raises:
            FileLoadError: If the file is missing or unreadable.
        """
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            logger.error("File not found: %s", path)
            raise FileLoadError(f"File not found: {path.name}") from None
        except PermissionError:
            logger.error("Permission denied: %s", path)
            raise FileLoadError("Cannot access file. Check permissions.") from None
        except OSError as e:
            logger.error("Failed to read file: %s", e)
            raise FileLoadError("Unable to read file. The file may be corrupted.") from None

    def load(
        self,
        path: Path,
        fmt: TradeLogFormat = TradeLogFormat.GENERIC_CSV,
        start_balance: float = 0.0,
    ) -> list[ParsedTrade]:
        """Load and parse a trade log.

        Args:
            path: Path to the report.
            fmt: Report format.
            start_balance: Balance the running equity starts from. Usually 0;
                callers re-base with ``rebase_trades``.

        Returns:
            Parsed trades, element 0 being the starting point.

        Raises:
            FileLoadError: If the extension does not fit ``fmt`` or the file
                cannot be read.
            TradeLogError: If the content cannot be parsed.
        """
        fmt = TradeLogFormat(fmt)
        suffix = path.suffix.lower()
        allowed = self.SUPPORTED_EXTENSIONS[fmt]

        if suffix not in allowed:
            raise FileLoadError(
                f"Unsupported file type: {suffix}. "
                f"Supported types: {', '.join(sorted(allowed))}"
            )
        if suffix == ".xlsx":
            raise FileLoadError(
                "Binary Excel (.xlsx) files cannot be read directly. "
                "Please export as HTML or CSV from cTrader."
            )

        text = self.read_text(path)
        trades = parse_trade_log(text, fmt, start_balance=start_balance)
        logger.info("Loaded %d trades from %s", len(trades) - 1, path.name)
        return trades
