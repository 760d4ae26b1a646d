# reorder_forecast/services/ingestion_service.py
import math
import re
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Protocol, Sequence, Union

import pandas as pd

from reorder_forecast.exceptions import IngestionError
from reorder_forecast.logging_setup import get_logger
from reorder_forecast.models import OrderLine

logger = get_logger(__name__)

# Column positions in the order spreadsheet
ORDER_DATE_COLUMN = 0
ORDER_NUMBER_COLUMN = 1
POSITION_NUMBER_COLUMN = 2
PRODUCT_NAME_COLUMN = 3
ARTICLE_CODE_COLUMN = 4
ORDERED_QUANTITY_COLUMN = 5
DELIVERED_QUANTITY_COLUMN = 6
DELIVERY_DATE_COLUMN = 7
NOTES_COLUMN = 8

ARTICLE_LABEL_PATTERN = re.compile(r'(?:арт(?:икул)?\.?\s*)([A-Za-z0-9\-]+)')
ARTICLE_CODE_PATTERN = re.compile(r'([A-Za-z0-9]{5,})')


class OrderSource(Protocol):
    """Anything that can supply historical order lines."""

    def load(self) -> List[OrderLine]:
        ...


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if value is pd.NaT:
        return True
    return isinstance(value, str) and not value.strip()


def cell_text(value: Any) -> str:
    """Text of a spreadsheet cell; blank cells become ''."""
    if _is_blank(value):
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_quantity(value: Any) -> float:
    """Parse a quantity cell, accepting decimal commas.

    Args:
        value: Cell value (number or text)

    Returns:
        Parsed quantity, 0 when the value cannot be parsed
    """
    if _is_blank(value):
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)

    text = str(value).strip().replace(' ', '').replace(',', '.')
    try:
        return float(text)
    except ValueError:
        return 0.0


def parse_delivered_quantity(value: Any) -> float:
    """Parse a delivered quantity, summing '+'-joined partial deliveries.

    Example:
        parse_delivered_quantity("5+3+2") == 10.0
    """
    if _is_blank(value):
        return 0.0

    text = cell_text(value)
    if '+' in text:
        return sum(parse_quantity(part.strip()) for part in text.split('+'))

    return parse_quantity(value)


def parse_date(value: Any) -> Optional[datetime]:
    """Parse a date cell; returns None when it is blank or unparsable."""
    if _is_blank(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value

    parsed = pd.to_datetime(cell_text(value), errors='coerce', dayfirst=True)
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def extract_article_from_name(product_name: str) -> str:
    """Best-effort extraction of an article code embedded in a product name.

    Looks for an "арт."/"артикул" label first, then for the first
    alphanumeric run of five or more characters.

    Args:
        product_name: Raw product name

    Returns:
        Extracted code, or '' when nothing looks like an article code
    """
    if not product_name or not product_name.strip():
        return ''

    match = ARTICLE_LABEL_PATTERN.search(product_name)
    if match:
        return match.group(1)

    match = ARTICLE_CODE_PATTERN.search(product_name)
    if match:
        return match.group(1)

    return ''


def row_to_order_line(row: Sequence[Any]) -> Optional[OrderLine]:
    """Convert one spreadsheet row to an OrderLine.

    Args:
        row: Cell values by column position

    Returns:
        OrderLine, or None when the leading cell is blank
    """
    def cell(index):
        return row[index] if index < len(row) else None

    if _is_blank(cell(ORDER_DATE_COLUMN)):
        return None

    product_name = cell_text(cell(PRODUCT_NAME_COLUMN))
    article_code = cell_text(cell(ARTICLE_CODE_COLUMN))

    if not article_code and product_name:
        article_code = extract_article_from_name(product_name)

    return OrderLine(
        order_date=parse_date(cell(ORDER_DATE_COLUMN)) or datetime.min,
        order_number=cell_text(cell(ORDER_NUMBER_COLUMN)),
        position_number=cell_text(cell(POSITION_NUMBER_COLUMN)),
        product_name=product_name,
        article_code=article_code or None,
        ordered_quantity=parse_quantity(cell(ORDERED_QUANTITY_COLUMN)),
        delivered_quantity=parse_delivered_quantity(cell(DELIVERED_QUANTITY_COLUMN)),
        delivery_date=parse_date(cell(DELIVERY_DATE_COLUMN)),
        notes=cell_text(cell(NOTES_COLUMN)),
    )


class ExcelOrderSource:
    """Reads order lines from the first sheet of an Excel workbook."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def read_frame(self) -> pd.DataFrame:
        """Read the raw sheet (first row is the header).

        Raises:
            IngestionError: If the workbook cannot be read
        """
        if not self.path.exists():
            raise IngestionError(f"Order file not found: {self.path}", code='FILE_NOT_FOUND')

        try:
            return pd.read_excel(self.path, sheet_name=0, header=0, dtype=object)
        except Exception as e:
            logger.error(f"Error reading order file {self.path}: {str(e)}")
            raise IngestionError(
                f"Failed to read order file {self.path}: {str(e)}",
                code='READ_FAILED'
            ) from e

    def load(self) -> List[OrderLine]:
        """Load all order lines, skipping rows with a blank leading cell."""
        frame = self.read_frame()
        lines = []
        skipped = 0

        for row in frame.itertuples(index=False, name=None):
            line = row_to_order_line(row)
            if line is None:
                skipped += 1
                continue
            lines.append(line)

        logger.info(f"Loaded {len(lines)} order lines from {self.path} ({skipped} rows skipped)")
        return lines


class InMemoryOrderSource:
    """Order source over lines that are already in memory."""

    def __init__(self, lines: Optional[List[OrderLine]] = None):
        self.lines = list(lines or [])

    def load(self) -> List[OrderLine]:
        return list(self.lines)
