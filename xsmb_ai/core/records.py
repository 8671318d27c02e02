"""
Draw records and two-digit number extraction
"""
from dataclasses import dataclass, field
from datetime import date as date_type
from dateutil import parser as date_parser
from xsmb_ai.config import PRIZE_TIERS, SPECIAL_TIER, DATE_FORMAT, logger


class InvalidRecordError(ValueError):
    """Raised when raw draw data cannot become a DrawRecord"""


def normalize_date(date_str):
    """
    Canonical DD/MM/YYYY form.

    Accepts d/m/yyyy, dd/mm/yyyy and ISO yyyy-mm-dd. Anything else is
    returned stripped.
    """
    if date_str is None:
        return ''
    if isinstance(date_str, date_type):
        return date_str.strftime(DATE_FORMAT)

    text = str(date_str).strip()
    parts = text.split('/')
    if len(parts) == 3:
        return '/'.join(p.strip().zfill(2) for p in parts)

    parts = text.split('-')
    if len(parts) == 3 and len(parts[0]) == 4:
        return f"{parts[2].zfill(2)}/{parts[1].zfill(2)}/{parts[0]}"

    return text


def parse_date(date_str):
    """Parse a draw date (day first) into a datetime.date"""
    return date_parser.parse(normalize_date(date_str), dayfirst=True).date()


@dataclass(frozen=True)
class DrawRecord:
    date: str
    prize_tiers: dict = field(default_factory=dict)
    open_time: str = None
    open_num: str = None

    @classmethod
    def from_dict(cls, data):
        """
        Build a record from the feed/export shape
        {"ngay": ..., "ket_qua": {tier: [values]}, "openTime", "openNum"}.

        Unknown tiers are dropped, missing tiers become empty.
        """
        if not isinstance(data, dict):
            raise InvalidRecordError(f"Expected a mapping, got {type(data).__name__}")

        raw_date = data.get('ngay') or data.get('date')
        if not raw_date:
            raise InvalidRecordError("Record has no date")
        try:
            parse_date(raw_date)
        except (ValueError, OverflowError) as e:
            raise InvalidRecordError(f"Invalid draw date {raw_date!r}: {e}")

        ket_qua = data.get('ket_qua') or data.get('prize_tiers') or {}
        if not isinstance(ket_qua, dict):
            raise InvalidRecordError(f"Invalid prize tiers for {raw_date}")

        tiers = {}
        for tier in PRIZE_TIERS:
            values = ket_qua.get(tier) or []
            if isinstance(values, str):
                values = values.split(',')
            elif not isinstance(values, (list, tuple)):
                values = [values]
            cleaned = tuple(str(v).strip() for v in values if str(v).strip())
            if tier == SPECIAL_TIER and len(cleaned) > 1:
                logger.warning(f"Special prize for {raw_date} has {len(cleaned)} values, keeping first")
                cleaned = cleaned[:1]
            tiers[tier] = cleaned

        return cls(
            date=normalize_date(raw_date),
            prize_tiers=tiers,
            open_time=data.get('openTime'),
            open_num=data.get('openNum'),
        )

    def to_dict(self):
        return {
            'ngay': self.date,
            'ket_qua': {tier: list(self.prize_tiers.get(tier, ())) for tier in PRIZE_TIERS},
            'openTime': self.open_time,
            'openNum': self.open_num,
        }

    @property
    def draw_date(self):
        return parse_date(self.date)


def extract_numbers(record):
    """
    Two-digit endings of every prize value, tier order then value order.

    Values shorter than two characters or not ending in two digits are
    skipped. Accepts a DrawRecord, a raw ket_qua mapping or None.
    """
    if record is None:
        return []
    tiers = record.prize_tiers if isinstance(record, DrawRecord) else record
    if not isinstance(tiers, dict):
        return []

    numbers = []
    for prize_values in tiers.values():
        if not isinstance(prize_values, (list, tuple)):
            continue
        for value in prize_values:
            num_str = str(value).strip()
            if len(num_str) < 2:
                continue
            ending = num_str[-2:]
            if ending.isascii() and ending.isdigit():
                numbers.append(ending)
    return numbers


def unique_numbers(record):
    """Sorted, de-duplicated endings of a record"""
    return sorted(set(extract_numbers(record)))
