"""Single benchmark operations and their accounting into time segments."""

from __future__ import annotations

import math
import unicodedata
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .durations import MILLISECOND, SECOND, format_timestamp

if TYPE_CHECKING:
    from .segment import Segment


def _round_half_away(value: float) -> float:
    if not math.isfinite(value):
        return value
    return math.copysign(math.floor(abs(value) + 0.5), value)


def _fixed(value: float, places: int) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return f"{value:.{places}f}"


class Throughput(float):
    """Throughput in bytes per second."""

    __slots__ = ()

    def __str__(self) -> str:
        value = float(self)
        if value < 2 << 10:
            return f"{_fixed(value, 1)}B/s"
        if value < 2 << 20:
            return f"{_fixed(value / (1 << 10), 1)}KiB/s"
        if value < 10 << 30:
            return f"{_fixed(value / (1 << 20), 1)}MiB/s"
        if value < 10 << 40:
            return f"{_fixed(value / (1 << 30), 2)}GiB/s"
        return f"{_fixed(value / (1 << 40), 2)}TiB/s"

    def rounded(self) -> float:
        """The throughput rounded to one decimal place."""
        return _round_half_away(float(self) * 10) / 10


@dataclass
class Operation:
    """One request made during a benchmark; times are nanoseconds since the epoch."""

    op_type: str = ""
    obj_per_op: int = 0
    start: int = 0
    first_byte: Optional[int] = None
    end: int = 0
    err: str = ""
    size: int = 0
    file: str = ""
    thread: int = 0
    client_id: str = ""
    endpoint: str = ""

    def duration(self) -> int:
        return self.end - self.start

    def bytes_per_sec(self) -> Throughput:
        if self.size == 0:
            return Throughput(0)
        elapsed = self.duration()
        if elapsed <= 0:
            return Throughput(math.inf)
        return Throughput(self.size * SECOND / elapsed)

    def ttfb(self) -> int:
        """Time to first byte, or 0 if none was recorded."""
        if self.first_byte is None:
            return 0
        return self.first_byte - self.start

    def __str__(self) -> str:
        return (
            f"{self.op_type} {self.endpoint}/(bucket)/{self.file}, "
            f"{format_timestamp(self.start)}->{format_timestamp(self.end)}, "
            f"Size: {self.size}, Error: {self.err}"
        )

    def aggregate(self, segment: "Segment") -> bool:
        """Add this operation to the segment if it belongs there.

        Returns True once the operation starts at or after the segment's end.
        """
        s = segment
        if self.start >= s.ends_before:
            return True
        if s.op_type and self.op_type != s.op_type:
            return False
        if self.end < s.start:
            return False
        started = self.start >= s.start
        ended = self.end < s.ends_before

        if started and ended:
            if self.err:
                s.errors += 1
                return False
            s.total_bytes += self.size
            s.full_ops += 1
            s.ops_started += 1
            s.ops_ended += 1
            s.objs_per_op = self.obj_per_op
            s.objects += float(self.obj_per_op)
            s.req_avg += (self.end - self.start) / MILLISECOND
            return False

        s.partial_ops += 1
        if started:
            s.ops_started += 1
            if self.err:
                # Errors only count in the segment the operation ends in.
                return False
        if ended:
            s.ops_ended += 1
            if self.err:
                s.errors += 1
                return False
            s.req_avg += (self.end - self.start) / MILLISECOND

        op_dur = self.end - self.start
        part_start = self.start if started else s.start
        part_end = self.end if ended else s.ends_before
        part_dur = part_end - part_start
        part_size = self.size * part_dur // op_dur
        if part_size < 0 or part_size > self.size:
            raise ValueError(f"invalid part size: {part_size} (op: {self!r} seg: {s!r})")
        s.objects += float(self.obj_per_op) * part_dur / op_dur
        s.total_bytes += part_size
        return False


_LATIN_SPACES = "\t\n\v\f\r \x85\xa0"


def _is_space(ch: str) -> bool:
    return ch in _LATIN_SPACES or unicodedata.category(ch) in ("Zs", "Zl", "Zp")


def field_needs_quotes(field: str) -> bool:
    """Whether a tab-separated field has to be enclosed in quotes."""
    if field == "":
        return False
    if field == "\\." or "\t" in field or any(ch in field for ch in '"\r\n'):
        return True
    return _is_space(field[0])


def csv_escape_string(field: str) -> str:
    """Quote a tab-separated field where needed, doubling embedded quotes."""
    if not field_needs_quotes(field):
        return field
    return '"' + field.replace('"', '""') + '"'