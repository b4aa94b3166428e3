"""Reading and writing benchmark operations as tab-separated values."""

from __future__ import annotations

import re
from typing import Callable, Iterable, Iterator, Optional, TextIO

from .durations import format_timestamp, parse_timestamp
from .operation import Operation, csv_escape_string
from .operations import Operations

HEADER = (
    "idx\tthread\top\tclient_id\tn_objects\tbytes\tendpoint\tfile\terror"
    "\tstart\tfirst_byte\tend\tduration_ns\n"
)

_SIGNED = re.compile(r"[+-]?[0-9]+\Z")
_UNSIGNED = re.compile(r"[0-9]+\Z")


class CsvFormatError(ValueError):
    """The tab-separated input is malformed."""


def write_csv(ops: Iterable[Operation], out: TextIO, comment: str = "") -> None:
    """Write operations as tab-separated values.

    The comment, if any, goes at the end, each line prefixed with ``# ``.
    """
    out.write(HEADER)
    for idx, op in enumerate(ops):
        first_byte = format_timestamp(op.first_byte) if op.first_byte is not None else ""
        fields = (
            str(idx),
            str(op.thread),
            op.op_type,
            op.client_id,
            str(op.obj_per_op),
            str(op.size),
            csv_escape_string(op.endpoint),
            op.file,
            csv_escape_string(op.err),
            format_timestamp(op.start),
            first_byte,
            format_timestamp(op.end),
            str(op.end - op.start),
        )
        out.write("\t".join(fields) + "\n")
    if comment:
        for line in comment.split("\n"):
            out.write(f"# {line}\n")


def _normalize(line: str) -> str:
    if line.endswith("\r\n"):
        return line[:-2] + "\n"
    return line


def _records(lines: Iterable[str]) -> Iterator[list[str]]:
    """Yield tab-separated records, honouring quotes and ``#`` comment lines."""
    source = iter(lines)
    expected: Optional[int] = None
    line_no = 0
    for raw in source:
        line_no += 1
        if raw.startswith("#"):
            continue
        text = _normalize(raw)
        if text in ("", "\n"):
            continue
        record_line = line_no
        fields: list[str] = []
        pos = 0
        while True:
            if text.startswith('"', pos):
                pos += 1
                parts: list[str] = []
                while True:
                    quote = text.find('"', pos)
                    if quote < 0:
                        parts.append(text[pos:])
                        following = next(source, None)
                        if following is None:
                            raise CsvFormatError(
                                f'line {record_line}: extraneous or missing " in quoted-field'
                            )
                        line_no += 1
                        text, pos = _normalize(following), 0
                        continue
                    parts.append(text[pos:quote])
                    pos = quote + 1
                    if text.startswith('"', pos):
                        parts.append('"')
                        pos += 1
                        continue
                    break
                fields.append("".join(parts))
                tail = text[pos : pos + 1]
                if tail == "\t":
                    pos += 1
                    continue
                if tail in ("", "\n"):
                    break
                raise CsvFormatError(f'line {line_no}: extraneous or missing " in quoted-field')

            newline = text.find("\n", pos)
            stop = newline if newline >= 0 else len(text)
            tab = text.find("\t", pos)
            at_tab = 0 <= tab < stop
            if at_tab:
                stop = tab
            value = text[pos:stop]
            if '"' in value:
                raise CsvFormatError(f'line {line_no}: bare " in non-quoted-field')
            fields.append(value)
            if at_tab:
                pos = stop + 1
                continue
            break

        if expected is None:
            expected = len(fields)
        elif len(fields) != expected:
            raise CsvFormatError(f"record on line {record_line}: wrong number of fields")
        yield fields


def _parse_int(text: str, name: str, signed: bool, bits: int) -> int:
    pattern = _SIGNED if signed else _UNSIGNED
    if not pattern.match(text):
        raise ValueError(f"invalid {name} value: {text!r}")
    value = int(text)
    if signed:
        low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    else:
        low, high = 0, (1 << bits) - 1
    if not low <= value <= high:
        raise ValueError(f"{name} value out of range: {text!r}")
    return value


def read_csv(
    stream: Iterable[str],
    analyze_only: bool = False,
    offset: int = 0,
    limit: int = 0,
    log: Optional[Callable[..., None]] = None,
) -> Operations:
    """Load operations from tab-separated values.

    With ``analyze_only`` client ids and file names are replaced by short tokens.
    ``offset`` records are skipped and at most ``limit`` are read when positive.
    """
    records = _records(stream)
    header = next(records, None)
    if header is None:
        raise EOFError("no header in operations data")
    index = {name: i for i, name in enumerate(header)}

    def column(values: list[str], name: str) -> str:
        return values[index.get(name, 0)]

    clients: dict[str, str] = {}
    files: dict[str, int] = {}
    ops = Operations()
    for values in records:
        if not values:
            continue
        if offset > 0:
            offset -= 1
            continue
        start = parse_timestamp(column(values, "start"))
        first_byte_text = column(values, "first_byte")
        first_byte = parse_timestamp(first_byte_text) if first_byte_text else None
        end = parse_timestamp(column(values, "end"))
        size = _parse_int(column(values, "bytes"), "bytes", True, 64)
        thread = _parse_int(column(values, "thread"), "thread", False, 16)
        objects = _parse_int(column(values, "n_objects"), "n_objects", True, 64)
        endpoint = values[index["endpoint"]] if "endpoint" in index else ""
        client_id = values[index["client_id"]] if "client_id" in index else ""
        file = column(values, "file")
        if analyze_only:
            file = str(files.setdefault(file, len(files) + 1))
            client_id = clients.setdefault(client_id, chr(ord("a") + len(clients)))

        ops.append(
            Operation(
                op_type=column(values, "op"),
                obj_per_op=objects,
                start=start,
                first_byte=first_byte,
                end=end,
                err=column(values, "error"),
                size=size,
                file=file,
                thread=thread,
                endpoint=endpoint,
                client_id=client_id,
            )
        )
        if log is not None and len(ops) % 1_000_000 == 0:
            log("\r%d operations loaded...", len(ops))
        if limit > 0 and len(ops) >= limit:
            break
    if log is not None:
        log("\r%d operations loaded... Done!\n", len(ops))
    return ops