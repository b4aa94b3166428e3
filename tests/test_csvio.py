import io

import pytest

from warpstat.bench.csvio import CsvFormatError, read_csv, write_csv
from warpstat.bench.durations import MILLISECOND, SECOND
from warpstat.bench.operation import Operation
from warpstat.bench.operations import Operations

T0 = 1_600_000_000 * SECOND + 123_456_789


def sample_ops():
    return Operations(
        [
            Operation(
                op_type="GET",
                obj_per_op=1,
                start=T0,
                first_byte=T0 + 5 * MILLISECOND,
                end=T0 + 20 * MILLISECOND,
                size=1024,
                file="obj/1",
                thread=0,
                client_id="client-one",
                endpoint="http://host1:9000",
            ),
            Operation(
                op_type="PUT",
                obj_per_op=3,
                start=T0 + SECOND,
                end=T0 + 2 * SECOND,
                err='bad "thing"\thappened',
                size=4096,
                file="obj/2",
                thread=7,
                client_id="client-two",
                endpoint="http://host2:9000",
            ),
            Operation(
                op_type="GET",
                obj_per_op=1,
                start=T0 + 3 * SECOND,
                end=T0 + 4 * SECOND,
                err="line1\nline2",
                size=0,
                file="obj/1",
                thread=1,
                client_id="client-one",
                endpoint="http://host1:9000",
            ),
        ]
    )


def written(ops, comment=""):
    out = io.StringIO()
    write_csv(ops, out, comment)
    return out.getvalue()


def test_header_line():
    text = written(sample_ops())
    assert text.split("\n")[0] == (
        "idx\tthread\top\tclient_id\tn_objects\tbytes\tendpoint\tfile\terror"
        "\tstart\tfirst_byte\tend\tduration_ns"
    )


def test_round_trip():
    ops = sample_ops()
    loaded = read_csv(io.StringIO(written(ops)))
    assert loaded == ops


def test_duration_column():
    ops = sample_ops()
    rows = written(ops[:1]).split("\n")
    assert rows[1].split("\t")[-1] == str(ops[0].end - ops[0].start)


def test_comment_is_written_and_ignored():
    ops = sample_ops()
    text = written(ops, "first\nsecond")
    assert text.endswith("# first\n# second\n")
    assert read_csv(io.StringIO(text)) == ops


def test_analyze_only_maps_clients_and_files():
    loaded = read_csv(io.StringIO(written(sample_ops())), analyze_only=True)
    assert loaded[0].client_id == loaded[2].client_id
    assert loaded[0].client_id != loaded[1].client_id
    assert len({op.client_id for op in loaded}) == 2
    assert loaded[0].file == loaded[2].file != loaded[1].file
    assert all(op.file.isdigit() for op in loaded)


def test_offset_and_limit():
    ops = sample_ops()
    loaded = read_csv(io.StringIO(written(ops)), offset=1, limit=1)
    assert loaded == Operations([ops[1]])


def test_log_reports_done():
    calls = []
    read_csv(io.StringIO(written(sample_ops()[:2])), log=lambda msg, *args: calls.append((msg, *args)))
    assert calls[-1] == ("\r%d operations loaded... Done!\n", 2)


def test_empty_input_raises():
    with pytest.raises(EOFError):
        read_csv(io.StringIO(""))


def test_invalid_timestamp_raises():
    text = written(sample_ops()[:1]).replace("2020-", "20x0-", 1)
    with pytest.raises(ValueError):
        read_csv(io.StringIO(text))


def test_wrong_field_count_raises():
    text = written(sample_ops()[:1]) + "1\t2\n"
    with pytest.raises(CsvFormatError):
        read_csv(io.StringIO(text))


def test_bare_quote_raises():
    text = written(sample_ops()[:1]).replace("obj/1", 'ob"j', 1)
    with pytest.raises(CsvFormatError):
        read_csv(io.StringIO(text))


@pytest.mark.parametrize("thread", ["-1", "70000", "x"])
def test_invalid_thread_raises(thread):
    header, row, _ = written(sample_ops()[:1]).split("\n")
    fields = row.split("\t")
    fields[1] = thread
    with pytest.raises(ValueError):
        read_csv(io.StringIO(header + "\n" + "\t".join(fields) + "\n"))