# lambdas/log_shipper/parsers.py
import base64
import gzip
import io
import re
import zlib
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import BinaryIO, Dict, Iterator

from .errors import LogDecodeError, UnsupportedLogTypeError
from .labels import kinesis_stream_labels
from .models import Entry

FLOW_LOG_TYPE = "vpcflowlogs"
LB_LOG_TYPE = "elasticloadbalancing"

# "<word> <RFC3339 timestamp>" at the start of a line, as in ALB access logs
TIMESTAMP_RE = re.compile(r"^\S+ (?P<timestamp>\d+-\d+-\d+T\d+:\d+:\d+\.\d+Z)")
RFC3339_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d+Z$")


@dataclass(frozen=True)
class S3LogFormat:
    """How to read one kind of gzip'ed log file found in S3."""
    log_type: str
    skip_header: bool


S3_LOG_FORMATS: Dict[str, S3LogFormat] = {
    FLOW_LOG_TYPE: S3LogFormat(log_type="s3_vpc_flow", skip_header=True),
    LB_LOG_TYPE: S3LogFormat(log_type="s3_lb", skip_header=False),
}


def select_s3_format(labels: Dict[str, str]) -> S3LogFormat:
    """
    Picks the format from the type found in the S3 key.

    Raises:
        UnsupportedLogTypeError: If the key had no type or an unknown one.
    """
    key_type = labels.get("type")
    log_format = S3_LOG_FORMATS.get(key_type)
    if log_format is None:
        raise UnsupportedLogTypeError(
            f"Unsupported log type '{key_type or ''}' for object {labels.get('key', '')}"
        )
    return log_format


def parse_timestamp(value: str) -> datetime:
    """
    Strict RFC3339 parsing of a UTC timestamp with fractional seconds.

    Raises:
        LogDecodeError: If the value is not a valid RFC3339 timestamp.
    """
    if not RFC3339_RE.match(value):
        raise LogDecodeError(f"Invalid timestamp '{value}'")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise LogDecodeError(f"Invalid timestamp '{value}': {e}") from e


def _read_lines(body: BinaryIO) -> Iterator[str]:
    """Yields the decompressed lines of a gzip stream, without line endings."""
    try:
        with gzip.GzipFile(fileobj=body) as gz:
            for line in io.TextIOWrapper(gz, encoding='utf-8', errors='replace', newline='\n'):
                if line.endswith('\n'):
                    line = line[:-1]
                if line.endswith('\r'):
                    line = line[:-1]
                yield line
    except (OSError, EOFError, zlib.error) as e:
        raise LogDecodeError(f"Failed to decompress log file: {e}") from e


def parse_s3_log(body: BinaryIO, log_format: S3LogFormat, labels: Dict[str, str],
                 print_log_line: bool = False) -> Iterator[Entry]:
    """
    Lazily turns a gzip'ed S3 log file into entries.

    Lines carrying a timestamp after their first word use it; other lines reuse
    the last timestamp seen, or the current time until one is found.

    Raises:
        LogDecodeError: On a corrupt gzip stream or an unparseable timestamp.
    """
    timestamp = datetime.now(timezone.utc)
    for line_number, line in enumerate(_read_lines(body), start=1):
        if line_number == 1 and log_format.skip_header:
            continue
        if print_log_line:
            print(line)

        match = TIMESTAMP_RE.match(line)
        if match:
            timestamp = parse_timestamp(match.group("timestamp"))

        yield Entry(labels=labels, line=line, timestamp=timestamp)


def parse_kinesis_record(record: dict, extra_labels: Dict[str, str] = None) -> Entry:
    """
    A Kinesis record becomes exactly one entry: the decoded payload, stamped
    with the arrival time truncated to the second.
    """
    kinesis = record['kinesis']
    arrival = int(float(kinesis['approximateArrivalTimestamp']))
    try:
        line = base64.b64decode(kinesis['data']).decode('utf-8', errors='replace')
    except (ValueError, TypeError) as e:
        raise LogDecodeError(f"Invalid Kinesis record data: {e}") from e

    return Entry(
        labels=kinesis_stream_labels(record, extra_labels),
        line=line,
        timestamp=datetime.fromtimestamp(arrival, tz=timezone.utc),
    )
