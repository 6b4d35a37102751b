# tests/conftest.py
import base64
import gzip
import io
import os

import pytest

# The Lambda module reads its configuration at import time.
os.environ.setdefault("WRITE_ADDRESS", "http://localhost:3100/loki/api/v1/push")
os.environ.setdefault("PRINT_LOG_LINE", "false")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

ALB_KEY = (
    "my-bucket/AWSLogs/123456789012/elasticloadbalancing/us-east-1/2022/01/24/"
    "123456789012_elasticloadbalancing_us-east-1_app.my-loadbalancer.b13ea9d19f16d015_"
    "20220124T0000Z_0.0.0.0_2et2e1mx.log.gz"
)
FLOW_KEY = (
    "my-bucket/AWSLogs/123456789012/vpcflowlogs/us-east-1/2018/06/20/"
    "123456789012_vpcflowlogs_us-east-1_fl-1234abcd_20180620T1620Z_fe123456.log.gz"
)


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def gzip_body(lines: list[str]) -> io.BytesIO:
    return io.BytesIO(gzip.compress(("\n".join(lines) + "\n").encode("utf-8")))


def s3_record(key: str, bucket: str = "my-bucket", region: str = "us-east-1") -> dict:
    return {
        "eventSource": "aws:s3",
        "awsRegion": region,
        "s3": {
            "bucket": {"name": bucket, "ownerIdentity": {"principalId": "A3NL1KOZZKExample"}},
            "object": {"key": key},
        },
    }


def kinesis_record(data: str, arrival: float = 1545084650.987,
                   arn: str = "arn:aws:kinesis:us-east-1:123456789012:stream/logs") -> dict:
    return {
        "eventSource": "aws:kinesis",
        "eventSourceARN": arn,
        "kinesis": {
            "data": base64.b64encode(data.encode("utf-8")).decode("ascii"),
            "approximateArrivalTimestamp": arrival,
        },
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
