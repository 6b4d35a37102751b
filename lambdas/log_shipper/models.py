# lambdas/log_shipper/models.py
"""
Settings and plain-dataclass models for the log shipper.
"""
import re
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from typing import Dict, List, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import LabelConfigError

# Label names follow the Prometheus data model.
LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

EXTRA_LABEL_PREFIX = "__extra_"


class AppSettings(BaseSettings):
    """
    Manages the Lambda's environment variables using Pydantic BaseSettings.
    A local .env file is read too, which makes running it outside AWS easier.
    """
    model_config = SettingsConfigDict(
        env_file='.env', env_file_encoding='utf-8', extra='ignore', populate_by_name=True
    )

    # Loki compatible push endpoint, e.g. http://loki:3100/loki/api/v1/push
    write_address: str = Field(..., alias='WRITE_ADDRESS')
    username: str = Field("", alias='USERNAME')
    password: str = Field("", alias='PASSWORD')
    bearer_token: str = Field("", alias='BEARER_TOKEN')
    tenant_id: str = Field("", alias='TENANT_ID')
    sink_timeout: float = Field(10.0, alias='SINK_TIMEOUT')

    # "name1,value1,name2,value2"
    extra_labels: str = Field("", alias='EXTRA_LABELS')
    print_log_line: bool = Field(True, alias='PRINT_LOG_LINE')
    # Prints the tracked write rate and shard count on every entry
    debug: bool = Field(False, alias='DEBUG')

    # Sharding, in MB/s per shard and seconds
    stream_desired_rate: float = Field(1.0, alias='STREAM_DESIRED_RATE', gt=0)
    stream_rate_tracker_window_size: float = Field(10.0, alias='STREAM_RATE_TRACKER_WINDOW_SIZE', ge=0)

    # JSON object mapping an ELB tag key to a label name or to a /regex/ with named groups
    elb_tags_as_labels: Dict[str, str] = Field(default_factory=dict, alias='ELB_TAGS_AS_LABELS')


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Returns the process-wide settings, loaded on first use."""
    return AppSettings()


# Data models
@dataclass(frozen=True)
class Entry:
    """
    One log line with its labels and timestamp.
    This is a pure data container without extra methods.
    """
    labels: Dict[str, str]
    line: str
    # Always timezone aware (UTC)
    timestamp: datetime


@dataclass
class Stream:
    """All entries sharing one exact label set, in arrival order."""
    labels: Dict[str, str]
    entries: List[Entry] = field(default_factory=list)


def label_set_key(labels: Dict[str, str]) -> Tuple[Tuple[str, str], ...]:
    """Order independent identity of a label set."""
    return tuple(sorted(labels.items()))


def is_valid_label_name(name: str) -> bool:
    return bool(name) and LABEL_NAME_RE.match(name) is not None


def is_valid_label_value(value: str) -> bool:
    try:
        value.encode('utf-8')
    except UnicodeEncodeError:
        return False
    return True


def parse_extra_labels(raw: str) -> Dict[str, str]:
    """
    Parses EXTRA_LABELS ("name1,value1,name2,value2") into a label set.
    Each name is prefixed with "__extra_".

    Raises:
        LabelConfigError: If the list has an odd length or a name is invalid.
    """
    if not raw or not raw.strip():
        return {}

    parts = [part.strip() for part in raw.split(",")]
    if len(parts) % 2 != 0:
        raise LabelConfigError(f"Invalid EXTRA_LABELS '{raw}': expected name,value pairs")

    extra_labels = {}
    for name, value in zip(parts[0::2], parts[1::2]):
        label_name = EXTRA_LABEL_PREFIX + name
        if not is_valid_label_name(label_name):
            raise LabelConfigError(f"Invalid EXTRA_LABELS: invalid label name {name}")
        extra_labels[label_name] = value
    return extra_labels
