# lambdas/log_shipper/labels.py
"""
Label resolution for S3 and Kinesis records.

S3 keys written by AWS services follow a fixed layout, which tells us the log
type, the account, the region and the source (load balancer name or flow log id):

  Application Load Balancer access logs
    bucket[/prefix]/AWSLogs/aws-account-id/elasticloadbalancing/region/yyyy/mm/dd/
    aws-account-id_elasticloadbalancing_region_app.load-balancer-id_end-time_ip-address_random-string.log.gz
  VPC Flow Logs
    bucket[/prefix]/AWSLogs/account_id/vpcflowlogs/region/year/month/day/
    aws_account_id_vpcflowlogs_region_flow_log_id_YYYYMMDDTHHmmZ_hash.log.gz
"""
import re
import urllib.parse
from typing import Dict, Optional

from .errors import LabelConfigError
from .models import is_valid_label_name, is_valid_label_value

FILENAME_RE = re.compile(
    r"AWSLogs/(?P<account_id>\d+)/(?P<type>\w+)/(?P<region>[\w-]+)/(?P<year>\d+)/(?P<month>\d+)/(?P<day>\d+)/"
    r"\d+_(?:elasticloadbalancing|vpcflowlogs)_\w+-\w+-\d_(?:(?:app|nlb|net)\.*?)?(?P<src>[a-zA-Z0-9\-]+)"
)

KINESIS_LOG_TYPE = "kinesis"


def parse_object_key(key: str) -> Dict[str, str]:
    """
    Extracts account_id, type, region, year, month, day and src from an S3 key.
    Returns an empty dict when the key does not follow the AWSLogs layout.
    """
    match = FILENAME_RE.search(key or "")
    if match is None:
        return {}
    return match.groupdict()


def get_s3_labels(record: dict) -> Dict[str, str]:
    """
    Builds the structural metadata of one S3 event record: the bucket fields
    from the event plus whatever the key layout tells us.
    """
    s3_record = record['s3']
    # Keys in S3 notifications are URL encoded
    key = urllib.parse.unquote_plus(s3_record['object']['key'])

    labels = {
        "key": key,
        "bucket": s3_record['bucket']['name'],
        "bucket_owner": s3_record['bucket'].get('ownerIdentity', {}).get('principalId', ""),
        "bucket_region": record.get('awsRegion', ""),
    }
    labels.update(parse_object_key(key))
    return labels


def s3_stream_labels(labels: Dict[str, str], log_type: str,
                     elb_labels: Optional[Dict[str, str]] = None,
                     extra_labels: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Label set attached to every entry of one S3 object. ELB tag labels win over the base ones."""
    stream_labels = {
        "__aws_log_type": log_type,
        f"__aws_{log_type}": labels.get("src", ""),
        f"__aws_{log_type}_owner": labels.get("account_id", ""),
    }
    stream_labels.update(elb_labels or {})
    stream_labels.update(extra_labels or {})
    return stream_labels


def kinesis_stream_labels(record: dict, extra_labels: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    stream_labels = {
        "__aws_log_type": KINESIS_LOG_TYPE,
        "__aws_kinesis_event_source_arn": record.get('eventSourceARN', ""),
    }
    stream_labels.update(extra_labels or {})
    return stream_labels


def _is_regex(target: str) -> bool:
    return len(target) >= 2 and target[0] == '/' and target[-1] == '/'


def _add_label(label_set: Dict[str, str], name: str, value: str, tag_key: str):
    if not is_valid_label_name(name):
        raise LabelConfigError(f"Could not define labels from tag {tag_key}: invalid label name {name}")
    if not is_valid_label_value(value):
        raise LabelConfigError(f"Could not define labels from tag {tag_key}: invalid label value {value}")
    label_set[name] = value


class ElbTagLabeler:
    """
    Turns load balancer tags into labels according to a static mapping.

    A mapping target is either a label name, which receives the tag value as is,
    or a /regex/ whose named groups each become a label. Patterns are compiled
    once, when the labeler is built.
    """

    def __init__(self, tags_as_labels: Optional[Dict[str, str]] = None):
        """
        Raises:
            LabelConfigError: If a pattern does not compile or has an unnamed group.
        """
        self.tags_as_labels = dict(tags_as_labels or {})
        self._patterns: Dict[str, re.Pattern] = {}

        for tag_key, target in self.tags_as_labels.items():
            if not _is_regex(target):
                continue
            try:
                pattern = re.compile(target[1:-1])
            except re.error as e:
                raise LabelConfigError(
                    f"Could not define labels from tag {tag_key}: invalid regular expression {target}"
                ) from e
            if pattern.groups != len(pattern.groupindex):
                raise LabelConfigError(f"Could not define labels from tag {tag_key}: capture group must be named")
            self._patterns[tag_key] = pattern

    @property
    def enabled(self) -> bool:
        return bool(self.tags_as_labels)

    def resolve(self, tags: Dict[str, str]) -> Dict[str, str]:
        """
        Computes the label set for a load balancer's tags. Tags absent from the
        mapping are ignored.

        A named group that takes no part in the match, like an optional group
        left empty, counts as a miss: it prints a warning and the remaining
        groups of that tag are skipped instead of yielding empty labels.

        Raises:
            LabelConfigError: If a label name or value is invalid.
        """
        label_set: Dict[str, str] = {}
        for tag_key, tag_value in tags.items():
            if tag_key not in self.tags_as_labels:
                continue

            pattern = self._patterns.get(tag_key)
            if pattern is None:
                _add_label(label_set, self.tags_as_labels[tag_key], tag_value, tag_key)
                continue

            match = pattern.search(tag_value)
            for name, index in sorted(pattern.groupindex.items(), key=lambda item: item[1]):
                value = match.group(index) if match else None
                if value is None:
                    print(f"⚠️ Warning: No match found for label {name} in tag {tag_key}")
                    break
                _add_label(label_set, name, value, tag_key)

        return label_set
