# lambdas/log_shipper/delivery.py
"""
Drives one invocation: every record of the event is parsed into entries,
collected in a single batch, and the batch is pushed once at the end.

Any exception aborts the invocation before the push, so the sink never gets
a partial batch. Nothing is retried here; Lambda redrives the whole event.
"""
from typing import Dict, Optional

from .batch import Batch
from .clients import ClientFactory
from .labels import ElbTagLabeler, get_s3_labels, s3_stream_labels
from .parsers import LB_LOG_TYPE, parse_kinesis_record, parse_s3_log, select_s3_format


def get_elb_labels(labels: Dict[str, str], clients: ClientFactory, tag_labeler: Optional[ElbTagLabeler]) -> Dict[str, str]:
    """Labels from the load balancer's tags; only for ELB access logs with a tag mapping configured."""
    if labels.get("type") != LB_LOG_TYPE or tag_labeler is None or not tag_labeler.enabled:
        return {}

    print(f"Fetching ELB tags: {labels.get('src', '')}")
    tag_client = clients.elb_tags(labels.get("region", ""))
    tags = tag_client.describe(labels.get("src", ""))
    return tag_labeler.resolve(tags)


def process_s3_event(event: dict, sink, clients: ClientFactory, *,
                     stream_desired_rate: float, window_size: float,
                     tag_labeler: Optional[ElbTagLabeler] = None,
                     extra_labels: Optional[Dict[str, str]] = None,
                     print_log_line: bool = False, debug: bool = False) -> Batch:
    batch = Batch(stream_desired_rate, window_size, debug=debug)

    for record in event.get('Records', []):
        labels = get_s3_labels(record)
        log_format = select_s3_format(labels)
        elb_labels = get_elb_labels(labels, clients, tag_labeler)
        stream_labels = s3_stream_labels(labels, log_format.log_type, elb_labels, extra_labels)

        print(f"Fetching S3 file: s3://{labels['bucket']}/{labels['key']}")
        s3_client = clients.s3(labels["bucket_region"])
        response = s3_client.get_object(Bucket=labels["bucket"], Key=labels["key"])

        body = response["Body"]
        try:
            for entry in parse_s3_log(body, log_format, stream_labels, print_log_line=print_log_line):
                batch.add(entry)
        finally:
            body.close()

    sink.push(batch)
    return batch


def process_kinesis_event(event: dict, sink, *, stream_desired_rate: float, window_size: float,
                          extra_labels: Optional[Dict[str, str]] = None,
                          print_log_line: bool = False, debug: bool = False) -> Batch:
    batch = Batch(stream_desired_rate, window_size, debug=debug)

    for record in event.get('Records', []):
        entry = parse_kinesis_record(record, extra_labels)
        if print_log_line:
            print(entry.line)
        batch.add(entry)

    sink.push(batch)
    return batch
