# lambdas/log_shipper/app.py
import json
from typing import Any, Dict

from pydantic import ValidationError

from .clients import ClientFactory
from .delivery import process_kinesis_event, process_s3_event
from .errors import LogShipperError
from .labels import ElbTagLabeler
from .models import get_settings, parse_extra_labels
from .sink import LokiSinkClient


# Load config and build clients outside of the handler so warm invocations reuse them.
# A bad configuration fails the Lambda init, which is what we want.
try:
    SETTINGS = get_settings()
except ValidationError as e:
    print(f"❌ FATAL: Invalid or missing configuration: {e}")
    raise

CLIENTS = ClientFactory()
SINK_CLIENT = LokiSinkClient(
    SETTINGS.write_address,
    username=SETTINGS.username,
    password=SETTINGS.password,
    bearer_token=SETTINGS.bearer_token,
    tenant_id=SETTINGS.tenant_id,
    timeout=SETTINGS.sink_timeout,
)
TAG_LABELER = ElbTagLabeler(SETTINGS.elb_tags_as_labels)
EXTRA_LABELS = parse_extra_labels(SETTINGS.extra_labels)


def handler(event: Dict[str, Any], context: object) -> Dict[str, Any]:
    """
    Triggered by S3 object-created notifications or by a Kinesis stream.
    Errors are re-raised so Lambda reports the invocation as failed and retries it.
    """
    records = event.get('Records') or []
    if not records:
        print("WARNING: Event has no records. No action taken.")
        return {"statusCode": 200, "body": json.dumps("No records.")}

    first_record = records[0]
    try:
        if 's3' in first_record:
            batch = process_s3_event(
                event, SINK_CLIENT, CLIENTS,
                stream_desired_rate=SETTINGS.stream_desired_rate,
                window_size=SETTINGS.stream_rate_tracker_window_size,
                tag_labeler=TAG_LABELER,
                extra_labels=EXTRA_LABELS,
                print_log_line=SETTINGS.print_log_line,
                debug=SETTINGS.debug,
            )
        elif 'kinesis' in first_record:
            batch = process_kinesis_event(
                event, SINK_CLIENT,
                stream_desired_rate=SETTINGS.stream_desired_rate,
                window_size=SETTINGS.stream_rate_tracker_window_size,
                extra_labels=EXTRA_LABELS,
                print_log_line=SETTINGS.print_log_line,
                debug=SETTINGS.debug,
            )
        else:
            print(f"WARNING: Unsupported event source: {first_record.get('eventSource', 'unknown')}. No action taken.")
            return {"statusCode": 200, "body": json.dumps("Unsupported event.")}
    except LogShipperError as e:
        print(f"❌ Failed to ship logs: {e}")
        raise
    except Exception as e:
        print(f"❌ An unexpected error occurred while shipping logs: {e}")
        raise

    return {
        "statusCode": 200,
        "body": json.dumps({"entries": batch.entry_count, "streams": len(batch.streams), "bytes": batch.size}),
    }
