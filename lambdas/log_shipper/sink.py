# lambdas/log_shipper/sink.py
from datetime import datetime, timezone
from typing import Dict, List

import requests

from .batch import Batch
from .errors import SinkPushError

STREAM_SHARD_LABEL = "__stream_shard__"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_unix_nanos(timestamp: datetime) -> int:
    delta = timestamp - EPOCH
    return (delta.days * 86400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1000


class LokiSinkClient:
    """
    Pushes a batch to a Loki compatible endpoint using its JSON push API.

    When the batch's write rate calls for more than one shard, every stream
    is tagged with a random shard so the load spreads over several streams.
    """

    def __init__(self, write_address: str, username: str = "", password: str = "",
                 bearer_token: str = "", tenant_id: str = "", timeout: float = 10.0,
                 session: requests.Session = None):
        self.write_address = write_address
        self.timeout = timeout
        self.session = session or requests.Session()

        self.headers = {"Content-Type": "application/json"}
        if tenant_id:
            self.headers["X-Scope-OrgID"] = tenant_id
        if bearer_token:
            self.headers["Authorization"] = f"Bearer {bearer_token}"
        self.auth = (username, password) if username and password else None

    def build_payload(self, batch: Batch) -> Dict[str, List[dict]]:
        sharding = batch.sharding
        streams = []
        for stream in batch.streams:
            labels = dict(stream.labels)
            if sharding.shards > 1:
                labels[STREAM_SHARD_LABEL] = str(sharding.get_random_shard())
            streams.append({
                "stream": labels,
                "values": [[str(to_unix_nanos(e.timestamp)), e.line] for e in stream.entries],
            })
        return {"streams": streams}

    def push(self, batch: Batch):
        """
        Sends the whole batch in one request.

        Raises:
            SinkPushError: If the endpoint cannot be reached or answers with an error.
        """
        if batch.entry_count == 0:
            print("No entries to push.")
            return

        payload = self.build_payload(batch)
        print(
            f"Pushing {batch.entry_count} entries ({batch.size} bytes) in {len(payload['streams'])} streams, "
            f"rate {batch.sharding.data_rate_tracker.get_rate():.0f}B/s, {batch.sharding.shards} shard(s)"
        )
        try:
            response = self.session.post(
                self.write_address,
                json=payload,
                headers=self.headers,
                auth=self.auth,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise SinkPushError(f"Failed to push batch to {self.write_address}: {e}") from e
        print(f"✅ Batch accepted by {self.write_address} (status {response.status_code}).")
