# lambdas/log_shipper/batch.py
from typing import Dict, List, Tuple

from .models import Entry, Stream, label_set_key
from .stream_sharding import StreamSharding


class Batch:
    """
    Groups the entries of one invocation into streams keyed by their label set.

    Entries are never reordered or dropped, and the same label set always maps
    to the same stream whatever record it came from.
    """

    def __init__(self, stream_desired_rate: float, window_size: float, sharding: StreamSharding = None,
                 debug: bool = False):
        self._streams: Dict[Tuple[Tuple[str, str], ...], Stream] = {}
        self.size = 0
        self.entry_count = 0
        self.sharding = sharding or StreamSharding(stream_desired_rate, window_size, debug=debug)

    def add(self, entry: Entry):
        key = label_set_key(entry.labels)
        stream = self._streams.get(key)
        if stream is None:
            stream = Stream(labels=dict(entry.labels))
            self._streams[key] = stream
        stream.entries.append(entry)

        entry_size = len(entry.line.encode('utf-8'))
        self.size += entry_size
        self.entry_count += 1
        self.sharding.update(entry_size)

    @property
    def streams(self) -> List[Stream]:
        """Streams in the order their first entry arrived."""
        return list(self._streams.values())

    def __len__(self) -> int:
        return self.entry_count
