# lambdas/log_shipper/errors.py
"""
Exceptions raised while turning provider events into log entries.

Every one of them is fatal to the invocation: the handler lets them propagate
so that Lambda marks the batch as failed and redrives it.
"""


class LogShipperError(Exception):
    """Base class for all log shipper errors."""
    pass


class LogDecodeError(LogShipperError):
    """The S3 object could not be decompressed or a timestamp could not be parsed."""
    pass


class TagLookupError(LogShipperError):
    """The load balancer or its tags could not be found."""
    pass


class LabelConfigError(LogShipperError, ValueError):
    """Invalid tag-to-label mapping, label name or label value."""
    pass


class UnsupportedLogTypeError(LogShipperError):
    """The S3 key does not describe a log type we know how to parse."""
    pass


class SinkPushError(LogShipperError):
    """The log sink rejected the batch."""
    pass
