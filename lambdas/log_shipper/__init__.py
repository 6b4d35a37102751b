# lambdas/log_shipper/__init__.py
"""
Lambda that ships S3 and Kinesis logs to a Loki-compatible push endpoint.
"""
