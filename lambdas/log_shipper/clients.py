# lambdas/log_shipper/clients.py
import threading
from typing import Dict, Tuple

import boto3
from botocore.exceptions import ClientError

from .errors import TagLookupError


class ClientFactory:
    """
    Creates boto3 clients per (service, region) and keeps them for the life of
    the process, so warm Lambda invocations reuse their connections.
    """

    def __init__(self, session: boto3.session.Session = None):
        self._session = session
        self._clients: Dict[Tuple[str, str], object] = {}
        self._lock = threading.Lock()

    def get_client(self, service: str, region: str):
        if not region:
            raise ValueError(f"Cannot create a {service} client without a region")

        with self._lock:
            client = self._clients.get((service, region))
            if client is None:
                session = self._session or boto3.session.Session()
                client = session.client(service, region_name=region)
                self._clients[(service, region)] = client
            return client

    def s3(self, region: str):
        return self.get_client('s3', region)

    def elb_tags(self, region: str) -> "ElbTagClient":
        return ElbTagClient(self.get_client('elbv2', region))


class ElbTagClient:
    """Looks up the tags of an application/network load balancer by name."""

    def __init__(self, elb_client):
        self.elb_client = elb_client

    def describe(self, name: str) -> Dict[str, str]:
        """
        Returns the load balancer's tags as a plain dictionary.

        Raises:
            TagLookupError: If the name is empty, or the load balancer or its tags
                cannot be found.
        """
        if not name:
            raise TagLookupError("Failed to get ELB: no load balancer name in the S3 key")

        try:
            response = self.elb_client.describe_load_balancers(Names=[name])
        except ClientError as e:
            if e.response['Error']['Code'] == 'LoadBalancerNotFound':
                raise TagLookupError(f"Failed to get ELB {name}: {e.response['Error']['Message']}") from e
            raise

        load_balancers = response.get('LoadBalancers', [])
        if not load_balancers:
            raise TagLookupError(f"Failed to get ELB {name}")
        elb_arn = load_balancers[0]['LoadBalancerArn']

        response = self.elb_client.describe_tags(ResourceArns=[elb_arn])
        tag_descriptions = response.get('TagDescriptions', [])
        if not tag_descriptions:
            raise TagLookupError(f"Failed to get tags from ELB {name}")

        return {tag['Key']: tag['Value'] for tag in tag_descriptions[0].get('Tags', [])}
