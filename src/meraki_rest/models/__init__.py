"""
Request and response models shared by the client.
"""

from meraki_rest.models.request import PendingRequest, build_request, encode_body
from meraki_rest.models.response import ExchangeResult, parse_json_body

__all__ = [
    "ExchangeResult",
    "PendingRequest",
    "build_request",
    "encode_body",
    "parse_json_body",
]
