"""Request dispatch: argument classification, HTTP transport and decoding."""

from routeclient.dispatch.dispatcher import Dispatcher, decode_body, sanitize_url
from routeclient.dispatch.transport import HttpTransport

__all__ = ["Dispatcher", "HttpTransport", "decode_body", "sanitize_url"]
