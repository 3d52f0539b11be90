import ssl
from typing import Optional
from aiohttp import ClientSession, TCPConnector
from .logger import log_info


def create_ssl_context(ca_file: Optional[str] = None) -> ssl.SSLContext:
    """
    Build the TLS context used for wss:// signaling URLs.

    Args:
        ca_file: Extra PEM trust root, e.g. for a self-signed dev server

    Returns:
        ssl.SSLContext requiring TLS 1.2+ and a verified server certificate
    """
    ssl_context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
    ssl_context.minimum_version = ssl.TLSVersion.TLSv1_2
    if ca_file:
        ssl_context.load_verify_locations(cafile=ca_file)
        log_info(f"Loaded extra CA bundle from {ca_file}")

    ssl_context.check_hostname = True
    ssl_context.verify_mode = ssl.CERT_REQUIRED
    return ssl_context


def get_http_session(ca_file: Optional[str] = None) -> ClientSession:
    connector = TCPConnector(ssl=create_ssl_context(ca_file))
    return ClientSession(connector=connector)
