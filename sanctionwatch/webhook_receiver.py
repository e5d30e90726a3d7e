"""A small HTTP service that receives watch webhooks and logs them."""

from __future__ import annotations

import argparse
import json
import logging
import signal
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, TypeVar
from urllib.parse import urlsplit

from .download import VERSION
from .ofac import SDN, Address, AlternateIdentity

__all__ = [
    "Customer",
    "Company",
    "read_customer",
    "read_company",
    "handle_webhook",
    "make_server",
    "main",
]

_log = logging.getLogger(__name__)

DEFAULT_ADDRESS = ":10101"
MAX_BODY_SIZE = 5 * 1024 * 1024
_MALFORMED = b'{"error": "malformed JSON"}'
_JSON_TYPE = "application/json; charset=utf-8"

_T = TypeVar("_T")
_DECODER = json.JSONDecoder()


@dataclass
class Customer:
    """A watched customer as delivered by a webhook."""

    id: str = ""
    sdn: SDN | None = None
    addresses: list[Address] = field(default_factory=list)
    alts: list[AlternateIdentity] = field(default_factory=list)
    match: float = 0.0


@dataclass
class Company:
    """A watched company as delivered by a webhook."""

    id: str = ""
    sdn: SDN | None = None
    addresses: list[Address] = field(default_factory=list)
    alts: list[AlternateIdentity] = field(default_factory=list)
    match: float = 0.0


def _lookup(obj: dict[str, Any], key: str) -> Any:
    if key in obj:
        return obj[key]
    lowered = key.lower()
    for name, value in obj.items():
        if name.lower() == lowered:
            return value
    return None


def _text(obj: dict[str, Any], key: str) -> str:
    value = _lookup(obj, key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"{key}: expected a string")
    return value


def _strings(obj: dict[str, Any], key: str) -> list[str]:
    value = _lookup(obj, key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise TypeError(f"{key}: expected a list of strings")
    return value


def _number(obj: dict[str, Any], key: str) -> float:
    value = _lookup(obj, key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{key}: expected a number")
    return float(value)


def _object(value: Any, build: Callable[[dict[str, Any]], _T]) -> _T | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise TypeError("expected an object")
    return build(value)


def _objects(obj: dict[str, Any], key: str, build: Callable[[dict[str, Any]], _T]) -> list[_T]:
    value = _lookup(obj, key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"{key}: expected a list")
    return [item for item in (_object(v, build) for v in value) if item is not None]


def _sdn(obj: dict[str, Any]) -> SDN:
    return SDN(
        entity_id=_text(obj, "entityID"),
        sdn_name=_text(obj, "sdnName"),
        sdn_type=_text(obj, "sdnType"),
        programs=_strings(obj, "program"),
        title=_text(obj, "title"),
        call_sign=_text(obj, "callSign"),
        vessel_type=_text(obj, "vesselType"),
        tonnage=_text(obj, "tonnage"),
        gross_registered_tonnage=_text(obj, "grossRegisteredTonnage"),
        vessel_flag=_text(obj, "vesselFlag"),
        vessel_owner=_text(obj, "vesselOwner"),
        remarks=_text(obj, "remarks"),
    )


def _address(obj: dict[str, Any]) -> Address:
    return Address(
        entity_id=_text(obj, "entityID"),
        address_id=_text(obj, "addressID"),
        address=_text(obj, "address"),
        city_state_province_postal_code=_text(obj, "cityStateProvincePostalCode"),
        country=_text(obj, "country"),
        address_remarks=_text(obj, "addressRemarks"),
    )


def _alternate(obj: dict[str, Any]) -> AlternateIdentity:
    return AlternateIdentity(
        entity_id=_text(obj, "entityID"),
        alternate_id=_text(obj, "alternateID"),
        alternate_type=_text(obj, "alternateType"),
        alternate_name=_text(obj, "alternateName"),
        alternate_remarks=_text(obj, "alternateRemarks"),
    )


def _decode(data: bytes | str, cls: type[_T]) -> _T | None:
    text = data.decode("utf-8", errors="replace") if isinstance(data, (bytes, bytearray)) else data
    try:
        value, _ = _DECODER.raw_decode(text.lstrip())
    except ValueError:
        return None
    if not isinstance(value, dict):
        return None
    try:
        record = cls(
            id=_text(value, "id"),
            sdn=_object(_lookup(value, "sdn"), _sdn),
            addresses=_objects(value, "addresses", _address),
            alts=_objects(value, "alts", _alternate),
            match=_number(value, "match"),
        )
    except TypeError:
        return None
    return record if record.id else None


def read_customer(data: bytes | str) -> Customer | None:
    """Decode a Customer from JSON; None if malformed or without an ID."""
    return _decode(data, Customer)


def read_company(data: bytes | str) -> Company | None:
    """Decode a Company from JSON; None if malformed or without an ID."""
    return _decode(data, Company)


def handle_webhook(body: bytes | str) -> tuple[int, bytes]:
    """Process one webhook body and return the HTTP status and response body."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    body = body[:MAX_BODY_SIZE]

    customer = read_customer(body)
    if customer is not None:
        name = customer.sdn.sdn_name if customer.sdn else ""
        _log.info("got webhook for Customer %s (%s) match=%.2f", customer.id, name, customer.match)
        return HTTPStatus.OK, b""
    company = read_company(body)
    if company is not None:
        name = company.sdn.sdn_name if company.sdn else ""
        _log.info("got webhook for Company %s (%s) match=%.2f", company.id, name, company.match)
        return HTTPStatus.OK, b""

    _log.info("malformed webhook request")
    return HTTPStatus.BAD_REQUEST, _MALFORMED


class _Handler(BaseHTTPRequestHandler):
    timeout = 30

    def _path(self) -> str:
        return urlsplit(self.path).path

    def _reply(self, status: int, body: bytes, content_type: str | None = None) -> None:
        self.send_response(status)
        if content_type:
            self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _not_routed(self, allowed: str | None) -> None:
        if allowed is None:
            self._reply(HTTPStatus.NOT_FOUND, b"404 page not found\n", "text/plain; charset=utf-8")
        else:
            self._reply(HTTPStatus.METHOD_NOT_ALLOWED, b"", None)

    def do_GET(self) -> None:  # noqa: N802
        path = self._path()
        if path == "/ping":
            self._reply(HTTPStatus.OK, b"PONG", "text/plain")
        else:
            self._not_routed("POST" if path == "/ofac" else None)

    def do_POST(self) -> None:  # noqa: N802
        path = self._path()
        if path != "/ofac":
            self._not_routed("GET" if path == "/ping" else None)
            return
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = 0
        if length > MAX_BODY_SIZE:
            self.close_connection = True
        body = self.rfile.read(min(max(length, 0), MAX_BODY_SIZE))
        status, payload = handle_webhook(body)
        self._reply(status, payload, _JSON_TYPE if payload else None)

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        _log.debug(format, *args)


def _parse_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {address!r}")
    try:
        return host.strip("[]"), int(port)
    except ValueError as err:
        raise ValueError(f"invalid port in address {address!r}") from err


def make_server(address: str = DEFAULT_ADDRESS) -> ThreadingHTTPServer:
    """Create (but do not start) the webhook receiver listening on ``host:port``."""
    server = ThreadingHTTPServer(_parse_address(address), _Handler)
    server.daemon_threads = True
    return server


def main(argv: Sequence[str] | None = None) -> int:
    """Run the webhook receiver until interrupted."""
    parser = argparse.ArgumentParser(description="Receive and log watch webhooks.")
    parser.add_argument(
        "-http.addr", "--http.addr", dest="http_addr", default=DEFAULT_ADDRESS,
        help="HTTP listen address",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")
    _log.info("Starting sanctionwatch webhook receiver:%s", VERSION)

    server = make_server(args.http_addr)
    if threading.current_thread() is threading.main_thread():
        signal.signal(
            signal.SIGTERM,
            lambda *_: threading.Thread(target=server.shutdown, daemon=True).start(),
        )
    _log.info("transport=HTTP addr=%s", args.http_addr)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        _log.info("exit: interrupted")
    finally:
        server.server_close()
    return 0