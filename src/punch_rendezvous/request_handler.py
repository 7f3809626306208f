import logging
from typing import List, NamedTuple, Tuple

from punch_common import wire

from .peer_db import PeerDirectory

log = logging.getLogger("Handler")


class Outgoing(NamedTuple):
    payload: bytes
    address: Tuple[str, int]


class RequestHandler:
    def __init__(self, directory: PeerDirectory):
        self.directory = directory

    def handle(self, data: bytes, client_addr: Tuple[str, int]) -> List[Outgoing]:
        """Process one datagram and return the replies to send, in order."""
        client_ip, client_port = client_addr
        try:
            request = wire.decode(data)
        except wire.UnknownMessageError:
            log.info("Unknown message from %s:%d: %r", client_ip, client_port, data[:64])
            return []
        except wire.MalformedMessageError as exc:
            log.debug("Dropping malformed datagram from %s:%d: %s", client_ip, client_port, exc)
            return []

        cmd = request.command

        if cmd == "REGISTER":
            record = self.directory.register(request.peer_id, client_addr)
            if record is None:
                return []
            log.info("REGISTER %s from %s:%d", request.peer_id, client_ip, client_port)
            reply = wire.Registered(request.peer_id, client_ip, client_port)
            return [Outgoing(reply.encode(), client_addr)]

        elif cmd == "REQUEST":
            return self._request(request, client_addr)

        elif cmd == "KEEPALIVE":
            if not self.directory.touch(request.peer_id):
                log.debug("KEEPALIVE for unknown peer %s", request.peer_id)
            return []

        elif cmd == "UNREGISTER":
            if self.directory.remove(request.peer_id):
                log.info("UNREGISTER %s", request.peer_id)
            return []

        log.info("Unexpected %s from %s:%d", cmd, client_ip, client_port)
        return []

    def _request(self, request: wire.Request, client_addr: Tuple[str, int]) -> List[Outgoing]:
        requester_id = request.requester_id
        if requester_id is None:
            # requester did not send its id; try to find it by source address
            match = self.directory.find_by_address(client_addr)
            requester_id = match.peer_id if match else wire.UNKNOWN_REQUESTER

        target = self.directory.get(request.target_id)
        if target is None:
            log.info("REQUEST: target %s not found", request.target_id)
            error = wire.Error(wire.TARGET_NOT_FOUND, request.target_id)
            return [Outgoing(error.encode(), client_addr)]

        to_requester = wire.Peer(target.peer_id, target.ip, target.port)
        to_target = wire.Peer(requester_id, client_addr[0], client_addr[1])
        log.info("Forwarded %s info to requester %s", target.peer_id, requester_id)
        log.info("Notified target %s about requester %s", target.peer_id, requester_id)
        return [
            Outgoing(to_requester.encode(), client_addr),
            Outgoing(to_target.encode(), target.address),
        ]
