#!/usr/bin/env python3
"""Rendezvous raw datagram tester.

Case file (JSON list)::

    [
      {"name": "register", "send": "REGISTER alice", "expect": {"prefix": "REGISTERED alice"}},
      {"name": "keepalive", "send": "KEEPALIVE alice", "expect": {"silent": true}},
      {"name": "missing", "send": "REQUEST alice nobody",
       "expect": {"equals": "ERROR target_not_found nobody"}}
    ]
"""
import argparse, json, re, socket, sys, time
from typing import Any, Dict, List, Optional

MAX_REPLY = 511


def build_datagram(case: Dict[str, Any]) -> bytes:
    mode = case.get("mode", "raw")
    if mode == "raw":
        line = case.get("send", "")
        if not isinstance(line, str):
            line = str(line)
    elif mode == "synth":
        cfg = case.get("synth", {}) or {}
        pat = cfg.get("pattern", "long_id")
        count = int(cfg.get("count", 0))
        if pat == "long_id":
            # id maior que 63 bytes -> servidor deve truncar
            line = "REGISTER " + ("a" * count)
        elif pat == "whitespace":
            line = " " * count
        else:
            raise ValueError(f"Unknown synth pattern: {pat}")
    else:
        raise ValueError(f"Unknown mode: {mode}")
    return line.encode("utf-8", errors="replace")


def recv_reply(sock: socket.socket, timeout: float) -> Optional[str]:
    sock.settimeout(timeout)
    try:
        data, _ = sock.recvfrom(MAX_REPLY)
    except socket.timeout:
        return None
    return data.decode("utf-8", errors="replace")


def check_reply(exp: Dict[str, Any], reply: Optional[str]) -> List[str]:
    """Returns the list of failed expectations (empty when everything matches)."""
    failures = []
    if exp.get("silent"):
        if reply is not None:
            failures.append(f"silent: expected no reply, got {reply!r}")
        return failures

    if reply is None:
        if exp:
            failures.append("reply: timed out waiting for reply")
        return failures

    if "prefix" in exp and not reply.startswith(exp["prefix"]):
        failures.append(f"prefix: expected {exp['prefix']!r}, got {reply!r}")
    if "equals" in exp and reply != exp["equals"]:
        failures.append(f"equals: expected {exp['equals']!r}, got {reply!r}")
    if "regex" in exp and not re.search(exp["regex"], reply, flags=re.S):
        failures.append(f"regex: {exp['regex']!r} did not match {reply!r}")
    return failures


def run_case(case: Dict[str, Any], sock: socket.socket, host: str, port: int,
             timeout: float, default_delay: float) -> bool:
    name = case.get("name", "<no-name>")
    delay = float(case.get("delay", default_delay or 0))
    if delay > 0:
        time.sleep(delay)

    try:
        payload = build_datagram(case)
    except Exception as e:
        print(f"[{name}] BUILD ERROR: {e}")
        return False

    try:
        sock.sendto(payload, (host, port))
        reply = recv_reply(sock, timeout)
    except OSError as e:
        print(f"[{name}] NET ERROR: {e}")
        return False

    failures = check_reply(case.get("expect", {}), reply)
    for failure in failures:
        print(f"[{name}] FAIL {failure}")
    if not failures:
        print(f"[{name}] OK")
    return not failures


def run_cases(cases: List[Dict[str, Any]], host: str, port: int,
              timeout: float = 1.0, delay: float = 0.0) -> int:
    """Runs every case from one UDP socket, so the server sees one source address."""
    passed = 0
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        for case in cases:
            if run_case(case, sock, host, port, timeout, delay):
                passed += 1
    return passed


def main(argv=None):
    ap = argparse.ArgumentParser(description="Rendezvous UDP datagram tester")
    ap.add_argument("test_file", help="Path to JSON test sequence file")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=5000)
    ap.add_argument("--timeout", type=float, default=1.0, help="Seconds to wait for each reply")
    ap.add_argument("--delay", type=float, default=0.0, help="Default delay (seconds) before each case (can be overridden per-case)")
    args = ap.parse_args(argv)

    with open(args.test_file, "r", encoding="utf-8") as f:
        cases = json.load(f)

    passed = run_cases(cases, args.host, args.port, args.timeout, args.delay)
    total = len(cases)
    print(f"\nSummary: {passed}/{total} passed")
    return 0 if passed == total else 1


if __name__ == "__main__":
    sys.exit(main())
