import argparse
import os
import sys
from typing import Callable, List, Optional, Tuple

import uvicorn

from reproxy.vars import HOST, LOG_LEVEL, PORT, PROXY_WORKERS_PER_CPU

USAGE = "Usage: reproxy [addr] / [ip] [port]"


class BindAddressError(ValueError):
    pass


def parse_bind(
    argv: List[str], prompt: Callable[[str], str] = input
) -> Tuple[str, int]:
    """
    Resolve the bind address from ``addr:port``, ``addr port``, the HOST/PORT
    environment or, failing all of those, an interactive prompt.
    """
    if not argv:
        if HOST and PORT:
            addr, port = HOST, PORT
        else:
            addr = prompt("addr:").strip()
            port = prompt("port:").strip()
    elif len(argv) == 1:
        parts = argv[0].split(":")
        if len(parts) < 2:
            raise BindAddressError(USAGE)
        addr, port = parts[0], parts[1]
    else:
        addr, port = argv[0], argv[1]

    try:
        return addr, int(port)
    except ValueError:
        raise BindAddressError(USAGE)


def worker_count() -> int:
    return max(1, (os.cpu_count() or 1) * PROXY_WORKERS_PER_CPU)


def parse_args(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        prog="reproxy",
        description="Reverse-forwarding HTTP proxy",
        usage="%(prog)s [addr] / [ip] [port]",
    )
    parser.add_argument("bind", nargs="*", help="addr:port, or addr and port")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    try:
        addr, port = parse_bind(args.bind)
    except BindAddressError as e:
        print(e, file=sys.stderr)
        sys.exit(2)

    uvicorn.run(
        "reproxy.server:app",
        host=addr,
        port=port,
        workers=worker_count(),
        log_level=LOG_LEVEL,
        access_log=True,
    )


if __name__ == "__main__":
    main()
