#!/usr/bin/env python
"""
RQ worker for Portfolio Manager.

Processes portfolio reconciliation jobs queued by failed follow-up steps, and
optionally seeds an invitation expiry sweep before it starts listening.
"""

import argparse
import os
import signal
import sys
import threading
from http.server import HTTPServer, BaseHTTPRequestHandler

from redis import from_url
from rq import Queue, Worker

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from portfolio_manager.core.config import REDIS_URL
from portfolio_manager.core.log import logger, configure_logging
from portfolio_manager.queues.controller import EXPIRE_INVITATIONS_TASK


class HealthCheckHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-type", "text/plain")
        self.end_headers()
        self.wfile.write(b"Worker healthy")

    def log_message(self, format, *args):
        return


def start_health_server(port: int):
    server = HTTPServer(("0.0.0.0", port), HealthCheckHandler)
    threading.Thread(target=server.serve_forever, daemon=True).start()
    logger.info(f"Health check server listening on port {port}")


def stop_worker(signum, frame):
    logger.info(f"Received signal {signum}, stopping worker")
    sys.exit(0)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the Portfolio Manager RQ worker")
    parser.add_argument(
        "--queue", default="default", help='Queue to process (default: "default")'
    )
    parser.add_argument(
        "--burst", action="store_true", help="Exit once the queue is empty"
    )
    parser.add_argument(
        "--expire-invitations",
        action="store_true",
        help="Enqueue an invitation expiry sweep before processing",
    )
    parser.add_argument(
        "--health-port",
        type=int,
        default=int(os.environ.get("PORT", 8080)),
        help="Port for the HTTP health check (0 disables it)",
    )
    return parser


def main():
    args = build_parser().parse_args()
    configure_logging()

    signal.signal(signal.SIGTERM, stop_worker)
    signal.signal(signal.SIGINT, stop_worker)

    try:
        if args.health_port:
            start_health_server(args.health_port)

        conn = from_url(REDIS_URL)
        queue = Queue(args.queue, connection=conn)

        if args.expire_invitations:
            job = queue.enqueue(EXPIRE_INVITATIONS_TASK)
            logger.info(f"Queued invitation expiry job {job.id}")

        logger.info(f"Worker processing queue '{args.queue}' from {REDIS_URL}")
        Worker([queue], connection=conn).work(burst=args.burst)

    except Exception as e:
        logger.error(f"Error starting worker: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
