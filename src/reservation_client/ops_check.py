from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Dict, Optional

import pydantic

from reservation_client.client import ReservationClient
from reservation_client.core.errors import ConfigurationError
from reservation_client.core.settings import Settings
from reservation_client.pipeline.form_pipeline import FormSubmissionPipeline
from reservation_client.services.health_service import check_environment, run_health_check


log = logging.getLogger("ops_check")
_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s — %(message)s"


async def _backend_health(settings: Settings) -> Dict[str, object]:
    async with ReservationClient(settings) as client:
        health = await run_health_check(FormSubmissionPipeline(client))
    return health.model_dump(mode="json")


def run_ops_check(settings: Optional[Settings] = None, *, skip_backend: bool = False) -> Dict[str, object]:
    s = settings or Settings()
    env = check_environment(s)
    checks: Dict[str, object] = {"environment": env.model_dump(mode="json")}

    if not env.ok:
        log.error("Configuration issues detected: %s", "; ".join(env.issues))
        checks["ok"] = False
        return checks

    if not skip_backend:
        checks["backend"] = asyncio.run(_backend_health(s))
        checks["ok"] = bool(checks["backend"]["ok"])
    else:
        checks["ok"] = True
    return checks


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Reservation client configuration and backend check")
    p.add_argument("--skip-backend", action="store_true", help="Only validate configuration")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    try:
        s = Settings()
    except pydantic.ValidationError as e:
        logging.basicConfig(level=logging.INFO, format=_LOG_FORMAT)
        log.error("Configuration validation failed: %s", e)
        return 2
    logging.basicConfig(level=getattr(logging, s.LOG_LEVEL.upper(), logging.INFO), format=_LOG_FORMAT)
    try:
        report = run_ops_check(s, skip_backend=args.skip_backend)
    except ConfigurationError as e:
        log.error("%s", e)
        return 2
    print(json.dumps(report, indent=2))
    return 0 if report.get("ok") else 1


if __name__ == "__main__":
    sys.exit(main())
